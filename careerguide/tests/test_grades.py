import pytest

from careerguide.core.errors import ValidationError
from careerguide.core.grades import (
    GRADE_SCALE,
    INSUFFICIENT,
    MET,
    MISSING,
    calculate_gpa,
    classify,
    compare,
    normalize_grade,
    scale_index,
)


def test_scale_order():
    assert GRADE_SCALE == ("F", "E", "D", "C", "B", "A", "A+")
    assert scale_index("F") < scale_index("E") < scale_index("A") < scale_index("A+")


def test_compare_basic_ordering():
    assert compare("B", "C") is True
    assert compare("C", "B") is False
    assert compare("A+", "A+") is True


def test_compare_is_case_insensitive():
    assert compare("a+", "A") is True
    assert compare(" b ", "b") is True


def test_missing_and_unknown_student_grades():
    assert compare(None, "C") is False
    assert classify(None, "C") == MISSING
    assert classify("", "C") == MISSING
    assert classify("Z", "C") == MISSING
    assert classify("B-", "C") == MISSING


def test_insufficient_is_distinct_from_missing():
    assert classify("D", "C") == INSUFFICIENT
    assert classify("C", "C") == MET


def test_malformed_requirement_is_not_met():
    assert classify("A+", "Q") == INSUFFICIENT
    assert compare("A+", "") is False


def test_normalize_grade_rejects_unknown():
    assert normalize_grade(" a+ ") == "A+"
    with pytest.raises(ValidationError):
        normalize_grade("G")
    with pytest.raises(ValidationError):
        normalize_grade(None)


def test_gpa():
    assert calculate_gpa({"Math": "A+", "English": "B"}) == 3.5
    # E has no grade points and is skipped
    assert calculate_gpa({"Math": "E", "English": "C"}) == 2.0
    assert calculate_gpa({"Math": "E"}) is None
    assert calculate_gpa({"Math": "A", "English": "B", "Art": "B"}) == 3.33


def test_gpa_skips_non_string_grades():
    assert calculate_gpa({"Math": 4, "English": "A", "Art": None}) == 4.0
    assert calculate_gpa({"Math": 85}) is None
