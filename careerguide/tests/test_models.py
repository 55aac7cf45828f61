import pytest

from careerguide.core.models import (
    ApplicationStatus,
    GradeRequirement,
    RequirementSet,
    StudentAcademicRecord,
)


def test_record_find_is_case_insensitive():
    r = StudentAcademicRecord("s", grades={"Mathematics": "B"})
    assert r.find("mathematics") == "B"
    assert r.find("  MATHEMATICS ") == "B"
    assert r.find("Physics") is None


def test_record_gpa_is_derived_from_grades():
    r = StudentAcademicRecord("s", grades={"Math": "A", "English": "C"})
    assert r.gpa == 3.0
    r.grades["Art"] = "F"
    assert r.gpa == 2.0


def test_record_gpa_without_grades():
    assert StudentAcademicRecord("s").gpa is None


def test_requirement_set_from_minimum_grades():
    rs = RequirementSet.from_minimum_grades({"Math": "C", "English": "B"})
    assert len(rs) == 2
    assert list(rs)[0] == GradeRequirement("Math", "C", True)


def test_requirement_set_is_immutable():
    rs = RequirementSet.from_minimum_grades({"Math": "C"})
    with pytest.raises(AttributeError):
        rs.entries = ()


def test_status_parse_accepts_legacy_waiting_list():
    assert ApplicationStatus.parse("waiting_list") == ApplicationStatus.WAITLISTED
    assert ApplicationStatus.parse(" Admitted ") == ApplicationStatus.ADMITTED
    with pytest.raises(ValueError):
        ApplicationStatus.parse("enrolled")
