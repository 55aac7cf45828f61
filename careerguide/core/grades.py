import logging
from typing import Dict, Optional

from careerguide.core.errors import ValidationError

logger = logging.getLogger(__name__)

# Canonical grade order, lowest to highest. Every comparison goes through this tuple.
GRADE_SCALE = ("F", "E", "D", "C", "B", "A", "A+")

# E carries no grade points and is left out of the GPA.
GRADE_POINTS = {"A+": 4.0, "A": 4.0, "B": 3.0, "C": 2.0, "D": 1.0, "F": 0.0}

MET = "met"
MISSING = "missing"
INSUFFICIENT = "insufficient"


def normalize_subject(name: str) -> str:
    return (name or "").strip().casefold()


def normalize_grade(grade: str) -> str:
    """Upper-case and strip `grade`; raise ValidationError if it is not on GRADE_SCALE."""
    g = (grade or "").strip().upper() if isinstance(grade, str) else ""
    if g not in GRADE_SCALE:
        raise ValidationError(f"Unknown grade: {grade!r}")
    return g


def is_valid_grade(grade: Optional[str]) -> bool:
    try:
        normalize_grade(grade)
    except ValidationError:
        return False
    return True


def scale_index(grade: str) -> int:
    return GRADE_SCALE.index(normalize_grade(grade))


def classify(student_grade: Optional[str], required_grade: str) -> str:
    """
    Compare one student grade against one required grade.

    Returns MET, MISSING (no grade, or a grade outside the scale) or
    INSUFFICIENT (below the threshold, or the threshold itself is malformed).
    """
    if not is_valid_grade(student_grade):
        return MISSING
    try:
        required_idx = scale_index(required_grade)
    except ValidationError:
        logger.warning("Requirement grade %r is not on the grade scale; treating as not met", required_grade)
        return INSUFFICIENT
    if scale_index(student_grade) >= required_idx:
        return MET
    return INSUFFICIENT


def compare(student_grade: Optional[str], required_grade: str) -> bool:
    return classify(student_grade, required_grade) == MET


def calculate_gpa(grades: Dict[str, str]) -> Optional[float]:
    total = 0.0
    counted = 0
    for grade in (grades or {}).values():
        if not isinstance(grade, str):
            continue
        points = GRADE_POINTS.get(grade.strip().upper())
        if points is not None:
            total += points
            counted += 1
    if counted == 0:
        return None
    return round(total / counted, 2)
