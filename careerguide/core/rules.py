from typing import Protocol

from careerguide.core.grades import MET, classify
from careerguide.core.models import GradeRequirement, RequirementCheck, StudentAcademicRecord


class RequirementRule(Protocol):
    def evaluate(self, record: StudentAcademicRecord) -> RequirementCheck: ...


class MinimumGradeRule:
    def __init__(self, requirement: GradeRequirement):
        self.requirement = requirement

    @property
    def subject(self) -> str:
        return self.requirement.subject

    def evaluate(self, record: StudentAcademicRecord) -> RequirementCheck:
        req = self.requirement
        student_grade = record.find(req.subject)
        outcome = classify(student_grade, req.min_grade)
        return RequirementCheck(
            subject=req.subject,
            required=req.required,
            meets_requirement=outcome == MET,
            required_grade=req.min_grade,
            student_grade=student_grade,
            outcome=outcome,
        )

    def __repr__(self) -> str:
        return f"MinimumGradeRule({self.requirement.subject!r} >= {self.requirement.min_grade!r})"
