import math
from typing import List, Optional

from careerguide.core.grades import INSUFFICIENT, MET, MISSING
from careerguide.core.models import (
    InsufficientGrade,
    QualificationResult,
    RequirementCheck,
    RequirementSet,
    StudentAcademicRecord,
)
from careerguide.core.rule_factory import RuleFactory

NO_REQUIREMENTS = "no specific requirements"
NO_GRADES = "no grades on file"


def match_score(met: float, total: float) -> int:
    """Percentage of `total` that `met` covers, rounded half up. 100 when there is nothing to meet."""
    if total == 0:
        return 100
    return int(math.floor(100.0 * met / total + 0.5))


class QualificationEvaluator:
    """
    Checks a student's grades against a listing's RequirementSet.

    Every entry is compared, whatever its `required` flag: `qualified` holds
    only if nothing is missing and nothing is below its threshold. The score is
    the share of entries met. Results are recomputed on every call and never
    cached.
    """

    def __init__(self, factory: Optional[RuleFactory] = None):
        self.factory = factory or RuleFactory()

    def evaluate(self, record: StudentAcademicRecord, requirements: RequirementSet) -> QualificationResult:
        if len(requirements) == 0:
            return QualificationResult(qualified=True, score=100, reason=NO_REQUIREMENTS)

        if not record.grades:
            checks = [
                RequirementCheck(r.subject, r.required, False, r.min_grade, None, MISSING)
                for r in requirements
            ]
            return QualificationResult(
                qualified=False,
                score=0,
                checks=checks,
                missing_subjects=[r.subject for r in requirements],
                reason=NO_GRADES,
            )

        checks: List[RequirementCheck] = []
        missing: List[str] = []
        insufficient: List[InsufficientGrade] = []
        met = 0
        for rule in self.factory.build_rules(requirements):
            check = rule.evaluate(record)
            checks.append(check)
            if check.outcome == MET:
                met += 1
            elif check.outcome == MISSING:
                missing.append(check.subject)
            elif check.outcome == INSUFFICIENT:
                insufficient.append(InsufficientGrade(check.subject, check.student_grade, check.required_grade))

        return QualificationResult(
            qualified=not missing and not insufficient,
            score=match_score(met, len(checks)),
            checks=checks,
            missing_subjects=missing,
            insufficient_grades=insufficient,
        )
