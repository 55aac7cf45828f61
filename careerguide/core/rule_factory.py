import logging
from typing import Any, Dict, List

from careerguide.core.grades import is_valid_grade
from careerguide.core.models import GradeRequirement, RequirementSet
from careerguide.core.rules import MinimumGradeRule

logger = logging.getLogger(__name__)


class RuleFactory:
    """
    Build requirements from listing JSON and rules from requirements.

    Two listing layouts are accepted:

        {"rules": [{"type": "min_grade", "subject": "Math", "min_grade": "C", "required": true}, ...]}
        {"requirements": {"minimumGrades": {"Math": "C", ...}}}   (or "minimumGrades" at the top level)

    The catalog calls: factory.requirements_from_json(listing_cfg)
    """

    def from_json(self, rule_cfg: Dict[str, Any]) -> GradeRequirement:
        rtype = (rule_cfg.get("type") or "min_grade").lower()
        if rtype != "min_grade":
            raise ValueError(f"Unknown rule type: {rule_cfg!r}")

        subject = (rule_cfg.get("subject") or "").strip()
        if not subject:
            raise ValueError(f"Rule without subject: {rule_cfg!r}")

        min_grade = str(rule_cfg.get("min_grade", "")).strip().upper()
        if not is_valid_grade(min_grade):
            # kept so the evaluator reports it as not met
            logger.warning("Rule for %s has grade %r outside the grade scale", subject, min_grade)
        return GradeRequirement(subject=subject, min_grade=min_grade, required=bool(rule_cfg.get("required", True)))

    def requirements_from_json(self, listing_cfg: Dict[str, Any]) -> RequirementSet:
        if "rules" in listing_cfg:
            return RequirementSet(tuple(self.from_json(r) for r in listing_cfg.get("rules") or []))

        reqs = listing_cfg.get("requirements")
        minimum_grades = reqs.get("minimumGrades") if isinstance(reqs, dict) else None
        if minimum_grades is None:
            minimum_grades = listing_cfg.get("minimumGrades") or {}
        return RequirementSet(tuple(
            self.from_json({"subject": subject, "min_grade": grade})
            for subject, grade in minimum_grades.items()
        ))

    def build_rules(self, requirements: RequirementSet) -> List[MinimumGradeRule]:
        return [MinimumGradeRule(r) for r in requirements]
