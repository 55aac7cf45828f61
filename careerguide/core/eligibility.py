from typing import Iterable, List, Optional

from careerguide.core.models import (
    Application,
    Blocker,
    EligibilityResult,
    Listing,
    StudentAcademicRecord,
)
from careerguide.core.policy import AdmissionPolicy
from careerguide.core.qualification import QualificationEvaluator

MISSING_TRANSCRIPT = "missing_transcript"
VERIFICATION_PENDING = "verification_pending"
REQUIREMENTS_NOT_MET = "requirements_not_met"
ALREADY_APPLIED = "already_applied"
INSTITUTION_LIMIT_REACHED = "institution_application_limit_reached"


class EligibilityGuard:
    """
    Decides whether a new application may be created.

    All checks run every time so the student sees the full list of blockers.
    The guard only reads what it is given; creating the Application is up to
    the caller.
    """

    def __init__(self, evaluator: Optional[QualificationEvaluator] = None, policy: Optional[AdmissionPolicy] = None):
        self.evaluator = evaluator or QualificationEvaluator()
        self.policy = policy or AdmissionPolicy()

    def can_apply(
        self,
        student_id: str,
        listing: Listing,
        record: StudentAcademicRecord,
        existing_applications: Iterable[Application],
    ) -> EligibilityResult:
        own = [a for a in existing_applications if a.student_id == student_id]
        reasons: List[Blocker] = []

        # 1) transcript
        transcript = record.transcript
        if transcript is None:
            reasons.append(Blocker(MISSING_TRANSCRIPT, "missing transcript"))
        elif not transcript.verified:
            reasons.append(Blocker(VERIFICATION_PENDING, "verification pending"))

        # 2) qualification, always against the current requirements
        qualification = self.evaluator.evaluate(record, listing.requirements)
        if not qualification.qualified:
            reasons.append(Blocker(REQUIREMENTS_NOT_MET, "requirements not met", qualification))

        # 3) duplicate
        if any(a.listing_id == listing.id for a in own):
            reasons.append(Blocker(ALREADY_APPLIED, "already applied"))

        # 4) per-institution limit
        limit = self.policy.max_applications_per_institution
        at_institution = sum(1 for a in own if a.institution_id == listing.institution_id)
        if at_institution >= limit:
            reasons.append(Blocker(INSTITUTION_LIMIT_REACHED, "institution application limit reached"))

        return EligibilityResult(can_apply=not reasons, reasons=reasons)
