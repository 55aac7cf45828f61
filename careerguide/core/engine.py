import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from careerguide.core.decisions import DecisionStateMachine, TransitionPayload
from careerguide.core.eligibility import EligibilityGuard
from careerguide.core.errors import ConcurrentModificationError, EligibilityError, ValidationError
from careerguide.core.job_match import JobMatcher
from careerguide.core.models import (
    Application,
    ApplicationStatus,
    EligibilityResult,
    JobMatch,
    Listing,
    QualificationResult,
    RequestContext,
)
from careerguide.core.policy import AdmissionPolicy
from careerguide.core.qualification import QualificationEvaluator
from careerguide.core.reports import summarize_applications
from careerguide.core.repositories import ApplicationRepository, Catalog, ProfileStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AdmissionsEngine:
    """
    Entry point for callers. Reads what it needs from the collaborators right
    before each decision, so grades and requirements are always current.
    """

    def __init__(
        self,
        profiles: ProfileStore,
        catalog: Catalog,
        applications: ApplicationRepository,
        policy: Optional[AdmissionPolicy] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.profiles = profiles
        self.catalog = catalog
        self.applications = applications
        self.policy = policy or AdmissionPolicy()
        self.clock = clock or _utcnow
        self.evaluator = QualificationEvaluator()
        self.guard = EligibilityGuard(self.evaluator, self.policy)
        self.decisions = DecisionStateMachine()
        self.matcher = JobMatcher(self.policy.good_match_threshold)

    def evaluate_qualification(self, student_id: str, listing_id: str) -> QualificationResult:
        record = self.profiles.get_academic_record(student_id)
        return self.evaluator.evaluate(record, self.catalog.get_requirements(listing_id))

    def check_eligibility(self, student_id: str, listing_id: str) -> EligibilityResult:
        record = self.profiles.get_academic_record(student_id)
        listing = self.catalog.get_listing(listing_id)
        existing = self.applications.list_applications(student_id)
        return self.guard.can_apply(student_id, listing, record, existing)

    def submit_application(self, student_id: str, listing_id: str) -> Union[Application, EligibilityError]:
        record = self.profiles.get_academic_record(student_id)
        listing = self.catalog.get_listing(listing_id)
        existing = self.applications.list_applications(student_id)

        eligibility = self.guard.can_apply(student_id, listing, record, existing)
        if not eligibility.can_apply:
            logger.info(
                "Application by %s to %s blocked: %s",
                student_id, listing_id, ", ".join(b.code for b in eligibility.reasons),
            )
            return EligibilityError(eligibility.reasons)

        qualification = self.evaluator.evaluate(record, listing.requirements)
        now = self.clock()
        application = Application(
            id=uuid.uuid4().hex,
            student_id=student_id,
            listing_id=listing.id,
            institution_id=listing.institution_id,
            status=ApplicationStatus.PENDING,
            qualification_score=qualification.score,
            is_qualified=qualification.qualified,
            application_number=self._application_number(listing.institution_id, now),
            applied_at=now,
        )
        try:
            created = self.applications.create_application(
                application, self.policy.max_applications_per_institution
            )
        except EligibilityError as e:
            # a concurrent submission by this student was stored first
            logger.info(
                "Application by %s to %s blocked on write: %s",
                student_id, listing_id, ", ".join(b.code for b in e.reasons),
            )
            return e
        logger.info("Application %s submitted by %s to %s", created.id, student_id, listing_id)
        return created

    def transition_application(
        self,
        application_id: str,
        action: str,
        payload: Optional[TransitionPayload] = None,
        *,
        context: RequestContext,
    ) -> Application:
        application = self.applications.get_application(application_id)
        student_apps = self.applications.list_applications(application.student_id)
        now = self.clock()

        plan = self.decisions.plan(application, action, payload, context, student_apps, now)
        if plan is None:
            return application

        updated = self.applications.update_application_status(
            plan.application_id, plan.expected_status, plan.new_status, plan.fields
        )
        logger.info(
            "Application %s: %s -> %s by %s %s",
            application_id, plan.expected_status.value, plan.new_status.value,
            context.role.value, context.actor_id,
        )

        if updated.status == ApplicationStatus.ACCEPTED and self.policy.cascade_on_accept:
            self._withdraw_others(updated, now)
        return updated

    def match_job(self, student_id: str, listing_id: str) -> JobMatch:
        return self.matcher.match(self.profiles.get_academic_record(student_id), self._job(listing_id))

    def rank_jobs(self, student_id: str) -> List[JobMatch]:
        record = self.profiles.get_academic_record(student_id)
        return self.matcher.rank(record, self.catalog.list_listings("job"))

    def qualified_applicants(self, listing_id: str) -> List[JobMatch]:
        job = self._job(listing_id)
        return self.matcher.shortlist(
            self.profiles.list_academic_records(), job, self.policy.applicant_match_threshold
        )

    def application_stats(self, institution_id: str) -> Dict[str, Any]:
        listings = [p for p in self.catalog.list_listings() if p.institution_id == institution_id]
        return summarize_applications(self.applications.list_by_institution(institution_id), listings)

    def _withdraw_others(self, accepted: Application, now: datetime) -> None:
        others = self.applications.list_applications(accepted.student_id)
        for plan in self.decisions.cascade_plans(accepted, others, now):
            try:
                self.applications.update_application_status(
                    plan.application_id, plan.expected_status, plan.new_status, plan.fields
                )
            except ConcurrentModificationError as e:
                # the other application was decided meanwhile; leave it as it is now
                logger.warning("Skipped withdrawing %s after acceptance: %s", plan.application_id, e)
                continue
            logger.info("Application %s withdrawn after %s was accepted", plan.application_id, accepted.id)

    def _job(self, listing_id: str) -> Listing:
        listing = self.catalog.get_listing(listing_id)
        if listing.kind != "job":
            raise ValidationError(f"Listing {listing_id} is not a job")
        return listing

    def _application_number(self, institution_id: str, now: datetime) -> str:
        millis = int(now.timestamp() * 1000)
        return f"{self.policy.institution_code(institution_id)}-{millis % 1_000_000:06d}"
