import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Protocol

from careerguide.core.eligibility import ALREADY_APPLIED, INSTITUTION_LIMIT_REACHED
from careerguide.core.errors import (
    ConcurrentModificationError,
    EligibilityError,
    IllegalTransitionError,
    NotFoundError,
)
from careerguide.core.models import (
    Application,
    ApplicationStatus,
    Blocker,
    Listing,
    RequirementSet,
    StudentAcademicRecord,
    Transcript,
)
from careerguide.core.rule_factory import RuleFactory

logger = logging.getLogger(__name__)


def _years(value: Any) -> float:
    if value in (None, ""):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning("Experience value %r is not a number of years; using 0", value)
        return 0.0


def _strings(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value]
    return [v for v in (value or []) if isinstance(v, str)]


def _timestamp(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class ProfileStore(Protocol):
    def get_academic_record(self, student_id: str) -> StudentAcademicRecord:
        ...

    def list_academic_records(self) -> List[StudentAcademicRecord]:
        ...

    def verify_transcript(self, student_id: str, verified_by: str, now: datetime) -> StudentAcademicRecord:
        ...


class Catalog(Protocol):
    def get_listing(self, listing_id: str) -> Listing:
        ...

    def get_requirements(self, listing_id: str) -> RequirementSet:
        ...

    def get_institution_id(self, listing_id: str) -> str:
        ...

    def list_listings(self, kind: Optional[str] = None) -> List[Listing]:
        ...


class ApplicationRepository(Protocol):
    """
    Storage for applications. The cross-application invariants are enforced
    here, atomically with the write that could break them:

    - create_application refuses a second application for the same
      (student, listing) and, when `max_per_institution` is given, one more
      than that many for the same (student, institution). It raises
      EligibilityError carrying the blocker.
    - update_application_status is a compare-and-set on the status
      (ConcurrentModificationError on mismatch) and refuses to move an
      application to ACCEPTED while another application of the same student
      is ACCEPTED (IllegalTransitionError).
    """

    def get_application(self, application_id: str) -> Application:
        ...

    def list_applications(self, student_id: str, institution_id: Optional[str] = None) -> List[Application]:
        ...

    def list_by_institution(self, institution_id: str) -> List[Application]:
        ...

    def create_application(self, application: Application, max_per_institution: Optional[int] = None) -> Application:
        ...

    def update_application_status(
        self,
        application_id: str,
        expected_status: ApplicationStatus,
        new_status: ApplicationStatus,
        fields: Dict[str, Any],
    ) -> Application:
        ...


def _copy_record(record: StudentAcademicRecord) -> StudentAcademicRecord:
    return replace(
        record,
        grades=dict(record.grades),
        transcript=replace(record.transcript) if record.transcript else None,
        skills=list(record.skills),
        qualifications=list(record.qualifications),
    )


class InMemoryProfileStore:
    def __init__(self, records: Iterable[StudentAcademicRecord] = ()):
        self._records: Dict[str, StudentAcademicRecord] = {r.student_id: _copy_record(r) for r in records}

    @classmethod
    def from_json(cls, students_json: Any) -> "InMemoryProfileStore":
        records = []
        for s in students_json:
            t = s.get("transcript")
            transcript = None
            if t is not None:
                transcript = Transcript(verified=bool(t.get("verified", False)), file_name=t.get("fileName"))
            records.append(StudentAcademicRecord(
                student_id=s["id"],
                grades=dict(s.get("grades") or {}),
                transcript=transcript,
                skills=_strings(s.get("skills")),
                experience=_years(s.get("experience")),
                qualifications=_strings(s.get("qualifications")),
            ))
        return cls(records)

    def get_academic_record(self, student_id: str) -> StudentAcademicRecord:
        record = self._records.get(student_id)
        if record is None:
            raise NotFoundError("Student", student_id)
        return _copy_record(record)

    def list_academic_records(self) -> List[StudentAcademicRecord]:
        return [_copy_record(r) for r in self._records.values()]

    def save_academic_record(self, record: StudentAcademicRecord) -> None:
        self._records[record.student_id] = _copy_record(record)

    def verify_transcript(self, student_id: str, verified_by: str, now: datetime) -> StudentAcademicRecord:
        record = self.get_academic_record(student_id)
        if record.transcript is None:
            raise NotFoundError("Transcript", student_id)
        record.transcript = replace(record.transcript, verified=True, verified_at=now, verified_by=verified_by)
        self.save_academic_record(record)
        return record


class JsonCatalog:
    def __init__(self, listings_json: Any, factory: Optional[RuleFactory] = None, kind: str = "course"):
        self.factory = factory or RuleFactory()
        self._listings: Dict[str, Listing] = {}
        self.add_listings(listings_json, kind)

    def add_listings(self, listings_json: Any, kind: str) -> None:
        for p in listings_json:
            institution_id = p.get("institutionId") or p.get("instituteId") or p.get("companyId")
            if not institution_id:
                raise ValueError(f"Listing {p.get('id')!r} has no institution or company")
            # jobs may list wanted skills as a plain "requirements" array
            skills = p.get("skills")
            if skills is None and isinstance(p.get("requirements"), list):
                skills = p["requirements"]
            self._listings[p["id"]] = Listing(
                id=p["id"],
                name=p.get("name") or p.get("title", ""),
                institution_id=institution_id,
                kind=p.get("kind", kind),
                requirements=self.factory.requirements_from_json(p),
                faculty=p.get("faculty", ""),
                description=p.get("description", ""),
                skills=tuple(_strings(skills)),
                experience=_years(p.get("experience")),
                qualifications=tuple(_strings(p.get("qualifications"))),
            )

    def get_listing(self, listing_id: str) -> Listing:
        listing = self._listings.get(listing_id)
        if listing is None:
            raise NotFoundError("Listing", listing_id)
        return listing

    def get_requirements(self, listing_id: str) -> RequirementSet:
        return self.get_listing(listing_id).requirements

    def get_institution_id(self, listing_id: str) -> str:
        return self.get_listing(listing_id).institution_id

    def list_listings(self, kind: Optional[str] = None) -> List[Listing]:
        return [p for p in self._listings.values() if kind is None or p.kind == kind]


class InMemoryApplicationRepository:
    """
    Dict-backed application store.

    Records are copied in and out so callers never hold the stored object.
    Every check that spans several applications of one student runs under the
    same lock as the write it protects.
    """

    def __init__(self, applications: Iterable[Application] = ()):
        self._lock = threading.Lock()
        self._apps: Dict[str, Application] = {a.id: replace(a) for a in applications}

    @classmethod
    def from_json(cls, applications_json: Any) -> "InMemoryApplicationRepository":
        apps = []
        for a in applications_json:
            listing_id = a.get("listingId") or a.get("courseId") or a.get("jobId")
            institution_id = a.get("institutionId") or a.get("instituteId") or a.get("companyId")
            if not listing_id or not institution_id:
                raise ValueError(f"Application {a.get('id')!r} has no listing or institution")
            apps.append(Application(
                id=a["id"],
                student_id=a["studentId"],
                listing_id=listing_id,
                institution_id=institution_id,
                status=ApplicationStatus.parse(a.get("status", "pending")),
                qualification_score=int(a.get("qualificationScore", 0)),
                is_qualified=bool(a.get("isQualified", False)),
                application_number=a.get("applicationNumber"),
                applied_at=_timestamp(a.get("appliedAt")),
                notes=a.get("notes"),
                rejection_reason=a.get("rejectionReason"),
                waitlist_position=a.get("waitlistPosition"),
            ))
        return cls(apps)

    def get_application(self, application_id: str) -> Application:
        with self._lock:
            app = self._apps.get(application_id)
            if app is None:
                raise NotFoundError("Application", application_id)
            return replace(app)

    def list_applications(self, student_id: str, institution_id: Optional[str] = None) -> List[Application]:
        with self._lock:
            return [
                replace(a) for a in self._apps.values()
                if a.student_id == student_id and (institution_id is None or a.institution_id == institution_id)
            ]

    def list_by_institution(self, institution_id: str) -> List[Application]:
        with self._lock:
            return [replace(a) for a in self._apps.values() if a.institution_id == institution_id]

    def create_application(self, application: Application, max_per_institution: Optional[int] = None) -> Application:
        with self._lock:
            if application.id in self._apps:
                raise ValueError(f"Application {application.id} already exists")

            own = [a for a in self._apps.values() if a.student_id == application.student_id]
            reasons: List[Blocker] = []
            if any(a.listing_id == application.listing_id for a in own):
                reasons.append(Blocker(ALREADY_APPLIED, "already applied"))
            if max_per_institution is not None:
                held = sum(1 for a in own if a.institution_id == application.institution_id)
                if held >= max_per_institution:
                    reasons.append(Blocker(INSTITUTION_LIMIT_REACHED, "institution application limit reached"))
            if reasons:
                raise EligibilityError(reasons)

            self._apps[application.id] = replace(application)
            return replace(application)

    def update_application_status(
        self,
        application_id: str,
        expected_status: ApplicationStatus,
        new_status: ApplicationStatus,
        fields: Dict[str, Any],
    ) -> Application:
        with self._lock:
            current = self._apps.get(application_id)
            if current is None:
                raise NotFoundError("Application", application_id)
            if current.status != expected_status:
                raise ConcurrentModificationError(application_id, expected_status.value, current.status.value)
            if new_status == ApplicationStatus.ACCEPTED:
                for other in self._apps.values():
                    if (other.student_id == current.student_id and other.id != application_id
                            and other.status == ApplicationStatus.ACCEPTED):
                        raise IllegalTransitionError(
                            f"Student has already accepted application {other.id}",
                            current_status=current.status.value, action="accept",
                        )
            updated = replace(current, status=new_status, version=current.version + 1, **fields)
            self._apps[application_id] = updated
            return replace(updated)
