from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

from careerguide.core.grades import calculate_gpa, normalize_subject


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    ADMITTED = "admitted"
    REJECTED = "rejected"
    WAITLISTED = "waitlisted"
    ACCEPTED = "accepted"
    WITHDRAWN = "withdrawn"

    @classmethod
    def parse(cls, value: str) -> "ApplicationStatus":
        # older records wrote the waitlist status as "waiting_list"
        raw = (value or "").strip().lower()
        if raw == "waiting_list":
            return cls.WAITLISTED
        return cls(raw)


class Role(str, Enum):
    STUDENT = "student"
    INSTITUTION = "institution"
    COMPANY = "company"
    ADMIN = "admin"


@dataclass(frozen=True)
class RequestContext:
    actor_id: str
    role: Role


@dataclass
class Transcript:
    verified: bool = False
    file_name: Optional[str] = None
    verified_at: Optional[datetime] = None
    verified_by: Optional[str] = None


@dataclass
class StudentAcademicRecord:
    student_id: str
    grades: Dict[str, str] = field(default_factory=dict)
    transcript: Optional[Transcript] = None
    skills: List[str] = field(default_factory=list)
    experience: float = 0.0  # years
    qualifications: List[str] = field(default_factory=list)

    def find(self, subject: str) -> Optional[str]:
        key = normalize_subject(subject)
        for name, grade in self.grades.items():
            if normalize_subject(name) == key:
                return grade
        return None

    @property
    def gpa(self) -> Optional[float]:
        return calculate_gpa(self.grades)


@dataclass(frozen=True)
class GradeRequirement:
    subject: str
    min_grade: str
    required: bool = True


@dataclass(frozen=True)
class RequirementSet:
    entries: Tuple[GradeRequirement, ...] = ()

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    @classmethod
    def from_minimum_grades(cls, minimum_grades: Dict[str, str]) -> "RequirementSet":
        return cls(tuple(GradeRequirement(s, g) for s, g in minimum_grades.items()))


@dataclass(frozen=True)
class Listing:
    id: str
    name: str
    institution_id: str
    kind: str = "course"  # "course" | "job"
    requirements: RequirementSet = field(default_factory=RequirementSet)
    faculty: str = ""
    description: str = ""
    # job-only: matched against the student profile, not the grades
    skills: Tuple[str, ...] = ()
    experience: float = 0.0
    qualifications: Tuple[str, ...] = ()


@dataclass
class RequirementCheck:
    subject: str
    required: bool
    meets_requirement: bool
    required_grade: str
    student_grade: Optional[str]
    outcome: str  # "met" | "missing" | "insufficient"


@dataclass
class InsufficientGrade:
    subject: str
    student_grade: str
    required_grade: str


@dataclass
class QualificationResult:
    qualified: bool
    score: int
    checks: List[RequirementCheck] = field(default_factory=list)
    missing_subjects: List[str] = field(default_factory=list)
    insufficient_grades: List[InsufficientGrade] = field(default_factory=list)
    reason: Optional[str] = None


@dataclass
class Blocker:
    code: str
    message: str
    qualification: Optional[QualificationResult] = None


@dataclass
class EligibilityResult:
    can_apply: bool
    reasons: List[Blocker] = field(default_factory=list)


@dataclass
class Application:
    id: str
    student_id: str
    listing_id: str
    institution_id: str
    status: ApplicationStatus = ApplicationStatus.PENDING
    qualification_score: int = 0
    is_qualified: bool = False
    application_number: Optional[str] = None
    applied_at: Optional[datetime] = None
    admitted_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    waitlisted_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    withdrawn_at: Optional[datetime] = None
    notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    waitlist_position: Optional[int] = None
    version: int = 0


@dataclass
class MatchCriterion:
    category: str
    score: float  # 0..1
    weight: float
    details: str


@dataclass
class JobMatch:
    student_id: str
    listing_id: str
    score: int  # 0..100
    is_good_match: bool
    criteria: List[MatchCriterion] = field(default_factory=list)
