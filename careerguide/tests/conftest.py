from datetime import datetime, timezone

import pytest

from careerguide.core.engine import AdmissionsEngine
from careerguide.core.models import RequestContext, Role, StudentAcademicRecord, Transcript
from careerguide.core.policy import AdmissionPolicy
from careerguide.core.repositories import InMemoryApplicationRepository, InMemoryProfileStore, JsonCatalog

NOW = datetime(2025, 1, 15, 9, 30, tzinfo=timezone.utc)

COURSES = [
    {"id": "cs", "name": "Computer Science", "instituteId": "inst-x",
     "requirements": {"minimumGrades": {"Math": "C", "English": "B"}}},
    {"id": "it", "name": "Information Technology", "instituteId": "inst-x",
     "requirements": {"minimumGrades": {"Math": "D"}}},
    {"id": "biz", "name": "Business", "instituteId": "inst-x"},
    {"id": "nursing", "name": "Nursing", "instituteId": "inst-y",
     "requirements": {"minimumGrades": {"Biology": "B"}}},
    {"id": "law", "name": "Law", "instituteId": "inst-z"},
]

JOBS = [
    {"id": "dev", "title": "Developer", "companyId": "acme",
     "rules": [{"type": "min_grade", "subject": "Math", "min_grade": "B"}],
     "skills": ["Python", "SQL"], "experience": 2, "qualifications": ["Diploma"]},
    {"id": "support", "title": "IT Support", "companyId": "acme",
     "requirements": ["Networking", "Windows"]},
]


def student(student_id="stu-1", grades=None, verified=True, transcript=True, **profile):
    return StudentAcademicRecord(
        student_id=student_id,
        grades={"Math": "B", "English": "A", "Biology": "A"} if grades is None else grades,
        transcript=Transcript(verified=verified) if transcript else None,
        **profile,
    )


def as_student(student_id="stu-1"):
    return RequestContext(student_id, Role.STUDENT)


def as_institution(institution_id="inst-x"):
    return RequestContext(institution_id, Role.INSTITUTION)


@pytest.fixture
def catalog():
    c = JsonCatalog(COURSES, kind="course")
    c.add_listings(JOBS, kind="job")
    return c


@pytest.fixture
def profiles():
    return InMemoryProfileStore([
        student("stu-1", skills=["python", "sql"], experience=3, qualifications=["National Diploma in IT"]),
        student("stu-2", grades={"Math": "D"}),
        student("stu-3", verified=False),
        student("stu-4", transcript=False),
        student("stu-5", grades={"Math": "C", "English": "C"}, skills=["Python", "SQL"], experience=1),
    ])


@pytest.fixture
def repo():
    return InMemoryApplicationRepository()


@pytest.fixture
def engine(profiles, catalog, repo):
    return AdmissionsEngine(profiles, catalog, repo, AdmissionPolicy(), clock=lambda: NOW)
