import pytest
from fastapi.testclient import TestClient

from careerguide.app import app, get_engine
from careerguide.core.models import ApplicationStatus


@pytest.fixture
def client(engine):
    app.dependency_overrides[get_engine] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()


STUDENT = {"X-Actor-Id": "stu-1", "X-Actor-Role": "student"}
INSTITUTION = {"X-Actor-Id": "inst-x", "X-Actor-Role": "institution"}


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_listings(client):
    jobs = client.get("/listings", params={"kind": "job"}).json()
    assert [j["id"] for j in jobs] == ["dev", "support"]
    assert jobs[0]["requirements"] == [{"subject": "Math", "min_grade": "B", "required": True}]


def test_qualification_endpoint(client):
    body = client.get("/students/stu-2/qualification/cs").json()
    assert body["qualified"] is False
    assert body["score"] == 0
    assert body["missing_subjects"] == ["English"]
    assert body["insufficient_grades"] == [{"subject": "Math", "student_grade": "D", "required_grade": "C"}]


def test_unknown_listing_is_404(client):
    r = client.get("/students/stu-1/qualification/nope")
    assert r.status_code == 404
    assert "nope" in r.json()["error"]


def test_eligibility_endpoint_lists_blockers(client):
    body = client.get("/students/stu-3/eligibility/cs").json()
    assert body["can_apply"] is False
    assert [b["code"] for b in body["reasons"]] == ["verification_pending"]


def test_apply_and_decide(client):
    r = client.post("/applications", json={"listing_id": "cs"}, headers=STUDENT)
    assert r.status_code == 201
    app_id = r.json()["id"]
    assert r.json()["status"] == "pending"

    r = client.post(f"/applications/{app_id}/transitions", json={"action": "admit"}, headers=INSTITUTION)
    assert r.status_code == 200
    assert r.json()["status"] == "admitted"

    r = client.post(f"/applications/{app_id}/transitions", json={"action": "accept"}, headers=STUDENT)
    assert r.json()["status"] == "accepted"

    r = client.post(f"/applications/{app_id}/transitions", json={"action": "reject"}, headers=INSTITUTION)
    assert r.status_code == 409
    assert r.json()["details"]["status"] == "accepted"

    mine = client.get("/students/stu-1/applications", headers=STUDENT).json()
    assert [a["id"] for a in mine] == [app_id]


def test_ineligible_application_is_422(client):
    r = client.post("/applications", json={"listing_id": "cs"},
                    headers={"X-Actor-Id": "stu-4", "X-Actor-Role": "student"})
    assert r.status_code == 422
    assert [b["code"] for b in r.json()["details"]] == ["missing_transcript"]


def test_only_students_apply(client):
    r = client.post("/applications", json={"listing_id": "cs"}, headers=INSTITUTION)
    assert r.status_code == 403


def test_actor_headers_are_required(client):
    assert client.post("/applications", json={"listing_id": "cs"}).status_code == 403
    r = client.post("/applications", json={"listing_id": "cs"},
                    headers={"X-Actor-Id": "stu-1", "X-Actor-Role": "wizard"})
    assert r.status_code == 403


def test_waitlist_position_is_validated(client):
    app_id = client.post("/applications", json={"listing_id": "cs"}, headers=STUDENT).json()["id"]
    r = client.post(f"/applications/{app_id}/transitions",
                    json={"action": "waitlist", "waitlist_position": 0}, headers=INSTITUTION)
    assert r.status_code == 422
    r = client.post(f"/applications/{app_id}/transitions",
                    json={"action": "waitlist", "waitlist_position": 2}, headers=INSTITUTION)
    assert r.json()["waitlist_position"] == 2


def test_verify_transcript_then_apply(client):
    headers = {"X-Actor-Id": "stu-3", "X-Actor-Role": "student"}
    assert client.post("/applications", json={"listing_id": "cs"}, headers=headers).status_code == 422
    r = client.post("/students/stu-3/transcript/verify", headers=INSTITUTION)
    assert r.status_code == 200
    assert r.json()["transcript"]["verified"] is True
    assert client.post("/applications", json={"listing_id": "cs"}, headers=headers).status_code == 201


def test_students_cannot_verify_transcripts(client):
    assert client.post("/students/stu-3/transcript/verify", headers=STUDENT).status_code == 403


def test_institution_stats(client):
    client.post("/applications", json={"listing_id": "cs"}, headers=STUDENT)
    body = client.get("/institutions/inst-x/stats", headers=INSTITUTION).json()
    assert body["total_applications"] == 1
    assert client.get("/institutions/inst-x/stats", headers=STUDENT).status_code == 403


def test_ranked_jobs(client):
    body = client.get("/students/stu-1/jobs", headers=STUDENT).json()
    assert [(m["listing_id"], m["score"], m["is_good_match"]) for m in body] == [
        ("dev", 97, True),
        ("support", 52, False),
    ]
    assert body[0]["criteria"][1] == {
        "category": "Skills Match", "score": 1.0, "weight": 0.3, "details": "Matched 2 of 2 required skills",
    }
    assert client.get("/students/stu-2/jobs", headers=STUDENT).status_code == 403


def test_qualified_applicants(client):
    company = {"X-Actor-Id": "acme", "X-Actor-Role": "company"}
    body = client.get("/jobs/dev/qualified-applicants", headers=company).json()
    assert body["total"] == 2
    assert [a["student_id"] for a in body["applicants"]] == ["stu-1", "stu-5"]
    assert body["job"]["skills"] == ["Python", "SQL"]
    assert client.get("/jobs/dev/qualified-applicants", headers=INSTITUTION).status_code == 403
    assert client.get("/jobs/cs/qualified-applicants", headers=INSTITUTION).status_code == 422


def test_bundled_data_loads():
    get_engine.cache_clear()
    try:
        engine = get_engine()
        assert engine.policy.institution_code("limkokwing") == "LUCT"
        assert engine.catalog.get_listing("job-junior-dev").kind == "job"
        assert engine.evaluate_qualification("stu-001", "cs-bsc").qualified is True
        assert engine.evaluate_qualification("stu-003", "cs-bsc").reason == "no grades on file"
        eng = engine.catalog.get_listing("eng-dip")
        assert [r.required for r in eng.requirements] == [True, True, False]
        legacy = engine.applications.get_application("app-legacy-001")
        assert legacy.status == ApplicationStatus.WAITLISTED
        assert legacy.waitlist_position == 4
        ranked = engine.rank_jobs("stu-001")
        assert [m.listing_id for m in ranked] == ["job-junior-dev", "job-network-tech"]
        assert ranked[0].is_good_match is True
    finally:
        get_engine.cache_clear()
