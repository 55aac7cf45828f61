import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from careerguide.catalog.loaders import (
    load_applications,
    load_courses,
    load_jobs,
    load_policy,
    load_students,
)
from careerguide.config import get_settings
from careerguide.core.decisions import TransitionPayload
from careerguide.core.engine import AdmissionsEngine
from careerguide.core.errors import (
    ConcurrentModificationError,
    EligibilityError,
    IllegalTransitionError,
    NotFoundError,
    ValidationError,
)
from careerguide.core.models import RequestContext, Role
from careerguide.core.policy import AdmissionPolicy
from careerguide.core.repositories import InMemoryApplicationRepository, InMemoryProfileStore, JsonCatalog

settings = get_settings()
logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)


@lru_cache()
def get_engine() -> AdmissionsEngine:
    root = settings.data_dir
    catalog = JsonCatalog(load_courses(root), kind="course")
    catalog.add_listings(load_jobs(root), kind="job")
    profiles = InMemoryProfileStore.from_json(load_students(root))
    applications = InMemoryApplicationRepository.from_json(load_applications(root))
    logger.info("Loaded %d listings from %s", len(catalog.list_listings()), root)
    return AdmissionsEngine(
        profiles=profiles,
        catalog=catalog,
        applications=applications,
        policy=AdmissionPolicy(load_policy(root)),
    )


def request_context(
    x_actor_id: Optional[str] = Header(None),
    x_actor_role: Optional[str] = Header(None),
) -> RequestContext:
    if not x_actor_id or not x_actor_role:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Missing X-Actor-Id / X-Actor-Role")
    try:
        role = Role(x_actor_role.strip().lower())
    except ValueError:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Unknown role: {x_actor_role}")
    return RequestContext(actor_id=x_actor_id.strip(), role=role)


app = FastAPI(title="Career Guidance Admissions")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --------- Error mapping ----------
def _error(status_code: int, message: str, details: Any = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, "details": jsonable_encoder(details)})


@app.exception_handler(NotFoundError)
def not_found(request: Request, exc: NotFoundError):
    return _error(status.HTTP_404_NOT_FOUND, str(exc))


@app.exception_handler(EligibilityError)
def not_eligible(request: Request, exc: EligibilityError):
    return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, str(exc), exc.reasons)


@app.exception_handler(ValidationError)
def invalid(request: Request, exc: ValidationError):
    return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, str(exc))


@app.exception_handler(IllegalTransitionError)
def illegal_transition(request: Request, exc: IllegalTransitionError):
    return _error(status.HTTP_409_CONFLICT, str(exc), {"status": exc.current_status, "action": exc.action})


@app.exception_handler(ConcurrentModificationError)
def concurrent_modification(request: Request, exc: ConcurrentModificationError):
    return _error(status.HTTP_409_CONFLICT, str(exc), {"retry": True, "status": exc.actual})


# --------- Request models ----------
class ApplyRequest(BaseModel):
    listing_id: str


class TransitionRequest(BaseModel):
    action: str
    notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    waitlist_position: Optional[int] = Field(None, ge=1)


# --------- Endpoints ----------
@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "healthy"}


@app.get("/listings")
def listings(kind: Optional[str] = None, engine: AdmissionsEngine = Depends(get_engine)) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for p in engine.catalog.list_listings(kind):
        out.append({
            "id": p.id,
            "name": p.name,
            "kind": p.kind,
            "institution_id": p.institution_id,
            "faculty": p.faculty,
            "requirements": [
                {"subject": r.subject, "min_grade": r.min_grade, "required": r.required}
                for r in p.requirements
            ],
        })
    return out


@app.get("/students/{student_id}/qualification/{listing_id}")
def qualification(student_id: str, listing_id: str, engine: AdmissionsEngine = Depends(get_engine)):
    return engine.evaluate_qualification(student_id, listing_id)


@app.get("/students/{student_id}/eligibility/{listing_id}")
def eligibility(student_id: str, listing_id: str, engine: AdmissionsEngine = Depends(get_engine)):
    return engine.check_eligibility(student_id, listing_id)


@app.get("/students/{student_id}/applications")
def student_applications(
    student_id: str,
    ctx: RequestContext = Depends(request_context),
    engine: AdmissionsEngine = Depends(get_engine),
):
    if ctx.role != Role.ADMIN and ctx.actor_id != student_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your applications")
    return engine.applications.list_applications(student_id)


@app.post("/students/{student_id}/transcript/verify")
def verify_transcript(
    student_id: str,
    ctx: RequestContext = Depends(request_context),
    engine: AdmissionsEngine = Depends(get_engine),
):
    if ctx.role not in (Role.INSTITUTION, Role.ADMIN):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only institutions can verify transcripts")
    record = engine.profiles.verify_transcript(student_id, ctx.actor_id, datetime.now(timezone.utc))
    return {"student_id": record.student_id, "transcript": record.transcript}


@app.post("/applications", status_code=status.HTTP_201_CREATED)
def submit_application(
    req: ApplyRequest,
    ctx: RequestContext = Depends(request_context),
    engine: AdmissionsEngine = Depends(get_engine),
):
    if ctx.role != Role.STUDENT:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only students can apply")
    result = engine.submit_application(ctx.actor_id, req.listing_id)
    if isinstance(result, EligibilityError):
        raise result
    return result


@app.post("/applications/{application_id}/transitions")
def transition_application(
    application_id: str,
    req: TransitionRequest,
    ctx: RequestContext = Depends(request_context),
    engine: AdmissionsEngine = Depends(get_engine),
):
    payload = TransitionPayload(
        notes=req.notes,
        rejection_reason=req.rejection_reason,
        waitlist_position=req.waitlist_position,
    )
    return engine.transition_application(application_id, req.action, payload, context=ctx)


@app.get("/students/{student_id}/jobs")
def ranked_jobs(
    student_id: str,
    ctx: RequestContext = Depends(request_context),
    engine: AdmissionsEngine = Depends(get_engine),
):
    if ctx.role != Role.ADMIN and ctx.actor_id != student_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your job matches")
    return engine.rank_jobs(student_id)


@app.get("/jobs/{listing_id}/qualified-applicants")
def qualified_applicants(
    listing_id: str,
    ctx: RequestContext = Depends(request_context),
    engine: AdmissionsEngine = Depends(get_engine),
):
    job = engine.catalog.get_listing(listing_id)
    if ctx.role != Role.ADMIN and ctx.actor_id != job.institution_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your job")
    applicants = engine.qualified_applicants(listing_id)
    return {
        "job": {"id": job.id, "name": job.name, "skills": list(job.skills)},
        "applicants": applicants,
        "total": len(applicants),
    }


@app.get("/institutions/{institution_id}/stats")
def institution_stats(
    institution_id: str,
    ctx: RequestContext = Depends(request_context),
    engine: AdmissionsEngine = Depends(get_engine),
):
    if ctx.role != Role.ADMIN and ctx.actor_id != institution_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your institution")
    return engine.application_stats(institution_id)


if __name__ == "__main__":
    uvicorn.run("careerguide.app:app", host=settings.host, port=settings.port, reload=True)
