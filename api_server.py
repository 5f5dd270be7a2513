from __future__ import annotations  # FastAPI server exposing interview simulation and CV analysis

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Tuple

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.cv_routes import router as cv_router
from api.routes import router as interview_router
from api.schemas import CandidateReq
from candidate_management import CandidateRecord, CandidateStore
from config import (
    CONVERSATION_AI_KEY,
    CONVERSATION_TARGET,
    CV_AI_KEY,
    CV_ANALYSIS_TARGET,
    EVALUATION_AI_KEY,
    EVALUATION_TARGET,
    METRICS_KEY,
    bind_service,
    get_service,
    load_app_config,
    resolve_route,
    settings,
    unbind_service,
)
from interview_session.models import SubjectArea
from llm_gateway import LlmGateway
from observability.metrics import InMemoryMetrics
from services.errors import InvariantViolation, ServiceError
from storage.directory import list_subject_areas
from storage.migrate import migrate, seed_subject_areas


logger = logging.getLogger(__name__)

CONFIG_PATH = Path(__file__).resolve().parent / "app_config.json"

_AI_BINDINGS = (
    (CONVERSATION_AI_KEY, CONVERSATION_TARGET),
    (EVALUATION_AI_KEY, EVALUATION_TARGET),
    (CV_AI_KEY, CV_ANALYSIS_TARGET),
)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    migrate(settings.DB_PATH)
    added = seed_subject_areas(settings.DB_PATH)
    if added:
        logger.info("Seeded %d subject areas", added)

    if get_service(METRICS_KEY, None) is None:
        bind_service(METRICS_KEY, InMemoryMetrics())
    metrics = get_service(METRICS_KEY)

    cfg = load_app_config(CONFIG_PATH, settings)
    owned: List[Tuple[str, LlmGateway]] = []
    for key, target in _AI_BINDINGS:
        if get_service(key, None) is not None:
            continue
        gateway = LlmGateway(resolve_route(cfg, target), metrics=metrics)
        bind_service(key, gateway)
        owned.append((key, gateway))
    try:
        yield
    finally:
        for key, gateway in owned:
            unbind_service(key, gateway)
            await gateway.aclose()


app = FastAPI(title="Interview Simulation API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"]
)
app.include_router(interview_router)
app.include_router(cv_router)


@app.exception_handler(ServiceError)
async def _service_error(_: Request, exc: ServiceError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})


@app.exception_handler(RequestValidationError)
async def _request_invalid(_: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": ".".join(str(part) for part in error.get("loc", ())), "message": error.get("msg")}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"detail": {"error": "validation_error", "message": "Invalid request.", "errors": errors}},
    )


@app.exception_handler(InvariantViolation)
async def _invariant_violation(request: Request, exc: InvariantViolation) -> JSONResponse:
    logger.critical("Invariant violated on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=500,
        content={"detail": {"error": "internal_error", "message": "Internal error. The request was not applied."}},
    )


@app.get("/api/subject-areas", response_model=List[SubjectArea])
def subject_areas() -> List[SubjectArea]:
    return list_subject_areas()


@app.get("/api/candidates", response_model=List[CandidateRecord])
def list_candidates() -> List[CandidateRecord]:
    return CandidateStore().list_candidates()


@app.post("/api/candidates", response_model=CandidateRecord, status_code=201)
def create_candidate(payload: CandidateReq) -> CandidateRecord:
    return CandidateStore().create_candidate(full_name=payload.full_name, email=payload.email)


@app.get("/health")
async def health() -> Dict[str, Any]:
    metrics = get_service(METRICS_KEY, None)
    ai = get_service(CONVERSATION_AI_KEY, None)
    availability = await ai.check_availability() if ai is not None else None
    return {
        "status": "ok",
        "ai": availability.model_dump() if availability is not None else {"connected": False, "models": []},
        "metrics": metrics.snapshot() if hasattr(metrics, "snapshot") else {},
    }
