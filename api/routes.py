"""FastAPI routes for interview session control."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query

from api.schemas import (
    AbandonResp,
    FinalizeResp,
    MessageReq,
    MessageResp,
    SessionDetail,
    SessionListResp,
    SessionRef,
    StartReq,
    StartResp,
    session_detail,
    session_list_item,
)
from config.registry import CONVERSATION_AI_KEY, EVALUATION_AI_KEY, METRICS_KEY, get_service
from interview_evaluation import EvaluationEngine
from interview_session.machine import InterviewService
from interview_session.models import Difficulty, SessionState
from observability.metrics import NullMetrics
from services.scoring import CandidateStatistics
from storage.directory import SqliteDirectory
from storage.sessions import SqliteSessionRepository


router = APIRouter(prefix="/api/interview-sessions")


def current_candidate(x_candidate_id: Optional[str] = Header(default=None)) -> str:
    """Owner identity as established by the upstream auth layer."""
    if not x_candidate_id or not x_candidate_id.strip():
        raise HTTPException(status_code=401, detail="Missing candidate identity")
    return x_candidate_id.strip()


def interview_service() -> InterviewService:
    metrics = get_service(METRICS_KEY, NullMetrics())
    return InterviewService(
        SqliteSessionRepository(),
        SqliteDirectory(),
        get_service(CONVERSATION_AI_KEY),
        EvaluationEngine(get_service(EVALUATION_AI_KEY), metrics=metrics),
        metrics=metrics,
    )


@router.post("/start", response_model=StartResp, status_code=201)
async def start(
    req: StartReq,
    candidate_id: str = Depends(current_candidate),
    service: InterviewService = Depends(interview_service),
) -> StartResp:
    result = await service.start(candidate_id, req.subject_area_id, req.difficulty)
    return StartResp(
        session_id=result.session.session_id,
        subject_area=result.subject_area,
        difficulty=result.session.difficulty,
        state=result.session.state,
        opening_message=result.opening_message,
        ai_available=result.ai_available,
    )


@router.post("/message", response_model=MessageResp)
async def message(
    req: MessageReq,
    candidate_id: str = Depends(current_candidate),
    service: InterviewService = Depends(interview_service),
) -> MessageResp:
    result = await service.send_message(req.session_id, candidate_id, req.text)
    return MessageResp(
        session_id=result.session.session_id,
        reply=result.reply,
        state=result.session.state,
        turn_counts=result.turn_counts,
        ai_available=result.ai_available,
    )


@router.post("/finalize", response_model=FinalizeResp)
async def finalize(
    req: SessionRef,
    candidate_id: str = Depends(current_candidate),
    service: InterviewService = Depends(interview_service),
) -> FinalizeResp:
    result = await service.finalize(req.session_id, candidate_id)
    return FinalizeResp(
        session_id=result.session.session_id,
        state=result.session.state,
        evaluation=result.evaluation,
        statistics=result.statistics,
        duration_minutes=result.session.duration_minutes,
        ai_available=result.ai_available,
    )


@router.post("/abandon", response_model=AbandonResp)
async def abandon(
    req: SessionRef,
    candidate_id: str = Depends(current_candidate),
    service: InterviewService = Depends(interview_service),
) -> AbandonResp:
    session = await service.abandon(req.session_id, candidate_id)
    return AbandonResp(session_id=session.session_id, state=session.state)


@router.get("/active", response_model=SessionDetail)
async def active(
    candidate_id: str = Depends(current_candidate),
    service: InterviewService = Depends(interview_service),
) -> SessionDetail:
    return session_detail(await service.active_session(candidate_id))


@router.get("/stats", response_model=CandidateStatistics)
async def stats(
    candidate_id: str = Depends(current_candidate),
    service: InterviewService = Depends(interview_service),
) -> CandidateStatistics:
    return await service.statistics(candidate_id)


@router.get("", response_model=SessionListResp)
async def list_sessions(
    state: Optional[SessionState] = Query(default=None),
    subject_area_id: Optional[int] = Query(default=None),
    difficulty: Optional[Difficulty] = Query(default=None),
    candidate_id: str = Depends(current_candidate),
    service: InterviewService = Depends(interview_service),
) -> SessionListResp:
    listing = await service.list_sessions(
        candidate_id,
        state=state,
        subject_area_id=subject_area_id,
        difficulty=difficulty,
    )
    return SessionListResp(
        sessions=[session_list_item(session) for session in listing.sessions],
        summary=listing.summary,
    )


@router.get("/{session_id}", response_model=SessionDetail)
async def detail(
    session_id: str,
    candidate_id: str = Depends(current_candidate),
    service: InterviewService = Depends(interview_service),
) -> SessionDetail:
    return session_detail(await service.get_session(session_id, candidate_id))
