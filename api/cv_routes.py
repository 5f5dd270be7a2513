"""FastAPI routes for CV registration, processing and reports."""
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from api.routes import current_candidate
from api.schemas import CvSummary, CvUploadReq
from config.registry import CV_AI_KEY, METRICS_KEY, get_service
from cv_analysis import CvAnalyzer, CvPipeline, CvRecord, CvReport
from observability.metrics import NullMetrics
from storage.cvs import SqliteCvRepository
from storage.directory import SqliteDirectory


router = APIRouter(prefix="/api/cvs")


def cv_pipeline() -> CvPipeline:
    metrics = get_service(METRICS_KEY, NullMetrics())
    return CvPipeline(
        SqliteCvRepository(),
        SqliteDirectory(),
        CvAnalyzer(get_service(CV_AI_KEY), metrics=metrics),
        metrics=metrics,
    )


def _summary(record: CvRecord) -> CvSummary:
    return CvSummary(
        cv_id=record.cv_id,
        filename=record.filename,
        status=record.status.value,
        uploaded_at=record.uploaded_at,
        processed_at=record.processed_at,
    )


@router.post("", response_model=CvSummary, status_code=201)
async def upload(
    req: CvUploadReq,
    candidate_id: str = Depends(current_candidate),
    pipeline: CvPipeline = Depends(cv_pipeline),
) -> CvSummary:
    return _summary(await pipeline.register(candidate_id, req.filename, req.content))


@router.get("", response_model=List[CvSummary])
async def list_cvs(
    candidate_id: str = Depends(current_candidate),
    pipeline: CvPipeline = Depends(cv_pipeline),
) -> List[CvSummary]:
    return [_summary(record) for record in await pipeline.list_cvs(candidate_id)]


@router.post("/{cv_id}/process", response_model=CvReport)
async def process(
    cv_id: str,
    candidate_id: str = Depends(current_candidate),
    pipeline: CvPipeline = Depends(cv_pipeline),
) -> CvReport:
    return await pipeline.process(cv_id, candidate_id)


@router.get("/{cv_id}/report", response_model=CvReport)
async def report(
    cv_id: str,
    candidate_id: str = Depends(current_candidate),
    pipeline: CvPipeline = Depends(cv_pipeline),
) -> CvReport:
    return await pipeline.get_report(cv_id, candidate_id)
