"""Register, process and report on candidate CVs."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional, Protocol, Tuple

from interview_session.errors import CandidateNotFound
from interview_session.models import utcnow
from interview_session.repository import Directory
from observability.logger import log_event
from observability.metrics import MetricsSink, NullMetrics
from observability.tracing import span
from services.errors import ValidationFailed

from .analyzer import CvAnalyzer
from .errors import CvAlreadyProcessed, CvNotFound, EmptyCvContent, ReportNotReady
from .extractor import clean_text, completeness_score, validate_content
from .models import CvAnalysis, CvRecord, CvReport, CvStatus, Skill

logger = logging.getLogger(__name__)


class CvRepository(Protocol):
    async def create_cv(self, candidate_id: str, filename: str, content: str) -> CvRecord: ...

    async def get_cv(self, cv_id: str) -> Optional[CvRecord]: ...

    async def list_cvs(self, candidate_id: str) -> List[CvRecord]: ...

    async def complete_processing(self, cv_id: str, report: CvReport, processed_at: datetime) -> bool: ...

    async def get_report(self, cv_id: str) -> Optional[CvReport]: ...


def collect_skills(analysis: CvAnalysis) -> List[Skill]:
    """Technical and soft skills, de-duplicated case-insensitively per kind."""

    seen: Dict[Tuple[str, str], Skill] = {}
    for kind, names in (("technical", analysis.technical_skills), ("soft", analysis.soft_skills)):
        for name in names:
            clean = " ".join(name.split())
            if clean and (clean.lower(), kind) not in seen:
                seen[(clean.lower(), kind)] = Skill(name=clean, kind=kind)
    return list(seen.values())


class CvPipeline:
    def __init__(
        self,
        cvs: CvRepository,
        directory: Directory,
        analyzer: CvAnalyzer,
        *,
        metrics: Optional[MetricsSink] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._cvs = cvs
        self._directory = directory
        self._analyzer = analyzer
        self._metrics = metrics or NullMetrics()
        self._clock = clock

    async def register(self, candidate_id: str, filename: str, content: str) -> CvRecord:
        if not (filename or "").strip():
            raise ValidationFailed("A file name is required.", code="missing_filename")
        if not (content or "").strip():
            raise EmptyCvContent()
        if await self._directory.get_candidate(candidate_id) is None:
            raise CandidateNotFound(candidate_id)
        record = await self._cvs.create_cv(candidate_id, filename.strip(), content)
        log_event("cv_registered", None, candidate_id=candidate_id, cv_id=record.cv_id)
        return record

    async def process(self, cv_id: str, candidate_id: str) -> CvReport:
        record = await self._owned(cv_id, candidate_id)
        if record.status == CvStatus.PROCESSED:
            raise CvAlreadyProcessed(cv_id, record.processed_at)

        text = clean_text(record.content)
        if not text:
            raise EmptyCvContent()
        validation = validate_content(text)
        if not validation.is_valid:
            logger.warning("CV %s below minimum validation score=%s", cv_id, validation.score)

        candidate = await self._directory.get_candidate(candidate_id)
        with span(self._metrics, "cv.analysis"):
            result = await self._analyzer.analyze(text, validation, candidate.full_name if candidate else "")

        now = self._clock()
        report = CvReport(
            cv_id=cv_id,
            candidate_id=candidate_id,
            validation=validation,
            completeness=completeness_score(validation.fields),
            analysis=result.analysis,
            skills=collect_skills(result.analysis),
            ai_available=result.ai_available,
            created_at=now,
        )
        if not await self._cvs.complete_processing(cv_id, report, now):
            latest = await self._cvs.get_cv(cv_id)
            raise CvAlreadyProcessed(cv_id, latest.processed_at if latest else None)

        self._metrics.increment("cv.processed", ai_available=str(result.ai_available).lower())
        log_event(
            "cv_processed",
            None,
            level=logging.INFO if result.ai_available else logging.WARNING,
            candidate_id=candidate_id,
            cv_id=cv_id,
            score=report.completeness.score,
            ai_available=result.ai_available,
            reason=result.failure_reason,
        )
        return report

    async def get_report(self, cv_id: str, candidate_id: str) -> CvReport:
        await self._owned(cv_id, candidate_id)
        report = await self._cvs.get_report(cv_id)
        if report is None:
            raise ReportNotReady(cv_id)
        return report

    async def list_cvs(self, candidate_id: str) -> List[CvRecord]:
        return await self._cvs.list_cvs(candidate_id)

    async def _owned(self, cv_id: str, candidate_id: str) -> CvRecord:
        record = await self._cvs.get_cv(cv_id)
        if record is None or record.candidate_id != candidate_id:
            raise CvNotFound(cv_id)
        return record


__all__ = ["CvPipeline", "CvRepository", "collect_skills"]
