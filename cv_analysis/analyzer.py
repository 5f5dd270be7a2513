"""AI reading of CV text with a keyword fallback."""
from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, ValidationError

from config.settings import settings
from llm_gateway import AiClient, extract_json_object
from observability.metrics import MetricsSink, NullMetrics

from .models import ContentValidation, CvAnalysis

logger = logging.getLogger(__name__)

ANALYST_SYSTEM_PROMPT = (
    "You are a human resources analyst. Reply ONLY with valid JSON, without markdown or extra explanations."
)

ANALYSIS_TEMPLATE = """{
  "strengths": ["strength1", "strength2"],
  "technical_skills": ["skill1", "skill2"],
  "soft_skills": ["skill1", "skill2"],
  "improvement_areas": ["area1", "area2"],
  "experience_summary": "short summary",
  "education_summary": "short summary"
}"""

TECHNICAL_KEYWORDS = (
    "Python", "Java", "JavaScript", "TypeScript", "SQL", "C++", "C#", "React", "Node.js",
    "Docker", "Kubernetes", "Linux", "Git", "AWS", "Azure", "Excel", "PLC", "AutoCAD",
    "Machine Learning", "Spark", "Hadoop", "Networking", "Cybersecurity",
)
SOFT_KEYWORDS = (
    "Teamwork", "Communication", "Leadership", "Problem solving", "Adaptability",
    "Time management", "Creativity", "Critical thinking", "Negotiation", "Responsibility",
)
_SOFT_ALIASES: Dict[str, Sequence[str]] = {
    "Teamwork": ("team work", "teamwork", "team player"),
    "Problem solving": ("problem solving", "problem-solving"),
    "Time management": ("time management",),
    "Critical thinking": ("critical thinking",),
}

_SECTION_HINTS = {
    "experience": re.compile(r"\b(experience|employment|developer|engineer|analyst|intern)\b", re.IGNORECASE),
    "education": re.compile(r"\b(university|college|degree|bachelor|master|diploma|institute)\b", re.IGNORECASE),
}

_FIELD_STRENGTHS = {
    "has_experience": "Documented work experience",
    "has_education": "Clearly stated education",
    "has_skills": "Explicit list of skills",
    "has_contact": "Complete contact information",
}
_FIELD_GAPS = {
    "has_name": "State your full name at the top of the CV",
    "has_contact": "Add contact details such as email and phone",
    "has_experience": "Describe your work experience with dates and responsibilities",
    "has_education": "Add an education section",
    "has_skills": "List your technical and soft skills explicitly",
}


class AnalysisReport(BaseModel):
    analysis: CvAnalysis
    ai_available: bool
    failure_reason: Optional[str] = None


def analysis_messages(text: str, candidate_name: str = "", *, prompt_chars: Optional[int] = None) -> List[Dict[str, str]]:
    limit = settings.CV_PROMPT_CHARS if prompt_chars is None else prompt_chars
    owner = f" of {candidate_name}" if candidate_name else ""
    prompt = (
        f"Analyse this CV{owner} and reply ONLY with a valid JSON object (no markdown, no explanations):\n\n"
        f"{ANALYSIS_TEMPLATE}\n\nCV to analyse:\n{text[:limit]}"
    )
    return [
        {"role": "system", "content": ANALYST_SYSTEM_PROMPT},
        {"role": "user", "content": prompt},
    ]


def parse_analysis(content: str) -> CvAnalysis:
    """Raises ValueError when the output holds no usable analysis."""

    data = extract_json_object(content)
    try:
        analysis = CvAnalysis.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"invalid analysis: {exc.errors()[0].get('msg')}") from exc
    if not (analysis.strengths or analysis.technical_skills or analysis.soft_skills):
        raise ValueError("analysis lists no strengths or skills")
    return analysis


def _mentions(text: str, keyword: str) -> bool:
    return re.search(r"(?<![\w+#.])" + re.escape(keyword.lower()) + r"(?![\w+#])", text) is not None


def _first_line(text: str, pattern: re.Pattern[str]) -> str:
    for line in text.split("\n"):
        # skip upper-case section headings
        if pattern.search(line) and not line.isupper():
            return line.strip()[:200]
    return ""


def heuristic_analysis(text: str, validation: ContentValidation) -> CvAnalysis:
    lowered = text.lower()
    technical = [keyword for keyword in TECHNICAL_KEYWORDS if _mentions(lowered, keyword)]
    soft = [
        keyword
        for keyword in SOFT_KEYWORDS
        if any(alias in lowered for alias in _SOFT_ALIASES.get(keyword, (keyword.lower(),)))
    ]
    strengths = [label for field, label in _FIELD_STRENGTHS.items() if validation.fields.get(field)]
    if technical:
        strengths.append(f"Technical profile covering {', '.join(technical[:3])}")
    gaps = [label for field, label in _FIELD_GAPS.items() if not validation.fields.get(field)]
    if not gaps:
        gaps.append("Quantify achievements with concrete results")
    return CvAnalysis(
        strengths=strengths,
        technical_skills=technical,
        soft_skills=soft,
        improvement_areas=gaps,
        experience_summary=_first_line(text, _SECTION_HINTS["experience"]),
        education_summary=_first_line(text, _SECTION_HINTS["education"]),
    )


class CvAnalyzer:
    def __init__(
        self,
        ai: AiClient,
        *,
        metrics: Optional[MetricsSink] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> None:
        self._ai = ai
        self._metrics = metrics or NullMetrics()
        self._temperature = settings.CV_TEMPERATURE if temperature is None else temperature
        self._max_tokens = settings.CV_MAX_TOKENS if max_tokens is None else max_tokens

    async def analyze(self, text: str, validation: ContentValidation, candidate_name: str = "") -> AnalysisReport:
        completion = await self._ai.complete(
            analysis_messages(text, candidate_name),
            {"temperature": self._temperature, "max_tokens": self._max_tokens},
        )
        reason: Optional[str]
        if completion.success:
            try:
                return AnalysisReport(analysis=parse_analysis(completion.content), ai_available=True)
            except ValueError as exc:
                reason = f"unparseable output: {exc}"
        else:
            reason = f"ai unavailable: {completion.error}"

        logger.warning("Falling back to keyword CV analysis: %s", reason)
        self._metrics.increment("cv.fallback")
        return AnalysisReport(
            analysis=heuristic_analysis(text, validation),
            ai_available=False,
            failure_reason=reason,
        )


__all__ = [
    "AnalysisReport",
    "CvAnalyzer",
    "analysis_messages",
    "heuristic_analysis",
    "parse_analysis",
]
