"""Text cleanup, content validation and completeness scoring for CV text."""
from __future__ import annotations

import re
from typing import Dict, Mapping, Sequence

from .models import Completeness, CompletenessItem, ContentValidation

MIN_CONTENT_CHARS = 100
SHORT_TEXT_PENALTY = 20
FIELD_POINTS = 20
VALID_THRESHOLD = 60

COMPLETENESS_WEIGHTS: Dict[str, int] = {
    "has_name": 20,
    "has_contact": 20,
    "has_experience": 25,
    "has_education": 20,
    "has_skills": 15,
}

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_SPACES = re.compile(r"[ \t\f\v]+")

_PATTERNS: Dict[str, Sequence[re.Pattern[str]]] = {
    "has_name": (
        re.compile(r"\bname\s*[:\-]?\s+[a-z]+", re.IGNORECASE),
        re.compile(r"^[A-Z][a-z]+\s+[A-Z][a-z]+", re.MULTILINE),
        re.compile(r"curriculum\s+vitae\s+(of|for)\s*:?\s*[a-z]+", re.IGNORECASE),
    ),
    "has_contact": (
        re.compile(r"\+?\d[\d\s\-()]{7,}\d"),
        re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"),
        re.compile(r"\b(address|location|phone|linkedin)\b\s*:", re.IGNORECASE),
    ),
    "has_experience": (
        re.compile(r"\b(experience|employment|work history|position|job)\b", re.IGNORECASE),
        re.compile(r"\b(company|employer|organi[sz]ation)\b\s*:?", re.IGNORECASE),
        re.compile(r"\b\d{4}\s*[-–—]\s*(\d{4}|present|current)\b", re.IGNORECASE),
    ),
    "has_education": (
        re.compile(r"\b(education|training|studies|degree|university|college|institute|school)\b", re.IGNORECASE),
        re.compile(r"\b(bachelor|master|phd|doctorate|diploma|engineering|technician)\b", re.IGNORECASE),
    ),
    "has_skills": (
        re.compile(r"\b(skills|competencies|knowledge|expertise)\b", re.IGNORECASE),
        re.compile(r"\b(programming|software|languages|tools)\b", re.IGNORECASE),
        re.compile(r"\b(excel|word|photoshop|java|python|javascript|sql)\b", re.IGNORECASE),
    ),
}

_WARNINGS: Dict[str, str] = {
    "has_name": "Candidate name not clearly detected",
    "has_contact": "Contact information missing or not detected",
    "has_experience": "No clear work experience detected",
    "has_education": "No education or training detected",
    "has_skills": "No specific skills detected",
}


def clean_text(text: str) -> str:
    """Strip control characters, collapse runs of spaces and drop noise lines."""

    text = _CONTROL_CHARS.sub("", text.replace("\r\n", "\n").replace("\r", "\n"))
    lines = (_SPACES.sub(" ", line).strip() for line in text.split("\n"))
    return "\n".join(line for line in lines if len(line) > 2)


def validate_content(text: str) -> ContentValidation:
    """Score the text by which CV sections it appears to contain.

    Each detected section adds 20 points and texts shorter than 100 characters lose 20.
    The text counts as a CV when the total reaches 60.
    """

    score = 0
    warnings = []
    if len(text) < MIN_CONTENT_CHARS:
        warnings.append(f"The CV text is very short (under {MIN_CONTENT_CHARS} characters)")
        score -= SHORT_TEXT_PENALTY

    fields: Dict[str, bool] = {}
    for field, patterns in _PATTERNS.items():
        found = any(pattern.search(text) for pattern in patterns)
        fields[field] = found
        if found:
            score += FIELD_POINTS
        else:
            warnings.append(_WARNINGS[field])

    is_valid = score >= VALID_THRESHOLD
    if not is_valid:
        warnings.insert(0, "The CV does not contain the minimum required sections")
    return ContentValidation(is_valid=is_valid, score=score, warnings=warnings, fields=fields)


def completeness_score(fields: Mapping[str, bool]) -> Completeness:
    total = sum(COMPLETENESS_WEIGHTS.values())
    items = [
        CompletenessItem(
            field=field,
            weight=weight,
            completed=bool(fields.get(field)),
            points=weight if fields.get(field) else 0,
        )
        for field, weight in COMPLETENESS_WEIGHTS.items()
    ]
    earned = sum(item.points for item in items)
    return Completeness(score=round(earned / total * 100), breakdown=items)


__all__ = ["COMPLETENESS_WEIGHTS", "clean_text", "completeness_score", "validate_content"]
