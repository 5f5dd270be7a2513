"""CV text validation, analysis and reporting."""
from __future__ import annotations

from .analyzer import AnalysisReport, CvAnalyzer, heuristic_analysis, parse_analysis
from .errors import CvAlreadyProcessed, CvNotFound, EmptyCvContent, ReportNotReady
from .extractor import clean_text, completeness_score, validate_content
from .models import CvAnalysis, CvRecord, CvReport, CvStatus, Skill
from .pipeline import CvPipeline, collect_skills

__all__ = [
    "AnalysisReport",
    "CvAlreadyProcessed",
    "CvAnalysis",
    "CvAnalyzer",
    "CvNotFound",
    "CvPipeline",
    "CvRecord",
    "CvReport",
    "CvStatus",
    "EmptyCvContent",
    "ReportNotReady",
    "Skill",
    "clean_text",
    "collect_skills",
    "completeness_score",
    "heuristic_analysis",
    "parse_analysis",
    "validate_content",
]
