from .evaluation import (
    FALLBACK_RECOMMENDATION,
    Evaluation,
    EvaluationEngine,
    EvaluationReport,
    ParseFailure,
    Parsed,
    heuristic_evaluation,
    parse_evaluation,
    score_band,
)

__all__ = [
    "FALLBACK_RECOMMENDATION",
    "Evaluation",
    "EvaluationEngine",
    "EvaluationReport",
    "ParseFailure",
    "Parsed",
    "heuristic_evaluation",
    "parse_evaluation",
    "score_band",
]
