"""Observability utilities for the interview backend."""
from .logger import log_event
from .metrics import InMemoryMetrics, MetricsSink, NullMetrics
from .tracing import span

__all__ = ["log_event", "InMemoryMetrics", "MetricsSink", "NullMetrics", "span"]
