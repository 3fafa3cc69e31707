"""Observability helpers for health and readiness."""

from .health import liveness_report, readiness_report

__all__ = ["liveness_report", "readiness_report"]
