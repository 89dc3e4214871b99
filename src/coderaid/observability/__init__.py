"""Observability helpers for coderaid."""

from coderaid.observability.metrics import metrics

__all__ = ["metrics"]
