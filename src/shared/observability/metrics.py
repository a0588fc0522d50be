"""Prometheus counters for auth and automation outcomes."""

import logging

from prometheus_client import Counter

from src.config.settings import settings

logger = logging.getLogger(__name__)

EVENTS_TOTAL = Counter(
    "cronostudio_events_total",
    "Terminal outcomes of auth and automation operations",
    ["event", "reason"],
)


def emit_metric(name: str, reason: str | None = None) -> None:
    """Count one occurrence of ``name`` (e.g. ``auth.login.failure``, reason ``INVALID_CREDENTIALS``).

    Metrics never break the request they describe; dispatch errors are logged.
    """
    if not settings.metrics_enabled:
        return
    try:
        EVENTS_TOTAL.labels(event=name, reason=reason or "").inc()
    except Exception as e:
        logger.error(f"Metric dispatch failed for {name}: {e}")
