"""セッションライフサイクルの OpenTelemetry メトリクス定義"""

from __future__ import annotations

from opentelemetry import metrics

_meter = metrics.get_meter("k1s0.session_lifecycle", version="0.1.0")

session_validation_total = _meter.create_counter(
    name="session_validation_total",
    description="Total number of session classifications, by state",
    unit="1",
)

session_refresh_total = _meter.create_counter(
    name="session_refresh_total",
    description="Total number of single-shot session refresh calls, by outcome",
    unit="1",
)

session_relogin_total = _meter.create_counter(
    name="session_relogin_total",
    description="Total number of automatic re-login cycles, by outcome",
    unit="1",
)

session_cleanup_errors_total = _meter.create_counter(
    name="session_cleanup_errors_total",
    description="Total number of storage removals that failed during cleanup",
    unit="1",
)
