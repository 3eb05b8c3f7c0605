"""Prometheus metrics for slackgenie.

All collectors live on the default registry so the ``/metrics`` endpoint
can render them with ``generate_latest()``.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge

alerts_sent_total = Counter(
    "slackgenie_alerts_sent_total",
    "Pod failure alerts delivered to the notification endpoint.",
    ["reason"],
)

alerts_suppressed_total = Counter(
    "slackgenie_alerts_suppressed_total",
    "Alerts skipped because the same pod and reason alerted within the debounce window.",
    ["reason"],
)

alert_delivery_failures_total = Counter(
    "slackgenie_alert_delivery_failures_total",
    "Failed alert deliveries by failure kind.",
    ["kind"],
)

reconcile_total = Counter(
    "slackgenie_reconcile_total",
    "Reconcile runs by outcome.",
    ["outcome"],
)

debounce_entries = Gauge(
    "slackgenie_debounce_entries",
    "Entries currently held in the debounce store.",
)

reconcile_queue_depth = Gauge(
    "slackgenie_reconcile_queue_depth",
    "Pod identities waiting for a reconcile worker.",
)
