"""Prometheus exporter for endpoint liveness metrics.

Exports:
- endpointwatch_endpoint_up (Gauge, 0/1)
- endpointwatch_endpoint_status (Gauge, enum pattern — one series per status code)
- endpointwatch_reconnect_attempts (Gauge)
- endpointwatch_monitors (Gauge)
- endpointwatch_discovery_fetches_total (Counter)
"""

from __future__ import annotations

import contextlib

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge

from endpointwatch.endpoint import EndpointRecord
from endpointwatch.status import ALL_STATUS_CODES, StatusCode

_ENDPOINT_LABEL_NAMES = ("host", "transport", "locality")


class MetricsExporter:
    """Export endpoint liveness metrics to Prometheus."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        reg = registry if registry is not None else REGISTRY
        self.registry = reg

        self._up = Gauge(
            "endpointwatch_endpoint_up",
            "Endpoint is reachable and authenticated (1 = online, 0 = offline)",
            labelnames=_ENDPOINT_LABEL_NAMES,
            registry=reg,
        )

        self._status = Gauge(
            "endpointwatch_endpoint_status",
            "Last reported status code of the endpoint",
            labelnames=(*_ENDPOINT_LABEL_NAMES, "status"),
            registry=reg,
        )

        self._attempts = Gauge(
            "endpointwatch_reconnect_attempts",
            "Reconnect attempts since the endpoint was last online",
            labelnames=_ENDPOINT_LABEL_NAMES,
            registry=reg,
        )

        self._monitors = Gauge(
            "endpointwatch_monitors",
            "Number of endpoints currently monitored",
            registry=reg,
        )

        self._fetches = Counter(
            "endpointwatch_discovery_fetches",
            "Discovery fetches by result",
            labelnames=("result",),
            registry=reg,
        )

    def set_status(self, record: EndpointRecord, code: StatusCode) -> None:
        """Set the status enum gauge (exactly one code = 1, rest = 0) and the up gauge."""
        base = _labels(record)
        for status in ALL_STATUS_CODES:
            self._status.labels(**base, status=status.value).set(1.0 if status is code else 0.0)
        self._up.labels(**base).set(1.0 if code is StatusCode.OK else 0.0)

    def set_attempts(self, record: EndpointRecord, attempts: int) -> None:
        """Record the current reconnect attempt count."""
        self._attempts.labels(**_labels(record)).set(attempts)

    def set_monitor_count(self, count: int) -> None:
        """Record the registry size."""
        self._monitors.set(count)

    def count_fetch(self, ok: bool) -> None:
        """Count a discovery fetch."""
        self._fetches.labels(result="ok" if ok else "error").inc()

    def delete_metrics(self, record: EndpointRecord) -> None:
        """Delete all series of an endpoint."""
        values = list(_labels(record).values())
        with contextlib.suppress(KeyError):
            self._up.remove(*values)
        with contextlib.suppress(KeyError):
            self._attempts.remove(*values)
        for status in ALL_STATUS_CODES:
            with contextlib.suppress(KeyError):
                self._status.remove(*values, status.value)


def _labels(record: EndpointRecord) -> dict[str, str]:
    return {
        "host": record.host,
        "transport": str(record.transport),
        "locality": record.locality,
    }
