"""Metrics sinks: Prometheus counters and gauges, plus a no-op sink."""

import logging
from typing import Optional, Protocol

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

logger = logging.getLogger(__name__)

WOL_SENT = "wol_sent"
WOL_FAILED = "wol_failed"
MACHINE_NOT_FOUND = "machine_not_found"
MACHINES_LISTED = "machines_listed"
MACHINES_RETRIEVED = "machines_retrieved"
CONFIGURED_MACHINES = "configured_machines"



class MetricsSink(Protocol):
    """Write-only receiver of named counter increments and gauge values."""

    def inc(self, name: str) -> None: ...

    def set_gauge(self, name: str, value: float) -> None: ...


class NullMetrics:
    """Sink that discards everything."""

    def inc(self, name: str) -> None:
        pass

    def set_gauge(self, name: str, value: float) -> None:
        pass


class PrometheusMetrics:
    """
    Prometheus-backed metrics sink.

    Every instance owns its own CollectorRegistry, so building several
    (one per test, one per app) never collides on metric names.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()
        self._counters = {
            WOL_SENT: Counter(
                "gwaihir_wol_packets_sent",
                "Total number of WoL packets successfully sent",
                registry=self.registry,
            ),
            WOL_FAILED: Counter(
                "gwaihir_wol_packets_failed",
                "Total number of WoL packet send failures",
                registry=self.registry,
            ),
            MACHINE_NOT_FOUND: Counter(
                "gwaihir_machine_not_found",
                "Total number of machine not found errors",
                registry=self.registry,
            ),
            MACHINES_LISTED: Counter(
                "gwaihir_machines_listed",
                "Total number of times machines list was requested",
                registry=self.registry,
            ),
            MACHINES_RETRIEVED: Counter(
                "gwaihir_machines_retrieved",
                "Total number of times a machine was retrieved by ID",
                registry=self.registry,
            ),
        }
        self._gauges = {
            CONFIGURED_MACHINES: Gauge(
                "gwaihir_configured_machines_total",
                "Total number of configured machines in allowlist",
                registry=self.registry,
            ),
        }
        self.request_duration = Histogram(
            "gwaihir_request_duration_seconds",
            "Request latency in seconds",
            registry=self.registry,
        )

    def inc(self, name: str) -> None:
        counter = self._counters.get(name)
        if counter is None:
            logger.warning("Unknown counter %r", name)
            return
        counter.inc()

    def set_gauge(self, name: str, value: float) -> None:
        gauge = self._gauges.get(name)
        if gauge is None:
            logger.warning("Unknown gauge %r", name)
            return
        gauge.set(value)

    def observe_request(self, seconds: float) -> None:
        self.request_duration.observe(seconds)

    def render(self) -> tuple[bytes, str]:
        """Return the exposition payload and its content type."""
        return generate_latest(self.registry), CONTENT_TYPE_LATEST
