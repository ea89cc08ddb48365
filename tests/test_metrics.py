"""Tests for the Prometheus metrics sink."""

import logging

import pytest

from gwaihir.core import metrics as m
from gwaihir.core.metrics import NullMetrics, PrometheusMetrics


class TestPrometheusMetrics:
    def test_counters_increment(self) -> None:
        sink = PrometheusMetrics()

        sink.inc(m.WOL_SENT)
        sink.inc(m.WOL_SENT)
        sink.inc(m.WOL_FAILED)

        assert sink.registry.get_sample_value("gwaihir_wol_packets_sent_total") == 2.0
        assert sink.registry.get_sample_value("gwaihir_wol_packets_failed_total") == 1.0

    @pytest.mark.parametrize(
        "name,sample",
        [
            (m.WOL_SENT, "gwaihir_wol_packets_sent_total"),
            (m.WOL_FAILED, "gwaihir_wol_packets_failed_total"),
            (m.MACHINE_NOT_FOUND, "gwaihir_machine_not_found_total"),
            (m.MACHINES_LISTED, "gwaihir_machines_listed_total"),
            (m.MACHINES_RETRIEVED, "gwaihir_machines_retrieved_total"),
        ],
    )
    def test_every_counter_is_registered(self, name: str, sample: str) -> None:
        sink = PrometheusMetrics()
        sink.inc(name)
        assert sink.registry.get_sample_value(sample) == 1.0

    def test_configured_machines_gauge(self) -> None:
        sink = PrometheusMetrics()
        sink.set_gauge(m.CONFIGURED_MACHINES, 3)
        assert sink.registry.get_sample_value("gwaihir_configured_machines_total") == 3.0

    def test_instances_are_independent(self) -> None:
        first, second = PrometheusMetrics(), PrometheusMetrics()

        first.inc(m.MACHINE_NOT_FOUND)

        assert first.registry.get_sample_value("gwaihir_machine_not_found_total") == 1.0
        assert second.registry.get_sample_value("gwaihir_machine_not_found_total") == 0.0

    def test_unknown_names_are_logged_not_raised(self, caplog: pytest.LogCaptureFixture) -> None:
        sink = PrometheusMetrics()
        with caplog.at_level(logging.WARNING):
            sink.inc("bogus")
            sink.set_gauge("bogus", 1)
        assert len(caplog.records) == 2

    def test_request_duration_histogram(self) -> None:
        sink = PrometheusMetrics()
        sink.observe_request(0.02)
        assert sink.registry.get_sample_value("gwaihir_request_duration_seconds_count") == 1.0

    def test_render_content_type(self) -> None:
        payload, content_type = PrometheusMetrics().render()
        assert content_type.startswith("text/plain")
        assert b"gwaihir_wol_packets_sent_total" in payload


class TestNullMetrics:
    def test_accepts_everything(self) -> None:
        sink = NullMetrics()
        sink.inc(m.WOL_SENT)
        sink.set_gauge(m.CONFIGURED_MACHINES, 1)
