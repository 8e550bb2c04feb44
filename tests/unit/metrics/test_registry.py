"""Unit tests for metrics registry."""

from __future__ import annotations

from unittest.mock import patch

from roku_deeplink.metrics import registry


class TestBeaconMetrics:
    """Tests for beacon metrics."""

    def test_record_beacon(self) -> None:
        """Test record_beacon helper."""
        registry.record_beacon("VODStartComplete")
        samples = list(registry.roku_dl_beacon_observed_total.collect()[0].samples)
        assert any(s.labels == {"category": "VODStartComplete"} for s in samples)

    def test_record_beacon_discarded(self) -> None:
        """Test record_beacon_discarded helper."""
        registry.record_beacon_discarded("AppLaunchComplete", "no_timing")
        samples = list(registry.roku_dl_beacon_discarded_total.collect()[0].samples)
        assert any(s.labels == {"category": "AppLaunchComplete", "reason": "no_timing"} for s in samples)


class TestCommandMetrics:
    """Tests for control command metrics."""

    def test_record_command(self) -> None:
        """Test record_command helper."""
        registry.record_command("keypress", "rejected")
        samples = list(registry.roku_dl_command_total.collect()[0].samples)
        assert any(s.labels == {"command": "keypress", "outcome": "rejected"} for s in samples)

    def test_record_command_latency(self) -> None:
        """Test record_command_latency helper."""
        registry.record_command_latency("launch", 0.2)
        samples = list(registry.roku_dl_command_latency_seconds.collect()[0].samples)
        count = next(
            (s for s in samples if s.name.endswith("_count") and s.labels == {"command": "launch"}),
            None,
        )
        assert count is not None
        assert count.value >= 1


class TestRunMetrics:
    """Tests for wait and phase metrics."""

    def test_record_wait(self) -> None:
        """Test record_wait helper."""
        registry.record_wait("smart", "timeout", 30.0)
        samples = list(registry.roku_dl_wait_duration_seconds.collect()[0].samples)
        assert any(s.labels == {"mode": "smart", "outcome": "timeout"} for s in samples)

    def test_record_phase(self) -> None:
        """Test record_phase helper."""
        registry.record_phase("Deep Link Input Test", "skipped")
        samples = list(registry.roku_dl_phase_total.collect()[0].samples)
        assert any(s.labels == {"phase": "Deep Link Input Test", "outcome": "skipped"} for s in samples)


class TestMetricsServer:
    """Tests for the metrics HTTP server."""

    def test_start_metrics_server_is_idempotent(self) -> None:
        """Test the server is only started once."""
        with (
            patch.object(registry, "start_http_server") as mock_start,
            patch.dict(registry._server_state, {"started": False}),
        ):
            registry.start_metrics_server(9464)
            registry.start_metrics_server(9464)

        mock_start.assert_called_once_with(9464)
