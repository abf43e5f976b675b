"""Tests for Prometheus metrics."""
from __future__ import annotations

from tts_bridge.core.metrics import TTSBridgeMetrics, metrics


class TestMetrics:

    def test_request_counters(self):
        m = TTSBridgeMetrics()
        m.record_request("server", "success", 0.2, cache_status="hit", audio_bytes=100)
        m.record_request("server", "error", 0.1)
        content, content_type = m.get_metrics_response()
        text = content.decode("utf-8")
        assert content_type.startswith("text/plain")
        assert 'tts_bridge_requests_total{backend="server",status="success"} 1.0' in text
        assert 'tts_bridge_requests_total{backend="server",status="error"} 1.0' in text
        assert "tts_bridge_audio_bytes_total 100.0" in text

    def test_cache_and_errors(self):
        m = TTSBridgeMetrics()
        m.record_cache("hit")
        m.record_cache("miss")
        m.record_cache("miss")
        m.inc_cache_write_failures()
        m.inc_cache_purges()
        m.inc_chunks_synthesized("cloud", 3)
        m.record_error("BACKEND_UNAVAILABLE")
        text = m.get_metrics_response()[0].decode("utf-8")
        assert "tts_bridge_cache_hits_total 1.0" in text
        assert "tts_bridge_cache_misses_total 2.0" in text
        assert "tts_bridge_cache_write_failures_total 1.0" in text
        assert "tts_bridge_cache_purges_total 1.0" in text
        assert 'tts_bridge_chunks_synthesized_total{backend="cloud"} 3.0' in text
        assert 'tts_bridge_backend_errors_total{kind="BACKEND_UNAVAILABLE"} 1.0' in text

    def test_disabled(self):
        m = TTSBridgeMetrics(enabled=False)
        m.record_request("server", "success", 0.2)
        m.record_cache("hit")
        text = m.get_metrics_response()[0].decode("utf-8")
        assert "tts_bridge_cache_hits_total 0.0" in text
        assert 'status="success"' not in text

    def test_instances_are_independent(self):
        a, b = TTSBridgeMetrics(), TTSBridgeMetrics()
        a.record_cache("hit")
        assert "tts_bridge_cache_hits_total 0.0" in b.get_metrics_response()[0].decode("utf-8")

    def test_global_instance(self):
        assert isinstance(metrics, TTSBridgeMetrics)
