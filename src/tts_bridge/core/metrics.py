"""
Prometheus Metrics for tts-bridge.

Metrics Exposed:
    tts_bridge_requests_total            - Synthesis requests by backend and status
    tts_bridge_request_duration_seconds  - Request latency by cache status
    tts_bridge_audio_bytes_total         - Audio bytes returned to callers
    tts_bridge_cache_hits_total          - Cache hits
    tts_bridge_cache_misses_total        - Cache misses
    tts_bridge_cache_write_failures_total - Cache writes that failed (non-fatal)
    tts_bridge_cache_purges_total        - Full cache purges
    tts_bridge_chunks_synthesized_total  - Chunks sent to a backend
    tts_bridge_backend_errors_total      - Backend failures by error kind

Usage:
    from tts_bridge.core.metrics import metrics

    metrics.record_request("cloud", "success", 0.8, cache_status="miss", audio_bytes=88244)
    metrics.record_cache("hit")
    content, content_type = metrics.get_metrics_response()

Each TTSBridgeMetrics instance owns its CollectorRegistry, so tests can
create fresh instances without duplicate-registration errors.
"""
from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)


class TTSBridgeMetrics:
    """
    Metric collection for the synthesis pipeline.

    Recording can be switched off with ``enabled = False``; all record
    methods then return immediately.
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._registry = CollectorRegistry()

        self._requests_total = Counter(
            "tts_bridge_requests_total",
            "Total synthesis requests",
            ["backend", "status"],
            registry=self._registry,
        )
        self._request_duration = Histogram(
            "tts_bridge_request_duration_seconds",
            "Synthesis request duration in seconds",
            ["backend", "cache_status"],
            buckets=(0.01, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
            registry=self._registry,
        )
        self._audio_bytes_total = Counter(
            "tts_bridge_audio_bytes_total",
            "Total audio bytes returned",
            registry=self._registry,
        )
        self._cache_hits = Counter(
            "tts_bridge_cache_hits_total",
            "Total cache hits",
            registry=self._registry,
        )
        self._cache_misses = Counter(
            "tts_bridge_cache_misses_total",
            "Total cache misses",
            registry=self._registry,
        )
        self._cache_write_failures = Counter(
            "tts_bridge_cache_write_failures_total",
            "Cache writes that failed",
            registry=self._registry,
        )
        self._cache_purges = Counter(
            "tts_bridge_cache_purges_total",
            "Full cache purges",
            registry=self._registry,
        )
        self._chunks_synthesized = Counter(
            "tts_bridge_chunks_synthesized_total",
            "Text chunks synthesized by a backend",
            ["backend"],
            registry=self._registry,
        )
        self._backend_errors = Counter(
            "tts_bridge_backend_errors_total",
            "Pipeline failures by error kind",
            ["kind"],
            registry=self._registry,
        )

    def record_request(
        self,
        backend: str,
        status: str,
        duration: float,
        cache_status: str = "miss",
        audio_bytes: int = 0,
    ) -> None:
        """
        Record a finished synthesis request.

        Args:
            backend: Backend kind ("cloud", "server").
            status: "success" or "error".
            duration: Request duration in seconds.
            cache_status: "hit" or "miss".
            audio_bytes: Size of returned audio.
        """
        if not self.enabled:
            return
        self._requests_total.labels(backend=backend, status=status).inc()
        self._request_duration.labels(backend=backend, cache_status=cache_status).observe(duration)
        if audio_bytes > 0:
            self._audio_bytes_total.inc(audio_bytes)

    def record_cache(self, result: str) -> None:
        """Record a cache "hit" or "miss"."""
        if not self.enabled:
            return
        if result == "hit":
            self._cache_hits.inc()
        else:
            self._cache_misses.inc()

    def inc_cache_write_failures(self) -> None:
        if self.enabled:
            self._cache_write_failures.inc()

    def inc_cache_purges(self) -> None:
        if self.enabled:
            self._cache_purges.inc()

    def inc_chunks_synthesized(self, backend: str, count: int = 1) -> None:
        if self.enabled:
            self._chunks_synthesized.labels(backend=backend).inc(count)

    def record_error(self, kind: str) -> None:
        """Record a pipeline failure by ErrorKind value."""
        if self.enabled:
            self._backend_errors.labels(kind=kind).inc()

    def get_metrics_response(self) -> tuple[bytes, str]:
        """Return (content, content_type) in Prometheus text format."""
        return generate_latest(self._registry), CONTENT_TYPE_LATEST


metrics = TTSBridgeMetrics()
