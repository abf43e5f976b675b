"""
SynthesisService - Text to Speech over Remote Backends.

This module provides the SynthesisService class, the single entry point
for turning text into audio. Hosts (voice assistants, the CLI) call it
with a text, a Voice and a codec name and get back one WAV file.

Architecture:
    Request → Trim → Resolve codec → Cache key → Cache hit?
        hit:  return bytes from disk
        miss: Chunk → Synthesize each chunk → Stitch → Encode → Store → return

Key Components:
    - Backend: Remote synthesis service, built once from configuration
    - ContentCache: Content-addressed disk cache with single-flight
    - VoiceCatalogHolder: Current snapshot of available voices

Error Handling:
    synthesize() raises TTSBridgeError subclasses; synthesize_result()
    returns a SynthesisOutcome carrying the ErrorKind instead. A chunk
    failure aborts the whole request. Backend outages and rejected
    credentials also clear the voice catalog so stale voices are not
    offered until the next successful refresh.

Example:
    >>> from tts_bridge.core.config import load_settings
    >>> from tts_bridge.services import SynthesisService
    >>>
    >>> service = SynthesisService(load_settings("config/settings.yaml"))
    >>> voice = service.available_voices()[0]
    >>> wav = service.synthesize("Hello. This is a test.", voice, "PCM_SIGNED")
"""
from __future__ import annotations

import contextvars
import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import httpx

from tts_bridge.core.config import ServiceConfig, Settings
from tts_bridge.core.errors import (
    AuthenticationError,
    BackendUnavailableError,
    ErrorKind,
    InvalidInputError,
    TTSBridgeError,
    UnsupportedCodecError,
)
from tts_bridge.core.logging import debug, fail, get_logger, info, set_request_id, success, verbose, warn
from tts_bridge.core.metrics import metrics
from tts_bridge.tts.backend import SynthesisBackend, create_backend
from tts_bridge.tts.cache import ContentCache, make_cache_key
from tts_bridge.tts.chunker import RegexSentenceSplitter, TextChunk, chunk_text
from tts_bridge.tts.stitcher import stitch
from tts_bridge.tts.voices import (
    VOICE_UID_PREFIX,
    Voice,
    VoiceCatalog,
    VoiceCatalogHolder,
    build_voices,
    default_voice,
)
from tts_bridge.utils.audio import AudioClip, encode_wav
from tts_bridge.utils.timeit import timeit

_LOG = get_logger("tts-bridge.service")

CODEC_PCM_SIGNED = "PCM_SIGNED"

# codec -> (backend audio encoding, cache file extension)
CODEC_FORMATS: Dict[str, Tuple[str, str]] = {
    CODEC_PCM_SIGNED: ("LINEAR16", "wav"),
}


def resolve_codec(codec: str) -> Tuple[str, str]:
    """
    Map a caller codec to (backend encoding, file extension).

    Raises:
        UnsupportedCodecError: For any codec without a mapping.
    """
    try:
        return CODEC_FORMATS[codec]
    except KeyError:
        raise UnsupportedCodecError(
            f"Audio format {codec} is not yet supported",
            details={"codec": codec, "supported": sorted(CODEC_FORMATS)},
        ) from None


@dataclass
class SynthesisOutcome:
    """
    Explicit result of a synthesis request.

    Attributes:
        ok: True if audio was produced.
        audio: WAV bytes when ok.
        error_kind: ErrorKind when not ok.
        message: Error message when not ok.
        details: Additional error context.
    """
    ok: bool
    audio: Optional[bytes] = None
    error_kind: Optional[ErrorKind] = None
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly summary (audio size instead of audio bytes)."""
        if self.ok:
            return {"ok": True, "bytes": len(self.audio or b"")}
        out: Dict[str, Any] = {
            "ok": False,
            "error": self.error_kind.value if self.error_kind else None,
            "message": self.message,
        }
        if self.details:
            out["details"] = self.details
        return out


class SynthesisService:
    """
    Synthesis pipeline with caching and voice management.

    Usage:
        service = SynthesisService(settings)
        wav = service.synthesize("Hello.", voice, "PCM_SIGNED")

        # Tests inject a backend (or an httpx transport) and a cache:
        service = SynthesisService(settings, backend=fake_backend,
                                   cache=ContentCache(tmp_path))
    """

    def __init__(
        self,
        settings: Settings,
        backend: Optional[SynthesisBackend] = None,
        cache: Optional[ContentCache] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Args:
            settings: Raw settings; validated into a ServiceConfig.
            backend: Backend to use instead of building one from config.
            cache: Cache to use instead of one at cache.base_dir.
            transport: httpx transport for backends built from config.

        Raises:
            ConfigValidationError: If settings are invalid.
        """
        self._settings = settings
        self._config = ServiceConfig.from_settings(settings)
        self._lock = threading.RLock()

        # Backend is built on first use so that a service can be created
        # (and queried for codecs, health, ...) without credentials.
        self._backend = backend
        self._owns_backend = backend is None
        self._transport = transport

        self._cache = cache or ContentCache(self._config.cache.base_dir)
        self._voices = VoiceCatalogHolder()
        self._splitter = self._make_splitter(self._config)

    @staticmethod
    def _make_splitter(config: ServiceConfig) -> RegexSentenceSplitter:
        return RegexSentenceSplitter(config.chunking.boundary_pattern, config.chunking.abbreviations)

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def config(self) -> ServiceConfig:
        return self._config

    @property
    def cache(self) -> ContentCache:
        return self._cache

    @property
    def backend(self) -> SynthesisBackend:
        """
        The active backend, built from configuration on first access.

        Raises:
            AuthenticationError: Cloud backend without API key.
        """
        with self._lock:
            if self._backend is None:
                self._backend = create_backend(self._config.backend, transport=self._transport)
                info(_LOG, "backend_ready", backend=self._backend.kind, fingerprint=self._backend.fingerprint())
            return self._backend

    # =========================================================================
    # Synthesis
    # =========================================================================

    def synthesize(
        self,
        text: str,
        voice: Voice,
        codec: str = CODEC_PCM_SIGNED,
        request_id: Optional[str] = None,
    ) -> bytes:
        """
        Synthesize ``text`` with ``voice`` and return one audio file.

        Args:
            text: Input text of any length; surrounding whitespace is ignored.
            voice: Voice to speak with.
            codec: Requested codec; only "PCM_SIGNED" (WAV) is supported.
            request_id: Correlation id for logs, generated when omitted.

        Returns:
            WAV bytes.

        Raises:
            InvalidInputError: Empty text.
            UnsupportedCodecError: Unknown codec (before any network call).
            ChunkTooLongError: A sentence exceeds the backend limit.
            BackendUnavailableError, AuthenticationError,
            BackendProtocolError, FormatMismatchError: see core.errors.
        """
        set_request_id(request_id or uuid.uuid4().hex[:8])

        trimmed = (text or "").strip()
        if not trimmed:
            raise InvalidInputError("text must not be empty")
        _, extension = resolve_codec(codec)

        preview_chars = self._config.logging.text_preview_chars
        info(_LOG, "request", chars=len(trimmed), voice=voice.technical_name, codec=codec,
             text_preview=trimmed[:preview_chars] if preview_chars > 0 else "")

        config = self._config
        key = make_cache_key(config.backend.fingerprint(), voice.technical_name, trimmed)
        debug(_LOG, "resolved", cache_key=key.digest, fingerprint=key.fingerprint, text=trimmed)

        computed: List[bool] = []

        def _compute() -> bytes:
            computed.append(True)
            return self._render(trimmed, voice, self.backend)

        try:
            with timeit("request_total") as total_t:
                audio = self._cache.get_or_compute(key, _compute, extension=extension)
        except TTSBridgeError as e:
            if isinstance(e, (BackendUnavailableError, AuthenticationError)):
                self._voices.clear()
                warn(_LOG, "voices_cleared", reason=e.kind.value)
            fail(_LOG, "request_failed", error_kind=e.kind.value, error=e.message)
            metrics.record_error(e.kind.value)
            metrics.record_request(config.backend.kind, "error", total_t.seconds if total_t.timing else 0.0)
            raise

        cache_status = "miss" if computed else "hit"
        success(_LOG, "done", bytes=len(audio), cache=cache_status, seconds=round(total_t.seconds, 3))
        metrics.record_request(
            config.backend.kind,
            "success",
            total_t.seconds,
            cache_status=cache_status,
            audio_bytes=len(audio),
        )
        return audio

    def synthesize_result(
        self,
        text: str,
        voice: Voice,
        codec: str = CODEC_PCM_SIGNED,
        request_id: Optional[str] = None,
    ) -> SynthesisOutcome:
        """Like synthesize(), but report failures as a SynthesisOutcome."""
        try:
            audio = self.synthesize(text, voice, codec, request_id=request_id)
        except TTSBridgeError as e:
            return SynthesisOutcome(ok=False, error_kind=e.kind, message=e.message, details=e.details)
        return SynthesisOutcome(ok=True, audio=audio)

    def _render(self, text: str, voice: Voice, backend: SynthesisBackend) -> bytes:
        """Chunk, synthesize, stitch and encode. Runs only on cache misses."""
        result = chunk_text(text, max_chars=self._config.chunking.max_chars, splitter=self._splitter)
        verbose(_LOG, "stage", event="chunk", chunks=len(result.chunks),
                seconds=round(result.timings_s.get("chunk", -1.0), 4))

        with timeit("synth") as t_synth:
            clips = self._synthesize_chunks(result.chunks, voice, backend)
        verbose(_LOG, "stage", event="synth", chunks=len(clips), seconds=round(t_synth.seconds, 4))
        metrics.inc_chunks_synthesized(backend.kind, len(clips))

        with timeit("stitch") as t_stitch:
            audio = encode_wav(stitch(clips))
        verbose(_LOG, "stage", event="stitch", bytes=len(audio), seconds=round(t_stitch.seconds, 4))
        return audio

    def _synthesize_chunks(
        self,
        chunks: List[TextChunk],
        voice: Voice,
        backend: SynthesisBackend,
    ) -> List[AudioClip]:
        workers = min(self._config.synthesis.max_workers, len(chunks))
        if workers <= 1:
            return [backend.synthesize_chunk(c.text, voice) for c in chunks]

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="tts-bridge-chunk") as pool:
            # each task runs in a copy of the caller's context (request id)
            futures: List[Future] = [
                pool.submit(contextvars.copy_context().run, backend.synthesize_chunk, c.text, voice)
                for c in chunks
            ]
            try:
                return [f.result() for f in futures]
            except BaseException:
                for f in futures:
                    f.cancel()
                raise

    # =========================================================================
    # Voices and codecs
    # =========================================================================

    def refresh_voices(self) -> List[Voice]:
        """
        Reload speakers and languages from the backend.

        Falls back to a single default voice when the backend lists none.

        Raises:
            BackendUnavailableError, AuthenticationError: The catalog is
                cleared before re-raising.
            BackendProtocolError: Malformed listing; catalog unchanged.
        """
        try:
            backend = self.backend
            speakers = backend.list_speakers()
            languages = backend.list_languages()
        except (BackendUnavailableError, AuthenticationError) as e:
            self._voices.clear()
            warn(_LOG, "voices_cleared", reason=e.kind.value, error=e.message)
            raise

        voices = build_voices(speakers, languages)
        if not voices:
            voices = [default_voice()]
        self._voices.replace(VoiceCatalog.from_voices(voices))
        info(_LOG, "voices_loaded", voices=len(voices), speakers=len(speakers), languages=len(languages))
        for v in voices:
            debug(_LOG, "voice", uid=v.uid, label=v.display_label)
        return voices

    def _catalog(self) -> VoiceCatalog:
        catalog = self._voices.get()
        if catalog.is_empty():
            self.refresh_voices()
            catalog = self._voices.get()
        return catalog

    def available_voices(self) -> List[Voice]:
        """All voices, loading the catalog on first use."""
        return self._catalog().voices()

    def voices_for_locale(self, locale: str) -> List[Voice]:
        return self._catalog().for_locale(locale)

    def supported_locales(self) -> List[str]:
        return self._catalog().locales()

    def find_voice(self, name: str) -> Optional[Voice]:
        """Find a voice by technical name or uid ("coquitts:<technical name>")."""
        if name.startswith(VOICE_UID_PREFIX):
            name = name[len(VOICE_UID_PREFIX):]
        return self._catalog().find(name)

    def supported_codecs(self) -> List[str]:
        return sorted(CODEC_FORMATS)

    # =========================================================================
    # Configuration and lifecycle
    # =========================================================================

    def update_config(self, updates: Dict[str, Any]) -> None:
        """
        Apply a configuration update.

        Accepts nested sections or flat host keys (isCloudAccount,
        hostname, port, scheme, apiKey, purgeCache). The backend is
        rebuilt, the cache purged when cache.purge_on_update is set, and
        the voice catalog reloaded. A failing reload leaves an empty
        catalog and is logged, not raised.

        Raises:
            ConfigValidationError: Invalid update; nothing is changed.
        """
        new_settings = self._settings.merged(updates)
        new_config = ServiceConfig.from_settings(new_settings)
        new_splitter = self._make_splitter(new_config)
        new_cache = None
        if self._cache.base_dir != Path(new_config.cache.base_dir):
            new_cache = ContentCache(new_config.cache.base_dir)

        with self._lock:
            old_backend = self._backend if self._owns_backend else None
            self._settings = new_settings
            self._config = new_config
            self._backend = None
            self._owns_backend = True
            self._splitter = new_splitter
            if new_cache is not None:
                self._cache = new_cache
            cache = self._cache

        if old_backend is not None:
            old_backend.close()
        info(_LOG, "config_updated", backend=new_config.backend.kind, fingerprint=new_config.backend.fingerprint())

        if new_config.cache.purge_on_update:
            cache.purge()

        self._voices.clear()
        try:
            self.refresh_voices()
        except TTSBridgeError as e:
            warn(_LOG, "voices_unavailable", error_kind=e.kind.value, error=e.message)

    def health(self) -> Dict[str, Any]:
        """Status snapshot for diagnostics (no network calls)."""
        catalog = self._voices.get()
        return {
            "ok": True,
            "backend": self._config.backend.kind,
            "fingerprint": self._config.backend.fingerprint(),
            "codecs": self.supported_codecs(),
            "voices": len(catalog),
            "locales": catalog.locales(),
            "chunking": {"max_chars": self._config.chunking.max_chars},
            "synthesis": {"max_workers": self._config.synthesis.max_workers},
            "cache": self._cache.stats(),
        }

    def close(self) -> None:
        with self._lock:
            if self._backend is not None and self._owns_backend:
                self._backend.close()
            self._backend = None


# =============================================================================
# Global Service Singleton
# =============================================================================

_service: Optional[SynthesisService] = None
_service_lock = threading.Lock()


def get_service(settings: Settings) -> SynthesisService:
    """
    Get or create the global SynthesisService.

    Thread-safe lazy singleton; ``settings`` is only used on first call.
    """
    global _service
    if _service is None:
        with _service_lock:
            if _service is None:
                _service = SynthesisService(settings)
    return _service


def reset_service() -> None:
    """Close and drop the global service (used by tests)."""
    global _service
    with _service_lock:
        if _service is not None:
            _service.close()
        _service = None
