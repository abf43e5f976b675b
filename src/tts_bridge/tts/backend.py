"""
Synthesis Backend Base Class and Factory.

This module provides:
    - SynthesisBackend: Base class for remote synthesis services
    - create_backend(): Factory building the configured backend once

Backends:
    - cloud: Hosted Coqui API (create sample, then download audio_url)
    - server: Self-hosted Coqui TTS server (GET /api/tts)

HTTP Handling:
    Every backend owns one httpx.Client with bounded connect/read timeouts.
    Failures map onto the error taxonomy:
        timeout / connection error     -> BackendUnavailableError
        HTTP 401, 403                  -> AuthenticationError
        HTTP 429, 5xx                  -> BackendUnavailableError
        other non-2xx, bad JSON        -> BackendProtocolError
        body over max_download_bytes   -> BackendProtocolError
        body shorter than announced    -> BackendProtocolError
        invalid URL, unknown scheme    -> BackendProtocolError

Implementing a New Backend:
    1. Create backends/<name>.py
    2. Inherit from SynthesisBackend
    3. Implement fetch_audio(), list_speakers() and list_languages()
    4. Register it in create_backend()
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from tts_bridge.core.config import BACKEND_CLOUD, BACKEND_SERVER, BackendConfig, ConfigValidationError
from tts_bridge.core.errors import AuthenticationError, BackendProtocolError, BackendUnavailableError
from tts_bridge.core.logging import debug, get_logger, verbose
from tts_bridge.tts.voices import Speaker, Voice
from tts_bridge.utils.audio import AudioClip, decode_wav
from tts_bridge.utils.timeit import timeit

M = TypeVar("M", bound=BaseModel)


class SynthesisBackend:
    """
    Base class for remote synthesis backends.

    Subclasses implement:
        - fetch_audio(): Return the raw audio file for one chunk
        - list_speakers(): Speakers offered by the backend
        - list_languages(): Language tags offered by the backend

    Attributes:
        kind: Backend identifier ("cloud", "server").
        config: BackendConfig this instance was built from.

    Example:
        with create_backend(config) as backend:
            clip = backend.synthesize_chunk("Hello.", voice)
    """
    kind: str = "base"

    def __init__(self, config: BackendConfig, transport: Optional[httpx.BaseTransport] = None):
        """
        Args:
            config: Backend configuration.
            transport: Optional httpx transport (tests use httpx.MockTransport).
        """
        self.config = config
        self.logger = get_logger(f"tts-bridge.backend.{self.kind}")
        self._client = httpx.Client(
            timeout=httpx.Timeout(config.read_timeout_s, connect=config.connect_timeout_s),
            transport=transport,
            follow_redirects=True,
        )

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def fingerprint(self) -> str:
        """Configuration fingerprint used in cache keys."""
        return self.config.fingerprint()

    def synthesize_chunk(self, text: str, voice: Voice) -> AudioClip:
        """
        Synthesize one chunk and decode the returned audio.

        Raises:
            BackendUnavailableError, AuthenticationError: see module docs.
            BackendProtocolError: Bad response or undecodable audio.
        """
        with timeit("backend_fetch") as t:
            data = self.fetch_audio(text, voice)
        clip = decode_wav(data)
        verbose(self.logger, "chunk_synthesized", chars=len(text), bytes=len(data),
                frames=clip.frames, seconds=round(t.seconds, 4))
        return clip

    def fetch_audio(self, text: str, voice: Voice) -> bytes:
        raise NotImplementedError

    def list_speakers(self) -> List[Speaker]:
        raise NotImplementedError

    def list_languages(self) -> List[str]:
        raise NotImplementedError

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "SynthesisBackend":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # HTTP helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _check_status(response: httpx.Response) -> None:
        status = response.status_code
        if 200 <= status < 300:
            return
        details = {"status": status, "url": str(response.request.url)}
        if status in (401, 403):
            raise AuthenticationError(f"backend rejected credentials (HTTP {status})", details=details)
        if status == 429 or status >= 500:
            raise BackendUnavailableError(f"backend unavailable (HTTP {status})", details=details)
        raise BackendProtocolError(f"unexpected HTTP status {status}", details=details)

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request and return the checked response (body loaded)."""
        try:
            response = self._client.request(method, url, **kwargs)
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
            raise BackendProtocolError(f"invalid request URL {url!r}: {e}", details={"url": url}) from e
        except httpx.TimeoutException as e:
            raise BackendUnavailableError(f"request timed out: {method} {url}", details={"url": url}) from e
        except httpx.TransportError as e:
            raise BackendUnavailableError(f"request failed: {e}", details={"url": url}) from e
        self._check_status(response)
        return response

    def _request_json(self, method: str, url: str, **kwargs: Any) -> Any:
        response = self._request(method, url, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise BackendProtocolError(f"invalid JSON from {url}", details={"url": url}) from e

    def _request_model(self, model: Type[M], method: str, url: str, **kwargs: Any) -> M:
        """Send a request and validate the JSON body against ``model``."""
        payload = self._request_json(method, url, **kwargs)
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise BackendProtocolError(
                f"unexpected response shape from {url}",
                details={"url": url, "errors": e.error_count()},
            ) from e

    def _download(
        self,
        url: str,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> bytes:
        """
        Stream a response body into memory, bounded by max_download_bytes.

        Raises:
            BackendProtocolError: If the body is larger than the ceiling or
                shorter than its Content-Length, or if the URL is unusable.
        """
        limit = self.config.max_download_bytes
        try:
            with self._client.stream("GET", url, params=params, headers=headers) as response:
                self._check_status(response)

                announced = response.headers.get("Content-Length")
                expected = int(announced) if announced and announced.isdigit() else None
                if expected is not None and expected > limit:
                    raise BackendProtocolError(
                        f"audio of {expected} bytes exceeds limit of {limit}",
                        details={"url": url, "content_length": expected, "limit": limit},
                    )

                buf = bytearray()
                try:
                    for part in response.iter_bytes():
                        buf.extend(part)
                        if len(buf) > limit:
                            raise BackendProtocolError(
                                f"audio exceeds limit of {limit} bytes",
                                details={"url": url, "limit": limit},
                            )
                except httpx.RemoteProtocolError as e:
                    raise BackendProtocolError(f"truncated audio download: {e}", details={"url": url}) from e

                encoded = response.headers.get("Content-Encoding", "identity") != "identity"
                if expected is not None and not encoded and len(buf) != expected:
                    raise BackendProtocolError(
                        f"truncated audio download: got {len(buf)} of {expected} bytes",
                        details={"url": url, "received": len(buf), "content_length": expected},
                    )
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
            raise BackendProtocolError(f"invalid audio URL {url!r}: {e}", details={"url": url}) from e
        except httpx.TimeoutException as e:
            raise BackendUnavailableError(f"download timed out: {url}", details={"url": url}) from e
        except httpx.TransportError as e:
            raise BackendUnavailableError(f"download failed: {e}", details={"url": url}) from e

        debug(self.logger, "downloaded", bytes=len(buf))
        return bytes(buf)


def create_backend(config: BackendConfig, transport: Optional[httpx.BaseTransport] = None) -> SynthesisBackend:
    """
    Build the backend selected by ``config.kind``.

    Uses lazy imports so only the selected backend module is loaded.

    Raises:
        ConfigValidationError: If the kind is unknown.
        AuthenticationError: If the cloud backend has no API key.
    """
    kind = (config.kind or "").strip().lower()

    if kind == BACKEND_CLOUD:
        from tts_bridge.tts.backends.cloud import CoquiCloudBackend
        return CoquiCloudBackend(config, transport=transport)

    if kind == BACKEND_SERVER:
        from tts_bridge.tts.backends.server import CoquiServerBackend
        return CoquiServerBackend(config, transport=transport)

    raise ConfigValidationError(f"Unknown backend kind: {config.kind}")
