"""
Self-Hosted Coqui TTS Server Backend.

Talks to the HTTP server shipped with Coqui TTS (``tts-server``):
    GET /api/tts?speaker_id=&language_id=&text=  -> audio bytes
    GET /api/speakers                            -> ["p225", "p226", ...]
    GET /api/languages                           -> ["en", "fr-fr", ...]

The default voice sentinels are sent as empty values so the server uses
its own defaults (single-speaker and single-language models).
"""
from __future__ import annotations

from typing import Any, List, Optional

import httpx

from tts_bridge.core.config import BackendConfig
from tts_bridge.core.errors import BackendProtocolError
from tts_bridge.core.logging import info
from tts_bridge.tts.backend import SynthesisBackend
from tts_bridge.tts.voices import DEFAULT_LANGUAGE_ID, DEFAULT_VOICE_ID, Speaker, Voice


class CoquiServerBackend(SynthesisBackend):
    """Backend for a self-hosted Coqui TTS server at scheme://hostname:port."""
    kind = "server"

    def __init__(self, config: BackendConfig, transport: Optional[httpx.BaseTransport] = None):
        super().__init__(config, transport=transport)
        host = config.hostname or "localhost"
        self._base = f"{config.scheme}://{host}:{config.port}" if config.port else f"{config.scheme}://{host}"

    @property
    def base_url(self) -> str:
        return self._base

    def fetch_audio(self, text: str, voice: Voice) -> bytes:
        speaker_id = voice.speaker_id if voice.speaker_id != DEFAULT_VOICE_ID else ""
        language_id = voice.language_id if voice.language_id != DEFAULT_LANGUAGE_ID else ""
        return self._download(
            self._base + "/api/tts",
            params={"speaker_id": speaker_id, "language_id": language_id, "text": text},
        )

    def list_speakers(self) -> List[Speaker]:
        names = self._string_list("/api/speakers")
        info(self.logger, "speakers_listed", count=len(names))
        return [Speaker(label=n, speaker_id=n) for n in names]

    def list_languages(self) -> List[str]:
        return self._string_list("/api/languages")

    def _string_list(self, path: str) -> List[str]:
        payload: Any = self._request_json("GET", self._base + path)
        if not isinstance(payload, list) or not all(isinstance(x, str) for x in payload):
            raise BackendProtocolError(f"expected a JSON array of strings from {path}", details={"path": path})
        return payload
