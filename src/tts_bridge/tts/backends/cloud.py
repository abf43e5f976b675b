"""
Hosted Coqui API Backend.

Synthesis is a two-step exchange:
    1. POST {base}/api/v2/samples with the text and speaker id; the API
       renders the sample and answers with an ``audio_url``
    2. GET audio_url (pre-signed, no auth) with bounded size and timeouts

Speaker Listing:
    Custom voices (/api/v2/voices, labelled "<name> (Custom)") come first,
    then built-in speakers (/api/v2/speakers). Both are paginated with
    page=N&per_page=100 starting at page 1 and stop when has_next is false
    or after max_pages pages. A failing page ends that listing early and
    keeps what was collected so far.

Languages:
    The hosted API only offers English: ["en"].
"""
from __future__ import annotations

from typing import Dict, List, Optional

import httpx

from tts_bridge.core.config import BackendConfig
from tts_bridge.core.errors import AuthenticationError, TTSBridgeError
from tts_bridge.core.logging import debug, info
from tts_bridge.tts.backend import SynthesisBackend
from tts_bridge.tts.backends.models import ListVoicesResponse, VoiceDataRequest, VoiceDataResponse
from tts_bridge.tts.voices import Speaker, Voice

VOICES_ENDPOINT = "/api/v2/voices"
SPEAKERS_ENDPOINT = "/api/v2/speakers"
SAMPLES_ENDPOINT = "/api/v2/samples"
CUSTOM_VOICE_SUFFIX = " (Custom)"


class CoquiCloudBackend(SynthesisBackend):
    """
    Backend for the hosted Coqui API.

    Args:
        config: Backend configuration; ``api_key`` is required.
        transport: Optional httpx transport.

    Raises:
        AuthenticationError: If no API key is configured.
    """
    kind = "cloud"

    def __init__(self, config: BackendConfig, transport: Optional[httpx.BaseTransport] = None):
        if not config.api_key:
            raise AuthenticationError("cloud backend requires an API key")
        super().__init__(config, transport=transport)
        self._base = config.base_url.rstrip("/")

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.config.api_key}"}

    def fetch_audio(self, text: str, voice: Voice) -> bytes:
        req = VoiceDataRequest(
            voice_id=voice.speaker_id,
            emotion="Neutral",
            name=self.config.sample_name,
            text=text,
            speed=1.0,
        )
        sample = self._request_model(
            VoiceDataResponse,
            "POST",
            self._base + SAMPLES_ENDPOINT,
            json=req.model_dump(),
            headers=self._auth_headers(),
        )
        debug(self.logger, "sample_created", sample_id=sample.id)
        return self._download(str(sample.audio_url))

    def list_speakers(self) -> List[Speaker]:
        speakers = self._list_paginated(VOICES_ENDPOINT, CUSTOM_VOICE_SUFFIX)
        speakers.extend(self._list_paginated(SPEAKERS_ENDPOINT, ""))
        info(self.logger, "speakers_listed", count=len(speakers))
        return speakers

    def list_languages(self) -> List[str]:
        return ["en"]

    def _list_paginated(self, endpoint: str, label_suffix: str) -> List[Speaker]:
        out: List[Speaker] = []
        for page in range(1, self.config.max_pages + 1):
            try:
                r = self._request_model(
                    ListVoicesResponse,
                    "GET",
                    self._base + endpoint,
                    params={"page": page, "per_page": self.config.page_size},
                    headers=self._auth_headers(),
                )
            except TTSBridgeError as e:
                debug(self.logger, "listing_stopped", endpoint=endpoint, page=page,
                      error_kind=e.kind.value, error=e.message)
                break
            out.extend(Speaker(label=p.name + label_suffix, speaker_id=p.id) for p in r.result)
            if not r.has_next:
                break
        return out
