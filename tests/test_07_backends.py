"""
Tests for the HTTP synthesis backends (httpx.MockTransport, no network).

Tests cover:
- Backend factory
- Status and transport error mapping
- Bounded, truncation-checked downloads; unusable URLs
- Hosted API: two-step synthesis, auth header, paginated speaker listing
- Self-hosted server: query parameters, sentinel blanking, listings
"""
from __future__ import annotations

import json
from typing import List

import httpx
import pytest

from conftest import make_wav
from tts_bridge.core.config import BackendConfig, ConfigValidationError
from tts_bridge.core.errors import (
    AuthenticationError,
    BackendProtocolError,
    BackendUnavailableError,
)
from tts_bridge.tts.backend import create_backend
from tts_bridge.tts.backends.cloud import CoquiCloudBackend
from tts_bridge.tts.backends.server import CoquiServerBackend
from tts_bridge.tts.voices import Voice, default_voice

VOICE = Voice(locale="en", label="p225", language_id="en", speaker_id="p225")


def _server(handler, **kwargs) -> CoquiServerBackend:
    cfg = BackendConfig(kind="server", hostname="tts.local", port=5002, **kwargs)
    return CoquiServerBackend(cfg, transport=httpx.MockTransport(handler))


def _cloud(handler, **kwargs) -> CoquiCloudBackend:
    cfg = BackendConfig(kind="cloud", api_key="secret", base_url="https://api.test", **kwargs)
    return CoquiCloudBackend(cfg, transport=httpx.MockTransport(handler))


class TestFactory:

    def test_server(self):
        backend = create_backend(BackendConfig(kind="server", hostname="h", port=1),
                                 transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        assert isinstance(backend, CoquiServerBackend)
        assert backend.base_url == "http://h:1"
        backend.close()

    def test_cloud(self):
        backend = create_backend(BackendConfig(kind="cloud", api_key="k"),
                                 transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        assert isinstance(backend, CoquiCloudBackend)
        backend.close()

    def test_cloud_without_key(self):
        with pytest.raises(AuthenticationError):
            create_backend(BackendConfig(kind="cloud"))

    def test_unknown_kind(self):
        with pytest.raises(ConfigValidationError):
            create_backend(BackendConfig(kind="grpc"))

    def test_server_defaults_to_localhost(self):
        backend = CoquiServerBackend(BackendConfig(kind="server", scheme="https"))
        assert backend.base_url == "https://localhost"
        backend.close()


class TestErrorMapping:
    """HTTP failures map onto the error taxonomy."""

    @pytest.mark.parametrize(
        "status,exc",
        [
            (401, AuthenticationError),
            (403, AuthenticationError),
            (429, BackendUnavailableError),
            (503, BackendUnavailableError),
            (404, BackendProtocolError),
            (400, BackendProtocolError),
        ],
    )
    def test_status(self, status, exc):
        with _server(lambda r: httpx.Response(status)) as backend:
            with pytest.raises(exc) as info:
                backend.fetch_audio("Hello.", VOICE)
        assert info.value.details["status"] == status

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with _server(handler) as backend:
            with pytest.raises(BackendUnavailableError):
                backend.fetch_audio("Hello.", VOICE)

    def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with _server(handler) as backend:
            with pytest.raises(BackendUnavailableError):
                backend.list_speakers()

    def test_invalid_json(self):
        with _server(lambda r: httpx.Response(200, content=b"<html>")) as backend:
            with pytest.raises(BackendProtocolError):
                backend.list_languages()


class TestDownload:
    """Size ceiling and truncation checks."""

    def test_content_length_over_limit(self):
        with _server(lambda r: httpx.Response(200, content=b"x" * 500), max_download_bytes=100) as backend:
            with pytest.raises(BackendProtocolError) as info:
                backend.fetch_audio("Hello.", VOICE)
        assert info.value.details["content_length"] == 500

    def test_streamed_body_over_limit(self):
        def handler(request):
            return httpx.Response(200, content=iter([b"x" * 60, b"x" * 60]))

        with _server(handler, max_download_bytes=100) as backend:
            with pytest.raises(BackendProtocolError):
                backend.fetch_audio("Hello.", VOICE)

    def test_truncated_body(self):
        def handler(request):
            return httpx.Response(200, headers={"Content-Length": "1000"}, content=b"RIFF")

        with _server(handler) as backend:
            with pytest.raises(BackendProtocolError) as info:
                backend.fetch_audio("Hello.", VOICE)
        assert info.value.details["received"] == 4

    def test_invalid_url(self):
        with _server(lambda r: httpx.Response(200)) as backend:
            with pytest.raises(BackendProtocolError):
                backend._download("http://[::1")

    def test_unsupported_scheme(self):
        # real transport: the scheme is rejected before any connection attempt
        with CoquiServerBackend(BackendConfig(kind="server", hostname="tts.local", port=5002)) as backend:
            with pytest.raises(BackendProtocolError):
                backend._download("ftp://tts.local/a.wav")

    def test_undecodable_audio(self):
        with _server(lambda r: httpx.Response(200, content=b"not audio at all")) as backend:
            with pytest.raises(BackendProtocolError):
                backend.synthesize_chunk("Hello.", VOICE)


class TestServerBackend:

    def test_tts_request(self):
        wav = make_wav(120)
        seen: List[httpx.Request] = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, content=wav, headers={"Content-Type": "audio/wav"})

        with _server(handler) as backend:
            clip = backend.synthesize_chunk("Hello there.", VOICE)

        assert clip.frames == 120
        url = seen[0].url
        assert url.host == "tts.local"
        assert url.port == 5002
        assert url.path == "/api/tts"
        assert url.params["speaker_id"] == "p225"
        assert url.params["language_id"] == "en"
        assert url.params["text"] == "Hello there."

    def test_default_voice_sends_empty_ids(self):
        seen: List[httpx.Request] = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, content=make_wav(10))

        with _server(handler) as backend:
            backend.fetch_audio("Hi.", default_voice())

        assert seen[0].url.params["speaker_id"] == ""
        assert seen[0].url.params["language_id"] == ""

    def test_listings(self):
        def handler(request):
            if request.url.path == "/api/speakers":
                return httpx.Response(200, json=["p225", "p226"])
            if request.url.path == "/api/languages":
                return httpx.Response(200, json=["en", "fr-fr"])
            return httpx.Response(404)

        with _server(handler) as backend:
            speakers = backend.list_speakers()
            languages = backend.list_languages()

        assert [s.speaker_id for s in speakers] == ["p225", "p226"]
        assert [s.label for s in speakers] == ["p225", "p226"]
        assert languages == ["en", "fr-fr"]

    @pytest.mark.parametrize("payload", [{"speakers": []}, [1, 2], "p225"])
    def test_listing_shape(self, payload):
        with _server(lambda r: httpx.Response(200, json=payload)) as backend:
            with pytest.raises(BackendProtocolError):
                backend.list_speakers()

    def test_fingerprint(self):
        with _server(lambda r: httpx.Response(200)) as backend:
            assert backend.fingerprint() == "hostname=tts.local,port=5002"


class TestCloudBackend:

    def test_two_step_synthesis(self):
        wav = make_wav(80)
        seen: List[httpx.Request] = []

        def handler(request):
            seen.append(request)
            if request.url.path == "/api/v2/samples":
                return httpx.Response(201, json={"id": "s1", "audio_url": "https://cdn.test/s1.wav"})
            if request.url.host == "cdn.test":
                return httpx.Response(200, content=wav)
            return httpx.Response(404)

        with _cloud(handler) as backend:
            clip = backend.synthesize_chunk("Hello.", VOICE)

        assert clip.frames == 80
        create, download = seen
        assert create.method == "POST"
        assert create.headers["Authorization"] == "Bearer secret"
        body = json.loads(create.content)
        assert body == {
            "voice_id": "p225",
            "emotion": "Neutral",
            "name": "Created by tts-bridge",
            "text": "Hello.",
            "speed": 1.0,
        }
        assert download.method == "GET"
        assert "Authorization" not in download.headers

    def test_missing_audio_url(self):
        with _cloud(lambda r: httpx.Response(201, json={"id": "s1"})) as backend:
            with pytest.raises(BackendProtocolError):
                backend.fetch_audio("Hello.", VOICE)

    @pytest.mark.parametrize("audio_url", ["http://[::1", "relative/path.wav", "ftp://cdn.test/s1.wav", ""])
    def test_malformed_audio_url(self, audio_url):
        downloads = []

        def handler(request):
            if request.url.path == "/api/v2/samples":
                return httpx.Response(201, json={"id": "s1", "audio_url": audio_url})
            downloads.append(request)
            return httpx.Response(200, content=make_wav(10))

        with _cloud(handler) as backend:
            with pytest.raises(BackendProtocolError):
                backend.fetch_audio("Hello.", VOICE)
        assert downloads == []

    def test_rejected_key(self):
        with _cloud(lambda r: httpx.Response(401)) as backend:
            with pytest.raises(AuthenticationError):
                backend.fetch_audio("Hello.", VOICE)

    def test_custom_voices_then_speakers(self):
        def handler(request):
            if request.url.path == "/api/v2/voices":
                return httpx.Response(200, json={"result": [{"id": "c1", "name": "Mine"}], "has_next": False})
            return httpx.Response(200, json={"result": [{"id": "b1", "name": "Ana Florence"}], "has_next": False})

        with _cloud(handler) as backend:
            speakers = backend.list_speakers()

        assert [(s.label, s.speaker_id) for s in speakers] == [
            ("Mine (Custom)", "c1"),
            ("Ana Florence", "b1"),
        ]
        assert backend.list_languages() == ["en"]

    def test_pagination_params_and_stop(self):
        pages: List[dict] = []

        def handler(request):
            if request.url.path != "/api/v2/speakers":
                return httpx.Response(200, json={"result": [], "has_next": False})
            page = int(request.url.params["page"])
            pages.append(dict(request.url.params))
            return httpx.Response(200, json={
                "result": [{"id": f"s{page}", "name": f"S{page}"}],
                "has_next": page < 3,
            })

        with _cloud(handler) as backend:
            speakers = backend.list_speakers()

        assert [p["page"] for p in pages] == ["1", "2", "3"]
        assert all(p["per_page"] == "100" for p in pages)
        assert [s.speaker_id for s in speakers] == ["s1", "s2", "s3"]

    def test_pagination_capped(self):
        calls = []

        def handler(request):
            if request.url.path == "/api/v2/speakers":
                calls.append(request)
            return httpx.Response(200, json={"result": [{"id": "x", "name": "X"}], "has_next": True})

        with _cloud(handler) as backend:
            speakers = backend.list_speakers()

        assert len(calls) == 10
        assert len(speakers) == 20  # 10 custom + 10 built-in pages

    def test_failing_page_keeps_partial_result(self):
        def handler(request):
            if request.url.path == "/api/v2/voices":
                return httpx.Response(200, json={"result": [], "has_next": False})
            if request.url.params["page"] == "2":
                return httpx.Response(500)
            return httpx.Response(200, json={"result": [{"id": "a", "name": "A"}], "has_next": True})

        with _cloud(handler) as backend:
            speakers = backend.list_speakers()

        assert [s.speaker_id for s in speakers] == ["a"]
