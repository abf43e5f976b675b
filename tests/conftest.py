"""Shared helpers for tts-bridge tests."""
from __future__ import annotations

import io
from typing import List, Optional

import numpy as np
import pytest
import soundfile as sf

from tts_bridge.tts.backend import SynthesisBackend
from tts_bridge.tts.voices import Speaker, Voice
from tts_bridge.utils.audio import AudioClip, decode_wav


def make_wav(
    frames: int,
    sample_rate: int = 22050,
    channels: int = 1,
    subtype: str = "PCM_16",
    value: float = 0.25,
) -> bytes:
    """Encode a constant-amplitude WAV clip."""
    data = np.full((frames, channels), value, dtype=np.float32)
    buf = io.BytesIO()
    sf.write(buf, data, sample_rate, format="WAV", subtype=subtype)
    return buf.getvalue()


class FakeBackend(SynthesisBackend):
    """
    In-memory backend: records calls and returns one WAV per chunk.

    ``fail_on`` makes the n-th (0-based) synthesize call raise.
    """
    kind = "fake"

    def __init__(
        self,
        frames_per_chunk: int = 100,
        sample_rate: int = 22050,
        speakers: Optional[List[Speaker]] = None,
        languages: Optional[List[str]] = None,
        fail_on: Optional[int] = None,
        error: Optional[Exception] = None,
    ):
        # no HTTP client needed
        self.calls: List[str] = []
        self.frames_per_chunk = frames_per_chunk
        self.sample_rate = sample_rate
        self.speakers = speakers if speakers is not None else [Speaker("p225", "p225")]
        self.languages = languages if languages is not None else ["en"]
        self.fail_on = fail_on
        self.error = error
        self.listing_error: Optional[Exception] = None
        self.closed = False

    def fingerprint(self) -> str:
        return "hostname=fake,port=0"

    def fetch_audio(self, text: str, voice: Voice) -> bytes:
        index = len(self.calls)
        self.calls.append(text)
        if self.fail_on is not None and index == self.fail_on:
            raise self.error or RuntimeError("fail")
        return make_wav(self.frames_per_chunk, sample_rate=self.sample_rate)

    def synthesize_chunk(self, text: str, voice: Voice) -> AudioClip:
        return decode_wav(self.fetch_audio(text, voice))

    def list_speakers(self) -> List[Speaker]:
        if self.listing_error is not None:
            raise self.listing_error
        return list(self.speakers)

    def list_languages(self) -> List[str]:
        return list(self.languages)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def wav_factory():
    """Factory fixture for WAV clips."""
    return make_wav
