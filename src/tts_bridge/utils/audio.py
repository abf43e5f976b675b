"""
WAV Decoding and Encoding.

Backends return complete audio files (normally RIFF/WAV). The pipeline
decodes each one into an AudioClip, i.e. sample frames plus the format
they were stored in, and encodes the stitched result back to WAV with
the very same sample encoding so no precision is lost.

Sample encodings (soundfile subtypes) and the dtype used in memory:
    PCM_U8, PCM_S8, ULAW, ALAW  ->  8 bit, int16
    PCM_16                      -> 16 bit, int16
    PCM_24, PCM_32              -> 24/32 bit, int32
    FLOAT                       -> 32 bit, float32
    DOUBLE                      -> 64 bit, float64

Dependencies:
    - numpy: sample arrays
    - soundfile: WAV reading/writing (libsndfile)

Example:
    >>> clip = decode_wav(wav_bytes)
    >>> clip.format
    AudioFormat(sample_rate=22050, bit_depth=16, channels=1)
    >>> encode_wav(clip) == wav_bytes   # for canonical PCM_16 WAV input
    True
"""
from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Dict, Tuple

import numpy as np
import soundfile as sf

from tts_bridge.core.errors import BackendProtocolError

# subtype -> (bit depth, numpy dtype used for lossless round trips)
_SUBTYPES: Dict[str, Tuple[int, str]] = {
    "PCM_U8": (8, "int16"),
    "PCM_S8": (8, "int16"),
    "ULAW": (8, "int16"),
    "ALAW": (8, "int16"),
    "PCM_16": (16, "int16"),
    "PCM_24": (24, "int32"),
    "PCM_32": (32, "int32"),
    "FLOAT": (32, "float32"),
    "DOUBLE": (64, "float64"),
}


@dataclass(frozen=True)
class AudioFormat:
    """Sample rate, bits per sample and channel count of a PCM stream."""
    sample_rate: int
    bit_depth: int
    channels: int

    @property
    def frame_size(self) -> int:
        """Bytes per sample frame (all channels)."""
        return self.channels * self.bit_depth // 8


@dataclass
class AudioClip:
    """
    Decoded audio.

    Attributes:
        samples: Array of shape (frames, channels).
        format: AudioFormat the samples were stored with.
        subtype: soundfile subtype used to encode them ("PCM_16", ...).
    """
    samples: np.ndarray
    format: AudioFormat
    subtype: str = "PCM_16"

    @property
    def frames(self) -> int:
        return int(self.samples.shape[0])

    @property
    def duration_s(self) -> float:
        return self.frames / float(self.format.sample_rate)

    @property
    def pcm_size(self) -> int:
        """Size in bytes of the encoded sample data."""
        return self.frames * self.format.frame_size


def decode_wav(data: bytes) -> AudioClip:
    """
    Decode a complete audio file into an AudioClip.

    Args:
        data: File contents as returned by a backend.

    Returns:
        AudioClip with 2-D samples.

    Raises:
        BackendProtocolError: If the bytes are not decodable audio or use
            a sample encoding that cannot be stitched.
    """
    if not data:
        raise BackendProtocolError("backend returned empty audio")
    try:
        with sf.SoundFile(io.BytesIO(data)) as f:
            subtype = f.subtype
            if subtype not in _SUBTYPES:
                raise BackendProtocolError(
                    f"unsupported sample encoding: {subtype}",
                    details={"subtype": subtype, "format": f.format},
                )
            bit_depth, dtype = _SUBTYPES[subtype]
            samples = f.read(dtype=dtype, always_2d=True)
            fmt = AudioFormat(sample_rate=int(f.samplerate), bit_depth=bit_depth, channels=int(f.channels))
    except RuntimeError as e:
        # soundfile.LibsndfileError derives from RuntimeError
        raise BackendProtocolError(f"undecodable audio: {e}", details={"bytes": len(data)}) from e
    return AudioClip(samples=samples, format=fmt, subtype=subtype)


def encode_wav(clip: AudioClip) -> bytes:
    """Encode an AudioClip as RIFF/WAV using the clip's own subtype."""
    buf = io.BytesIO()
    sf.write(buf, clip.samples, clip.format.sample_rate, format="WAV", subtype=clip.subtype)
    return buf.getvalue()
