"""
Audio Stitching.

Concatenates per-chunk clips into one stream. All clips must share sample
rate, bit depth, channel count and sample encoding; otherwise the result
would play back at the wrong speed or as noise, so the stitcher refuses
with FormatMismatchError instead.

The output frame count is always the sum of the input frame counts, and
the stitched clip is re-encoded as a single well-formed WAV (one RIFF
header, one data chunk of the right size).

Example:
    >>> wav = stitch_wav([first_chunk_wav, second_chunk_wav])
"""
from __future__ import annotations

from typing import List, Sequence

import numpy as np

from tts_bridge.core.errors import FormatMismatchError
from tts_bridge.core.logging import get_logger, verbose
from tts_bridge.utils.audio import AudioClip, AudioFormat, decode_wav, encode_wav
from tts_bridge.utils.timeit import timeit

_LOG = get_logger("tts-bridge.stitcher")

__all__ = ["AudioClip", "AudioFormat", "stitch", "stitch_wav"]


def stitch(clips: Sequence[AudioClip]) -> AudioClip:
    """
    Concatenate clips in order.

    Args:
        clips: One or more decoded clips.

    Returns:
        A clip whose frame count is the sum of all input frame counts.
        A single clip is returned unchanged.

    Raises:
        ValueError: If clips is empty.
        FormatMismatchError: If any clip differs in format from the first.
    """
    if not clips:
        raise ValueError("stitch() needs at least one clip")

    first = clips[0]
    for i, clip in enumerate(clips[1:], start=1):
        if clip.format != first.format or clip.subtype != first.subtype:
            raise FormatMismatchError(
                f"clip {i} format {clip.format} ({clip.subtype}) differs from "
                f"{first.format} ({first.subtype})",
                details={
                    "index": i,
                    "expected": {**first.format.__dict__, "subtype": first.subtype},
                    "actual": {**clip.format.__dict__, "subtype": clip.subtype},
                },
            )

    if len(clips) == 1:
        return first

    with timeit("stitch") as t:
        samples = np.concatenate([c.samples for c in clips], axis=0)
    out = AudioClip(samples=samples, format=first.format, subtype=first.subtype)

    verbose(_LOG, "stitched", clips=len(clips), frames=out.frames,
            duration_s=round(out.duration_s, 3), seconds=round(t.seconds, 4))
    return out


def stitch_wav(wavs: List[bytes]) -> bytes:
    """Decode WAV files, stitch them and return one encoded WAV."""
    clips: List[AudioClip] = [decode_wav(w) for w in wavs]
    return encode_wav(stitch(clips))
