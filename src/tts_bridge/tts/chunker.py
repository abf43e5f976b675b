"""
Text Chunking for Length-Limited Synthesis Backends.

Remote backends reject text longer than a fixed limit (500 characters for
the hosted API). This module splits input into sentences and packs them
greedily into chunks that stay strictly below the limit, so no sentence is
ever cut in half and no text is silently dropped.

Strategy:
    1. Split into sentences after "." or "?" followed by whitespace,
       except after initials ("e.g.", "U.S.") and titles ("Mr.", "Dr.")
       or a configured abbreviation ("Mrs.", "St.", ...)
    2. Append sentences to the current chunk, joined by one space, while
       the result stays below max_chars
    3. A single sentence that reaches max_chars on its own is an error;
       it is neither truncated nor hard-split

Sentence splitting is pluggable: anything with a ``split(text) -> list``
method satisfying the SentenceSplitter protocol can replace the default
RegexSentenceSplitter.

Example:
    >>> from tts_bridge.tts.chunker import chunk_text
    >>> result = chunk_text("Hello. This is a test.", max_chars=500)
    >>> [c.text for c in result.chunks]
    ['Hello. This is a test.']
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Protocol

from tts_bridge.core.config import Defaults
from tts_bridge.core.errors import ChunkTooLongError
from tts_bridge.core.logging import get_logger, verbose
from tts_bridge.utils.timeit import timeit

_LOG = get_logger("tts-bridge.chunker")


# =============================================================================
# Data Classes
# =============================================================================

@dataclass(frozen=True)
class TextChunk:
    """
    A backend-legal piece of the input text.

    Attributes:
        index: Position of the chunk in the request (0-based).
        text: Chunk text; always shorter than max_length.
        max_length: Limit the chunk was built against.
    """
    index: int
    text: str
    max_length: int


@dataclass
class ChunkResult:
    """
    Result of a chunking operation.

    Attributes:
        chunks: Ordered chunks ready for synthesis.
        timings_s: Timing measurements in seconds.
    """
    chunks: List[TextChunk]
    timings_s: Dict[str, float]

    @property
    def texts(self) -> List[str]:
        return [c.text for c in self.chunks]


# =============================================================================
# Sentence Splitting
# =============================================================================

class SentenceSplitter(Protocol):
    """Splits text into sentences, in order, without losing content."""

    def split(self, text: str) -> List[str]:
        ...


class RegexSentenceSplitter:
    """
    Split text at a boundary regex, then re-join known abbreviations.

    Args:
        pattern: Regex matching the whitespace between two sentences.
        abbreviations: Tokens after which a boundary match is ignored
            (compared against the last word of the preceding sentence).
    """

    def __init__(
        self,
        pattern: str = Defaults.CHUNKING_BOUNDARY_PATTERN,
        abbreviations: Iterable[str] = Defaults.CHUNKING_ABBREVIATIONS,
    ):
        self._pattern = re.compile(pattern)
        self._abbreviations = frozenset(abbreviations)

    def split(self, text: str) -> List[str]:
        parts = [p.strip() for p in self._pattern.split(text)]
        sentences: List[str] = []
        for part in parts:
            if not part:
                continue
            if sentences and self._ends_with_abbreviation(sentences[-1]):
                sentences[-1] = f"{sentences[-1]} {part}"
            else:
                sentences.append(part)
        return sentences

    def _ends_with_abbreviation(self, sentence: str) -> bool:
        if not self._abbreviations:
            return False
        return sentence.rsplit(None, 1)[-1] in self._abbreviations


_DEFAULT_SPLITTER = RegexSentenceSplitter()


# =============================================================================
# Chunking
# =============================================================================

def chunk_text(
    text: str,
    max_chars: int = Defaults.CHUNKING_MAX_CHARS,
    splitter: Optional[SentenceSplitter] = None,
) -> ChunkResult:
    """
    Pack sentences of ``text`` into chunks shorter than ``max_chars``.

    Args:
        text: Input text. Blank text yields no chunks.
        max_chars: Backend text limit; every chunk is strictly shorter.
        splitter: Sentence splitter, RegexSentenceSplitter by default.

    Returns:
        ChunkResult with ordered TextChunks.

    Raises:
        ChunkTooLongError: If one sentence alone reaches max_chars.
        ValueError: If max_chars is not positive.

    Example:
        >>> s = "A" * 199 + "."
        >>> len(chunk_text(" ".join([s, s, s]), max_chars=500).chunks)
        2
    """
    if max_chars <= 0:
        raise ValueError(f"max_chars must be positive, got {max_chars}")

    timings: Dict[str, float] = {}
    splitter = splitter or _DEFAULT_SPLITTER

    with timeit("chunk") as t:
        texts: List[str] = []
        buf = ""
        for i, sentence in enumerate(splitter.split(text)):
            if len(sentence) >= max_chars:
                raise ChunkTooLongError(
                    f"sentence {i} has {len(sentence)} characters, limit is below {max_chars}",
                    details={"sentence_index": i, "length": len(sentence), "max_chars": max_chars},
                )
            if buf and len(buf) + 1 + len(sentence) >= max_chars:
                texts.append(buf)
                buf = sentence
            else:
                buf = f"{buf} {sentence}" if buf else sentence
        if buf:
            texts.append(buf)

    chunks = [TextChunk(index=i, text=s, max_length=max_chars) for i, s in enumerate(texts)]

    timings["chunk"] = t.seconds
    verbose(_LOG, "chunked", chunks=len(chunks), chars=len(text), max_chars=max_chars,
            seconds=round(timings["chunk"], 4))

    return ChunkResult(chunks=chunks, timings_s=timings)
