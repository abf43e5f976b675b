"""
Error Taxonomy for tts-bridge.

Every failure the synthesis pipeline can report belongs to exactly one
ErrorKind. Exceptions carry their kind so callers can either catch the
specific class or branch on ``exc.kind``; SynthesisService.synthesize_result()
converts them into explicit result objects.

Kinds:
    CHUNK_TOO_LONG       A sentence does not fit the backend length limit
    BACKEND_UNAVAILABLE  Network failure, timeout or backend-side outage
    AUTHENTICATION       Credentials rejected by the backend
    BACKEND_PROTOCOL     Malformed, unexpected or oversized backend response
    FORMAT_MISMATCH      Chunk clips disagree on audio format
    UNSUPPORTED_CODEC    Requested codec has no backend encoding
    INVALID_INPUT        Empty text or unknown voice
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Closed set of error kinds reported by the pipeline."""
    CHUNK_TOO_LONG = "CHUNK_TOO_LONG"
    BACKEND_UNAVAILABLE = "BACKEND_UNAVAILABLE"
    AUTHENTICATION = "AUTHENTICATION"
    BACKEND_PROTOCOL = "BACKEND_PROTOCOL"
    FORMAT_MISMATCH = "FORMAT_MISMATCH"
    UNSUPPORTED_CODEC = "UNSUPPORTED_CODEC"
    INVALID_INPUT = "INVALID_INPUT"


class TTSBridgeError(Exception):
    """
    Base exception for tts-bridge errors.

    Attributes:
        message: Human-readable error message.
        kind: ErrorKind of this failure.
        details: Optional dictionary with additional context.
    """
    kind: ErrorKind = ErrorKind.BACKEND_PROTOCOL

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly error payload."""
        result: Dict[str, Any] = {
            "ok": False,
            "error": self.kind.value,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class ChunkTooLongError(TTSBridgeError):
    """Raised when a single sentence reaches the chunk length limit."""
    kind = ErrorKind.CHUNK_TOO_LONG


class BackendUnavailableError(TTSBridgeError):
    """Raised on connection errors, timeouts and backend outages."""
    kind = ErrorKind.BACKEND_UNAVAILABLE


class AuthenticationError(TTSBridgeError):
    """Raised when the backend rejects (or lacks) credentials."""
    kind = ErrorKind.AUTHENTICATION


class BackendProtocolError(TTSBridgeError):
    """Raised on malformed, unexpected, oversized or truncated responses."""
    kind = ErrorKind.BACKEND_PROTOCOL


class FormatMismatchError(TTSBridgeError):
    """Raised when clips destined for one stream do not share a format."""
    kind = ErrorKind.FORMAT_MISMATCH


class UnsupportedCodecError(TTSBridgeError):
    """Raised when a codec maps to no known backend audio encoding."""
    kind = ErrorKind.UNSUPPORTED_CODEC


class InvalidInputError(TTSBridgeError):
    """Raised for empty text or a voice the service does not know."""
    kind = ErrorKind.INVALID_INPUT
