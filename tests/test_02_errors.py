"""
Tests for the error taxonomy.

Tests cover:
- Every exception class maps to one ErrorKind
- to_dict() payloads
"""
from __future__ import annotations

import pytest

from tts_bridge.core.errors import (
    AuthenticationError,
    BackendProtocolError,
    BackendUnavailableError,
    ChunkTooLongError,
    ErrorKind,
    FormatMismatchError,
    InvalidInputError,
    TTSBridgeError,
    UnsupportedCodecError,
)


class TestErrorKinds:

    @pytest.mark.parametrize(
        "cls,kind",
        [
            (ChunkTooLongError, ErrorKind.CHUNK_TOO_LONG),
            (BackendUnavailableError, ErrorKind.BACKEND_UNAVAILABLE),
            (AuthenticationError, ErrorKind.AUTHENTICATION),
            (BackendProtocolError, ErrorKind.BACKEND_PROTOCOL),
            (FormatMismatchError, ErrorKind.FORMAT_MISMATCH),
            (UnsupportedCodecError, ErrorKind.UNSUPPORTED_CODEC),
            (InvalidInputError, ErrorKind.INVALID_INPUT),
        ],
    )
    def test_kind(self, cls, kind):
        err = cls("boom")
        assert isinstance(err, TTSBridgeError)
        assert err.kind is kind
        assert str(err) == "boom"

    def test_all_kinds_covered(self):
        kinds = {cls.kind for cls in TTSBridgeError.__subclasses__()}
        assert kinds == set(ErrorKind)


class TestToDict:

    def test_without_details(self):
        assert InvalidInputError("empty").to_dict() == {
            "ok": False,
            "error": "INVALID_INPUT",
            "message": "empty",
        }

    def test_with_details(self):
        payload = ChunkTooLongError("too long", details={"length": 600}).to_dict()
        assert payload["error"] == "CHUNK_TOO_LONG"
        assert payload["details"] == {"length": 600}
