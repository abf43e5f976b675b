"""
Command-Line Interface for tts-bridge.

Synthesizes text through the configured backend without a host
application, lists voices and manages the cache.

Usage Examples:
    # Single text synthesis with the first available voice
    tts-bridge --text "Hello there. How are you?" --out hello.wav

    # Positional text and an explicit voice (technical name or uid)
    tts-bridge "Hello there." --voice en__p225_p225 --out hello.wav

    # Batch processing from file (one text per line)
    tts-bridge --file inputs.txt --out output_dir/

    # Dry-run: show chunking and cache keys, no network calls
    tts-bridge --text "Test." --dry-run --json

    # Voices and cache
    tts-bridge --list-voices --json
    tts-bridge --purge-cache

Environment Variables:
    TTS_BRIDGE_BACKEND: Backend kind (cloud, server)
    TTS_BRIDGE_API_KEY: Hosted API token
    TTS_BRIDGE_CACHE_DIR: Cache directory
    TTS_BRIDGE_LOG_LEVEL: Log level (1-4)
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

from tts_bridge.core.config import Settings, load_settings
from tts_bridge.core.errors import ChunkTooLongError, TTSBridgeError
from tts_bridge.core.logging import configure_logging, get_logger, info, set_request_id
from tts_bridge.services.synthesis_service import CODEC_PCM_SIGNED, SynthesisService
from tts_bridge.tts.cache import make_cache_key
from tts_bridge.tts.chunker import RegexSentenceSplitter, chunk_text
from tts_bridge.tts.voices import VOICE_UID_PREFIX, Voice, default_voice

DEFAULT_CONFIG = "config/settings.yaml"


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="tts-bridge CLI (long-text synthesis)")

    parser.add_argument("text_pos", nargs="?", help="Text to synthesize (positional)")
    parser.add_argument("--text", help="Text to synthesize")
    parser.add_argument("--file", help="Batch input file (1 line = 1 item)")
    parser.add_argument("--out", help="Output path (file or dir in batch mode)")

    parser.add_argument("--voice", help="Voice technical name or uid")
    parser.add_argument("--codec", default=CODEC_PCM_SIGNED, help="Output codec (default PCM_SIGNED)")
    parser.add_argument("--config", help=f"Settings file (default {DEFAULT_CONFIG})")
    parser.add_argument("--backend", choices=("cloud", "server"), help="Backend override")
    parser.add_argument("--log-level", help="Log level (1-4 or name)")

    parser.add_argument("--list-voices", action="store_true", help="List available voices")
    parser.add_argument("--purge-cache", action="store_true", help="Delete all cached audio")
    parser.add_argument("--dry-run", action="store_true",
                        help="Chunk and compute cache keys without synthesis")
    parser.add_argument("--json", action="store_true", help="Print JSON summary")

    return parser.parse_args(argv)


def _load_settings(args: argparse.Namespace) -> Settings:
    if args.config:
        settings = load_settings(args.config)
    else:
        settings = load_settings(DEFAULT_CONFIG, missing_ok=True)
    if args.backend:
        settings = settings.merged({"backend": {"kind": args.backend}})
    return settings


def _load_texts(args: argparse.Namespace) -> List[str]:
    """
    Collect input texts from --file, --text or the positional argument.

    Raises:
        SystemExit: If no input is provided or options conflict.
    """
    text = args.text or args.text_pos

    if args.file:
        if text:
            raise SystemExit("Use --file without --text or positional text.")
        lines = Path(args.file).read_text(encoding="utf-8").splitlines()
        items = [line.strip() for line in lines if line.strip()]
        if not items:
            raise SystemExit("Input file is empty.")
        return items

    if not text:
        raise SystemExit("Provide --text or a positional text.")
    return [text]


def _resolve_output_paths(args: argparse.Namespace, count: int) -> List[Path]:
    if args.file:
        out_dir = Path(args.out or "out")
        out_dir.mkdir(parents=True, exist_ok=True)
        return [out_dir / f"item_{i + 1:03d}.wav" for i in range(count)]

    out_path = Path(args.out or "out.wav")
    out_path.parent.mkdir(parents=True, exist_ok=True)
    return [out_path]


def _print(payload: Dict[str, Any], as_json: bool) -> None:
    if as_json:
        print(json.dumps(payload, ensure_ascii=False))
    else:
        print(payload)


def _dry_run_summary(service: SynthesisService, text: str, voice_name: str) -> Dict[str, Any]:
    """Chunking and cache lookup for one text, without touching the backend."""
    config = service.config
    trimmed = text.strip()
    key = make_cache_key(config.backend.fingerprint(), voice_name, trimmed)
    summary: Dict[str, Any] = {
        "text_len": len(trimmed),
        "voice": voice_name,
        "cache_key": key.digest,
        "cached": service.cache.contains(key),
    }
    splitter = RegexSentenceSplitter(config.chunking.boundary_pattern, config.chunking.abbreviations)
    try:
        result = chunk_text(trimmed, max_chars=config.chunking.max_chars, splitter=splitter)
    except ChunkTooLongError as e:
        summary["error"] = e.to_dict()
        return summary
    summary["chunks"] = len(result.chunks)
    summary["chunk_lengths"] = [len(c.text) for c in result.chunks]
    return summary


def _resolve_voice(service: SynthesisService, name: Optional[str]) -> Optional[Voice]:
    if name:
        return service.find_voice(name)
    voices = service.available_voices()
    return voices[0] if voices else None


def main(argv: Optional[List[str]] = None) -> int:
    """
    CLI entry point.

    Returns:
        Exit code: 0 on success, 1 on synthesis/backend errors, 2 on
        unknown voices.
    """
    args = _parse_args(argv)

    configure_logging(args.log_level, force=args.log_level is not None)
    log = get_logger("tts-bridge.cli")
    set_request_id(uuid4().hex[:8])

    settings = _load_settings(args)
    service = SynthesisService(settings)
    try:
        return _run(args, service, settings, log)
    finally:
        service.close()


def _run(args: argparse.Namespace, service: SynthesisService, settings: Settings, log) -> int:
    has_input = bool(args.text or args.text_pos or args.file)

    if args.purge_cache:
        removed = service.cache.purge()
        _print({"ok": True, "purged": removed, "cache_dir": settings.cache_dir}, args.json)
        if not has_input and not args.list_voices:
            return 0

    if args.list_voices:
        try:
            voices = service.available_voices()
        except TTSBridgeError as e:
            _print(e.to_dict(), args.json)
            return 1
        if args.json:
            print(json.dumps({"ok": True, "voices": [v.to_dict() for v in voices]}, ensure_ascii=False))
        else:
            for v in voices:
                print(f"{v.uid}\t{v.locale}\t{v.display_label}")
        if not has_input:
            return 0

    texts = _load_texts(args)

    if args.dry_run:
        voice_name = args.voice or default_voice().technical_name
        if voice_name.startswith(VOICE_UID_PREFIX):
            voice_name = voice_name[len(VOICE_UID_PREFIX):]
        summaries = [_dry_run_summary(service, t, voice_name) for t in texts]
        info(log, "dry_run", items=len(texts), backend=settings.backend_kind)
        _print({"ok": True, "dry_run": True, "backend": settings.backend_kind, "items": summaries}, args.json)
        print("DRY_RUN_OK")
        return 0

    out_paths = _resolve_output_paths(args, len(texts))
    try:
        voice = _resolve_voice(service, args.voice)
    except TTSBridgeError as e:
        _print(e.to_dict(), args.json)
        return 1
    if voice is None:
        _print({"ok": False, "error": "INVALID_INPUT", "message": f"unknown voice: {args.voice}"}, args.json)
        return 2

    results = []
    all_ok = True
    for text, out_path in zip(texts, out_paths):
        info(log, "synth_start", chars=len(text), voice=voice.technical_name, out=str(out_path))
        outcome = service.synthesize_result(text, voice, args.codec)
        item = outcome.to_dict()
        if outcome.ok and outcome.audio is not None:
            out_path.write_bytes(outcome.audio)
            item["out"] = str(out_path)
        else:
            all_ok = False
        results.append(item)

    _print({"ok": all_ok, "dry_run": False, "voice": voice.uid, "items": results}, args.json)
    if all_ok:
        print("CLI_OK")
        return 0
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
