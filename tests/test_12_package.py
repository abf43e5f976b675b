"""Tests for packaging and the console entry point."""
from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]


class TestPackage:

    def test_version_defined(self):
        import tts_bridge
        assert isinstance(tts_bridge.__version__, str)
        assert tts_bridge.__version__

    def test_modules_importable(self):
        from tts_bridge.core import config, errors, logging, metrics
        from tts_bridge.services import synthesis_service
        from tts_bridge.tts import backend, cache, chunker, stitcher, voices
        from tts_bridge.tts.backends import cloud, models, server
        from tts_bridge.utils import audio, timeit

        for module in (config, errors, logging, metrics, synthesis_service, backend, cache,
                       chunker, stitcher, voices, cloud, models, server, audio, timeit):
            assert module is not None

    def test_cli_module_help(self):
        result = subprocess.run(
            [sys.executable, "-m", "tts_bridge.cli", "--help"],
            capture_output=True,
            text=True,
            cwd=ROOT,
            env={**os.environ, "PYTHONPATH": str(ROOT / "src")},
        )
        assert result.returncode == 0
        assert "tts-bridge CLI" in result.stdout
