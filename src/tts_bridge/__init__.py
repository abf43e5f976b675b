"""
tts-bridge: Long-Text Speech Synthesis over Coqui TTS Backends.

Turns text of any length into one WAV file by delegating to a remote
Coqui synthesis backend that only accepts short text segments.

Supported Backends:
    - cloud: Hosted Coqui API (bearer token, two-step sample + download)
    - server: Self-hosted Coqui TTS server (GET /api/tts)

Key Features:
    - Sentence-preserving chunking below the backend length limit
    - Stitching of per-chunk clips into one well-formed WAV stream
    - Content-addressed disk cache with single-flight computation
    - Voice catalog from backend speakers and languages
    - Structured logging and Prometheus metrics

Example Usage:
    >>> from tts_bridge.core.config import Settings
    >>> from tts_bridge.services import SynthesisService
    >>>
    >>> settings = Settings(raw={"backend": {"kind": "server", "hostname": "localhost", "port": 5002}})
    >>> service = SynthesisService(settings)
    >>> voice = service.available_voices()[0]
    >>> with open("output.wav", "wb") as f:
    ...     f.write(service.synthesize("Hello there. How are you?", voice, "PCM_SIGNED"))
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
