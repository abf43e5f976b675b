"""
Synthesis backend implementations.

    - cloud.py: Hosted Coqui API (CoquiCloudBackend)
    - server.py: Self-hosted Coqui TTS server (CoquiServerBackend)
    - models.py: Pydantic models for the hosted API's JSON payloads

Use tts_bridge.tts.backend.create_backend() rather than importing these
directly.
"""
