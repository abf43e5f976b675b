"""
Service layer for tts-bridge.

    - synthesis_service.py: SynthesisService, the synthesis pipeline
"""
from tts_bridge.services.synthesis_service import (
    SynthesisOutcome,
    SynthesisService,
    get_service,
    reset_service,
)

__all__ = ["SynthesisOutcome", "SynthesisService", "get_service", "reset_service"]
