"""
Wire models for the hosted Coqui API.

Listing endpoints (/api/v2/voices, /api/v2/speakers):
    {"count": 2, "has_prev": false, "has_next": false,
     "result": [{"id": "c791b5b5-...", "name": "Ana Florence"}, ...]}

Sample creation (POST /api/v2/samples):
    request:  {"voice_id": "...", "emotion": "Neutral", "name": "...",
               "text": "...", "speed": 1.0}
    response: {"id": "...", "emotion": "Neutral", "name": "...",
               "text": "...", "audio_url": "https://..."}
"""
from __future__ import annotations

from typing import List, Optional

from pydantic import AnyHttpUrl, BaseModel, Field


class ListedPerson(BaseModel):
    """One voice or speaker entry of a listing page."""
    id: str
    name: str


class ListVoicesResponse(BaseModel):
    """One page of a speaker/voice listing."""
    count: int = 0
    has_prev: bool = False
    has_next: bool = False
    result: List[ListedPerson] = Field(default_factory=list)


class VoiceDataRequest(BaseModel):
    """Body of a sample creation request."""
    voice_id: str
    emotion: str = "Neutral"
    name: str
    text: str
    speed: float = 1.0


class VoiceDataResponse(BaseModel):
    """Created sample; audio_url points at the rendered audio."""
    id: Optional[str] = None
    emotion: Optional[str] = None
    name: Optional[str] = None
    text: Optional[str] = None
    audio_url: AnyHttpUrl
