from typing import Optional

from pydantic import BaseModel


class NarrationRequest(BaseModel):
    language: Optional[str] = None  # locale code ("hi-IN") or language name ("Hindi")


class NarrationResponse(BaseModel):
    script: Optional[str] = None
    audio_bytes: int = 0
    audio_url: Optional[str] = None
    error: Optional[dict] = None
