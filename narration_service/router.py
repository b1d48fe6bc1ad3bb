import time
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import Response

from core import api_logger_instance, get_request_id
from core.error_handler import ResourceNotFoundError
from core.models import AUDIO

from .models import NarrationRequest, NarrationResponse

router = APIRouter(prefix="/narration", tags=["narration"])


@router.post("/generate", response_model=NarrationResponse)
async def generate_narration(request: Request, body: Optional[NarrationRequest] = None):
    start_time = time.time()
    request_id = getattr(request.state, 'request_id', get_request_id())
    session = request.app.state.session
    language = body.language if body else None

    audio = await session.generate_audio(language)
    op = session.state.operation(AUDIO)

    api_logger_instance.log_performance(
        request_id=request_id,
        operation="narration_generation",
        duration=time.time() - start_time,
        language=language,
        audio_bytes=len(audio.data) if audio else 0,
        failed=op.error is not None,
    )
    return NarrationResponse(
        script=audio.script if audio else None,
        audio_bytes=len(audio.data) if audio else 0,
        audio_url="/narration/audio" if audio else None,
        error=op.error.to_dict() if op.error else None,
    )


@router.get("/audio")
async def get_narration_audio(request: Request):
    audio = request.app.state.session.state.audio
    if audio is None:
        raise ResourceNotFoundError("No narration audio has been generated for the current selection")
    return Response(content=audio.data, media_type=audio.media_type)
