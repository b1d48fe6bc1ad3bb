import time
from typing import Optional

from fastapi import APIRouter, Form, Request

from core import api_logger_instance, get_request_id
from core.error_handler import ValidationError
from core.models import SECTIONS

router = APIRouter(prefix="/relevance", tags=["relevance"])


def _sections_payload(state):
    op = state.operation(SECTIONS)
    return {
        "selection": {"text": state.selection.text, "document_id": state.selection.document_id}
        if state.selection else None,
        "sections": [s.to_dict() for s in state.relevant_sections],
        "loading": op.loading,
        "error": op.error.to_dict() if op.error else None,
    }


@router.post("/selection")
async def set_selection(
    request: Request,
    selected_text: str = Form(...),
    document_id: Optional[str] = Form(default=None)  # defaults to the current document
):
    """
    Make the selected text the active selection and rank headings from the
    other loaded documents against it.
    """
    start_time = time.time()
    request_id = getattr(request.state, 'request_id', get_request_id())
    session = request.app.state.session

    if not selected_text.strip():
        raise ValidationError("selected_text cannot be empty")

    await session.select_text(selected_text, document_id or None)

    payload = _sections_payload(session.state)
    api_logger_instance.log_performance(
        request_id=request_id,
        operation="relevance_selection",
        duration=time.time() - start_time,
        selected_text_length=len(selected_text),
        sections_count=len(payload["sections"]),
        failed=payload["error"] is not None,
    )
    return payload


@router.delete("/selection")
async def clear_selection(request: Request):
    session = request.app.state.session
    session.clear_selection()
    return _sections_payload(session.state)


@router.get("/sections")
async def get_sections(request: Request):
    return _sections_payload(request.app.state.session.state)
