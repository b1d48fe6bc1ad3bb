import json
import time
from typing import List, Optional

from fastapi import APIRouter, File, Form, Request, UploadFile
from fastapi.responses import FileResponse

from core import api_logger_instance, create_managed_task, get_request_id
from core.config import PDF_MIME_TYPE
from core.error_handler import ValidationError

from .session import DocumentSession, UploadedFile

router = APIRouter(tags=["documents"])


def _session(request: Request) -> DocumentSession:
    return request.app.state.session


def _parse_last_modified(raw: Optional[str], count: int) -> List[int]:
    if not raw:
        return [0] * count
    try:
        values = json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError("Invalid JSON in last_modified")
    if not isinstance(values, list) or len(values) != count:
        raise ValidationError("last_modified must be a JSON array with one entry per file")
    if not all(isinstance(v, int) and not isinstance(v, bool) for v in values):
        raise ValidationError("last_modified entries must be integers")
    return values


@router.post("/documents")
async def upload_documents(
    request: Request,
    files: List[UploadFile] = File(...),
    last_modified: Optional[str] = Form(default=None)  # JSON array of epoch millis, one per file
):
    """
    Ingest a batch of files. Heuristic outlines are built before returning;
    AI extraction and the relevance refresh continue in the background.
    """
    start_time = time.time()
    request_id = getattr(request.state, 'request_id', get_request_id())
    session = _session(request)

    stamps = _parse_last_modified(last_modified, len(files))
    uploads = []
    for upload, stamp in zip(files, stamps):
        uploads.append(UploadedFile(
            name=upload.filename or "document.pdf",
            data=await upload.read(),
            last_modified=stamp,
            content_type=upload.content_type,
        ))

    added = await session.ingest(uploads)
    if added:
        create_managed_task(request.app.state.task_manager, session.after_ingest(added))

    files_op = session.state.operation("files")
    api_logger_instance.log_performance(
        request_id=request_id,
        operation="documents_upload",
        duration=time.time() - start_time,
        files_count=len(files),
        added_count=len(added),
    )
    return {
        "added": [doc.to_dict() for doc in added],
        "current_document_id": session.state.current_document_id,
        "error": files_op.error.to_dict() if files_op.error else None,
    }


@router.get("/documents")
async def list_documents(request: Request):
    state = _session(request).state
    return {
        "documents": [doc.to_dict() for doc in state.documents.values()],
        "current_document_id": state.current_document_id,
    }


@router.get("/documents/{document_id}/outline")
async def get_outline(request: Request, document_id: str):
    """Outline to display: AI headings when available, heuristic ones otherwise."""
    doc = _session(request).get_document(document_id)
    return {
        "document_id": doc.id,
        "source": "ai" if doc.ai_outline else "heuristic",
        "headings": [h.to_dict() for h in doc.headings],
        "ai_loading": doc.ai_loading,
        "ai_error": doc.ai_error,
    }


@router.get("/documents/{document_id}/file")
async def get_document_file(request: Request, document_id: str):
    doc = _session(request).get_document(document_id)
    if doc.handle is None or doc.handle.released:
        raise FileNotFoundError(f"File for {document_id} is no longer available")
    return FileResponse(path=doc.handle.path, media_type=PDF_MIME_TYPE, filename=doc.name)


@router.delete("/documents/{document_id}")
async def remove_document(request: Request, document_id: str):
    session = _session(request)
    await session.remove_file(document_id)
    return session.state.to_dict()


@router.delete("/documents")
async def clear_documents(request: Request):
    session = _session(request)
    await session.clear_files()
    return session.state.to_dict()


@router.put("/documents/current")
async def set_current_document(request: Request, document_id: Optional[str] = Form(default=None)):
    session = _session(request)
    session.set_current(document_id or None)
    return {"current_document_id": session.state.current_document_id}


@router.post("/headings/retry")
async def retry_headings(request: Request):
    start_time = time.time()
    request_id = getattr(request.state, 'request_id', get_request_id())
    session = _session(request)

    await session.retry_headings()

    api_logger_instance.log_performance(
        request_id=request_id,
        operation="headings_retry",
        duration=time.time() - start_time,
    )
    return session.state.to_dict()


@router.post("/retry/{concern}")
async def retry_concern(request: Request, concern: str):
    session = _session(request)
    if concern not in session.state.operations:
        raise ValidationError(f"Unknown concern: {concern}")
    await session.retry(concern)
    return session.state.to_dict()


@router.get("/state")
async def get_state(request: Request):
    return _session(request).state.to_dict()
