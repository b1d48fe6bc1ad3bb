import time

from fastapi import APIRouter, Request

from core import api_logger_instance, get_request_id
from core.models import INSIGHTS

router = APIRouter(prefix="/insights", tags=["insights"])


@router.post("/generate")
async def generate_insights(request: Request):
    """
    Generate insights for the active selection from its relevant sections.

    Failures land in the `insights` error slot and are returned here; they do
    not touch the sections or audio results.
    """
    start_time = time.time()
    request_id = getattr(request.state, 'request_id', get_request_id())
    session = request.app.state.session

    api_logger_instance.log_performance(
        request_id=request_id,
        operation="insights_generation_start",
        duration=0,
        sections_count=len(session.state.relevant_sections),
    )

    insights = await session.generate_insights()
    op = session.state.operation(INSIGHTS)

    processing_time = round((time.time() - start_time) * 1000)
    api_logger_instance.log_performance(
        request_id=request_id,
        operation="insights_generation_complete",
        duration=processing_time / 1000,
        insights_length=len(insights or ""),
        failed=op.error is not None,
    )
    return {
        "insights": insights,
        "error": op.error.to_dict() if op.error else None,
        "processing_time_ms": processing_time,
    }
