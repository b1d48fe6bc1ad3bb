import time
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .logging_config import api_logger_instance, get_request_id


class APILoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for API request/response logging."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = get_request_id()
        request.state.request_id = request_id
        start_time = time.time()

        api_logger_instance.log_request(
            request=request,
            request_id=request_id,
            content_type=request.headers.get("content-type", "unknown"),
            content_length=request.headers.get("content-length", "unknown"),
        )

        try:
            response = await call_next(request)
        except Exception as e:
            api_logger_instance.log_error(
                request_id=request_id,
                error=e,
                status_code=500,
                processing_time=time.time() - start_time
            )
            raise

        # Body is not consumed here; only headers are logged
        response_data = {
            "type": "json_response" if isinstance(response, JSONResponse) else "response",
            "content_type": response.headers.get("content-type", "unknown"),
            "content_length": response.headers.get("content-length", "unknown"),
        }
        api_logger_instance.log_response(
            request_id=request_id,
            response_data=response_data,
            status_code=response.status_code,
            processing_time=time.time() - start_time
        )
        response.headers["X-Request-ID"] = request_id
        return response
