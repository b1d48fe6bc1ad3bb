import time
from typing import Any, Awaitable, Callable, Optional

import logging
from fastapi.responses import JSONResponse
from google.api_core import exceptions as google_exceptions
from google.generativeai.types import BlockedPromptException, StopCandidateException

from .models import OperationError

logger = logging.getLogger(__name__)

# Error taxonomy
SERVICE_UNREACHABLE = "service-unreachable"
CONTRACT_VIOLATION = "contract-violation"
PRECONDITION_UNMET = "precondition-unmet"
INTERNAL = "internal"


class ServiceUnreachableError(Exception):
    """Raised when an external service cannot be reached or fails."""
    pass

class NetworkError(ServiceUnreachableError):
    """Raised when there's a network connectivity issue."""
    pass

class RateLimitError(ServiceUnreachableError):
    """Raised when API rate limit is exceeded."""
    pass

class GeminiAPIError(ServiceUnreachableError):
    """Raised when there's a specific Gemini API error."""
    pass

class ContractViolationError(Exception):
    """Raised when a response arrived but does not carry the expected payload."""
    pass

class PreconditionError(Exception):
    """Raised when an operation is invoked with insufficient input."""
    pass

class ValidationError(Exception):
    """Raised when input validation fails."""
    pass

class ResourceNotFoundError(Exception):
    """Raised when a requested resource is not found."""
    pass

# Error mapping to HTTP status codes, most specific first
ERROR_STATUS_MAPPING = (
    (RateLimitError, 429),
    (GeminiAPIError, 502),
    (ServiceUnreachableError, 503),
    (ContractViolationError, 502),
    (PreconditionError, 409),
    (ValidationError, 400),
    (ResourceNotFoundError, 404),
    (ValueError, 400),
    (KeyError, 400),
    (FileNotFoundError, 404),
    (PermissionError, 403),
)

ERROR_DETAILS = {
    RateLimitError: "API rate limit exceeded. Please wait before retrying.",
    GeminiAPIError: "External AI service error. Please try again later.",
    NetworkError: "Network connectivity issue. Please check your connection.",
    ContractViolationError: "The AI service returned an unexpected response.",
    PreconditionError: "The operation cannot run with the current state.",
}


def get_http_status_code(error: Exception) -> int:
    """Get appropriate HTTP status code for an exception."""
    for error_type, status in ERROR_STATUS_MAPPING:
        if isinstance(error, error_type):
            return status

    error_message = str(error).lower()
    if any(keyword in error_message for keyword in ['connection', 'network', 'unreachable', 'dns']):
        return 503
    if any(keyword in error_message for keyword in ['rate limit', 'quota', 'too many requests']):
        return 429
    return 500


def classify_error(error: Exception) -> str:
    """Map an exception onto the service error taxonomy."""
    if isinstance(error, ServiceUnreachableError):
        return SERVICE_UNREACHABLE
    if isinstance(error, ContractViolationError):
        return CONTRACT_VIOLATION
    if isinstance(error, PreconditionError):
        return PRECONDITION_UNMET
    return INTERNAL


def to_operation_error(error: Exception) -> OperationError:
    return OperationError(kind=classify_error(error), message=str(error) or type(error).__name__)


def create_error_response(error: Exception, request_id: Optional[str] = None) -> JSONResponse:
    """Create a standardized error response."""
    status_code = get_http_status_code(error)

    error_data = {
        "error": {
            "type": type(error).__name__,
            "kind": classify_error(error),
            "message": str(error),
            "status_code": status_code,
            "timestamp": time.time()
        }
    }

    if request_id:
        error_data["error"]["request_id"] = request_id

    for error_type, details in ERROR_DETAILS.items():
        if isinstance(error, error_type):
            error_data["error"]["details"] = details
            break

    return JSONResponse(
        status_code=status_code,
        content=error_data
    )


async def handle_gemini_api_call(api_call: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
    """
    Await a Gemini API call and translate its failures into the error taxonomy.

    No retries and no timeout are applied here: retrying is a user action and
    timeouts come from the transport.

    Raises:
        RateLimitError: quota or rate limit exhausted
        NetworkError: transport failure
        GeminiAPIError: any other service-side failure
        ContractViolationError: the model stopped or was blocked without usable output
    """
    try:
        return await api_call(*args, **kwargs)
    except (ServiceUnreachableError, ContractViolationError, PreconditionError):
        raise
    except (StopCandidateException, BlockedPromptException) as e:
        raise ContractViolationError(f"Gemini returned no usable candidate: {e}") from e
    except google_exceptions.ResourceExhausted as e:
        raise RateLimitError(f"Gemini API rate limit exceeded: {e}") from e
    except (google_exceptions.ServiceUnavailable, google_exceptions.DeadlineExceeded) as e:
        raise NetworkError(f"Gemini API unavailable: {e}") from e
    except google_exceptions.GoogleAPIError as e:
        raise GeminiAPIError(f"Gemini API error: {e}") from e
    except (ConnectionError, OSError) as e:
        raise NetworkError(f"Network connection error: {e}") from e
    except Exception as e:
        error_message = str(e).lower()
        if any(keyword in error_message for keyword in ['quota', 'rate limit', 'resource exhausted']):
            raise RateLimitError(f"Gemini API rate limit exceeded: {e}") from e
        logger.error(f"Unexpected error in API call: {e}")
        raise GeminiAPIError(f"Unexpected API error: {e}") from e


def validate_api_key(api_key: Optional[str]) -> str:
    """Validate that an API key is present."""
    if not api_key or api_key.strip() == "":
        raise GeminiAPIError("GEMINI_API_KEY is not configured")
    return api_key.strip()
