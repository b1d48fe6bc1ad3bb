from .logging_config import api_logger_instance, get_request_id, sanitize_sensitive_data, setup_logging
from .middleware import APILoggingMiddleware
from .error_handler import (
    ServiceUnreachableError, RateLimitError, NetworkError, GeminiAPIError,
    ContractViolationError, PreconditionError, ValidationError, ResourceNotFoundError,
    classify_error, create_error_response, handle_gemini_api_call, validate_api_key,
    get_http_status_code, to_operation_error
)
from .exception_handler import global_exception_handler, setup_exception_handlers
from .cleanup import TaskManager, create_managed_task, setup_cleanup_handlers
from .workspace_manager import DocumentHandle, WorkspaceManager

__all__ = [
    'api_logger_instance',
    'get_request_id',
    'sanitize_sensitive_data',
    'setup_logging',
    'APILoggingMiddleware',
    'ServiceUnreachableError',
    'RateLimitError',
    'NetworkError',
    'GeminiAPIError',
    'ContractViolationError',
    'PreconditionError',
    'ValidationError',
    'ResourceNotFoundError',
    'classify_error',
    'create_error_response',
    'handle_gemini_api_call',
    'validate_api_key',
    'get_http_status_code',
    'to_operation_error',
    'global_exception_handler',
    'setup_exception_handlers',
    'TaskManager',
    'create_managed_task',
    'setup_cleanup_handlers',
    'DocumentHandle',
    'WorkspaceManager',
]
