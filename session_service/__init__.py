from .state import AppState, DocumentStateStore, Event, EventKind, Outcome, reduce
from .session import DocumentSession, UploadedFile

__all__ = [
    "AppState",
    "DocumentStateStore",
    "Event",
    "EventKind",
    "Outcome",
    "reduce",
    "DocumentSession",
    "UploadedFile",
]
