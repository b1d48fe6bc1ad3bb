"""
Document state store.

All session state lives in one immutable `AppState` snapshot. Every change
is an `Event` applied by the pure `reduce` function; `DocumentStateStore`
serializes dispatches, notifies listeners and releases the scoped handle of
every document that leaves the collection.

Each concern (files, headings, sections, insights, audio) has its own
`OperationState`. Starting an operation bumps the concern's generation and
clears its error; a terminal event carries the generation it was started
with and is ignored once that generation is no longer current, so a late
response can never overwrite a newer one.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from core.models import (
    AUDIO,
    CONCERNS,
    HEADINGS,
    INSIGHTS,
    SECTIONS,
    Document,
    NarrationAudio,
    OperationError,
    OperationState,
    RelevantSection,
    Selection,
)

logger = logging.getLogger(__name__)

# Results derived from the active selection
DERIVED_CONCERNS = (SECTIONS, INSIGHTS, AUDIO)


class EventKind(str, Enum):
    ADD_DOCUMENTS = "ADD_DOCUMENTS"
    SET_DOCUMENTS = "SET_DOCUMENTS"
    REMOVE_DOCUMENT = "REMOVE_DOCUMENT"
    SET_CURRENT_DOCUMENT = "SET_CURRENT_DOCUMENT"
    HEADINGS_REQUESTED = "HEADINGS_REQUESTED"
    SET_SELECTION = "SET_SELECTION"
    CLEAR_SELECTION = "CLEAR_SELECTION"
    CLEAR_DERIVED = "CLEAR_DERIVED"
    OPERATION_STARTED = "OPERATION_STARTED"
    OPERATION_SUCCEEDED = "OPERATION_SUCCEEDED"
    OPERATION_FAILED = "OPERATION_FAILED"
    CLEAR_ERROR = "CLEAR_ERROR"


@dataclass(frozen=True)
class Event:
    kind: EventKind
    payload: Any = None


@dataclass(frozen=True)
class Outcome:
    """Payload of OPERATION_SUCCEEDED / OPERATION_FAILED."""
    concern: str
    generation: int
    result: Any = None
    error: Optional[OperationError] = None
    document_ids: Tuple[str, ...] = ()


def _idle_operations() -> Mapping[str, OperationState]:
    return MappingProxyType({c: OperationState() for c in CONCERNS})


@dataclass(frozen=True)
class AppState:
    documents: Mapping[str, Document] = field(default_factory=lambda: MappingProxyType({}))
    current_document_id: Optional[str] = None
    selection: Optional[Selection] = None
    relevant_sections: Tuple[RelevantSection, ...] = ()
    insights: Optional[str] = None
    audio: Optional[NarrationAudio] = None
    operations: Mapping[str, OperationState] = field(default_factory=_idle_operations)

    @property
    def current_document(self) -> Optional[Document]:
        if self.current_document_id is None:
            return None
        return self.documents.get(self.current_document_id)

    def operation(self, concern: str) -> OperationState:
        return self.operations[concern]

    def other_documents(self) -> List[Document]:
        """Documents other than the active selection's source."""
        source = self.selection.document_id if self.selection else None
        return [d for d in self.documents.values() if d.id != source]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "documents": [d.to_dict() for d in self.documents.values()],
            "current_document_id": self.current_document_id,
            "selection": (
                {"text": self.selection.text, "document_id": self.selection.document_id}
                if self.selection else None
            ),
            "relevant_sections": [s.to_dict() for s in self.relevant_sections],
            "insights": self.insights,
            "audio": {"script": self.audio.script, "bytes": len(self.audio.data)} if self.audio else None,
            "loading": {c: op.loading for c, op in self.operations.items()},
            "errors": {c: op.error.to_dict() if op.error else None for c, op in self.operations.items()},
        }

# -------------------------------------------------------
# Reducer
# -------------------------------------------------------

def _with_operations(state: AppState, **changes: OperationState) -> AppState:
    ops = dict(state.operations)
    ops.update(changes)
    return replace(state, operations=MappingProxyType(ops))


def _clear_derived(state: AppState) -> AppState:
    """Drop selection-derived results and invalidate anything still in flight."""
    changes = {
        c: OperationState(generation=state.operations[c].generation + 1)
        for c in DERIVED_CONCERNS
    }
    state = replace(state, relevant_sections=(), insights=None, audio=None)
    return _with_operations(state, **changes)


def _apply_result(state: AppState, outcome: Outcome) -> AppState:
    if outcome.concern == SECTIONS:
        return replace(state, relevant_sections=tuple(outcome.result or ()))
    if outcome.concern == INSIGHTS:
        return replace(state, insights=outcome.result)
    if outcome.concern == AUDIO:
        return replace(state, audio=outcome.result)
    return state


def _merge_ai_outlines(state: AppState, outcome: Outcome) -> AppState:
    """Commit per-document AI outlines for documents still loaded."""
    documents = dict(state.documents)
    for doc_id, result in (outcome.result or {}).items():
        doc = documents.get(doc_id)
        if doc is None:
            continue
        documents[doc_id] = replace(
            doc,
            ai_outline=tuple(result.headings),
            ai_error=result.error,
            ai_loading=False,
        )
    return replace(state, documents=MappingProxyType(documents))


def _reset_ai_loading(state: AppState, document_ids: Tuple[str, ...]) -> AppState:
    documents = dict(state.documents)
    for doc_id in document_ids:
        if doc_id in documents:
            documents[doc_id] = replace(documents[doc_id], ai_loading=False)
    return replace(state, documents=MappingProxyType(documents))


def _finish(state: AppState, outcome: Outcome, failed: bool) -> AppState:
    op = state.operations[outcome.concern]
    is_current = op.loading and op.generation == outcome.generation

    if outcome.concern == HEADINGS:
        # Outlines describe documents, not a selection: merge whatever settles
        state = _merge_ai_outlines(state, outcome) if not failed else _reset_ai_loading(state, outcome.document_ids)
    elif not is_current:
        logger.debug("Discarding stale %s outcome (generation %d, current %d)",
                     outcome.concern, outcome.generation, op.generation)
        return state
    elif failed:
        if outcome.concern == SECTIONS:
            state = replace(state, relevant_sections=())
    else:
        state = _apply_result(state, outcome)

    if not is_current:
        return state
    finished = OperationState(loading=False, error=outcome.error if failed else None, generation=op.generation)
    return _with_operations(state, **{outcome.concern: finished})


def reduce(state: AppState, event: Event) -> AppState:
    """Pure transition function: returns the next snapshot, never mutates `state`."""
    kind, payload = event.kind, event.payload

    if kind == EventKind.ADD_DOCUMENTS:
        documents = dict(state.documents)
        for doc in payload:
            # Same identity means same document: keep the one already loaded
            documents.setdefault(doc.id, doc)
        return replace(state, documents=MappingProxyType(documents))

    if kind == EventKind.SET_DOCUMENTS:
        documents = {doc.id: doc for doc in payload}
        current = state.current_document_id if state.current_document_id in documents else None
        selection = state.selection
        if selection is not None and selection.document_id is not None and selection.document_id not in documents:
            selection = None
        return replace(state, documents=MappingProxyType(documents), current_document_id=current,
                       selection=selection)

    if kind == EventKind.REMOVE_DOCUMENT:
        if payload not in state.documents:
            return state
        documents = {k: v for k, v in state.documents.items() if k != payload}
        removing_current = state.current_document_id == payload
        selection = state.selection
        if selection is not None and (removing_current or selection.document_id == payload):
            selection = None
        return replace(
            state,
            documents=MappingProxyType(documents),
            current_document_id=None if removing_current else state.current_document_id,
            selection=selection,
        )

    if kind == EventKind.SET_CURRENT_DOCUMENT:
        if payload is not None and payload not in state.documents:
            return state
        return replace(state, current_document_id=payload)

    if kind == EventKind.HEADINGS_REQUESTED:
        documents = dict(state.documents)
        for doc_id in payload:
            if doc_id in documents:
                documents[doc_id] = replace(documents[doc_id], ai_loading=True, ai_error=None)
        return replace(state, documents=MappingProxyType(documents))

    if kind == EventKind.SET_SELECTION:
        return _clear_derived(replace(state, selection=payload))

    if kind == EventKind.CLEAR_SELECTION:
        return _clear_derived(replace(state, selection=None))

    if kind == EventKind.CLEAR_DERIVED:
        return _clear_derived(state)

    if kind == EventKind.OPERATION_STARTED:
        op = state.operations[payload]
        return _with_operations(state, **{payload: OperationState(loading=True, error=None,
                                                                   generation=op.generation + 1)})

    if kind == EventKind.OPERATION_SUCCEEDED:
        return _finish(state, payload, failed=False)

    if kind == EventKind.OPERATION_FAILED:
        return _finish(state, payload, failed=True)

    if kind == EventKind.CLEAR_ERROR:
        op = state.operations[payload]
        return _with_operations(state, **{payload: replace(op, error=None)})

    raise ValueError(f"Unknown event kind: {kind}")

# -------------------------------------------------------
# Store
# -------------------------------------------------------

Listener = Callable[[Event, AppState], None]


class DocumentStateStore:
    """
    Holds the current snapshot and applies events one at a time.

    The store is the only owner of the document collection: when a document
    disappears from the snapshot its handle is released here, exactly once.
    """

    def __init__(self, initial: Optional[AppState] = None):
        self._state = initial or AppState()
        self._listeners: List[Listener] = []
        self._closed = False

    @property
    def state(self) -> AppState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def dispatch(self, event: Event) -> AppState:
        previous = self._state
        self._state = reduce(previous, event)
        logger.debug("Dispatched %s", event.kind.value)

        self._release_dropped(previous, self._state, event)
        for listener in list(self._listeners):
            listener(event, self._state)
        return self._state

    # Operation helpers ------------------------------------------------

    def begin(self, concern: str) -> int:
        """Start an operation for `concern`; returns its generation."""
        return self.dispatch(Event(EventKind.OPERATION_STARTED, concern)).operations[concern].generation

    def succeed(self, concern: str, generation: int, result: Any = None) -> AppState:
        return self.dispatch(Event(EventKind.OPERATION_SUCCEEDED, Outcome(concern, generation, result=result)))

    def fail(self, concern: str, generation: int, error: OperationError,
             document_ids: Tuple[str, ...] = ()) -> AppState:
        return self.dispatch(Event(EventKind.OPERATION_FAILED,
                                   Outcome(concern, generation, error=error, document_ids=document_ids)))

    def is_current(self, concern: str, generation: int) -> bool:
        op = self._state.operations[concern]
        return op.loading and op.generation == generation

    # Resource ownership -----------------------------------------------

    def _release_dropped(self, previous: AppState, current: AppState, event: Event) -> None:
        kept = {id(d.handle) for d in current.documents.values() if d.handle is not None}
        dropped = [d for d in previous.documents.values() if d.handle is not None and id(d.handle) not in kept]
        if event.kind == EventKind.ADD_DOCUMENTS:
            # Duplicates turned away by the reducer never become owned
            dropped += [d for d in event.payload if d.handle is not None and id(d.handle) not in kept]
        for doc in dropped:
            doc.handle.release()

    def close(self) -> None:
        """Teardown: release every handle still owned."""
        if self._closed:
            return
        self._closed = True
        for doc in self._state.documents.values():
            if doc.handle is not None:
                doc.handle.release()
