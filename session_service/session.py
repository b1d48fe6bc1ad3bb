import asyncio
import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ai_outline_service import ParallelExtractionCoordinator
from core.config import PDF_MIME_TYPE
from core.error_handler import (
    CONTRACT_VIOLATION,
    PRECONDITION_UNMET,
    PreconditionError,
    ResourceNotFoundError,
    to_operation_error,
)
from core.models import (
    AUDIO,
    FILES,
    HEADINGS,
    INSIGHTS,
    SECTIONS,
    Document,
    NarrationAudio,
    OperationError,
    RelevantSection,
    Selection,
    make_document_id,
)
from core.workspace_manager import WorkspaceManager
from insights_service import InsightsGenerator
from narration_service import NarrationService
from outline_extractor import extract_outline
from relevance_service import RelevanceMatcher

from .state import AppState, DocumentStateStore, Event, EventKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadedFile:
    """One file handed over by the upload collaborator."""
    name: str
    data: bytes
    last_modified: int = 0
    content_type: Optional[str] = None

    @property
    def is_pdf(self) -> bool:
        return self.content_type == PDF_MIME_TYPE or self.name.lower().endswith(".pdf")


class DocumentSession:
    """
    Entry point for every user-facing operation. Holds an explicit reference
    to its state store; services are injected so each can be swapped.
    """

    def __init__(
        self,
        store: Optional[DocumentStateStore] = None,
        coordinator: Optional[ParallelExtractionCoordinator] = None,
        matcher: Optional[RelevanceMatcher] = None,
        insights: Optional[InsightsGenerator] = None,
        narrator: Optional[NarrationService] = None,
        workspace: Optional[WorkspaceManager] = None,
    ):
        self.store = store or DocumentStateStore()
        self.coordinator = coordinator or ParallelExtractionCoordinator()
        self.matcher = matcher or RelevanceMatcher()
        self.insights = insights or InsightsGenerator()
        self.narrator = narrator or NarrationService()
        self.workspace = workspace or WorkspaceManager()

    @property
    def state(self) -> AppState:
        return self.store.state

    # -------------------------------------------------------
    # Documents
    # -------------------------------------------------------

    def _build_document(self, upload: UploadedFile) -> Document:
        parsed = extract_outline(upload.data)
        doc_id = make_document_id(upload.name, len(upload.data), upload.last_modified)
        return Document(
            id=doc_id,
            name=upload.name,
            data=upload.data,
            size=len(upload.data),
            last_modified=upload.last_modified,
            page_texts=tuple(parsed["pages"]),
            page_candidates=parsed["candidates"],
            outline=tuple(parsed["outline"]),
            handle=self.workspace.create_handle(doc_id, upload.data),
        )

    async def ingest(self, uploads: Sequence[UploadedFile]) -> List[Document]:
        """
        Add a batch of uploads: filter PDFs, parse them and build their
        heuristic outlines. Returns the newly added documents.
        """
        generation = self.store.begin(FILES)
        start = time.time()
        problems: List[str] = []
        unreadable = False

        pdfs = [u for u in uploads if u.is_pdf]
        if not pdfs:
            self.store.fail(FILES, generation, OperationError(PRECONDITION_UNMET, "Please select PDF files only"))
            return []
        if len(pdfs) != len(uploads):
            problems.append(f"Only {len(pdfs)} PDF files were added out of {len(uploads)} selected")

        added: List[Document] = []
        known = set(self.state.documents)
        try:
            for upload in pdfs:
                doc_id = make_document_id(upload.name, len(upload.data), upload.last_modified)
                if doc_id in known:
                    logger.info(f"Skipping {upload.name}: already loaded")
                    continue
                try:
                    doc = self._build_document(upload)
                except ValueError as e:
                    logger.warning(f"Could not read {upload.name}: {e}")
                    problems.append(f"Could not read {upload.name}")
                    unreadable = True
                    continue
                known.add(doc.id)
                added.append(doc)
        except Exception as e:
            # Nothing from this batch was dispatched; its handles are still ours
            logger.error(f"Ingestion failed on {upload.name}: {e}")
            for doc in added:
                doc.handle.release()
            self.store.fail(FILES, generation, to_operation_error(e))
            return []

        if added:
            self.store.dispatch(Event(EventKind.ADD_DOCUMENTS, added))
            if self.state.current_document_id is None:
                self.store.dispatch(Event(EventKind.SET_CURRENT_DOCUMENT, added[0].id))

        if problems:
            kind = CONTRACT_VIOLATION if unreadable else PRECONDITION_UNMET
            self.store.fail(FILES, generation, OperationError(kind, "; ".join(problems)))
        else:
            self.store.succeed(FILES, generation)

        logger.info(f"Ingested {len(added)} of {len(uploads)} files in {round((time.time() - start) * 1000)} ms")
        return added

    async def after_ingest(self, documents: Sequence[Document]) -> None:
        """AI extraction for the new batch and relevance refresh, overlapping."""
        await asyncio.gather(self.extract_headings(documents), self.refresh_relevance())

    async def add_files(self, uploads: Sequence[UploadedFile]) -> List[Document]:
        added = await self.ingest(uploads)
        if added:
            await self.after_ingest(added)
        return added

    async def remove_file(self, document_id: str) -> None:
        if document_id not in self.state.documents:
            raise ResourceNotFoundError(f"Document {document_id} is not loaded")
        self.store.dispatch(Event(EventKind.REMOVE_DOCUMENT, document_id))
        await self.refresh_relevance()

    async def clear_files(self) -> None:
        self.store.dispatch(Event(EventKind.SET_DOCUMENTS, []))
        await self.refresh_relevance()

    def set_current(self, document_id: Optional[str]) -> None:
        if document_id is not None and document_id not in self.state.documents:
            raise ResourceNotFoundError(f"Document {document_id} is not loaded")
        self.store.dispatch(Event(EventKind.SET_CURRENT_DOCUMENT, document_id))

    def get_document(self, document_id: str) -> Document:
        doc = self.state.documents.get(document_id)
        if doc is None:
            raise ResourceNotFoundError(f"Document {document_id} is not loaded")
        return doc

    # -------------------------------------------------------
    # Headings
    # -------------------------------------------------------

    async def extract_headings(self, documents: Sequence[Document]) -> None:
        """Run AI extraction for `documents` and commit once the whole batch settles."""
        if not documents:
            return
        ids = tuple(d.id for d in documents)
        generation = self.store.begin(HEADINGS)
        self.store.dispatch(Event(EventKind.HEADINGS_REQUESTED, ids))
        try:
            results = await self.coordinator.run(documents)
        except Exception as e:
            logger.error(f"AI heading extraction could not run: {e}")
            self.store.fail(HEADINGS, generation, to_operation_error(e), document_ids=ids)
            return
        self.store.succeed(HEADINGS, generation, results)

    async def retry_headings(self) -> None:
        """Re-run AI extraction for documents that still lack an AI outline."""
        pending = [d for d in self.state.documents.values() if not d.ai_outline]
        if not pending:
            logger.info("Heading retry: every document already has an AI outline")
            return
        await self.extract_headings(pending)

    # -------------------------------------------------------
    # Selection and derived results
    # -------------------------------------------------------

    async def select_text(self, text: str, document_id: Optional[str] = None) -> List[RelevantSection]:
        """Make `text` the active selection (source defaults to the current document)."""
        if not text or not text.strip():
            self.clear_selection()
            return []
        source = document_id if document_id is not None else self.state.current_document_id
        if source is not None and source not in self.state.documents:
            raise ResourceNotFoundError(f"Document {source} is not loaded")
        self.store.dispatch(Event(EventKind.SET_SELECTION, Selection(text=text.strip(), document_id=source)))
        return await self.refresh_relevance()

    def clear_selection(self) -> None:
        self.store.dispatch(Event(EventKind.CLEAR_SELECTION))

    async def refresh_relevance(self) -> List[RelevantSection]:
        state = self.state
        if state.selection is None or not state.other_documents():
            logger.debug("Relevance preconditions unmet; clearing derived results")
            self.store.dispatch(Event(EventKind.CLEAR_DERIVED))
            return []

        selection = state.selection
        documents = list(state.documents.values())
        generation = self.store.begin(SECTIONS)
        try:
            sections = await self.matcher.match(selection, documents)
        except Exception as e:
            logger.warning(f"Relevance ranking failed: {e}")
            self.store.fail(SECTIONS, generation, to_operation_error(e))
            return []

        if not self.store.is_current(SECTIONS, generation):
            logger.info("Discarding relevance results for a superseded selection")
            return list(self.state.relevant_sections)
        self.store.succeed(SECTIONS, generation, sections)
        return sections

    async def generate_insights(self) -> Optional[str]:
        generation = self.store.begin(INSIGHTS)
        state = self.state
        try:
            if state.selection is None:
                raise PreconditionError("No text selected")
            text = await self.insights.generate(
                state.selection.text, state.relevant_sections, dict(state.documents)
            )
        except Exception as e:
            logger.warning(f"Insight generation failed: {e}")
            self.store.fail(INSIGHTS, generation, to_operation_error(e))
            return None
        self.store.succeed(INSIGHTS, generation, text)
        return self.state.insights

    async def generate_audio(self, language: Optional[str] = None) -> Optional[NarrationAudio]:
        generation = self.store.begin(AUDIO)
        state = self.state
        try:
            if state.selection is None:
                raise PreconditionError("No text selected")
            audio = await self.narrator.narrate(state.selection.text, state.relevant_sections, language)
        except Exception as e:
            logger.warning(f"Narration failed: {e}")
            self.store.fail(AUDIO, generation, to_operation_error(e))
            return None
        self.store.succeed(AUDIO, generation, audio)
        return self.state.audio

    # -------------------------------------------------------
    # Retry and teardown
    # -------------------------------------------------------

    async def retry(self, concern: str) -> None:
        """Retry a single failed concern; never a global retry."""
        if concern == HEADINGS:
            await self.retry_headings()
        elif concern == SECTIONS:
            await self.refresh_relevance()
        elif concern == INSIGHTS:
            await self.generate_insights()
        elif concern == AUDIO:
            await self.generate_audio()
        elif concern == FILES:
            raise PreconditionError("Files cannot be retried; upload them again")
        else:
            raise ValueError(f"Unknown concern: {concern}")

    def close(self) -> None:
        self.store.close()
        self.workspace.cleanup()
