import json
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from core import gemini_utils
from core.config import MAX_RELEVANT_SECTIONS
from core.error_handler import PreconditionError
from core.json_utils import decode_json_array, is_number
from core.models import Document, RelevantSection, Selection

logger = logging.getLogger(__name__)

TextGenerate = Callable[[str], Awaitable[str]]

RANKING_PROMPT = """
You are an expert at connecting ideas across documents.

A reader selected the following text:
"{selected_text}"

Below is the list of section headings available in the other documents, as
JSON objects with documentId, documentName, page, level and text:
{corpus}

Pick the headings most relevant to the selected text. Return ONLY a JSON
array of at most {limit} objects ordered from most to least relevant, each of
the form {{"documentId": "...", "page": 1, "title": "..."}}.
"""


def build_heading_corpus(documents: Iterable[Document], exclude_id: Optional[str]) -> List[Dict[str, Any]]:
    """
    Union of headings from every document except `exclude_id`. Each document
    contributes its AI outline when non-empty, its heuristic outline otherwise.
    """
    corpus: List[Dict[str, Any]] = []
    for doc in documents:
        if doc.id == exclude_id:
            continue
        for heading in doc.headings:
            corpus.append({
                "documentId": doc.id,
                "documentName": doc.name,
                "page": heading.page,
                "level": heading.label,
                "text": heading.text,
            })
    return corpus


def parse_sections(content: str, known_ids: Iterable[str], limit: int = MAX_RELEVANT_SECTIONS) -> List[RelevantSection]:
    """
    Decode the ranked section array. Entries naming an unknown document,
    lacking a numeric page or a non-empty title are dropped; order is kept
    and the list is capped at `limit`.
    """
    allowed = set(known_ids)
    sections: List[RelevantSection] = []
    for item in decode_json_array(content):
        if not isinstance(item, dict):
            continue
        doc_id = item.get("documentId", item.get("pdfId"))
        page = item.get("page")
        title = item.get("title")
        if doc_id not in allowed:
            continue
        if not is_number(page):
            continue
        if not isinstance(title, str) or not title.strip():
            continue
        sections.append(RelevantSection(document_id=doc_id, page=int(page), title=title.strip()))
        if len(sections) >= limit:
            break
    return sections


class RelevanceMatcher:
    """Ranks headings of the other loaded documents against a selection."""

    def __init__(self, generate: TextGenerate = gemini_utils.generate_text, limit: int = MAX_RELEVANT_SECTIONS):
        self._generate = generate
        self.limit = limit

    async def match(self, selection: Selection, documents: Iterable[Document]) -> List[RelevantSection]:
        """
        Raises:
            PreconditionError: no headings available in the other documents
            ContractViolationError: the ranking response is not a JSON array
            ServiceUnreachableError: the ranking service failed
        """
        corpus = build_heading_corpus(documents, exclude_id=selection.document_id)
        if not corpus:
            raise PreconditionError("No headings available in the other documents")

        prompt = RANKING_PROMPT.format(
            selected_text=selection.text,
            corpus=json.dumps(corpus, ensure_ascii=False, indent=1),
            limit=self.limit,
        )
        content = await self._generate(prompt)
        sections = parse_sections(content, {h["documentId"] for h in corpus}, self.limit)
        logger.info(f"Relevance ranking over {len(corpus)} headings returned {len(sections)} sections")
        return sections
