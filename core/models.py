"""
Domain types shared by the extraction, relevance and session services.

All types are frozen dataclasses: snapshots handed out by the state store
are never mutated in place, a change always produces a new instance.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

HEURISTIC = "heuristic"
AI = "ai"

# Concerns tracked independently by the state store
FILES = "files"
HEADINGS = "headings"
SECTIONS = "sections"
INSIGHTS = "insights"
AUDIO = "audio"
CONCERNS = (FILES, HEADINGS, SECTIONS, INSIGHTS, AUDIO)

BOLD_FLAG = 1 << 4  # PyMuPDF span flag


@dataclass(frozen=True)
class TextSpan:
    """One run of text on a page as reported by the PDF layer."""
    text: str
    size: float
    font: str = ""
    flags: int = 0
    bbox: Tuple[float, float, float, float] = (0.0, 0.0, 0.0, 0.0)

    @property
    def is_bold(self) -> bool:
        return bool(self.flags & BOLD_FLAG) or "bold" in self.font.lower()

    @property
    def y(self) -> float:
        return float(self.bbox[1])


@dataclass(frozen=True)
class HeadingCandidate:
    text: str
    font_size: int
    is_bold: bool
    page: int
    y: float


@dataclass(frozen=True)
class Heading:
    level: int
    text: str
    page: int
    source: str = HEURISTIC

    @property
    def label(self) -> str:
        return f"H{self.level}"

    def to_dict(self) -> Dict[str, Any]:
        return {"level": self.label, "text": self.text, "page": self.page, "source": self.source}


@dataclass(frozen=True)
class Selection:
    text: str
    document_id: Optional[str] = None


@dataclass(frozen=True)
class RelevantSection:
    document_id: str
    page: int
    title: str

    def to_dict(self) -> Dict[str, Any]:
        return {"documentId": self.document_id, "page": self.page, "title": self.title}


@dataclass(frozen=True)
class OperationError:
    kind: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"kind": self.kind, "message": self.message}


@dataclass(frozen=True)
class OperationState:
    loading: bool = False
    error: Optional[OperationError] = None
    generation: int = 0


@dataclass(frozen=True)
class NarrationAudio:
    script: str
    data: bytes
    media_type: str = "audio/mpeg"


@dataclass(frozen=True)
class Document:
    """
    A loaded PDF and everything derived from it.

    `outline` is the heuristic outline built at ingestion; `ai_outline` is
    filled in once AI extraction settles. `handle` is the scoped resource
    the document exclusively owns (released when the document is removed).
    """
    id: str
    name: str
    data: bytes = field(repr=False)
    size: int = 0
    last_modified: int = 0
    page_texts: Tuple[str, ...] = field(default=(), repr=False)
    page_candidates: Tuple[Tuple[HeadingCandidate, ...], ...] = field(default=(), repr=False)
    outline: Tuple[Heading, ...] = ()
    ai_outline: Tuple[Heading, ...] = ()
    ai_loading: bool = False
    ai_error: Optional[str] = None
    handle: Optional[Any] = field(default=None, compare=False, repr=False)

    @property
    def page_count(self) -> int:
        return len(self.page_texts)

    @property
    def headings(self) -> Tuple[Heading, ...]:
        """AI outline when it has entries, heuristic outline otherwise."""
        return self.ai_outline if self.ai_outline else self.outline

    def page_text(self, page: int) -> str:
        if 1 <= page <= len(self.page_texts):
            return self.page_texts[page - 1]
        return ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "size": self.size,
            "pages": self.page_count,
            "outline": [h.to_dict() for h in self.outline],
            "ai_outline": [h.to_dict() for h in self.ai_outline],
            "ai_loading": self.ai_loading,
            "ai_error": self.ai_error,
        }


def make_document_id(name: str, size: int, last_modified: int) -> str:
    """Deterministic identity: equal name, size and mtime mean the same document."""
    return f"{name}_{size}_{last_modified}"
