# outline_extractor/heading_extractor.py

import re
import logging
from collections import Counter
from typing import Iterable, Iterator, List, Optional, Sequence

from core.models import HEURISTIC, Heading, HeadingCandidate, TextSpan

from .config import (
    MAX_HEADING_CHARS,
    MAX_HEADING_LEVELS,
    MERGE_LINE_FACTOR,
    MIN_HEADING_CHARS,
    MIN_HEADING_SCORE,
    SIZE_RATIO_THRESHOLD,
)

logger = logging.getLogger(__name__)

# -------------------------------------------------------
# Utilities
# -------------------------------------------------------

NUMBERING_RX = re.compile(r"^\d+\.")
LEADING_MARKER_RX = re.compile(
    r"^(?:[•●○▪■‣⁃·–\-\*]+\s*"               # bullets, dashes
    r"|\d+(?:\.\d+)*[.)](?:\s+|$)"           # 1. / 2.3. / 4)
    r"|\d+(?:\.\d+)+(?:\s+|$)"               # 1.2
    r"|\(?[A-Za-z]\)\s+|[A-Za-z]\.\s+)"      # a) / (b) / A.
)


def clean_text(t: str) -> str:
    return re.sub(r"\s+", " ", t or "").strip()


def strip_markers(text: str) -> str:
    """Remove a leading bullet or enumeration marker."""
    return LEADING_MARKER_RX.sub("", clean_text(text), count=1).strip()


def body_font_size(spans: Sequence[TextSpan]) -> Optional[int]:
    """Most frequent rounded font size on the page."""
    sizes = Counter(round(s.size) for s in spans if clean_text(s.text))
    if not sizes:
        return None
    return sizes.most_common(1)[0][0]


def has_heading_shape(text: str) -> bool:
    return text.isupper() or bool(NUMBERING_RX.match(text)) or text.endswith(":")


def heading_score(span: TextSpan, body_size: Optional[int]) -> int:
    """One point each for the size, weight and shape signals."""
    text = clean_text(span.text)
    score = 0
    if body_size is not None and round(span.size) > body_size * SIZE_RATIO_THRESHOLD:
        score += 1
    if span.is_bold:
        score += 1
    if has_heading_shape(text):
        score += 1
    return score

# -------------------------------------------------------
# Public API
# -------------------------------------------------------

def iter_page_candidates(spans: Sequence[TextSpan], page: int) -> Iterator[HeadingCandidate]:
    """
    Lazily yield the spans of one page that look like headings.

    A span qualifies when its trimmed text is between MIN_HEADING_CHARS and
    MAX_HEADING_CHARS long and it scores at least MIN_HEADING_SCORE.
    """
    body_size = body_font_size(spans)
    for span in spans:
        text = clean_text(span.text)
        if not (MIN_HEADING_CHARS <= len(text) <= MAX_HEADING_CHARS):
            continue
        if heading_score(span, body_size) < MIN_HEADING_SCORE:
            continue
        yield HeadingCandidate(
            text=text,
            font_size=round(span.size),
            is_bold=span.is_bold,
            page=page,
            y=span.y,
        )


def assemble_outline(
    pages: Iterable[Iterable[HeadingCandidate]],
    max_levels: int = MAX_HEADING_LEVELS,
) -> List[Heading]:
    """
    Turn per-page candidates (in page order) into a document outline.

    The `max_levels` largest distinct candidate sizes become levels 1..max_levels;
    candidates of any smaller size are dropped. Fragments on the same page and
    level that sit within MERGE_LINE_FACTOR line heights of the previous one are
    joined into a single heading.
    """
    candidates = [c for page in pages for c in page]
    if not candidates:
        return []

    sizes = sorted({c.font_size for c in candidates}, reverse=True)
    level_for_size = {size: i + 1 for i, size in enumerate(sizes[:max_levels])}
    if len(sizes) > max_levels:
        logger.debug("Dropping %d smaller heading sizes: %s", len(sizes) - max_levels, sizes[max_levels:])

    outline: List[Heading] = []
    last_y = 0.0
    for c in candidates:
        level = level_for_size.get(c.font_size)
        if level is None:
            continue
        text = strip_markers(c.text)
        if not text:
            continue

        prev = outline[-1] if outline else None
        if (prev is not None
            and prev.page == c.page
            and prev.level == level
            and abs(c.y - last_y) <= c.font_size * MERGE_LINE_FACTOR
        ):
            outline[-1] = Heading(level=level, text=f"{prev.text} {text}", page=c.page, source=HEURISTIC)
        else:
            outline.append(Heading(level=level, text=text, page=c.page, source=HEURISTIC))
        last_y = c.y

    if logger.isEnabledFor(logging.DEBUG):
        for h in outline:
            logger.debug("Heading added: %s %s (page %d)", h.label, h.text, h.page)
    return outline
