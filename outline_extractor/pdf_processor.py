import fitz  # PyMuPDF
import logging
from dataclasses import dataclass
from typing import List, Tuple

from core.models import TextSpan

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PageContent:
    number: int  # 1-based
    spans: Tuple[TextSpan, ...]
    text: str


def extract_pages(data: bytes) -> List[PageContent]:
    """
    Read a PDF from memory and return, per page, its text spans in reading
    order (text, size, font, flags, bbox) plus the plain page text.

    Raises ValueError when the bytes are not a readable PDF.
    """
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        raise ValueError(f"Not a readable PDF: {e}") from e

    pages: List[PageContent] = []
    with doc:
        for page_num in range(doc.page_count):
            page = doc[page_num]
            spans: List[TextSpan] = []
            for block in page.get_text("dict")["blocks"]:
                for line in block.get("lines", []):
                    for span in line["spans"]:
                        if not span["text"].strip():
                            continue
                        spans.append(TextSpan(
                            text=span["text"],
                            size=float(span["size"]),
                            font=span.get("font", ""),
                            flags=int(span.get("flags", 0)),
                            bbox=tuple(float(v) for v in span["bbox"]),
                        ))
            pages.append(PageContent(number=page_num + 1, spans=tuple(spans), text=page.get_text()))

    logger.debug(f"Extracted {sum(len(p.spans) for p in pages)} spans from {len(pages)} pages")
    return pages
