from typing import Any, Dict

from .pdf_processor import extract_pages
from .heading_extractor import iter_page_candidates, assemble_outline


def extract_outline(data: bytes) -> Dict[str, Any]:
    """
    Full heuristic pipeline over PDF bytes.
    Returns:
      { "pages": [str], "candidates": ((HeadingCandidate,),), "outline": [Heading] }
    """
    pages = extract_pages(data)
    candidates = tuple(tuple(iter_page_candidates(p.spans, p.number)) for p in pages)
    outline = assemble_outline(candidates)
    return {
        "pages": [p.text for p in pages],
        "candidates": candidates,
        "outline": outline,
    }
