from .pdf_processor import PageContent, extract_pages
from .heading_extractor import assemble_outline, iter_page_candidates
from .extractor import extract_outline

__all__ = [
    "PageContent",
    "extract_pages",
    "iter_page_candidates",
    "assemble_outline",
    "extract_outline",
]
