import fitz
import pytest

from core.models import AI, HEURISTIC, Document, Heading

BODY_LINES = [
    "This paragraph explains the background of the study.",
    "It continues with a few more words about the method.",
    "Results are discussed in the following pages.",
    "Nothing on this line should look like a heading.",
]


def build_pdf(pages):
    """
    pages: list of pages, each a list of (text, fontsize, bold) lines laid
    out top to bottom.
    """
    doc = fitz.open()
    for lines in pages:
        page = doc.new_page()
        y = 72
        for text, size, bold in lines:
            page.insert_text((72, y), text, fontsize=size, fontname="hebo" if bold else "helv")
            y += size + 14
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def make_pdf():
    return build_pdf


@pytest.fixture
def sample_pdf():
    """Two pages: a bold title on page 1, a numbered section on page 2."""
    return build_pdf([
        [("Introduction", 20, True)] + [(line, 11, False) for line in BODY_LINES],
        [("1. Methods", 14, False)] + [(line, 11, False) for line in BODY_LINES],
    ])


@pytest.fixture
def other_pdf():
    return build_pdf([
        [("Background Reading", 18, True)] + [(line, 11, False) for line in BODY_LINES],
    ])


@pytest.fixture
def make_document():
    def _make(doc_id, headings=(), ai_headings=(), page_texts=("page one text",), handle=None):
        return Document(
            id=doc_id,
            name=f"{doc_id}.pdf",
            data=f"%PDF-{doc_id}".encode(),
            size=10,
            page_texts=tuple(page_texts),
            outline=tuple(Heading(level=lvl, text=t, page=p, source=HEURISTIC) for lvl, t, p in headings),
            ai_outline=tuple(Heading(level=lvl, text=t, page=p, source=AI) for lvl, t, p in ai_headings),
            handle=handle,
        )
    return _make
