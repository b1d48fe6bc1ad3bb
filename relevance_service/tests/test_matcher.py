import asyncio
import json

import pytest

from core.error_handler import ContractViolationError, PreconditionError
from core.models import RelevantSection, Selection
from relevance_service import RelevanceMatcher, build_heading_corpus, parse_sections


class RecordingGenerate:
    def __init__(self, response="[]"):
        self.response = response
        self.prompts = []

    async def __call__(self, prompt):
        self.prompts.append(prompt)
        return self.response


def corpus_from_prompt(prompt):
    """The heading list is the JSON array embedded in the ranking prompt."""
    start = prompt.index("[\n")
    end = prompt.index("\n]", start) + 2
    return json.loads(prompt[start:end])


@pytest.fixture
def doc_a(make_document):
    return make_document("A", headings=[(1, "Alpha Intro", 1)])


@pytest.fixture
def doc_b(make_document):
    return make_document("B", headings=[(1, "Beta Intro", 1), (2, "Beta Details", 3)])


def test_corpus_excludes_the_selection_source(doc_a, doc_b):
    generate = RecordingGenerate('[{"documentId": "B", "page": 3, "title": "Beta Details"}]')
    sections = asyncio.run(RelevanceMatcher(generate).match(Selection("alpha text", "A"), [doc_a, doc_b]))

    corpus = corpus_from_prompt(generate.prompts[0])
    assert {entry["documentId"] for entry in corpus} == {"B"}
    assert [entry["text"] for entry in corpus] == ["Beta Intro", "Beta Details"]
    assert "alpha text" in generate.prompts[0]
    assert sections == [RelevantSection("B", 3, "Beta Details")]


def test_ai_outline_replaces_heuristic_outline(make_document):
    doc = make_document("C", headings=[(1, "Heuristic", 1)], ai_headings=[(1, "From AI", 2)])
    corpus = build_heading_corpus([doc], exclude_id=None)
    assert corpus == [{"documentId": "C", "documentName": "C.pdf", "page": 2, "level": "H1", "text": "From AI"}]


def test_no_other_headings_fails_before_calling_the_service(doc_a, make_document):
    generate = RecordingGenerate()
    empty = make_document("E")
    with pytest.raises(PreconditionError):
        asyncio.run(RelevanceMatcher(generate).match(Selection("text", "A"), [doc_a, empty]))
    assert generate.prompts == []


def test_unparseable_ranking_is_a_contract_violation(doc_a, doc_b):
    generate = RecordingGenerate("[{documentId: B}]")
    with pytest.raises(ContractViolationError):
        asyncio.run(RelevanceMatcher(generate).match(Selection("text", "A"), [doc_a, doc_b]))


def test_parse_sections_filters_and_caps():
    items = [{"pdfId": "B", "page": i, "title": f"T{i}"} for i in range(1, 8)]
    items.insert(0, {"documentId": "A", "page": 1, "title": "own document"})
    items.insert(1, {"documentId": "B", "page": "2", "title": "string page"})
    items.insert(2, {"documentId": "B", "page": 2, "title": "  "})
    sections = parse_sections(json.dumps(items), known_ids={"B"})

    assert len(sections) == 5
    assert [s.title for s in sections] == ["T1", "T2", "T3", "T4", "T5"]
    assert all(s.document_id == "B" for s in sections)


def test_ranking_without_array_gives_no_sections(doc_a, doc_b):
    generate = RecordingGenerate("Nothing relevant.")
    assert asyncio.run(RelevanceMatcher(generate).match(Selection("text", "A"), [doc_a, doc_b])) == []


def test_non_finite_pages_are_dropped():
    content = ('[{"documentId": "B", "page": NaN, "title": "nan page"},'
               ' {"documentId": "B", "page": -Infinity, "title": "infinite page"},'
               ' {"documentId": "B", "page": 4, "title": "Scope"}]')
    assert parse_sections(content, known_ids={"B"}) == [RelevantSection("B", 4, "Scope")]
