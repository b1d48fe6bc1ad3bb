import asyncio

import pytest

from ai_outline_service import AIHeadingExtractor, parse_headings
from core import config, gemini_utils
from core.error_handler import GeminiAPIError, NetworkError
from core.models import AI, Heading


def test_parse_drops_empty_text_entries():
    content = 'garbage[{"text":"A","page":1,"level":"H1"},{"text":"","page":2,"level":"H2"}]tail'
    assert parse_headings(content) == [Heading(level=1, text="A", page=1, source=AI)]


def test_parse_without_brackets_is_empty():
    assert parse_headings("I could not find any headings.") == []


def test_parse_validates_each_entry():
    content = """[
        {"text": "  Overview  ", "page": 2, "level": "h2"},
        {"text": "Deep", "page": 3, "level": "H7"},
        {"text": "No page", "level": "H1"},
        {"text": "String page", "page": "4", "level": "H1"},
        {"text": "Bool page", "page": true, "level": "H1"},
        "not an object",
        {"text": "Appendix", "page": 9.0, "level": "H6"}
    ]"""
    assert [(h.level, h.text, h.page) for h in parse_headings(content)] == [
        (2, "Overview", 2),
        (6, "Appendix", 9),
    ]


class FakeGenerate:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    async def __call__(self, data, mime_type, prompt):
        self.calls.append((data, mime_type, prompt))
        if self.error:
            raise self.error
        return self.response


def test_extract_sends_document_and_name():
    generate = FakeGenerate('[{"text": "Intro", "page": 1, "level": "H1"}]')
    result = asyncio.run(AIHeadingExtractor(generate).extract(b"%PDF", "report.pdf"))

    assert result.error is None
    assert [h.text for h in result.headings] == ["Intro"]
    data, mime_type, prompt = generate.calls[0]
    assert data == b"%PDF"
    assert mime_type == "application/pdf"
    assert "report.pdf" in prompt


def test_extract_absorbs_service_failure():
    generate = FakeGenerate(error=NetworkError("connection reset"))
    result = asyncio.run(AIHeadingExtractor(generate).extract(b"%PDF", "a.pdf"))
    assert result.headings == ()
    assert "connection reset" in result.error


def test_extract_absorbs_contract_violation():
    generate = FakeGenerate('Here: [{"text": "Intro", oops}]')
    result = asyncio.run(AIHeadingExtractor(generate).extract(b"%PDF", "a.pdf"))
    assert result.headings == ()
    assert result.error


def test_empty_response_is_not_an_error():
    result = asyncio.run(AIHeadingExtractor(FakeGenerate("")).extract(b"%PDF", "a.pdf"))
    assert result.headings == ()
    assert result.error is None


def test_from_env_requires_api_key(monkeypatch):
    monkeypatch.setattr(config, "GEMINI_API_KEY", None)
    monkeypatch.setattr(gemini_utils, "_configured_key", None)
    with pytest.raises(GeminiAPIError):
        AIHeadingExtractor.from_env()


def test_non_finite_page_drops_only_that_entry():
    content = ('[{"text": "A", "page": 1, "level": "H1"},'
               ' {"text": "B", "page": NaN, "level": "H2"},'
               ' {"text": "C", "page": Infinity, "level": "H2"}]')
    result = asyncio.run(AIHeadingExtractor(FakeGenerate(content)).extract(b"%PDF", "a.pdf"))
    assert [h.text for h in result.headings] == ["A"]
    assert result.error is None
