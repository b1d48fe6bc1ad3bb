import asyncio

import pytest

from ai_outline_service import AIHeadingExtractor, ParallelExtractionCoordinator
from core.error_handler import GeminiAPIError, NetworkError


def outline_for(name):
    return f'[{{"text": "{name} heading", "page": 1, "level": "H1"}}]'


def test_one_failing_document_does_not_fail_the_batch(make_document):
    docs = [make_document("doc1"), make_document("doc2"), make_document("doc3")]

    async def generate(data, mime_type, prompt):
        if "doc2.pdf" in prompt:
            raise NetworkError("unreachable")
        name = "doc1" if "doc1.pdf" in prompt else "doc3"
        return outline_for(name)

    coordinator = ParallelExtractionCoordinator(lambda: AIHeadingExtractor(generate))
    results = asyncio.run(coordinator.run(docs))

    assert set(results) == {"doc1", "doc2", "doc3"}
    assert [h.text for h in results["doc1"].headings] == ["doc1 heading"]
    assert [h.text for h in results["doc3"].headings] == ["doc3 heading"]
    assert results["doc2"].headings == ()
    assert results["doc2"].error


def test_documents_are_extracted_concurrently(make_document):
    docs = [make_document(f"doc{i}") for i in range(3)]
    started = []
    all_started = None

    async def generate(data, mime_type, prompt):
        started.append(data)
        if len(started) == len(docs):
            all_started.set()
        # Sequential execution would never get past this point
        await all_started.wait()
        return outline_for("x")

    async def scenario():
        nonlocal all_started
        all_started = asyncio.Event()
        coordinator = ParallelExtractionCoordinator(lambda: AIHeadingExtractor(generate))
        return await asyncio.wait_for(coordinator.run(docs), timeout=2)

    results = asyncio.run(scenario())
    assert len(started) == 3
    assert all(r.headings for r in results.values())


def test_factory_failure_propagates(make_document):
    def factory():
        raise GeminiAPIError("GEMINI_API_KEY is not configured")

    with pytest.raises(GeminiAPIError):
        asyncio.run(ParallelExtractionCoordinator(factory).run([make_document("a")]))


def test_empty_batch_skips_the_factory():
    def factory():
        raise AssertionError("should not be called")

    assert asyncio.run(ParallelExtractionCoordinator(factory).run([])) == {}
