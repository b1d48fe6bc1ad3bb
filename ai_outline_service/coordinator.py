import asyncio
import logging
import time
from typing import Callable, Dict, Sequence

from core.models import Document

from .extractor import AIHeadingExtractor, OutlineResult

logger = logging.getLogger(__name__)


class ParallelExtractionCoordinator:
    """
    Runs AI heading extraction for a batch of documents concurrently and
    reports only once every document has settled.
    """

    def __init__(self, extractor_factory: Callable[[], AIHeadingExtractor] = AIHeadingExtractor.from_env):
        self._extractor_factory = extractor_factory

    async def run(self, documents: Sequence[Document]) -> Dict[str, OutlineResult]:
        """
        Returns {document id: OutlineResult}. A failing document yields an empty
        result; only a failure to build the extractor itself propagates.
        """
        if not documents:
            return {}

        extractor = self._extractor_factory()
        start = time.time()

        # Extractors only see bytes and names, never the documents themselves
        jobs = [(d.id, d.name, d.data) for d in documents]
        settled = await asyncio.gather(
            *(extractor.extract(data, name) for _, name, data in jobs),
            return_exceptions=True,
        )

        results: Dict[str, OutlineResult] = {}
        for (doc_id, name, _), outcome in zip(jobs, settled):
            if isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                logger.warning(f"AI heading extraction raised for {name}: {outcome}")
                outcome = OutlineResult(error=str(outcome) or type(outcome).__name__)
            results[doc_id] = outcome

        failed = sum(1 for r in results.values() if r.error)
        logger.info(
            f"AI heading extraction settled for {len(results)} documents "
            f"({failed} failed) in {round((time.time() - start) * 1000)} ms"
        )
        return results
