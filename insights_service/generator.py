import logging
import re
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from core import gemini_utils
from core.error_handler import ContractViolationError, PreconditionError
from core.models import Document, RelevantSection

logger = logging.getLogger(__name__)

TextGenerate = Callable[[str], Awaitable[str]]

SNIPPET_CHARS = 600
INSIGHT_TYPES = ["key_takeaways", "contradictions", "examples", "connections"]

INSIGHT_HEADERS = {
    "key_takeaways": "Key takeaways: what the related sections say about the selection",
    "contradictions": "Contradictions: where the sections disagree with the selection or each other",
    "examples": "Examples: concrete cases or data points that illustrate it",
    "connections": "Connections: how the selection links to the other documents",
}


class InsightsGenerator:
    """
    Generates a short summarized insight text from the selected text and the
    sections ranked relevant to it.
    """

    def __init__(self, generate: TextGenerate = gemini_utils.generate_text):
        self._generate = generate

    def _prepare_context(self, sections: Sequence[RelevantSection], documents: Dict[str, Document]) -> str:
        """Prepare context string from relevant sections."""
        context_parts = []

        for i, section in enumerate(sections):
            doc = documents.get(section.document_id)
            doc_name = doc.name if doc else f"Document {i+1}"
            snippet = re.sub(r"\s+", " ", doc.page_text(section.page)).strip() if doc else ""
            if len(snippet) > SNIPPET_CHARS:
                snippet = snippet[:SNIPPET_CHARS] + "..."

            context_parts.append(f"[{doc_name} - {section.title} (page {section.page})]\n{snippet}")

        return "\n\n".join(context_parts)

    async def generate(
        self,
        selected_text: str,
        sections: Sequence[RelevantSection],
        documents: Dict[str, Document],
        insight_types: Optional[List[str]] = None,
    ) -> str:
        """
        Args:
            selected_text: The text selected by the user
            sections: Relevant sections ranked for the selection
            documents: Loaded documents by id, used for page context
            insight_types: Subset of INSIGHT_TYPES to cover (all by default)

        Returns:
            Plain-text insights
        """
        if not selected_text.strip():
            raise PreconditionError("No text selected")
        if not sections:
            raise PreconditionError("No relevant sections to generate insights from")

        insight_types = [t for t in (insight_types or INSIGHT_TYPES) if t in INSIGHT_HEADERS]
        if not insight_types:
            raise PreconditionError("No known insight types requested")

        context = self._prepare_context(sections, documents)
        headers = "\n".join(f"- {INSIGHT_HEADERS[t]}" for t in insight_types)
        prompt = f"""You are an expert analyst who summarizes insights across documents.

Selected text: "{selected_text}"

Related sections from other documents:
{context}

Write concise insights under these headings, 1-3 short bullet points each,
skipping a heading when the context has nothing for it:
{headers}

Respond in plain text, no JSON and no markdown fences."""

        content = (await self._generate(prompt)).strip()
        content = re.sub(r"^```\w*\s*|\s*```$", "", content).strip()
        if not content:
            raise ContractViolationError("Insights response was empty")

        logger.info(f"Generated insights from {len(sections)} sections ({len(content)} chars)")
        return content
