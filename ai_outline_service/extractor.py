import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Tuple

from core import gemini_utils
from core.config import PDF_MIME_TYPE
from core.json_utils import decode_json_array, is_number
from core.models import AI, Heading

logger = logging.getLogger(__name__)

LEVEL_LABELS = {f"H{i}": i for i in range(1, 7)}

EXTRACTION_PROMPT = """
You are given a PDF document named "{name}".
Extract its section headings in reading order. For each heading report the
heading text, its level from H1 (most prominent) to H6, and the 1-based page
number where it appears.

Return ONLY a JSON array, no commentary:
[{{"text": "Introduction", "level": "H1", "page": 1}}]
"""

# (document bytes, mime type, prompt) -> raw model output
DocumentGenerate = Callable[[bytes, str, str], Awaitable[str]]


@dataclass(frozen=True)
class OutlineResult:
    headings: Tuple[Heading, ...] = ()
    error: Optional[str] = None


def parse_headings(content: str) -> List[Heading]:
    """
    Decode the heading array from model output.

    Entries without non-empty text, a numeric page or a level in H1..H6 are
    dropped. Raises ContractViolationError when the bracketed payload is not
    a JSON array.
    """
    headings: List[Heading] = []
    for item in decode_json_array(content):
        if not isinstance(item, dict):
            continue
        text = item.get("text")
        page = item.get("page")
        level = item.get("level")
        if not isinstance(text, str) or not text.strip():
            continue
        if not is_number(page):
            continue
        if not isinstance(level, str) or level.strip().upper() not in LEVEL_LABELS:
            continue
        headings.append(Heading(
            level=LEVEL_LABELS[level.strip().upper()],
            text=text.strip(),
            page=int(page),
            source=AI,
        ))
    return headings


class AIHeadingExtractor:
    """
    Extracts a heading list from a whole document through the multimodal
    model. Every failure is absorbed into an empty result for that document.
    """

    def __init__(self, generate: DocumentGenerate, mime_type: str = PDF_MIME_TYPE):
        self._generate = generate
        self._mime_type = mime_type

    @classmethod
    def from_env(cls, model_name: Optional[str] = None) -> "AIHeadingExtractor":
        """Build an extractor bound to the configured Gemini model (raises if unconfigured)."""
        gemini_utils.configure_gemini()

        async def generate(data: bytes, mime_type: str, prompt: str) -> str:
            return await gemini_utils.generate_from_document(data, mime_type, prompt, model_name)

        return cls(generate)

    async def extract(self, data: bytes, name: str) -> OutlineResult:
        prompt = EXTRACTION_PROMPT.format(name=name)
        try:
            content = await self._generate(data, self._mime_type, prompt)
            headings = parse_headings(content)
        except Exception as e:
            logger.warning(f"AI heading extraction failed for {name}: {e}")
            return OutlineResult(headings=(), error=str(e) or type(e).__name__)

        logger.info(f"AI heading extraction for {name}: {len(headings)} headings")
        return OutlineResult(headings=tuple(headings))
