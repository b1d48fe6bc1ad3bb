import re
import logging
from typing import Awaitable, Callable, Optional, Sequence

from core import gemini_utils
from core.error_handler import ContractViolationError, PreconditionError
from core.models import NarrationAudio, RelevantSection

from .config import NARRATION_LANGUAGE, NARRATION_MAX_WORDS
from .tts_utils import AzureSpeechSynthesizer, resolve_locale

logger = logging.getLogger(__name__)

TextGenerate = Callable[[str], Awaitable[str]]
# (script, language) -> audio bytes
Synthesize = Callable[[str, str], Awaitable[bytes]]

STAGE_DIRECTION_RX = re.compile(r"\*[^*]{1,40}\*|\[[^\]]{1,40}\]")


def clean_script(script: str) -> str:
    """Drop markdown fences and stage directions like *pauses* or [music]."""
    s = re.sub(r"^```\w*\s*|\s*```$", "", script.strip())
    s = STAGE_DIRECTION_RX.sub("", s)
    return re.sub(r"[ \t]+", " ", s).strip()


class NarrationService:
    """Turns the current selection into a short narrated overview."""

    def __init__(
        self,
        generate: TextGenerate = gemini_utils.generate_text,
        synthesize: Optional[Synthesize] = None,
        max_words: int = NARRATION_MAX_WORDS,
    ):
        self._generate = generate
        self._synthesize = synthesize or AzureSpeechSynthesizer()
        self.max_words = max_words

    def _build_prompt(self, selected_text: str, sections: Sequence[RelevantSection], language: str) -> str:
        related = "\n".join(f"- {s.title} (page {s.page})" for s in sections)
        theme = f"\nRelated sections in the reader's other documents:\n{related}\n" if related else ""
        return f"""Write a natural, engaging spoken overview (at most {self.max_words} words) in the
language of locale {language} for a listener who just highlighted this passage:

"{selected_text}"
{theme}
Speak directly to the listener. Do not include stage directions, speaker labels
or any reading instructions like *pauses*. Return only the script text."""

    async def generate_script(self, selected_text: str, sections: Sequence[RelevantSection] = (),
                              language: str = NARRATION_LANGUAGE) -> str:
        if not selected_text.strip():
            raise PreconditionError("No text selected")
        script = clean_script(await self._generate(self._build_prompt(selected_text, sections, language)))
        if not script:
            raise ContractViolationError("Narration script was empty")
        return script

    async def narrate(self, selected_text: str, sections: Sequence[RelevantSection] = (),
                      language: Optional[str] = None) -> NarrationAudio:
        locale = resolve_locale(language or NARRATION_LANGUAGE)
        script = await self.generate_script(selected_text, sections, locale)
        audio = await self._synthesize(script, locale)
        if not audio:
            raise ContractViolationError("Speech synthesis returned no audio")
        logger.info(f"Narration ready: {len(script.split())} words, {len(audio)} bytes")
        return NarrationAudio(script=script, data=audio)
