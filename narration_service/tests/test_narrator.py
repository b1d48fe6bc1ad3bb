import asyncio

import pytest

from core.error_handler import ContractViolationError, PreconditionError, ServiceUnreachableError
from core.models import RelevantSection
from narration_service import NarrationService, chunk_text_by_chars, clean_script, get_voice_name
from narration_service import tts_utils


async def fake_script(prompt):
    return "Welcome. [music] Here is *softly* what the passage says."


def test_clean_script_drops_fences_and_stage_directions():
    assert clean_script("```text\nHello *pauses* there [intro]\n```") == "Hello there"


def test_voice_lookup_accepts_names_and_locales():
    assert get_voice_name("Hindi") == "hi-IN-MadhurNeural"
    assert get_voice_name("fr-FR") == "fr-FR-HenriNeural"
    assert get_voice_name("Klingon") == "en-US-AvaMultilingualNeural"


def test_chunking_respects_the_limit_and_keeps_words():
    text = "alpha beta gamma delta epsilon"
    chunks = chunk_text_by_chars(text, 12)
    assert all(len(c) <= 12 for c in chunks)
    assert " ".join(chunks) == text
    assert chunk_text_by_chars("x" * 25, 10) == ["x" * 10, "x" * 10, "x" * 5]


def test_narrate_generates_script_then_audio():
    received = []

    async def synthesize(script, language):
        received.append((script, language))
        return b"ID3audio"

    service = NarrationService(fake_script, synthesize)
    audio = asyncio.run(service.narrate("the passage", [RelevantSection("B", 2, "Scope")], "Spanish"))

    assert audio.script == "Welcome. Here is what the passage says."
    assert audio.data == b"ID3audio"
    assert audio.media_type == "audio/mpeg"
    assert received == [(audio.script, "es-ES")]


def test_prompt_mentions_related_sections():
    prompts = []

    async def generate(prompt):
        prompts.append(prompt)
        return "Script."

    service = NarrationService(generate, synthesize=None, max_words=50)
    asyncio.run(service.generate_script("the passage", [RelevantSection("B", 2, "Scope")]))
    assert "Scope (page 2)" in prompts[0]
    assert "at most 50 words" in prompts[0]


def test_blank_selection_is_a_precondition():
    service = NarrationService(fake_script, synthesize=None)
    with pytest.raises(PreconditionError):
        asyncio.run(service.narrate("  "))


def test_empty_audio_is_a_contract_violation():
    async def silent(script, language):
        return b""

    with pytest.raises(ContractViolationError):
        asyncio.run(NarrationService(fake_script, silent).narrate("the passage"))


def test_unconfigured_speech_service_is_unreachable(monkeypatch):
    monkeypatch.setattr(tts_utils, "AZURE_TTS_KEY", None)
    monkeypatch.setattr(tts_utils, "AZURE_TTS_ENDPOINT", None)
    synthesizer = tts_utils.AzureSpeechSynthesizer()
    with pytest.raises(ServiceUnreachableError):
        asyncio.run(synthesizer("Hello", "en-US"))
