import re
import asyncio
import logging
from typing import List, Optional

import azure.cognitiveservices.speech as speechsdk

from core.error_handler import ServiceUnreachableError
from .config import AZURE_TTS_ENDPOINT, AZURE_TTS_KEY, MAX_AUDIO_CHUNK_SIZE

logger = logging.getLogger(__name__)

VOICE_MAPPING = {
    "en-US": "en-US-AvaMultilingualNeural",
    "hi-IN": "hi-IN-MadhurNeural",
    "ja-JP": "ja-JP-KeitaNeural",
    "es-ES": "es-ES-AlvaroNeural",
    "fr-FR": "fr-FR-HenriNeural",
    "de-DE": "de-DE-ConradNeural",
    "zh-CN": "zh-CN-YunxiNeural",
    "ar-SA": "ar-SA-HamedNeural",
    "pt-PT": "pt-PT-DuarteNeural",
    "ru-RU": "ru-RU-DmitryNeural",
}

LANGUAGE_MAPPING = {
    "English": "en-US",
    "Hindi": "hi-IN",
    "Spanish": "es-ES",
    "Japanese": "ja-JP",
    "French": "fr-FR",
    "German": "de-DE",
    "Chinese": "zh-CN",
    "Arabic": "ar-SA",
    "Portuguese": "pt-PT",
    "Russian": "ru-RU",
}


def resolve_locale(language: str) -> str:
    """Accept either a locale code or a language name; default to en-US."""
    if language in VOICE_MAPPING:
        return language
    return LANGUAGE_MAPPING.get(language, "en-US")


def get_voice_name(language: str) -> str:
    return VOICE_MAPPING[resolve_locale(language)]


def chunk_text_by_chars(text: str, max_chars: int) -> List[str]:
    if len(text) <= max_chars:
        return [text]

    tokens = re.findall(r"\S+\s*", text)
    chunks = []
    current = ""

    for token in tokens:
        if len(current) + len(token) <= max_chars:
            current += token
        else:
            if current:
                chunks.append(current.strip())
                current = ""
            if len(token) > max_chars:
                for start in range(0, len(token), max_chars):
                    part = token[start:start + max_chars].strip()
                    if part:
                        chunks.append(part)
            else:
                current = token

    if current.strip():
        chunks.append(current.strip())

    return [c for c in chunks if c]


def synthesize_speech(text: str, voice_name: str, speech_key: str, endpoint: str) -> bytes:
    """Synthesize one chunk of text to MP3 bytes with Azure Cognitive Services Speech."""
    if not text or not text.strip():
        raise ValueError("Text cannot be empty")

    speech_config = speechsdk.SpeechConfig(subscription=speech_key, endpoint=endpoint)
    speech_config.speech_synthesis_voice_name = voice_name
    speech_config.set_speech_synthesis_output_format(
        speechsdk.SpeechSynthesisOutputFormat.Audio16Khz32KBitRateMonoMp3
    )

    # audio_config=None keeps the audio in memory instead of playing it
    synthesizer = speechsdk.SpeechSynthesizer(speech_config=speech_config, audio_config=None)
    result = synthesizer.speak_text_async(text).get()

    if result.reason == speechsdk.ResultReason.SynthesizingAudioCompleted:
        return bytes(result.audio_data)
    if result.reason == speechsdk.ResultReason.Canceled:
        details = result.cancellation_details
        error_msg = f"Speech synthesis canceled: {details.reason}"
        if details.reason == speechsdk.CancellationReason.Error:
            error_msg += f" Error details: {details.error_details}"
        raise ServiceUnreachableError(error_msg)
    raise ServiceUnreachableError(f"Unexpected synthesis result: {result.reason}")


class AzureSpeechSynthesizer:
    """Async facade over the blocking Speech SDK; chunks run in the default executor."""

    def __init__(self, speech_key: Optional[str] = None, endpoint: Optional[str] = None,
                 max_chars: int = MAX_AUDIO_CHUNK_SIZE):
        self.speech_key = speech_key or AZURE_TTS_KEY
        self.endpoint = endpoint or AZURE_TTS_ENDPOINT
        self.max_chars = max_chars

    async def __call__(self, script: str, language: str) -> bytes:
        if not self.speech_key or not self.endpoint:
            raise ServiceUnreachableError("AZURE_TTS_KEY and AZURE_TTS_ENDPOINT must be configured")

        voice_name = get_voice_name(language)
        chunks = chunk_text_by_chars(script, self.max_chars)
        loop = asyncio.get_running_loop()

        audio = bytearray()
        for chunk in chunks:
            try:
                # MP3 frames concatenate cleanly
                audio += await loop.run_in_executor(
                    None, synthesize_speech, chunk, voice_name, self.speech_key, self.endpoint
                )
            except ServiceUnreachableError:
                raise
            except Exception as e:
                raise ServiceUnreachableError(f"Speech service error: {e}") from e
        logger.info(f"Synthesized {len(chunks)} chunk(s) with {voice_name} ({len(audio)} bytes)")
        return bytes(audio)
