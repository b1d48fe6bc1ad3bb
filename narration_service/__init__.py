from .narrator import NarrationService, clean_script
from .tts_utils import AzureSpeechSynthesizer, chunk_text_by_chars, get_voice_name

__all__ = ["NarrationService", "clean_script", "AzureSpeechSynthesizer", "chunk_text_by_chars", "get_voice_name"]
