"""
Configuration for narration script generation and speech synthesis.
"""

import os

from dotenv import load_dotenv

load_dotenv()

AZURE_TTS_KEY = os.getenv("AZURE_TTS_KEY")
AZURE_TTS_ENDPOINT = os.getenv("AZURE_TTS_ENDPOINT")

NARRATION_LANGUAGE = os.getenv("NARRATION_LANGUAGE", "en-US")
NARRATION_MAX_WORDS = int(os.getenv("NARRATION_MAX_WORDS", "180"))

# Longer scripts are synthesized chunk by chunk
MAX_AUDIO_CHUNK_SIZE = int(os.getenv("MAX_AUDIO_CHUNK_SIZE", "3000"))
