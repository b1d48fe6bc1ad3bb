from typing import Optional

import google.generativeai as genai

from . import config
from .error_handler import ContractViolationError, handle_gemini_api_call, validate_api_key

_configured_key: Optional[str] = None


def configure_gemini(api_key: Optional[str] = None) -> None:
    """Configure the Gemini client once per key; raises GeminiAPIError without one."""
    global _configured_key
    key = validate_api_key(api_key or config.GEMINI_API_KEY)
    if key != _configured_key:
        genai.configure(api_key=key)
        _configured_key = key


def get_model(model_name: Optional[str] = None) -> "genai.GenerativeModel":
    configure_gemini()
    return genai.GenerativeModel(model_name or config.GEMINI_MODEL)


def _response_text(response) -> str:
    try:
        text = response.text
    except ValueError as e:
        # .text raises when the candidate has no parts (blocked / empty)
        raise ContractViolationError(f"Gemini response has no text: {e}") from e
    return text or ""


async def generate_text(prompt: str, model_name: Optional[str] = None, temperature: float = 0.3) -> str:
    model = get_model(model_name)
    response = await handle_gemini_api_call(
        model.generate_content_async,
        prompt,
        generation_config=genai.types.GenerationConfig(temperature=temperature),
    )
    return _response_text(response)


async def generate_from_document(
    data: bytes,
    mime_type: str,
    prompt: str,
    model_name: Optional[str] = None,
) -> str:
    """Send a whole document inline together with an instruction."""
    model = get_model(model_name)
    response = await handle_gemini_api_call(
        model.generate_content_async,
        [{"mime_type": mime_type, "data": data}, prompt],
        generation_config=genai.types.GenerationConfig(temperature=0.1),
    )
    return _response_text(response)
