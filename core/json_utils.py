import json
import math
from typing import Any, List, Optional

from .error_handler import ContractViolationError


def slice_json_array(content: str) -> Optional[str]:
    """
    Return the text between the first '[' and the last ']' (inclusive),
    or None when the response carries no bracketed payload at all.
    """
    s = content or ""
    l = s.find("[")
    r = s.rfind("]")
    if l == -1 or r == -1 or r < l:
        return None
    return s[l:r + 1]


def decode_json_array(content: str) -> List[Any]:
    """
    Decode the JSON array embedded anywhere in free-form model output.

    A response without a '[' ... ']' pair decodes to an empty list. A
    bracketed payload that is not a valid JSON array raises
    ContractViolationError.
    """
    payload = slice_json_array(content)
    if payload is None:
        return []
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise ContractViolationError(f"Response does not contain a valid JSON array: {e.msg}") from e
    if not isinstance(data, list):
        raise ContractViolationError("Response payload is not a JSON array")
    return data


def is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, float):
        return math.isfinite(value)
    return isinstance(value, int)
