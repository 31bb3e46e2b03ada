import json
import re
from typing import Any, Dict, List, Optional, Union

from fishregs.utils.logging import get_logger

LOGGER = get_logger(__name__)

_FENCE_PATTERN = re.compile(r"```(?:json|JSON)?\s*(.*?)\s*```", re.DOTALL)


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences that models wrap around JSON.

    Handles a fenced block anywhere in the reply as well as a reply that
    opens a fence and never closes it.
    """
    cleaned = text.strip()
    match = _FENCE_PATTERN.search(cleaned)
    if match:
        return match.group(1).strip()

    if cleaned.startswith("```json") or cleaned.startswith("```JSON"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def parse_json_safely(text: Optional[str]) -> Union[Dict[str, Any], List[Any], None]:
    """Parse JSON from a model completion, tolerating common formatting issues.

    Handles:
    - Markdown code blocks (```json ... ```)
    - Leading prose before the first object
    - Trailing text after a complete object

    Args:
        text: The completion text

    Returns:
        Parsed JSON object or None if parsing fails
    """
    if not text:
        return None

    cleaned_text = strip_code_fences(text)

    try:
        return json.loads(cleaned_text)
    except json.JSONDecodeError as e:
        LOGGER.warning(f"Initial JSON parse failed: {e}, attempting recovery")

    # Decode the first complete object or array, ignoring anything around it
    decoder = json.JSONDecoder()
    starts = sorted(i for i in (cleaned_text.find("{"), cleaned_text.find("[")) if i != -1)
    for start in starts:
        try:
            result, _ = decoder.raw_decode(cleaned_text, start)
            return result
        except json.JSONDecodeError:
            continue

    LOGGER.error("Failed to parse JSON from completion", extra={"preview": cleaned_text[:200]})
    return None
