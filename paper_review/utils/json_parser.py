import json
import re
from typing import Any, Dict, List, Optional, Union

from paper_review.utils.logging import get_logger

LOGGER = get_logger(__name__)

_FIRST_OBJECT = re.compile(r"(\{[^{}]*(?:\{[^{}]*\}[^{}]*)*\})", re.DOTALL)


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code block (```json ... ```)."""
    cleaned = text.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def parse_json_safely(text: str) -> Union[Dict[str, Any], List[Any], None]:
    """Parse JSON from Oracle output, handling common formatting issues.

    Handles:
    - Markdown code blocks (```json ... ```)
    - Leading/trailing prose around a single object
    - Concatenated JSON objects (e.g., {...}\\n{...}), merged into one

    Args:
        text: The text containing JSON

    Returns:
        Parsed JSON value or None if nothing could be recovered
    """
    if not text:
        return None

    cleaned_text = strip_code_fences(text)

    try:
        return json.loads(cleaned_text)
    except json.JSONDecodeError as e:
        LOGGER.warning(f"Initial JSON parse failed: {e}, attempting repairs...")
        error = e

    if "Extra data" in str(error):
        merged = _parse_concatenated_json(cleaned_text)
        if merged is not None:
            LOGGER.info("Parsed concatenated JSON, merged into single result")
            return merged

    match = _FIRST_OBJECT.search(cleaned_text)
    if match:
        try:
            return json.loads(match.group(1))
        except json.JSONDecodeError as e:
            LOGGER.debug(f"Embedded object could not be parsed: {e}")

    LOGGER.error(f"Failed to parse JSON: {error}")
    return None


def _parse_concatenated_json(text: str) -> Union[Dict[str, Any], List[Any], None]:
    """Decode back-to-back JSON values and merge them."""
    decoder = json.JSONDecoder()
    results = []
    idx = 0
    text = text.strip()

    while idx < len(text):
        while idx < len(text) and text[idx] in " \t\n\r":
            idx += 1
        if idx >= len(text):
            break
        try:
            obj, idx = decoder.raw_decode(text, idx)
            results.append(obj)
        except json.JSONDecodeError:
            next_start = [pos for pos in (text.find("{", idx + 1), text.find("[", idx + 1)) if pos != -1]
            if not next_start:
                break
            idx = min(next_start)

    return _merge_json_objects(results) if results else None


def _merge_json_objects(objects: List[Any]) -> Optional[Union[Dict[str, Any], List[Any]]]:
    """Merge parsed JSON values into a single result.

    Dicts are merged key by key with list values concatenated. Anything
    else is returned as a flat list.
    """
    if not objects:
        return None
    if len(objects) == 1:
        return objects[0]

    if all(isinstance(obj, dict) for obj in objects):
        merged: Dict[str, Any] = {}
        for obj in objects:
            for key, value in obj.items():
                if key in merged and isinstance(merged[key], list) and isinstance(value, list):
                    merged[key] = merged[key] + value
                else:
                    merged[key] = value
        return merged

    flattened: List[Any] = []
    for obj in objects:
        if isinstance(obj, list):
            flattened.extend(obj)
        else:
            flattened.append(obj)
    return flattened
