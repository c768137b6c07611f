"""Parsing of model output into JSON objects."""

import json

import structlog

from errors import ParseError

logger = structlog.get_logger()


def strip_fences(text: str) -> str:
    """Remove surrounding markdown code fences if present."""
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[-1]
    if text.endswith("```"):
        text = text.rsplit("```", 1)[0]
    return text.strip()


def parse_json_object(response: str | None) -> dict:
    """Parse a model response into a JSON object.

    Tolerates markdown fences and leading/trailing prose around a single
    object. Raises ParseError when nothing usable is found.
    """
    if not response or not response.strip():
        raise ParseError("empty response")

    text = strip_fences(response)
    try:
        value = json.loads(text)
    except json.JSONDecodeError:
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            logger.debug("json_parse_failed", response=text[:200])
            raise ParseError(f"no JSON object in response: {text[:80]!r}")
        try:
            value = json.loads(text[start : end + 1])
        except json.JSONDecodeError as e:
            logger.debug("json_parse_failed", response=text[:200])
            raise ParseError(f"malformed JSON: {e}") from e

    if not isinstance(value, dict):
        raise ParseError(f"expected JSON object, got {type(value).__name__}")
    return value
