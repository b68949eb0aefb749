"""Capture (HAR entry) accessors and response-body decoding.

Nothing here raises on malformed input: a capture whose body cannot be
decoded yields None and the caller records it as skipped.
"""

import json
import logging
from typing import Any
from urllib.parse import parse_qs, urlsplit

logger = logging.getLogger(__name__)

SENTINEL_PREFIX = "for (;;);"


def strip_sentinel(text: str) -> str:
    """Remove exactly one leading 'for (;;);' guard, if present."""
    if text.startswith(SENTINEL_PREFIX):
        return text[len(SENTINEL_PREFIX):]
    return text


def parse_body(text: str | None) -> Any | None:
    """Decode a response body as JSON after stripping the sentinel prefix.

    Returns None for empty text or anything that is not valid JSON.
    """
    if not text:
        return None
    try:
        return json.loads(strip_sentinel(text))
    except (json.JSONDecodeError, TypeError) as exc:
        logger.debug("Unparseable response body: %s", exc)
        return None


def dig(obj: Any, *keys: str) -> Any:
    """Follow nested mapping keys, returning None as soon as a level is missing."""
    for key in keys:
        if not isinstance(obj, dict):
            return None
        obj = obj.get(key)
    return obj


def capture_body(capture: Any) -> str:
    """response.content.text of a capture, or '' when absent."""
    text = dig(capture, "response", "content", "text")
    return text if isinstance(text, str) else ""


def capture_url(capture: Any) -> str:
    url = dig(capture, "request", "url")
    return url if isinstance(url, str) else ""


def query_param(url: str, name: str) -> str | None:
    """First (percent-decoded) value of a query parameter, or None."""
    if not url:
        return None
    values = parse_qs(urlsplit(url).query).get(name)
    if not values:
        return None
    return values[0] or None


def har_entries(document: Any) -> list:
    """document.log.entries as a list; [] when the envelope is missing or malformed."""
    entries = dig(document, "log", "entries")
    return entries if isinstance(entries, list) else []
