"""
Response repair for the lead search.

The model is asked for a bare JSON array but regularly wraps it in markdown
fences or a sentence of preamble/postamble. clean_json_string() strips the
fences and keeps only the span between the first '[' and the last ']';
parse_leads() then validates the result into BusinessLead records.
"""

from __future__ import annotations

import json
import logging
import math
import re
import time
from typing import Any, Optional

from models import BusinessLead

from .errors import MalformedResponseError

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```json\n?|```")

UNKNOWN_NAME = "Unknown Business"
UNKNOWN_ADDRESS = "Address unavailable"

MALFORMED_MESSAGE = "Could not process the data returned by the AI. Please try again."


def clean_json_string(text: str) -> str:
    cleaned = _FENCE_RE.sub("", text)

    first_open = cleaned.find("[")
    last_close = cleaned.rfind("]")
    if first_open != -1 and last_close != -1 and last_close > first_open:
        cleaned = cleaned[first_open:last_close + 1]

    return cleaned.strip()


def _text_or_none(value: Any) -> Optional[str]:
    return str(value) if value else None


def _rating_or_none(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    rating = float(value)
    # 1e999 parses to inf
    return rating if math.isfinite(rating) else None


def _reject_constant(name: str) -> Any:
    # NaN / Infinity / -Infinity are not JSON
    raise ValueError(f"non-standard JSON constant {name}")


def _to_lead(item: Any, index: int, now_ms: int) -> BusinessLead:
    if not isinstance(item, dict):
        item = {}
    return BusinessLead(
        id=f"lead-{now_ms}-{index}",
        name=_text_or_none(item.get("name")) or UNKNOWN_NAME,
        address=_text_or_none(item.get("address")) or UNKNOWN_ADDRESS,
        rating=_rating_or_none(item.get("rating")),
        phone=_text_or_none(item.get("phone")),
        website=_text_or_none(item.get("website")),
        status="new",
    )


def parse_leads(text: str, now_ms: Optional[int] = None) -> list[BusinessLead]:
    """Repair and parse raw model text. Raises MalformedResponseError."""
    cleaned = clean_json_string(text)
    try:
        raw = json.loads(cleaned, parse_constant=_reject_constant)
    except ValueError as e:
        logger.error(f"JSON parse error: {e}. Cleaned text: {cleaned[:500]}")
        raise MalformedResponseError(MALFORMED_MESSAGE, detail=str(e)) from e

    if not isinstance(raw, list):
        logger.error(f"Lead response is not an array: {cleaned[:500]}")
        raise MalformedResponseError(MALFORMED_MESSAGE, detail="response is not an array")

    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return [_to_lead(item, i, now_ms) for i, item in enumerate(raw)]
