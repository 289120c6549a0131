"""
Lead search: asks the model for real businesses of a niche in a city.

Flow:
  1. Credential check (no request is made without a usable key)
  2. One Responses API call with web search localised to the city/state,
     low temperature for format compliance
  3. Repair + parse of the free-text answer (leads.repair)
  4. Upstream failures classified for user messaging

Calling twice with the same inputs may return different leads; the model is
not deterministic even at temperature 0.1.
"""

import logging
from typing import Optional

from llm_service import CHAT_MODEL, get_api_key, get_client
from models import BusinessLead

from .errors import (
    ConfigurationError,
    EmptyResponseError,
    InvalidCredentialError,
    LeadSearchError,
    RateLimitError,
    UpstreamError,
)
from .repair import parse_leads

logger = logging.getLogger(__name__)

LEADS_PER_SEARCH = 20
SEARCH_TEMPERATURE = 0.1
MAX_OUTPUT_TOKENS = 4000

INVALID_KEY_MARKERS = ("API key not valid", "Incorrect API key")


def has_usable_api_key(key: Optional[str]) -> bool:
    key = (key or "").strip()
    return bool(key) and key != "undefined" and len(key) >= 10


def build_search_prompt(state: str, city: str, niche: str) -> str:
    return f"""Act as a strict API system.
Task: List {LEADS_PER_SEARCH} businesses in the niche "{niche}" in {city}, {state}, Brazil.

Tools: Use web search over maps and business listings to validate real names and addresses.

FORMATTING RULES (CRITICAL):
1. Return ONLY the raw JSON. Do not use markdown. Do not write "Here is the list".
2. The format must be a valid ARRAY OF OBJECTS (starting with '[' and ending with ']').
3. Use double quotes (") for every key and string value.
4. Make sure there are no trailing commas at the end of objects or arrays.

JSON structure:
[
  {{
    "name": "Business Name",
    "address": "Full Address",
    "rating": 4.5,
    "phone": "(11) 99999-9999",
    "website": "https://site.com"
  }}
]"""


def classify_upstream_error(error: Exception) -> LeadSearchError:
    status = getattr(error, "status_code", None)
    message = str(error)

    if status in (400, 401) or any(marker in message for marker in INVALID_KEY_MARKERS):
        return InvalidCredentialError("Invalid API key. Check your settings.", detail=message)
    if status == 429:
        return RateLimitError("Request quota exceeded. Please try again later.", detail=message)
    return UpstreamError(f"Lead search failed: {message}", detail=message)


async def search_businesses(state: str, city: str, niche: str) -> list[BusinessLead]:
    if not has_usable_api_key(get_api_key()):
        logger.error("API key missing or invalid")
        raise ConfigurationError("OpenAI API key is not configured or is invalid.")

    try:
        response = await get_client().responses.create(
            model=CHAT_MODEL,
            input=build_search_prompt(state, city, niche),
            tools=[{
                "type": "web_search",
                "user_location": {
                    "type": "approximate",
                    "country": "BR",
                    "region": state,
                    "city": city,
                },
            }],
            temperature=SEARCH_TEMPERATURE,
            max_output_tokens=MAX_OUTPUT_TOKENS,
        )
    except Exception as e:
        logger.error(f"Error fetching places: {e}")
        raise classify_upstream_error(e) from e

    text = response.output_text
    if not text:
        raise EmptyResponseError("The AI returned no text.")

    leads = parse_leads(text)
    logger.info(f"Lead search '{niche}' in {city}/{state}: {len(leads)} leads")
    return leads
