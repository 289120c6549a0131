# Lead extraction package
# Exposes search_businesses, the repair helpers and the session-scoped LeadBoard.

from .errors import (  # noqa: F401
    LeadSearchError,
    ConfigurationError,
    EmptyResponseError,
    MalformedResponseError,
    InvalidCredentialError,
    RateLimitError,
    UpstreamError,
)
from .repair import clean_json_string, parse_leads  # noqa: F401
from .search import search_businesses, has_usable_api_key  # noqa: F401
from .board import LeadBoard  # noqa: F401
