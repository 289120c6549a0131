"""
Lead search failure taxonomy.

Every error carries a user-facing message and the HTTP status the API
answers with. None of them is retried automatically; a retry is always a
new search started by the user.
"""

from typing import Optional


class LeadSearchError(Exception):
    status_code = 500
    code = "lead_search_error"

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class ConfigurationError(LeadSearchError):
    """OpenAI key missing, a placeholder, or implausibly short."""
    status_code = 503
    code = "configuration_error"


class EmptyResponseError(LeadSearchError):
    status_code = 502
    code = "empty_response"


class MalformedResponseError(LeadSearchError):
    """Model output still not a JSON array after repair."""
    status_code = 502
    code = "malformed_response"


class InvalidCredentialError(LeadSearchError):
    status_code = 502
    code = "invalid_credential"


class RateLimitError(LeadSearchError):
    status_code = 429
    code = "rate_limited"


class UpstreamError(LeadSearchError):
    status_code = 502
    code = "upstream_error"
