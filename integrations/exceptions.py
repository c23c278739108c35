class ApiRequestError(Exception):
    """Generic API request error (network failure or unusable response)."""

class ApiAuthError(ApiRequestError):
    """Missing or invalid credentials/configuration."""

class ApiRateLimitError(ApiRequestError):
    """Rate limiting encountered (429 or AppCallLimit in the body)."""

class ApiDecodeError(ApiRequestError):
    """Response body could not be decoded into the expected structure."""

class ReservedParameterError(ValueError):
    """A call parameter uses a name reserved for request signing."""
