class GenerationError(Exception):
    """A single generation call failed."""


class RateLimitedError(GenerationError):
    """The service kept rejecting the call for rate limiting after retries."""


class TransportError(GenerationError):
    """The service could not be reached, or the call timed out."""


class RequestRejectedError(GenerationError):
    """The service refused the request (invalid parameters, auth, overload)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class MissingCredentialError(Exception):
    """No API key is configured for the generation service."""
