"""Exceptions raised by semantic (AI) matcher clients."""


class SemanticMatcherError(Exception):
    """Base exception for all semantic matcher errors.

    The AI tier catches this and falls through to the deterministic tier;
    it never reaches the caller of find_matches().
    """

    pass


class SemanticMatcherHTTPError(SemanticMatcherError):
    """The matcher endpoint answered with a 4xx/5xx status, or the connection failed."""

    def __init__(self, message: str, status_code: int, url: str) -> None:
        """Initialize HTTP error with status code and URL.

        Args:
            message: Human-readable error message
            status_code: HTTP status code (0 when no response was received)
            url: URL that failed
        """
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class SemanticMatcherTimeoutError(SemanticMatcherError):
    """The matcher did not answer within the configured timeout."""

    def __init__(self, message: str, url: str) -> None:
        super().__init__(message)
        self.url = url


class SemanticMatcherResponseError(SemanticMatcherError):
    """The matcher answered but the payload could not be parsed or validated."""

    pass
