"""HTTP client for a remote semantic matcher service."""

import logging
from typing import Any, Dict, Optional, Sequence

import requests

from artisan_matching.domain.models import CandidateProfile, MatchOptions
from artisan_matching.logging import get_logger

from .base import SemanticMatcher, SemanticMatchOutcome
from .exceptions import (
    SemanticMatcherError,
    SemanticMatcherHTTPError,
    SemanticMatcherResponseError,
    SemanticMatcherTimeoutError,
)

logger = get_logger(__name__, component="semantic")


class HttpSemanticMatcher(SemanticMatcher):
    """Semantic matcher reached over HTTP.

    Sends ``POST <url>`` with a JSON body::

        {"query": "...", "candidates": [...], "options": {...}}

    and expects::

        {"matches": [{"candidate_index": 0, "score": 0.9,
                      "reasons": ["..."], "flags": {"profession": true}}],
         "confidence": 0.85}

    Attributes:
        url: Matcher endpoint
        timeout: HTTP request timeout in seconds
        user_agent: User-Agent header for requests
    """

    def __init__(
        self,
        url: str,
        api_key: Optional[str] = None,
        timeout: float = 5.0,
        user_agent: str = "ArtisanMatchingEngine/1.0",
        session: Optional[requests.Session] = None,
    ) -> None:
        """Initialize the client.

        Args:
            url: Absolute http(s) URL of the matcher endpoint
            api_key: Optional bearer token
            timeout: Request timeout in seconds
            user_agent: User-Agent header for requests
            session: Optional pre-built session (tests inject a mock)

        Raises:
            SemanticMatcherError: If url is empty or timeout is not positive
        """
        if not url or not url.strip():
            raise SemanticMatcherError("Semantic matcher URL cannot be empty")
        if timeout <= 0:
            raise SemanticMatcherError(f"Timeout must be positive, got: {timeout}")

        self.url = url.strip()
        self.timeout = timeout
        self.user_agent = user_agent

        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": user_agent, "Accept": "application/json"})
        if api_key:
            self._session.headers.update({"Authorization": f"Bearer {api_key}"})

    def match(
        self,
        query: str,
        candidates: Sequence[CandidateProfile],
        options: MatchOptions,
    ) -> SemanticMatchOutcome:
        payload = {
            "query": query,
            "candidates": [c.model_dump(mode="json") for c in candidates],
            "options": options.model_dump(mode="json", exclude_none=True),
        }
        data = self._post(payload)
        outcome = SemanticMatchOutcome.from_payload(data)

        logger.debug(
            "Semantic matcher responded",
            extra={
                "event": "semantic.request.succeeded",
                "url": self.url,
                "match_count": len(outcome.matches),
                "confidence": outcome.confidence,
            },
        )
        return outcome

    def close(self) -> None:
        self._session.close()

    def _post(self, payload: Dict[str, Any]) -> Any:
        """POST a JSON payload and decode the JSON response.

        Raises:
            SemanticMatcherHTTPError: On 4xx/5xx status or connection failure
            SemanticMatcherTimeoutError: On request timeout
            SemanticMatcherResponseError: On a body that is not valid JSON
        """
        url = self.url
        try:
            logger.debug(
                f"HTTP POST request to {url}",
                extra={
                    "event": "semantic.request.sent",
                    "url": url,
                    "timeout": self.timeout,
                    "candidate_count": len(payload.get("candidates", [])),
                },
            )

            response = self._session.post(url, json=payload, timeout=self.timeout)

            if response.status_code >= 400:
                is_retryable = response.status_code >= 500
                event_name = "semantic.request.retryable_error" if is_retryable else "semantic.request.error"
                log_level = logging.WARNING if is_retryable else logging.ERROR

                logger.log(
                    log_level,
                    f"HTTP {response.status_code} error from {url}",
                    extra={
                        "event": event_name,
                        "status_code": response.status_code,
                        "url": url,
                    },
                )
                raise SemanticMatcherHTTPError(
                    f"HTTP {response.status_code}: {response.reason}",
                    status_code=response.status_code,
                    url=url,
                )

            try:
                return response.json()
            except (ValueError, requests.exceptions.JSONDecodeError) as e:
                logger.error(
                    f"Failed to parse JSON response from {url}",
                    extra={
                        "event": "semantic.request.error",
                        "error_type": "JSONDecodeError",
                        "url": url,
                    },
                )
                raise SemanticMatcherResponseError(
                    f"Failed to parse JSON response from {url}: {e}"
                ) from e

        except requests.exceptions.Timeout as e:
            logger.warning(
                f"Request to {url} timed out after {self.timeout} seconds",
                extra={
                    "event": "semantic.request.timeout",
                    "url": url,
                    "timeout": self.timeout,
                },
            )
            raise SemanticMatcherTimeoutError(
                f"Request to {url} timed out after {self.timeout} seconds",
                url=url,
            ) from e
        except requests.exceptions.RequestException as e:
            logger.error(
                f"Request to {url} failed: {e}",
                extra={
                    "event": "semantic.request.error",
                    "error_type": type(e).__name__,
                    "url": url,
                },
            )
            raise SemanticMatcherHTTPError(
                f"Request to {url} failed: {e}",
                status_code=0,
                url=url,
            ) from e
