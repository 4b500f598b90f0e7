"""Base source client interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import logging

import requests

from ..config import DEFAULT_RETRY_AFTER_SECONDS

logger = logging.getLogger(__name__)


class SourceAPIError(Exception):
    """Non-success response from a source platform API."""

    def __init__(
        self,
        platform: str,
        status_code: Optional[int],
        body: str = "",
        message: Optional[str] = None
    ):
        self.platform = platform
        self.status_code = status_code
        self.body = body
        super().__init__(message or f"{platform.capitalize()} API error: {status_code} {body}".strip())


class RateLimitError(SourceAPIError):
    """HTTP 429 from a source platform. Carries the suggested wait in seconds."""

    def __init__(self, platform: str, retry_after: float = DEFAULT_RETRY_AFTER_SECONDS):
        super().__init__(
            platform,
            429,
            message=f"{platform.capitalize()} rate limit exceeded",
        )
        self.retry_after = retry_after


def parse_retry_after(header: Optional[str]) -> float:
    """Seconds to wait from a Retry-After header, defaulting when absent or unparseable."""
    if not header:
        return DEFAULT_RETRY_AFTER_SECONDS
    try:
        return float(header)
    except ValueError:
        return DEFAULT_RETRY_AFTER_SECONDS


@dataclass
class SourcePage:
    """One page of raw source records plus its continuation token."""
    items: List[Dict[str, Any]] = field(default_factory=list)
    has_next_page: bool = False
    end_cursor: Optional[str] = None
    total_count: Optional[int] = None


class BaseExtractor(ABC):
    """
    Base class for source platform clients.

    Clients are plain transports: they fetch one page per call, map 429 to
    ``RateLimitError`` and any other failure to ``SourceAPIError``, and never
    retry. Retry policy belongs to the orchestrator.
    """

    platform: str = ""

    def __init__(self, access_token: str, session: Optional[requests.Session] = None):
        """
        Initialize the client.

        Args:
            access_token: Decrypted OAuth access token
            session: Custom requests session
        """
        self.access_token = access_token
        self._session = session or requests.Session()

    def _check_response(self, response: requests.Response) -> Any:
        """Raise the typed error for a failed response, else return its JSON body."""
        if response.status_code == 429:
            retry_after = parse_retry_after(response.headers.get("Retry-After"))
            logger.warning(f"{self.platform} rate limited, retry after {retry_after}s")
            raise RateLimitError(self.platform, retry_after)

        if not response.ok:
            raise SourceAPIError(self.platform, response.status_code, response.text)

        return response.json()

    @abstractmethod
    def count_products(self) -> int:
        """Total number of importable products in the source shop."""
        pass

    @abstractmethod
    def fetch_products(self, cursor: Optional[str] = None) -> SourcePage:
        """
        Fetch one page of raw products.

        Args:
            cursor: Continuation token from a previous page, None for the first page

        Returns:
            SourcePage of raw product payloads
        """
        pass
