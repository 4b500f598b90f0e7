"""OAuth failure type."""

from typing import Optional


class OAuthError(Exception):
    """A code exchange, token refresh or shop lookup failed. Not retryable."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
