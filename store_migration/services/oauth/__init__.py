"""OAuth connectors for source platforms."""

from .errors import OAuthError
from .tokens import CredentialManager, TokenCipher

__all__ = ["OAuthError", "CredentialManager", "TokenCipher"]
