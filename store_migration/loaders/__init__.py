"""Loaders that create migrated entities in the target store."""

from .base import BaseLoader, LoaderError
from .api_loader import APILoader
from .memory_loader import InMemoryLoader

__all__ = ["BaseLoader", "LoaderError", "APILoader", "InMemoryLoader"]
