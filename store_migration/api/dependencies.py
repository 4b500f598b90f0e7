"""Process-wide collaborators for the API.

Routes receive these through ``Depends`` so tests can swap them with
``app.dependency_overrides``.
"""

from functools import lru_cache

from fastapi import Depends

from ..config import get_data_dir, get_store_api_key, get_store_api_url
from ..loaders.api_loader import APILoader
from ..loaders.base import BaseLoader
from ..orchestrator import MigrationOrchestrator
from ..services.oauth.tokens import CredentialManager, TokenCipher
from ..services.progress import ProgressStore
from ..storage import JsonFileMigrationStorage


@lru_cache()
def get_progress_store() -> ProgressStore:
    return ProgressStore(JsonFileMigrationStorage(get_data_dir()))


@lru_cache()
def get_cipher() -> TokenCipher:
    return TokenCipher()


@lru_cache()
def get_loader() -> BaseLoader:
    return APILoader(get_store_api_url(), get_store_api_key())


def get_orchestrator(
    progress: ProgressStore = Depends(get_progress_store),
    loader: BaseLoader = Depends(get_loader),
    cipher: TokenCipher = Depends(get_cipher)
) -> MigrationOrchestrator:
    return MigrationOrchestrator(
        progress=progress,
        loader=loader,
        credentials=CredentialManager(progress, cipher),
    )
