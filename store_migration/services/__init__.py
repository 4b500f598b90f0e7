"""Service layer for the store migration engine."""

from .image_downloader import ImageDownloader, ImageDownloadResult
from .progress import MigrationLockedError, ProgressStore, RunAccumulator

__all__ = [
    "ImageDownloader",
    "ImageDownloadResult",
    "MigrationLockedError",
    "ProgressStore",
    "RunAccumulator",
]
