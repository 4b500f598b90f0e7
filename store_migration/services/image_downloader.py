"""Batched re-upload of externally hosted product images."""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional

from ..config import IMAGE_BATCH_SIZE
from ..models.record import MigrationImage

logger = logging.getLogger(__name__)


@dataclass
class ImageDownloadResult:
    """Outcome of one image upload."""
    success: bool
    position: int
    source_url: str
    error: Optional[str] = None


class ImageDownloader:
    """
    Uploads a product's images through the loader's image capability.

    Images are processed in batches of ``batch_size`` running concurrently.
    Each image succeeds or fails on its own; a failure never aborts the batch
    or the product. Results come back in input order.
    """

    def __init__(self, loader, batch_size: int = IMAGE_BATCH_SIZE):
        self.loader = loader
        self.batch_size = batch_size

    def _upload(self, store_id: str, product_id: str, image: MigrationImage) -> None:
        self.loader.upload_image_from_url(store_id, product_id, image.source_url, image.position)

    def download_and_upload(
        self,
        store_id: str,
        product_id: str,
        images: List[MigrationImage]
    ) -> List[ImageDownloadResult]:
        """
        Upload all images for a newly created product.

        Args:
            store_id: Target store
            product_id: Internal ID of the created product
            images: Images in display order

        Returns:
            One result per image, in the same order
        """
        results: List[ImageDownloadResult] = []

        for start in range(0, len(images), self.batch_size):
            batch = images[start:start + self.batch_size]
            with ThreadPoolExecutor(max_workers=self.batch_size) as executor:
                futures = [
                    executor.submit(self._upload, store_id, product_id, image)
                    for image in batch
                ]
                # futures[i] belongs to batch[i]
                for image, future in zip(batch, futures):
                    error = future.exception()
                    if error is None:
                        results.append(ImageDownloadResult(True, image.position, image.source_url))
                    else:
                        logger.error(f"Failed to upload image {image.source_url}: {error}")
                        results.append(ImageDownloadResult(
                            False, image.position, image.source_url, str(error) or type(error).__name__
                        ))

        return results
