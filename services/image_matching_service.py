"""
Image upload and slot matching.

Tagged product images are uploaded to the destination in parallel, then
assigned to the category's image slots by exact tag/description match.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Optional
import structlog

from config import settings
from integrations.destination import DestinationClient, DestinationError
from models.catalog import ProductRecord, ProductImage
from models.order import OrderImage, UnmatchedImagePolicy, UploadedImage
from models.taxonomy import ImageSlot, TaxonomyCategory
from exceptions import ImageUploadError, NoUploadedImagesError

logger = structlog.get_logger(__name__)


def match_images_to_slots(
    uploads: list[UploadedImage],
    slots: list[ImageSlot],
    policy: UnmatchedImagePolicy = UnmatchedImagePolicy.ATTACH
) -> list[OrderImage]:
    """
    Assign uploaded images to category image slots.

    Each image takes the first slot whose description equals its tag. Two
    images with the same tag both land on that slot. Unmatched images are
    attached without a slot or dropped, depending on policy.

    Args:
        uploads: Successfully uploaded images
        slots: Slots declared by the category
        policy: What to do with images no slot matches

    Returns:
        Order images in upload order
    """
    images = []
    for upload in uploads:
        slot = next((s for s in slots if s.description == upload.descriptive_tag), None)

        if slot is not None:
            images.append(OrderImage(image_id=upload.image_id, slot_id=slot.id))
        elif policy == UnmatchedImagePolicy.ATTACH:
            images.append(OrderImage(image_id=upload.image_id))
        else:
            logger.debug(
                "unmatched_image_dropped",
                image_id=upload.image_id,
                tag=upload.descriptive_tag
            )

    return images


class ImageMatchingService:
    """
    Uploads a product's tagged images and builds the order image list.
    """

    def __init__(
        self,
        client: DestinationClient,
        max_workers: Optional[int] = None,
        policy: Optional[UnmatchedImagePolicy] = None
    ):
        self.client = client
        self.max_workers = max_workers or settings.image_upload_workers
        self.policy = policy or UnmatchedImagePolicy(settings.unmatched_image_policy)

    def _upload_one(self, image: ProductImage) -> UploadedImage:
        try:
            image_id = self.client.upload_image(image.url)
        except DestinationError as e:
            raise ImageUploadError(image.url, str(e))

        return UploadedImage(image_id=image_id, descriptive_tag=image.descriptive_tag.strip())

    def upload_images(self, images: list[ProductImage]) -> list[UploadedImage]:
        """
        Upload images concurrently; failures are logged and left out.

        Results keep the input order regardless of completion order.
        """
        if not images:
            return []

        results: dict[int, UploadedImage] = {}

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(images))) as executor:
            futures = {
                executor.submit(self._upload_one, image): index
                for index, image in enumerate(images)
            }

            for future in as_completed(futures):
                index = futures[future]
                try:
                    results[index] = future.result()
                except ImageUploadError as e:
                    logger.warning(
                        "image_upload_failed",
                        url=images[index].url,
                        error=e.message
                    )

        return [results[i] for i in sorted(results)]

    def upload_and_match(
        self,
        product: ProductRecord,
        category: TaxonomyCategory
    ) -> list[OrderImage]:
        """
        Upload the product's tagged images and assign them to slots.

        Args:
            product: Product being synced
            category: Its resolved category

        Returns:
            Non-empty list of order images

        Raises:
            NoUploadedImagesError: If nothing was uploaded and assigned
        """
        tagged = product.tagged_images

        uploads = self.upload_images(tagged)
        images = match_images_to_slots(uploads, category.image_slots, self.policy)

        logger.info(
            "images_matched",
            source_id=product.source_id,
            tagged=len(tagged),
            uploaded=len(uploads),
            assigned=len(images)
        )

        if not images:
            raise NoUploadedImagesError(product.source_id, attempted=len(tagged))

        return images
