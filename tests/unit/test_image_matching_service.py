"""
Unit tests for image upload and slot matching.

Run: pytest tests/unit/test_image_matching_service.py -v
"""

import pytest
from unittest.mock import MagicMock

from integrations.destination import DestinationError
from models.order import OrderImage, UnmatchedImagePolicy, UploadedImage
from models.taxonomy import ImageSlot
from services.image_matching_service import ImageMatchingService, match_images_to_slots
from exceptions import NoUploadedImagesError
from tests.factories import ProductRecordFactory, TaxonomyFactory


SLOTS = [ImageSlot(id=11, description="Front"), ImageSlot(id=12, description="Back")]


class TestMatchImagesToSlots:
    """Tests for match_images_to_slots()"""

    def test_matches_by_exact_description(self):
        """Should assign each image to the slot with the same description."""
        uploads = [
            UploadedImage(image_id=1, descriptive_tag="Front"),
            UploadedImage(image_id=2, descriptive_tag="Back"),
        ]

        images = match_images_to_slots(uploads, SLOTS)

        assert images == [OrderImage(image_id=1, slot_id=11), OrderImage(image_id=2, slot_id=12)]

    def test_unmatched_attached_without_slot(self):
        """Should attach unmatched images with no slot under ATTACH."""
        uploads = [UploadedImage(image_id=3, descriptive_tag="Inside")]

        images = match_images_to_slots(uploads, SLOTS, UnmatchedImagePolicy.ATTACH)

        assert images == [OrderImage(image_id=3)]

    def test_unmatched_dropped_under_drop_policy(self):
        uploads = [
            UploadedImage(image_id=1, descriptive_tag="Front"),
            UploadedImage(image_id=3, descriptive_tag="Inside"),
        ]

        images = match_images_to_slots(uploads, SLOTS, UnmatchedImagePolicy.DROP)

        assert images == [OrderImage(image_id=1, slot_id=11)]

    def test_match_is_case_sensitive(self):
        """Should treat 'front' as unmatched."""
        images = match_images_to_slots(
            [UploadedImage(image_id=1, descriptive_tag="front")], SLOTS, UnmatchedImagePolicy.DROP
        )

        assert images == []

    def test_same_tag_takes_same_slot(self):
        """Should allow two images on one slot."""
        uploads = [
            UploadedImage(image_id=1, descriptive_tag="Front"),
            UploadedImage(image_id=2, descriptive_tag="Front"),
        ]

        images = match_images_to_slots(uploads, SLOTS)

        assert [img.slot_id for img in images] == [11, 11]


class TestImageMatchingServiceUploadAndMatch:
    """Tests for ImageMatchingService.upload_and_match()"""

    def test_uploads_only_tagged_images(self):
        """Should skip images without alt text."""
        # Arrange
        client = MagicMock()
        client.upload_image.return_value = 99
        service = ImageMatchingService(client, max_workers=2, policy=UnmatchedImagePolicy.ATTACH)
        product = ProductRecordFactory.create(images=[
            ("https://cdn/front.jpg", "Front"),
            ("https://cdn/untagged.jpg", ""),
            ("https://cdn/blank.jpg", "   "),
        ])

        # Act
        images = service.upload_and_match(product, TaxonomyFactory.category())

        # Assert
        client.upload_image.assert_called_once_with("https://cdn/front.jpg")
        assert images == [OrderImage(image_id=99, slot_id=11)]

    def test_partial_upload_failure_tolerated(self):
        """Should keep the images that did upload."""
        # Arrange
        client = MagicMock()

        def upload(url):
            if "back" in url:
                raise DestinationError("API error: 500")
            return 1

        client.upload_image.side_effect = upload
        service = ImageMatchingService(client, max_workers=2)
        product = ProductRecordFactory.create(images=[
            ("https://cdn/front.jpg", "Front"),
            ("https://cdn/back.jpg", "Back"),
        ])

        # Act
        images = service.upload_and_match(product, TaxonomyFactory.category())

        # Assert
        assert images == [OrderImage(image_id=1, slot_id=11)]

    def test_all_uploads_fail_raises(self):
        """Should raise 'no uploaded images' when every upload fails."""
        client = MagicMock()
        client.upload_image.side_effect = DestinationError("down")
        service = ImageMatchingService(client, max_workers=2)
        product = ProductRecordFactory.create(images=[("https://cdn/front.jpg", "Front")])

        with pytest.raises(NoUploadedImagesError) as exc:
            service.upload_and_match(product, TaxonomyFactory.category())

        assert exc.value.message == "no uploaded images"

    def test_no_tagged_images_raises(self):
        client = MagicMock()
        service = ImageMatchingService(client)
        product = ProductRecordFactory.create(images=[("https://cdn/a.jpg", "")])

        with pytest.raises(NoUploadedImagesError):
            service.upload_and_match(product, TaxonomyFactory.category())

        client.upload_image.assert_not_called()

    def test_all_unmatched_under_drop_raises(self):
        """Should raise when uploads succeed but DROP leaves nothing."""
        client = MagicMock()
        client.upload_image.return_value = 5
        service = ImageMatchingService(client, policy=UnmatchedImagePolicy.DROP)
        product = ProductRecordFactory.create(images=[("https://cdn/a.jpg", "Inside")])

        with pytest.raises(NoUploadedImagesError):
            service.upload_and_match(product, TaxonomyFactory.category())

    def test_results_keep_input_order(self):
        """Should return images in product order regardless of completion order."""
        client = MagicMock()
        client.upload_image.side_effect = lambda url: int(url.rsplit("/", 1)[1].split(".")[0])
        service = ImageMatchingService(client, max_workers=4)
        product = ProductRecordFactory.create(images=[
            (f"https://cdn/{i}.jpg", "Front") for i in range(1, 6)
        ])

        images = service.upload_and_match(product, TaxonomyFactory.category())

        assert [img.image_id for img in images] == [1, 2, 3, 4, 5]
