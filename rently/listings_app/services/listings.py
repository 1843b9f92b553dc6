"""
Landlord-side listing operations: create, edit, delete and status changes,
plus storing listing photos.
"""
from __future__ import annotations

import logging

from django.core.exceptions import ValidationError
from django.core.files.storage import default_storage
from django.db import transaction
from django.utils.crypto import get_random_string

from listings_app.models import Property
from listings_app.validators import image_extension

logger = logging.getLogger(__name__)

IMAGE_ROOT = "property-images"

# fields a landlord may write through create/edit
EDITABLE_FIELDS = (
    "title",
    "description",
    "property_type",
    "price",
    "location",
    "bedrooms",
    "bathrooms",
    "area_sqft",
    "amenities",
)


def image_path(*, landlord_id, property_id, file_obj) -> str:
    ext = image_extension(file_obj) or "jpg"
    return f"{IMAGE_ROOT}/{landlord_id}/{property_id}/{get_random_string(16).lower()}.{ext}"


def store_property_images(files, *, landlord_id, property_id):
    """
    Save each file to default storage and return (urls, errors).

    A file that fails to store is left out of `urls` and described in
    `errors` as {"file": name, "error": message}; the rest still go through.
    """
    urls, errors = [], []
    for f in files or []:
        name = image_path(landlord_id=landlord_id, property_id=property_id, file_obj=f)
        try:
            saved = default_storage.save(name, f)
            urls.append(default_storage.url(saved))
        except OSError as exc:
            logger.warning(
                "Image upload failed for property %s (%s): %s",
                property_id, getattr(f, "name", "?"), exc,
            )
            errors.append({"file": getattr(f, "name", ""), "error": "Upload failed."})
    return urls, errors


def _apply_fields(prop: Property, data: dict) -> None:
    for field in EDITABLE_FIELDS:
        if field in data:
            setattr(prop, field, data[field])


def create_listing(*, landlord, data: dict, files=None):
    """
    Create a listing in `pending_approval` together with its photos.

    The row and its image URLs are written inside one transaction, so a
    reader never sees the listing without the photos that were stored.
    Returns (property, image_upload_errors).
    """
    with transaction.atomic():
        prop = Property(landlord=landlord, status=Property.Status.PENDING_APPROVAL, images=[])
        _apply_fields(prop, data)
        prop.save()

        errors = []
        if files:
            urls, errors = store_property_images(files, landlord_id=landlord.pk, property_id=prop.pk)
            if urls:
                prop.images = urls
                prop.save(update_fields=["images", "updated_at"])

    logger.info("Landlord %s created property %s", landlord.pk, prop.pk)
    return prop, errors


def update_listing(prop: Property, *, data: dict, files=None, existing_images=None):
    """
    Apply an owner's edit.

    `existing_images` is the subset of current URLs the landlord kept
    (None keeps them all); URLs not already on the listing are dropped.
    New uploads are appended after the kept ones. Editing a rejected
    listing sends it back for review.
    Returns (property, image_upload_errors).
    """
    with transaction.atomic():
        current = list(prop.images or [])
        if existing_images is None:
            kept = current
        else:
            kept = [url for url in existing_images if url in current]

        errors = []
        new_urls = []
        if files:
            new_urls, errors = store_property_images(files, landlord_id=prop.landlord_id, property_id=prop.pk)

        _apply_fields(prop, data)
        prop.images = kept + new_urls

        if prop.status == Property.Status.REJECTED:
            prop.status = Property.Status.PENDING_APPROVAL
            prop.rejection_reason = None

        prop.save()

    return prop, errors


def delete_listing(prop: Property) -> None:
    # contact purchases and notifications cascade with the row
    pk = prop.pk
    prop.delete()
    logger.info("Property %s deleted", pk)


def change_listing_status(prop: Property, new_status: str) -> Property:
    """Landlord-driven available/rented/sold switch, only after approval."""
    if new_status not in Property.LANDLORD_STATUSES:
        raise ValidationError(
            f"Status must be one of: {', '.join(Property.LANDLORD_STATUSES)}."
        )
    if not prop.is_approved:
        raise ValidationError("This listing has not been approved yet.")

    if prop.status != new_status:
        prop.status = new_status
        prop.save(update_fields=["status", "updated_at"])
    return prop
