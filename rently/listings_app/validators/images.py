from PIL import Image, UnidentifiedImageError
from django.core.exceptions import ValidationError

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/webp"}
ALLOWED_IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "webp"}


def image_extension(file_obj) -> str:
    name = (getattr(file_obj, "name", "") or "").lower()
    return name.rsplit(".", 1)[-1] if "." in name else ""


def validate_listing_photo(file_obj, *, max_mb=10):
    """Check one listing photo: JPG / PNG / WEBP, non-empty, at most `max_mb`, decodable."""
    ctype = getattr(file_obj, "content_type", "") or ""
    if ctype not in ALLOWED_IMAGE_TYPES:
        raise ValidationError(f"Unsupported image type: {ctype or 'unknown'}")
    if image_extension(file_obj) not in ALLOWED_IMAGE_EXTENSIONS:
        raise ValidationError("Only JPG, JPEG, PNG or WEBP files are allowed.")
    size = getattr(file_obj, "size", 0) or 0
    if size <= 0 or size > max_mb * 1024 * 1024:
        raise ValidationError(f"Photo too large (max {max_mb}MB).")

    try:
        img = Image.open(file_obj)
        img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError):
        raise ValidationError(f"{getattr(file_obj, 'name', 'Photo')} is not a valid image.")
    finally:
        # verify() consumes the stream; storage needs it from the start
        file_obj.seek(0)
    return file_obj


def validate_listing_photos(files, *, max_count=10, max_mb=10):
    if not files:
        return []
    if not isinstance(files, (list, tuple)):
        files = [files]
    if len(files) > max_count:
        raise ValidationError(f"Too many photos. Max {max_count} allowed.")
    for f in files:
        validate_listing_photo(f, max_mb=max_mb)
    return list(files)


def assert_no_duplicate_files(files):
    if not files:
        return
    seen = set()
    dups = []
    for f in files:
        key = ((getattr(f, "name", "") or "").lower(), getattr(f, "size", 0))
        if key in seen:
            dups.append(getattr(f, "name", "unnamed file"))
        seen.add(key)
    if dups:
        raise ValidationError(f"Duplicate file(s): {', '.join(dups)}")
