"""
Public facade for custom validators.

Usage everywhere:
    from listings_app.validators import normalise_msisdn, parse_price_bracket, ...
"""

from .images import (
    validate_listing_photo,
    validate_listing_photos,
    assert_no_duplicate_files,
    image_extension,
)

from .catalog import (
    PRICE_BRACKETS,
    parse_price_bracket,
    price_in_bracket,
)

from .security import (
    # gateway callbacks
    sign_callback_reference,
    verify_callback_token,

    # normalisation
    normalise_msisdn,
    normalise_price,
    normalise_amount,
    validate_price,
    sanitize_search_text,
    sanitize_html_description,
    validate_listing_title,
)

__all__ = [
    # images/files
    "validate_listing_photo", "validate_listing_photos", "assert_no_duplicate_files", "image_extension",
    # catalog
    "PRICE_BRACKETS", "parse_price_bracket", "price_in_bracket",
    # callbacks
    "sign_callback_reference", "verify_callback_token",
    # normalisation
    "normalise_msisdn", "normalise_price", "normalise_amount", "validate_price", "sanitize_search_text",
    "sanitize_html_description", "validate_listing_title",
]
