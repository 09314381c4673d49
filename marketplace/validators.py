"""
Custom validators for marketplace models.
"""

from django.core.exceptions import ValidationError
from django.core.validators import URLValidator


MAX_PHOTOS = 5

_url_validator = URLValidator(schemes=['http', 'https'])


def validate_positive_price(value):
    """
    Validate that a price is strictly greater than zero.

    Raises:
        ValidationError: If price is zero or negative
    """
    if value is not None and value <= 0:
        raise ValidationError(
            'Price must be greater than 0.',
            code='invalid_price'
        )


def validate_photo_urls(value):
    """
    Validate a list of photo URLs.

    Checks:
    - Value is a list
    - At most 5 entries
    - Every entry is an http(s) URL

    Raises:
        ValidationError: If any check fails
    """
    if value in (None, ''):
        return

    if not isinstance(value, list):
        raise ValidationError(
            'Photos must be a list of URLs.',
            code='invalid_photos'
        )

    if len(value) > MAX_PHOTOS:
        raise ValidationError(
            f'Cannot attach more than {MAX_PHOTOS} photos.',
            code='too_many_photos'
        )

    for url in value:
        if not isinstance(url, str):
            raise ValidationError(
                'Photos must be a list of URLs.',
                code='invalid_photos'
            )
        try:
            _url_validator(url)
        except ValidationError:
            raise ValidationError(
                f'Invalid photo URL: {url}',
                code='invalid_photo_url'
            )


def validate_evidence_text(value):
    """Dispute evidence needs at least 10 non-blank characters."""
    if not value or len(value.strip()) < 10:
        raise ValidationError(
            'Evidence must be at least 10 characters.',
            code='evidence_too_short'
        )
