"""Utility functions."""

from .images import (
    decode_data_url,
    detect_mime_type,
    fetch_image,
    is_data_url,
    load_image_reference,
    normalize_to_png,
    to_data_url,
)

__all__ = [
    "decode_data_url",
    "detect_mime_type",
    "fetch_image",
    "is_data_url",
    "load_image_reference",
    "normalize_to_png",
    "to_data_url",
]
