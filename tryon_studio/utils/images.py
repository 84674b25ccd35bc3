"""Image reference helpers: data URLs, downloads and PNG normalisation."""

import base64
import binascii
import io
from urllib.parse import urlparse

import httpx
from PIL import Image, UnidentifiedImageError


def detect_mime_type(data: bytes, fallback: str = "image/png") -> str:
    """Detect image format from magic bytes."""
    if data[:3] == b'\xff\xd8\xff':
        return "image/jpeg"
    if data[:8] == b'\x89PNG\r\n\x1a\n':
        return "image/png"
    if data[:4] == b'RIFF' and data[8:12] == b'WEBP':
        return "image/webp"
    if data[:6] in (b'GIF87a', b'GIF89a'):
        return "image/gif"
    return fallback


def is_data_url(reference: str) -> bool:
    return reference.startswith("data:")


def to_data_url(data: bytes, mime_type: str | None = None) -> str:
    """Encode raw image bytes as a base64 data URL."""
    mime_type = mime_type or detect_mime_type(data)
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def decode_data_url(reference: str) -> tuple[bytes, str]:
    """Decode a data URL (or bare base64) into bytes and its mime type.

    Raises:
        ValueError: if the payload is not valid base64
    """
    mime_type = None
    encoded = reference
    if is_data_url(reference):
        # e.g. "data:image/png;base64,iVBOR..."
        header, encoded = reference.split(",", 1)
        mime_type = header[len("data:"):].split(";", 1)[0] or None
    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64 image data: {e}") from e
    return data, mime_type or detect_mime_type(data)


def normalize_to_png(data: bytes) -> bytes:
    """Re-encode an image as PNG, flattening palette and alpha modes to RGB.

    Raises:
        ValueError: if the bytes are not a readable image
    """
    try:
        img = Image.open(io.BytesIO(data))
        if img.mode in ('RGBA', 'P', 'LA'):
            img = img.convert('RGB')
        output = io.BytesIO()
        img.save(output, format='PNG')
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"Unreadable image: {e}") from e
    return output.getvalue()


async def fetch_image(url: str, client: httpx.AsyncClient | None = None) -> tuple[bytes, str]:
    """Download an image, returning its bytes and mime type.

    Sends browser-like headers, which some garment CDNs require.
    """
    parsed = urlparse(url)
    origin = f"{parsed.scheme}://{parsed.netloc}"
    headers = {
        "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "Accept": "image/avif,image/webp,image/apng,image/svg+xml,image/*,*/*;q=0.8",
        "Referer": origin + "/",
    }

    if client is None:
        async with httpx.AsyncClient(timeout=30.0) as own_client:
            response = await own_client.get(url, headers=headers, follow_redirects=True)
    else:
        response = await client.get(url, headers=headers, follow_redirects=True)
    response.raise_for_status()

    content_type = response.headers.get("content-type", "").split(";", 1)[0].strip()
    data = response.content
    mime_type = content_type if content_type.startswith("image/") else detect_mime_type(data)
    return data, mime_type


async def load_image_reference(reference: str, client: httpx.AsyncClient | None = None) -> tuple[bytes, str]:
    """Resolve a data URL or http(s) URL to image bytes and mime type."""
    if is_data_url(reference):
        return decode_data_url(reference)
    if reference.startswith(("http://", "https://")):
        return await fetch_image(reference, client)
    raise ValueError(f"Unsupported image reference: {reference[:40]}")
