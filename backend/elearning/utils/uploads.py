"""Upload checks for user supplied images."""

import io
import uuid
from pathlib import Path

from PIL import Image, UnidentifiedImageError

# Pillow format name -> file extension
ALLOWED_IMAGE_FORMATS = {'JPEG': 'jpg', 'PNG': 'png', 'GIF': 'gif', 'WEBP': 'webp'}


def validate_filename(filename: str) -> None:
    if not filename or len(filename) > 200:
        raise ValueError('invalid filename')
    if '/' in filename or '\\' in filename:
        raise ValueError('invalid filename path')


def sniff_image(payload: bytes, max_bytes: int) -> str:
    """Verify `payload` is a supported image and return its extension.

    The content is inspected with Pillow; the client supplied content type
    and filename are not trusted.
    """
    if not payload:
        raise ValueError('empty file')
    if len(payload) > max_bytes:
        raise ValueError('file too large')
    try:
        with Image.open(io.BytesIO(payload)) as img:
            fmt = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError):
        raise ValueError('unsupported file content; expected an image')
    if fmt not in ALLOWED_IMAGE_FORMATS:
        raise ValueError(f'unsupported image format: {fmt}')
    return ALLOWED_IMAGE_FORMATS[fmt]


def store_avatar(payload: bytes, ext: str, user_id: int, directory: Path) -> str:
    """Write the avatar under `directory` and return the stored filename."""
    directory.mkdir(parents=True, exist_ok=True)
    name = f'{user_id}-{uuid.uuid4().hex[:12]}.{ext}'
    (directory / name).write_bytes(payload)
    return name
