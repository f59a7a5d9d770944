"""Helpers for storing uploaded series images on disk."""

from __future__ import annotations

import io
from pathlib import Path
from uuid import uuid4

from PIL import Image, UnidentifiedImageError

SUPPORTED_FORMATS = {"PNG": "png", "JPEG": "jpg"}


def sniff_image_extension(payload: bytes) -> str:
    """Return the file extension for `payload` or raise ValueError.

    Only PNG and JPEG images are accepted.
    """
    try:
        with Image.open(io.BytesIO(payload)) as img:
            fmt = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError):
        raise ValueError("uploaded file is not a valid image")
    ext = SUPPORTED_FORMATS.get(fmt or "")
    if not ext:
        raise ValueError(f"unsupported image format: {fmt}")
    return ext


def store_image(payload: bytes, root: Path) -> str:
    """Write `payload` under `root` with a random name and return that name."""
    ext = sniff_image_extension(payload)
    root.mkdir(parents=True, exist_ok=True)
    name = f"{uuid4().hex}.{ext}"
    (root / name).write_bytes(payload)
    return name


def resolve_image(root: Path, name: str) -> Path | None:
    """Return the stored file for `name`, or None if it does not exist.

    Names containing path separators are rejected.
    """
    if not name or "/" in name or "\\" in name or name.startswith("."):
        return None
    path = root / name
    if not path.is_file():
        return None
    return path
