from __future__ import annotations

import io
from typing import Tuple

from PIL import Image, ImageOps

LANDSCAPE = (1024, 576)
PORTRAIT = (576, 1024)
SQUARE = (768, 768)
MAX_EDIT_SIDE = 1536


def video_frame_size(width: int, height: int) -> Tuple[int, int]:
    """Target size accepted by image-to-video for this aspect ratio."""
    if width > height:
        return LANDSCAPE
    if width < height:
        return PORTRAIT
    return SQUARE


def _to_png(img: Image.Image) -> bytes:
    if img.mode not in ("RGB", "RGBA"):
        img = img.convert("RGBA")
    out = io.BytesIO()
    img.save(out, format="PNG")
    return out.getvalue()


def resize_for_video(data: bytes) -> bytes:
    """Center-crop and scale to the nearest supported frame size, as PNG."""
    with Image.open(io.BytesIO(data)) as img:
        if not img.width or not img.height:
            raise ValueError("Could not determine image dimensions")
        target = video_frame_size(img.width, img.height)
        fitted = ImageOps.fit(img, target, method=Image.Resampling.LANCZOS, centering=(0.5, 0.5))
        return _to_png(fitted)


def resize_for_edit(data: bytes, max_side: int = MAX_EDIT_SIDE) -> bytes:
    """Downscale so the longest side is at most ``max_side``; re-encode as PNG."""
    with Image.open(io.BytesIO(data)) as img:
        img.load()
        if max(img.width, img.height) > max_side:
            img.thumbnail((max_side, max_side), Image.Resampling.LANCZOS)
        return _to_png(img)
