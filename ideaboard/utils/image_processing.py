from __future__ import annotations

import io
from typing import cast

from PIL import Image, ImageOps


# Pillow format name -> payload format tag
PIL_FORMATS = {"PNG": "png", "JPEG": "jpeg", "GIF": "gif", "WEBP": "webp"}


def _ensure_rgb(img: Image.Image) -> Image.Image:
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        img = img.convert("RGBA")
        bg = Image.new("RGB", img.size, (255, 255, 255))
        bg.paste(img, mask=img.split()[-1])
        return bg
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


def decode_image(data: bytes) -> tuple[Image.Image, str | None]:
    """
    Decode raw bytes into a fully loaded image.

    Returns the image with EXIF orientation applied and the payload format tag
    of the source (``None`` when Pillow reports a format outside png/jpeg/gif/webp).
    Raises whatever Pillow raises for undecodable input.
    """
    img = cast(Image.Image, Image.open(io.BytesIO(data)))
    img.load()
    source_format = PIL_FORMATS.get((img.format or "").upper())
    # Fix EXIF orientation if present
    try:
        img = ImageOps.exif_transpose(img)
    except Exception:
        pass
    return img, source_format


def bounded_size(width: int, height: int, max_dim: int) -> tuple[int, int]:
    """Scale (width, height) so the longer side equals max_dim; smaller sizes pass through."""
    if width <= max_dim and height <= max_dim:
        return width, height
    if width >= height:
        return max_dim, max(1, round(height * max_dim / width))
    return max(1, round(width * max_dim / height)), max_dim


def constrain_image(img: Image.Image, max_dim: int) -> tuple[Image.Image, bool]:
    w, h = img.size
    target = bounded_size(w, h, max_dim)
    if target == (w, h):
        return img, False
    # P and 1 mode images are resampled with NEAREST by Pillow regardless
    return img.resize(target, Image.Resampling.LANCZOS), True


def encode_image(img: Image.Image, fmt: str, *, quality: float) -> bytes:
    """
    Encode an image as png/jpeg/gif/webp.

    ``quality`` is a 0..1 factor; lossless formats ignore it and are optimized instead.
    """
    buf = io.BytesIO()
    q = max(1, min(100, int(round(quality * 100))))
    if fmt == "jpeg":
        _ensure_rgb(img).save(buf, format="JPEG", quality=q, optimize=True)
    elif fmt == "webp":
        if img.mode not in ("RGB", "RGBA"):
            img = img.convert("RGBA")
        img.save(buf, format="WEBP", quality=q)
    elif fmt == "png":
        img.save(buf, format="PNG", optimize=True)
    elif fmt == "gif":
        img.save(buf, format="GIF", optimize=True)
    else:
        raise ValueError(f"Unsupported target format: {fmt}")
    return buf.getvalue()
