"""Image conversion and export for rendered images.

Rendered colors are linear floats; channels outside [0, 1] are clipped and
scaled to 8 bits by truncation, with an opaque alpha channel. There is no
tone mapping or gamma correction.

Supported formats:
    - Anything Pillow can write with an RGBA image (PNG, TIFF, WebP, ...)
    - Formats without alpha (JPEG, BMP) are written as RGB

Example:
    >>> from src.raytrace.core.render import render
    >>> from src.raytrace.preview.export import save_png
    >>> pixels = render(scene)
    >>> save_png(pixels, "output.png")
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

# Formats Pillow writes without an alpha channel
_RGB_ONLY_EXTENSIONS = {".jpg", ".jpeg", ".bmp"}


def color_to_rgba8(colors: npt.NDArray[np.floating]) -> npt.NDArray[np.uint8]:
    """Convert linear RGB colors to 8-bit RGBA.

    Args:
        colors: Array of shape (..., 3) with linear color channels.

    Returns:
        Array of shape (..., 4), ``uint8``: ``clip(c, 0, 1) * 255``
        truncated, alpha 255.
    """
    colors = np.asarray(colors, dtype=np.float64)
    if colors.shape[-1] != 3:
        raise ValueError(f"Expected RGB colors in the last axis, got shape {colors.shape}")

    rgba = np.full(colors.shape[:-1] + (4,), 255, dtype=np.uint8)
    rgba[..., :3] = (np.clip(colors, 0.0, 1.0) * 255.0).astype(np.uint8)
    return rgba


def save_png(pixels: npt.NDArray[np.uint8], filepath: str | Path) -> None:
    """Save an RGBA8 image to a file.

    The format is chosen by Pillow from the file extension; despite the
    name, any extension Pillow knows works.

    Args:
        pixels: Image of shape (height, width, 4), ``uint8``.
        filepath: Output file path.

    Raises:
        ValueError: If the image does not have shape (height, width, 4) or
            the extension is unknown to Pillow.
        OSError: If the file cannot be written.
    """
    pixels = np.asarray(pixels)
    if pixels.ndim != 3 or pixels.shape[2] != 4:
        raise ValueError(f"Expected an RGBA image of shape (H, W, 4), got {pixels.shape}")

    pil_image = PILImage.fromarray(pixels.astype(np.uint8))
    if Path(filepath).suffix.lower() in _RGB_ONLY_EXTENSIONS:
        pil_image = pil_image.convert("RGB")
    pil_image.save(filepath)
