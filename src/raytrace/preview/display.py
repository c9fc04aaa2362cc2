"""Matplotlib-based preview display for rendered images.

Example:
    >>> from src.raytrace.core.render import render
    >>> from src.raytrace.preview.display import show_preview
    >>> pixels = render(scene)
    >>> show_preview(pixels, title="balls.json")
"""

from __future__ import annotations

import numpy as np
import numpy.typing as npt


def show_preview(
    pixels: npt.NDArray[np.uint8],
    *,
    title: str | None = None,
    figsize: tuple[float, float] = (8, 6),
    block: bool = True,
) -> None:
    """Display a rendered image as a Matplotlib figure.

    Args:
        pixels: RGBA8 image of shape (height, width, 4).
        title: Figure title (default shows the image size).
        figsize: Figure size in inches (width, height).
        block: Whether to block execution until the figure is closed.
    """
    import matplotlib.pyplot as plt

    height, width = pixels.shape[:2]

    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.imshow(pixels, interpolation="nearest")
    ax.axis("off")
    ax.set_title(title if title is not None else f"Render Preview - {width}x{height}")

    plt.tight_layout()
    plt.show(block=block)
