"""Tiled render loop.

Every pixel is independent: pixel index ``i`` in ``[0, width * height)``
maps to column ``x = i // height`` and row ``y = i % height``. The index
range is cut into tiles of consecutive indices; each tile is one parallel
kernel launch whose colors are copied into the image at their own indices.
The output therefore does not depend on the tile size, the order in which
tiles are rendered or the number of Taichi threads.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.raytrace.core.render import render
    >>> from src.raytrace.scene.presets import create_default_scene
    >>> scene = create_default_scene(width=320, height=240)
    >>> pixels = render(scene, callback=lambda done, total: print(done, total))
    >>> pixels.shape
    (240, 320, 4)
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt

from src.raytrace.core.integrator import MAX_TILE_SIZE, get_tile_colors, render_tile
from src.raytrace.preview.export import color_to_rgba8, save_png

if TYPE_CHECKING:
    from pathlib import Path

    from src.raytrace.scene.manager import SceneManager

logger = logging.getLogger(__name__)

# Type alias for progress callback
# Callback receives (rendered_pixels, total_pixels)
ProgressCallback = Callable[[int, int], None]

DEFAULT_TILE_SIZE = 1024


def _tile_schedule(num_tiles: int, tile_order: Sequence[int] | None) -> list[int]:
    if tile_order is None:
        return list(range(num_tiles))
    order = [int(t) for t in tile_order]
    if sorted(order) != list(range(num_tiles)):
        raise ValueError(f"tile_order must be a permutation of range({num_tiles})")
    return order


def render(
    scene: SceneManager,
    *,
    tile_size: int = DEFAULT_TILE_SIZE,
    tile_order: Sequence[int] | None = None,
    callback: ProgressCallback | None = None,
) -> npt.NDArray[np.uint8]:
    """Render a scene to an RGBA8 image.

    Args:
        scene: The scene to render; it is activated first.
        tile_size: Pixels per kernel launch. Values above MAX_TILE_SIZE are
            clamped.
        tile_order: Optional permutation of the tile numbers giving the
            order in which tiles are rendered.
        callback: Optional callback invoked after every tile with
            (rendered_pixels, total_pixels).

    Returns:
        Array of shape (height, width, 4), ``uint8``.

    Raises:
        ValueError: If tile_size is not positive or tile_order is not a
            permutation of the tile numbers.
    """
    if tile_size <= 0:
        raise ValueError(f"Tile size must be positive, got {tile_size}")
    if tile_size > MAX_TILE_SIZE:
        logger.warning("Tile size %d clamped to %d", tile_size, MAX_TILE_SIZE)
        tile_size = MAX_TILE_SIZE

    scene.activate()
    if scene.get_light_count() == 0:
        logger.warning("Scene has no lights; every diffuse surface will render black")

    width, height = scene.camera.width, scene.camera.height
    total = width * height
    num_tiles = math.ceil(total / tile_size)
    schedule = _tile_schedule(num_tiles, tile_order)

    colors = np.zeros((total, 3), dtype=np.float64)
    done = 0
    for tile in schedule:
        start = tile * tile_size
        count = min(tile_size, total - start)
        render_tile(start, count, height)
        colors[start : start + count] = get_tile_colors(count)
        done += count
        if callback is not None:
            callback(done, total)

    # Index i holds (x, y) = (i // height, i % height)
    image = colors.reshape(width, height, 3).transpose(1, 0, 2)
    return color_to_rgba8(image)


class Renderer:
    """Repeated renders of one scene with fixed options.

    Attributes:
        scene: The scene to render.
        tile_size: Pixels per kernel launch.
    """

    def __init__(self, scene: SceneManager, tile_size: int = DEFAULT_TILE_SIZE) -> None:
        """Initialize the renderer.

        Raises:
            ValueError: If tile_size is not positive.
        """
        if tile_size <= 0:
            raise ValueError(f"Tile size must be positive, got {tile_size}")
        self.scene = scene
        self.tile_size = tile_size
        self._last_image: npt.NDArray[np.uint8] | None = None

    @property
    def width(self) -> int:
        """Get the image width."""
        return self.scene.camera.width

    @property
    def height(self) -> int:
        """Get the image height."""
        return self.scene.camera.height

    @property
    def num_tiles(self) -> int:
        """Number of kernel launches per render."""
        return math.ceil(self.width * self.height / min(self.tile_size, MAX_TILE_SIZE))

    def render(self, callback: ProgressCallback | None = None) -> npt.NDArray[np.uint8]:
        """Render the scene and keep the result as the last image."""
        self._last_image = render(self.scene, tile_size=self.tile_size, callback=callback)
        return self._last_image

    def get_image(self) -> npt.NDArray[np.uint8]:
        """Get the last rendered image.

        Raises:
            RuntimeError: If nothing has been rendered yet.
        """
        if self._last_image is None:
            raise RuntimeError("Nothing rendered yet. Call render() first.")
        return self._last_image

    def save(self, filepath: str | Path) -> None:
        """Save the last rendered image (see ``save_png``)."""
        save_png(self.get_image(), filepath)
