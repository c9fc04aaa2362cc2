"""Preview module for output and visualization.

Components:
    display: Matplotlib-based preview display
    export: RGBA8 conversion and image file export (Pillow)
"""

from src.raytrace.preview.display import show_preview
from src.raytrace.preview.export import color_to_rgba8, save_png

__all__ = [
    "show_preview",
    "color_to_rgba8",
    "save_png",
]
