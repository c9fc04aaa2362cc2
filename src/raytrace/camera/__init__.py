"""Camera module for primary ray generation."""

from .pinhole import Camera, get_camera_info, get_prime_ray, setup_camera

__all__ = [
    "Camera",
    "setup_camera",
    "get_prime_ray",
    "get_camera_info",
]
