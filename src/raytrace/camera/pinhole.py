"""Pinhole camera producing one primary ray per pixel.

The camera sits at the origin looking down the negative z-axis. A virtual
sensor plane at unit distance is scaled by the field of view and the image
aspect ratio; each pixel center on that plane defines one primary ray.

For pixel ``(x, y)`` (x to the right, y downward):
    sensor_x = ((x + 0.5) / width * 2 - 1) * aspect_ratio * tan(fov / 2)
    sensor_y = (1 - (y + 0.5) / height * 2) * tan(fov / 2)
    direction = normalize(sensor_x, sensor_y, -1)

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.raytrace.camera.pinhole import Camera, setup_camera, get_prime_ray
    >>> setup_camera(Camera(width=640, height=480, fov=90.0))
    >>> # Inside a kernel:
    >>> # ray = get_prime_ray(x, y)
"""

import math
from dataclasses import dataclass

import taichi as ti

from src.raytrace.core.ray import Ray, make_ray
from src.raytrace.core.vector import normalize, vec3

# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass
class Camera:
    """Camera projection parameters.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        fov: Field of view in degrees across the sensor height; the
            horizontal extent is stretched by the aspect ratio.
    """

    width: int = 1920
    height: int = 1080
    fov: float = 90.0

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"Camera dimensions must be positive, got {self.width}x{self.height}"
            )
        if not 0.0 < self.fov < 180.0:
            raise ValueError(f"Field of view must be in (0, 180) degrees, got {self.fov}")

    @property
    def pixels(self) -> int:
        """Total number of pixels on the sensor."""
        return self.width * self.height

    @property
    def aspect_ratio(self) -> float:
        """Width divided by height."""
        return self.width / self.height

    def to_dict(self) -> dict[str, float]:
        """Export to the scene file ``camera`` section."""
        return {"width": self.width, "height": self.height, "fov": self.fov}

    @classmethod
    def from_dict(cls, data: dict[str, float]) -> "Camera":
        """Build a camera from a scene file ``camera`` section."""
        defaults = cls()
        return cls(
            width=int(data.get("width", defaults.width)),
            height=int(data.get("height", defaults.height)),
            fov=float(data.get("fov", defaults.fov)),
        )


# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_camera_width = ti.field(dtype=ti.i32, shape=())
_camera_height = ti.field(dtype=ti.i32, shape=())
_fov_adjustment = ti.field(dtype=ti.f64, shape=())
_aspect_ratio = ti.field(dtype=ti.f64, shape=())


def setup_camera(camera: Camera) -> None:
    """Upload camera parameters to the Taichi fields.

    Must be called before rendering and again whenever the camera changes.

    Args:
        camera: Camera configuration.
    """
    _camera_width[None] = camera.width
    _camera_height[None] = camera.height
    _fov_adjustment[None] = math.tan(math.radians(camera.fov) / 2.0)
    _aspect_ratio[None] = camera.aspect_ratio


# =============================================================================
# Ray Generation
# =============================================================================


@ti.func
def get_prime_ray(x: ti.i32, y: ti.i32) -> Ray:
    """Generate the primary ray through the center of pixel ``(x, y)``.

    Args:
        x: Pixel column (0 = left).
        y: Pixel row (0 = top).

    Returns:
        A ray starting at the origin with a normalized direction.
    """
    width = ti.cast(_camera_width[None], ti.f64)
    height = ti.cast(_camera_height[None], ti.f64)
    fov_adjustment = _fov_adjustment[None]

    sensor_x = ((ti.cast(x, ti.f64) + 0.5) / width * 2.0 - 1.0) * _aspect_ratio[None] * fov_adjustment
    sensor_y = (1.0 - ((ti.cast(y, ti.f64) + 0.5) / height) * 2.0) * fov_adjustment

    return make_ray(vec3(0.0, 0.0, 0.0), normalize(vec3(sensor_x, sensor_y, -1.0)))


def get_camera_info() -> dict[str, float]:
    """Get the uploaded camera state for debugging.

    Returns:
        Dictionary with width, height, fov_adjustment and aspect_ratio.
    """
    return {
        "width": int(_camera_width[None]),
        "height": int(_camera_height[None]),
        "fov_adjustment": float(_fov_adjustment[None]),
        "aspect_ratio": float(_aspect_ratio[None]),
    }
