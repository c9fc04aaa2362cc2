"""Light sources and light registry.

Two kinds of lights are supported:

    DirectionalLight   parallel rays from infinitely far away (sunlight);
                       constant intensity, infinite distance
    SphericalLight     point emitter; intensity falls off with the inverse
                       square of the distance, spread over a sphere:
                       intensity / (4 * pi * d^2)

Lights are stored in structure-of-arrays Taichi fields. Directional and
spherical parameters share the ``light_vectors`` field: the (normalized)
direction for directional lights, the position for spherical ones.

Example:
    >>> from src.raytrace.lights.light import SphericalLight, add_light
    >>> add_light(SphericalLight(position=(0, 3, -4), color=(1, 1, 1), intensity=800))
    0
"""

import math
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Union

import taichi as ti
import taichi.math as tm

from src.raytrace.core.vector import T_MAX, magnitude, normalize, to_vec3_tuple, vec3


class LightType(IntEnum):
    """Light kind tag used for dispatch inside kernels."""

    DIRECTIONAL = 0
    SPHERICAL = 1


@dataclass(frozen=True)
class DirectionalLight:
    """A light infinitely far away shining along ``direction``.

    Attributes:
        direction: Direction the light travels in. Normalized on upload.
        color: RGB color of the light.
        intensity: Irradiance scale, independent of distance.
    """

    direction: tuple[float, float, float] = (0.0, -1.0, 0.0)
    color: tuple[float, float, float] = (1.0, 1.0, 1.0)
    intensity: float = 1.0

    def __post_init__(self) -> None:
        direction = to_vec3_tuple(self.direction, "Light direction")
        if direction == (0.0, 0.0, 0.0):
            raise ValueError("Light direction must not be the zero vector")
        object.__setattr__(self, "direction", direction)
        object.__setattr__(self, "color", to_vec3_tuple(self.color, "Light color"))
        if self.intensity < 0.0:
            raise ValueError(f"Light intensity must be non-negative, got {self.intensity}")


@dataclass(frozen=True)
class SphericalLight:
    """A point light radiating equally in all directions.

    Attributes:
        position: World-space position of the emitter.
        color: RGB color of the light.
        intensity: Total emitted power; divided by ``4 pi d^2`` at a point.
    """

    position: tuple[float, float, float] = (0.0, 0.0, 0.0)
    color: tuple[float, float, float] = (1.0, 1.0, 1.0)
    intensity: float = 1.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "position", to_vec3_tuple(self.position, "Light position"))
        object.__setattr__(self, "color", to_vec3_tuple(self.color, "Light color"))
        if self.intensity < 0.0:
            raise ValueError(f"Light intensity must be non-negative, got {self.intensity}")


Light = Union[DirectionalLight, SphericalLight]


def _normalized(values: tuple[float, float, float]) -> list[float]:
    length = math.sqrt(sum(v * v for v in values))
    return [v / length for v in values]


def light_to_dict(light: Light) -> dict[str, Any]:
    """Export a light to its scene file form."""
    if isinstance(light, DirectionalLight):
        return {
            "type": "directional",
            "direction": list(light.direction),
            "color": list(light.color),
            "intensity": light.intensity,
        }
    return {
        "type": "spherical",
        "position": list(light.position),
        "color": list(light.color),
        "intensity": light.intensity,
    }


def light_from_dict(data: dict[str, Any]) -> Light:
    """Build a light from its scene file form.

    Raises:
        ValueError: For unknown light types or invalid parameters.
    """
    light_type = str(data.get("type", "")).lower()
    color = data.get("color", (1.0, 1.0, 1.0))
    intensity = float(data.get("intensity", 1.0))
    if light_type == "directional":
        return DirectionalLight(
            direction=data.get("direction", (0.0, -1.0, 0.0)), color=color, intensity=intensity
        )
    if light_type == "spherical":
        return SphericalLight(
            position=data.get("position", (0.0, 0.0, 0.0)), color=color, intensity=intensity
        )
    raise ValueError(f"Unknown light type: {light_type!r}")


# =============================================================================
# Light Field Storage
# =============================================================================

MAX_LIGHTS = 256

light_types = ti.field(dtype=ti.i32, shape=MAX_LIGHTS)
light_vectors = ti.Vector.field(3, dtype=ti.f64, shape=MAX_LIGHTS)
light_colors = ti.Vector.field(3, dtype=ti.f64, shape=MAX_LIGHTS)
light_intensities = ti.field(dtype=ti.f64, shape=MAX_LIGHTS)
num_lights = ti.field(dtype=ti.i32, shape=())


def clear_lights() -> None:
    """Clear all registered lights."""
    num_lights[None] = 0


def add_light(light: Light) -> int:
    """Register a light in the Taichi fields.

    Args:
        light: A DirectionalLight or SphericalLight.

    Returns:
        The index of the added light.

    Raises:
        RuntimeError: If the maximum number of lights is exceeded.
        ValueError: If ``light`` is not a known light type.
    """
    idx = num_lights[None]
    if idx >= MAX_LIGHTS:
        raise RuntimeError(f"Maximum number of lights ({MAX_LIGHTS}) exceeded")

    if isinstance(light, DirectionalLight):
        light_types[idx] = int(LightType.DIRECTIONAL)
        light_vectors[idx] = _normalized(light.direction)
    elif isinstance(light, SphericalLight):
        light_types[idx] = int(LightType.SPHERICAL)
        light_vectors[idx] = list(light.position)
    else:
        raise ValueError(f"Unknown light: {light!r}")

    light_colors[idx] = list(light.color)
    light_intensities[idx] = light.intensity
    num_lights[None] = idx + 1
    return idx


def get_light_count() -> int:
    """Get the number of registered lights."""
    return int(num_lights[None])


# =============================================================================
# Light queries (kernel scope)
# =============================================================================


@ti.func
def light_direction_from(light_id: ti.i32, point: vec3) -> vec3:
    """Unit direction from ``point`` toward the light."""
    result = -light_vectors[light_id]
    if light_types[light_id] == int(LightType.SPHERICAL):
        result = normalize(light_vectors[light_id] - point)
    return result


@ti.func
def light_intensity(light_id: ti.i32, point: vec3) -> ti.f64:
    """Intensity of the light arriving at ``point``."""
    result = light_intensities[light_id]
    if light_types[light_id] == int(LightType.SPHERICAL):
        offset = light_vectors[light_id] - point
        r2 = offset.dot(offset)
        result = light_intensities[light_id] / (4.0 * tm.pi * r2)
    return result


@ti.func
def light_distance(light_id: ti.i32, point: vec3) -> ti.f64:
    """Distance from ``point`` to the light (T_MAX for directional lights)."""
    result = T_MAX
    if light_types[light_id] == int(LightType.SPHERICAL):
        result = magnitude(light_vectors[light_id] - point)
    return result


@ti.func
def light_color(light_id: ti.i32) -> vec3:
    return light_colors[light_id]
