"""Light sources: directional (sun-like) and spherical (point) lights."""

from .light import (
    MAX_LIGHTS,
    DirectionalLight,
    LightType,
    SphericalLight,
    add_light,
    clear_lights,
    get_light_count,
    light_from_dict,
    light_to_dict,
)

__all__ = [
    "DirectionalLight",
    "SphericalLight",
    "LightType",
    "MAX_LIGHTS",
    "add_light",
    "clear_lights",
    "get_light_count",
    "light_to_dict",
    "light_from_dict",
]
