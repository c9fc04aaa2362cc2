"""Material model and material registry.

A material is a base color, an albedo (diffusely reflected fraction of
incident light) and one of three surface variants:

    Diffuse()                              Lambertian shading only
    Specular(reflectivity)                 diffuse blended with a mirror term
    Transparent(index, transparency)       Fresnel-weighted reflection and refraction

The variants form a closed set; kernels dispatch on the ``SurfaceType`` tag
stored next to the variant parameters in structure-of-arrays fields.

Example:
    >>> from src.raytrace.materials.material import Material, Specular, add_material
    >>> mirror = Material(color=(0.5, 0.5, 0.5), albedo=0.25, surface=Specular(0.7))
    >>> material_id = add_material(mirror)
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Union

import taichi as ti

from src.raytrace.core.vector import to_vec3_tuple, vec3


class SurfaceType(IntEnum):
    """Tag of the surface variant, used for dispatch inside kernels."""

    DIFFUSE = 0
    SPECULAR = 1
    TRANSPARENT = 2


@dataclass(frozen=True)
class Diffuse:
    """Purely diffuse (Lambertian) surface."""


@dataclass(frozen=True)
class Specular:
    """Diffuse surface with a mirror reflection component.

    Attributes:
        reflectivity: Fraction of the final color taken from the mirror
            reflection, in [0, 1].
    """

    reflectivity: float = 0.5

    def __post_init__(self) -> None:
        if not 0.0 <= self.reflectivity <= 1.0:
            raise ValueError(f"Reflectivity must be in [0, 1], got {self.reflectivity}")


@dataclass(frozen=True)
class Transparent:
    """Dielectric surface that reflects and refracts.

    Attributes:
        index: Refractive index of the medium (glass is about 1.5).
        transparency: Fraction of light passed on, in [0, 1].
    """

    index: float = 1.5
    transparency: float = 1.0

    def __post_init__(self) -> None:
        if self.index <= 0.0:
            raise ValueError(f"Refractive index must be positive, got {self.index}")
        if not 0.0 <= self.transparency <= 1.0:
            raise ValueError(f"Transparency must be in [0, 1], got {self.transparency}")


Surface = Union[Diffuse, Specular, Transparent]


@dataclass(frozen=True)
class Material:
    """Surface appearance of an entity.

    Attributes:
        color: Base RGB color. Channels are not clamped until output.
        albedo: Diffuse reflectance fraction in [0, 1].
        surface: The surface variant.
    """

    color: tuple[float, float, float] = (1.0, 0.4, 0.0)
    albedo: float = 0.5
    surface: Surface = field(default_factory=Diffuse)

    def __post_init__(self) -> None:
        object.__setattr__(self, "color", to_vec3_tuple(self.color, "Material color"))
        if not 0.0 <= self.albedo <= 1.0:
            raise ValueError(f"Albedo must be in [0, 1], got {self.albedo}")
        if not isinstance(self.surface, (Diffuse, Specular, Transparent)):
            raise ValueError(f"Unknown surface variant: {self.surface!r}")

    @property
    def surface_type(self) -> SurfaceType:
        """The dispatch tag for this material's surface."""
        return surface_type_of(self.surface)


def surface_type_of(surface: Surface) -> SurfaceType:
    """Map a surface variant to its dispatch tag."""
    if isinstance(surface, Diffuse):
        return SurfaceType.DIFFUSE
    if isinstance(surface, Specular):
        return SurfaceType.SPECULAR
    if isinstance(surface, Transparent):
        return SurfaceType.TRANSPARENT
    raise ValueError(f"Unknown surface variant: {surface!r}")


# =============================================================================
# Serialization (scene file schema)
# =============================================================================


def surface_to_dict(surface: Surface) -> dict[str, Any]:
    """Export a surface variant to its scene file form."""
    if isinstance(surface, Specular):
        return {"type": "specular", "reflectivity": surface.reflectivity}
    if isinstance(surface, Transparent):
        return {"type": "transparent", "index": surface.index, "transparency": surface.transparency}
    return {"type": "diffuse"}


def surface_from_dict(data: dict[str, Any]) -> Surface:
    """Build a surface variant from its scene file form.

    Raises:
        ValueError: For unknown surface types or invalid parameters.
    """
    surface_type = str(data.get("type", "diffuse")).lower()
    if surface_type == "diffuse":
        return Diffuse()
    if surface_type == "specular":
        return Specular(reflectivity=float(data.get("reflectivity", 0.5)))
    if surface_type == "transparent":
        return Transparent(
            index=float(data.get("index", 1.5)),
            transparency=float(data.get("transparency", 1.0)),
        )
    raise ValueError(f"Unknown surface type: {surface_type}")


def material_to_dict(material: Material) -> dict[str, Any]:
    """Export a material to its scene file form."""
    return {
        "color": list(material.color),
        "albedo": material.albedo,
        "surface": surface_to_dict(material.surface),
    }


def material_from_dict(data: dict[str, Any]) -> Material:
    """Build a material from its scene file form, filling in defaults."""
    defaults = Material()
    return Material(
        color=to_vec3_tuple(data.get("color", defaults.color), "Material color"),
        albedo=float(data.get("albedo", defaults.albedo)),
        surface=surface_from_dict(data.get("surface", {"type": "diffuse"})),
    )


# =============================================================================
# Material Field Storage
# =============================================================================

MAX_MATERIALS = 1024

material_colors = ti.Vector.field(3, dtype=ti.f64, shape=MAX_MATERIALS)
material_albedos = ti.field(dtype=ti.f64, shape=MAX_MATERIALS)
material_surfaces = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
material_reflectivities = ti.field(dtype=ti.f64, shape=MAX_MATERIALS)
material_indices = ti.field(dtype=ti.f64, shape=MAX_MATERIALS)
material_transparencies = ti.field(dtype=ti.f64, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def clear_materials() -> None:
    """Clear all registered materials.

    Only the count is reset; stale field data is overwritten on reuse.
    """
    num_materials[None] = 0


def add_material(material: Material) -> int:
    """Register a material in the Taichi fields.

    Args:
        material: The material to upload.

    Returns:
        The material ID used by entities and kernels.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
    """
    idx = num_materials[None]
    if idx >= MAX_MATERIALS:
        raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

    reflectivity = 0.0
    index = 1.0
    transparency = 0.0
    surface = material.surface
    if isinstance(surface, Specular):
        reflectivity = surface.reflectivity
    elif isinstance(surface, Transparent):
        index = surface.index
        transparency = surface.transparency

    material_colors[idx] = list(material.color)
    material_albedos[idx] = material.albedo
    material_surfaces[idx] = int(material.surface_type)
    material_reflectivities[idx] = reflectivity
    material_indices[idx] = index
    material_transparencies[idx] = transparency
    num_materials[None] = idx + 1
    return idx


def get_material_count() -> int:
    """Get the number of registered materials."""
    return int(num_materials[None])


@ti.func
def get_material_color(material_id: ti.i32) -> vec3:
    """Base color of a material."""
    return material_colors[material_id]


@ti.func
def get_material_albedo(material_id: ti.i32) -> ti.f64:
    """Albedo of a material."""
    return material_albedos[material_id]


@ti.func
def get_material_surface(material_id: ti.i32) -> ti.i32:
    """SurfaceType tag of a material."""
    return material_surfaces[material_id]
