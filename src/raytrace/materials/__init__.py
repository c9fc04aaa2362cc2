"""Materials module.

Components:
    material: Surface variants, the Material type and the material registry
    dielectric: Fresnel reflectance for transparent surfaces
"""

from .dielectric import fresnel
from .material import (
    MAX_MATERIALS,
    Diffuse,
    Material,
    Specular,
    SurfaceType,
    Transparent,
    add_material,
    clear_materials,
    get_material_count,
    material_from_dict,
    material_to_dict,
)

__all__ = [
    "Material",
    "Diffuse",
    "Specular",
    "Transparent",
    "SurfaceType",
    "MAX_MATERIALS",
    "add_material",
    "clear_materials",
    "get_material_count",
    "material_to_dict",
    "material_from_dict",
    "fresnel",
]
