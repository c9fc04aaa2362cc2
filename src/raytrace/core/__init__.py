"""Core rendering module.

Components:
    vector: vec3 type and vector algebra
    ray: Ray data structure, reflection and transmission rays
    integrator: Whitted-style shading with an explicit ray stack
    render: Tiled render loop producing RGBA8 images

All compute-intensive operations use Taichi kernels.
"""

from .ray import Ray, bias_ray, create_reflection, create_transmission, make_ray, ray_at, reflect
from .vector import T_MAX, cross, dot, magnitude, magnitude_squared, normalize, to_vec3_tuple, vec3

# integrator and render are NOT imported here: they declare the large ray
# stack fields. Import them from src.raytrace.core.integrator or
# src.raytrace.core.render when needed.

__all__ = [
    "vec3",
    "T_MAX",
    "dot",
    "cross",
    "magnitude",
    "magnitude_squared",
    "normalize",
    "to_vec3_tuple",
    "Ray",
    "ray_at",
    "make_ray",
    "bias_ray",
    "reflect",
    "create_reflection",
    "create_transmission",
]
