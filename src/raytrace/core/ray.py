"""Ray data structure and secondary ray construction.

Rays are immutable values: reflection, transmission and bias offsets always
build a new ray instead of modifying an existing one. All functions are
Taichi functions meant to be called from within kernels.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.raytrace.core.ray import Ray, ray_at
    >>> # Inside a kernel:
    >>> # ray = Ray(origin=vec3(0.0), direction=vec3(0.0, 0.0, -1.0))
    >>> # point = ray_at(ray, 5.0)
"""

import taichi as ti

from src.raytrace.core.vector import dot, normalize, vec3


@ti.dataclass
class Ray:
    """A ray with an origin point and a unit direction.

    Attributes:
        origin: The starting point of the ray.
        direction: The normalized direction of travel.
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f64) -> vec3:
    """Compute the point ``origin + direction * t`` along the ray."""
    return ray.origin + ray.direction * t


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray from origin and direction."""
    return Ray(origin=origin, direction=direction)


@ti.func
def bias_ray(ray: Ray, bias: ti.f64) -> Ray:
    """Move the ray origin ``bias`` units along its own direction.

    Used to keep secondary rays from re-intersecting the surface they start
    on because of floating-point rounding.
    """
    return Ray(origin=ray.origin + ray.direction * bias, direction=ray.direction)


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Mirror an incident direction about a unit normal."""
    return incident - normal * dot(incident, normal) * 2.0


@ti.func
def create_reflection(normal: vec3, incident: vec3, hit: vec3, bias: ti.f64) -> Ray:
    """Create the mirror reflection ray leaving a hit point.

    Args:
        normal: Surface normal at the hit point.
        incident: Direction of the incoming ray.
        hit: The intersection point.
        bias: Offset applied along the reflected direction.

    Returns:
        The biased reflection ray.
    """
    return bias_ray(make_ray(hit, reflect(incident, normal)), bias)


@ti.func
def create_transmission(normal: vec3, incident: vec3, hit: vec3, index: ti.f64, bias: ti.f64):
    """Create the refracted ray passing through a surface (Snell's law).

    When the incident direction points along the normal the ray is leaving
    the medium: the normal is flipped and the refractive indices swapped.

    Args:
        normal: Outward surface normal at the hit point.
        incident: Direction of the incoming ray (normalized).
        hit: The intersection point.
        index: Refractive index of the medium behind the surface.
        bias: Offset applied against the (possibly flipped) normal.

    Returns:
        A tuple ``(origin, direction, valid)``. ``valid`` is 0 on total
        internal reflection, in which case the ray must not be traced.
    """
    ref_n = normal
    eta_i = 1.0
    eta_t = index
    i_dot_n = dot(incident, normal)
    if i_dot_n < 0.0:
        # Outside the surface
        i_dot_n = -i_dot_n
    else:
        # Inside the surface
        ref_n = -normal
        eta_i = index
        eta_t = 1.0

    eta = eta_i / eta_t
    k = 1.0 - (eta * eta) * (1.0 - i_dot_n * i_dot_n)

    valid = 0
    origin = hit
    direction = vec3(0.0, 0.0, 0.0)
    if k >= 0.0:
        valid = 1
        origin = hit - ref_n * bias
        direction = normalize((incident + ref_n * i_dot_n) * eta - ref_n * ti.sqrt(k))
    return origin, direction, valid
