"""Sphere primitive with ray-sphere intersection.

The intersection projects the center-to-origin vector onto the ray
direction and compares the squared perpendicular distance with the squared
radius. Of the two roots the nearest non-negative one is returned; when the
ray starts inside the sphere only the far root is non-negative.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.raytrace.geometry.sphere import Sphere, hit_sphere
    >>> # Inside a kernel:
    >>> # rec = hit_sphere(origin, direction, Sphere(center=vec3(0, 0, -5), radius=1.0))
"""

import taichi as ti

from src.raytrace.core.vector import dot, normalize, vec3


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere.
        radius: The radius of the sphere (positive).
    """

    center: vec3
    radius: ti.f64


@ti.dataclass
class HitRecord:
    """Result of a ray-primitive intersection test.

    Shared by every primitive so the scene scan can treat them uniformly.

    Attributes:
        hit: 1 if the ray intersected the primitive, 0 otherwise.
        t: Distance along the ray to the hit point. Only valid if hit == 1.
        normal: Unit surface normal at the hit point. Only valid if hit == 1.
    """

    hit: ti.i32
    t: ti.f64
    normal: vec3


@ti.func
def make_miss() -> HitRecord:
    """Create a HitRecord indicating no intersection."""
    return HitRecord(hit=0, t=0.0, normal=vec3(0.0, 0.0, 0.0))


@ti.func
def hit_sphere(ray_origin: vec3, ray_direction: vec3, sphere: Sphere) -> HitRecord:
    """Test for ray-sphere intersection.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The normalized direction of the ray.
        sphere: The sphere to test against.

    Returns:
        A HitRecord with the nearest non-negative distance and the outward
        normal ``normalize(hit_point - center)``.
    """
    result = make_miss()

    l = sphere.center - ray_origin
    adj = dot(l, ray_direction)
    d2 = dot(l, l) - adj * adj
    radius2 = sphere.radius * sphere.radius

    if d2 <= radius2:
        thc = ti.sqrt(radius2 - d2)
        t0 = adj - thc
        t1 = adj + thc

        # t0 <= t1 always holds, so a negative t1 means both are behind
        if t1 >= 0.0:
            t = t0
            if t0 < 0.0:
                # Origin inside the sphere
                t = t1
            hit_point = ray_origin + ray_direction * t
            result = HitRecord(hit=1, t=t, normal=normalize(hit_point - sphere.center))

    return result


@ti.func
def make_sphere(center: vec3, radius: ti.f64) -> Sphere:
    """Create a sphere from center and radius."""
    return Sphere(center=center, radius=radius)
