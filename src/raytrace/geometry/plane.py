"""Infinite plane primitive.

A plane is given by a point on it (``center``) and a unit ``normal``. The
normal points away from the visible side: a ray intersects the plane only
when it travels along the normal, i.e. ``dot(normal, direction) > 1e-6``.
The reported surface normal is therefore ``-normal``, facing the ray.

Example:
    >>> # Floor 2.5 units below the camera, visible from above
    >>> # plane = Plane(center=vec3(0.0, -2.5, 0.0), normal=vec3(0.0, -1.0, 0.0))
"""

import taichi as ti

from src.raytrace.core.vector import dot, vec3

from .sphere import HitRecord, make_miss

# Minimum dot(normal, direction) for a ray to be considered approaching
PLANE_EPSILON = 1e-6


@ti.dataclass
class Plane:
    """An infinite plane.

    Attributes:
        center: Any point on the plane.
        normal: Unit normal pointing away from the visible side.
    """

    center: vec3
    normal: vec3


@ti.func
def hit_plane(ray_origin: vec3, ray_direction: vec3, plane: Plane) -> HitRecord:
    """Test for ray-plane intersection.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The normalized direction of the ray.
        plane: The plane to test against.

    Returns:
        A HitRecord with distance ``dot(center - origin, normal) / denom``
        and normal ``-plane.normal``. Rays moving away from or parallel to
        the plane, and planes behind the origin, miss.
    """
    result = make_miss()

    denom = dot(plane.normal, ray_direction)
    if denom > PLANE_EPSILON:
        distance = dot(plane.center - ray_origin, plane.normal) / denom
        if distance >= 0.0:
            result = HitRecord(hit=1, t=distance, normal=-plane.normal)

    return result
