"""Triangle primitive using the Moller-Trumbore intersection algorithm.

Triangles are stored as a base vertex and two edge vectors so the edges do
not have to be recomputed for every ray:
    edge1 = v1 - v0
    edge2 = v2 - v0

When per-vertex normals are available the shading normal is interpolated
with the barycentric weights ``(1 - u - v, u, v)`` (Gouraud normal);
otherwise the geometric face normal ``normalize(cross(edge1, edge2))`` is
used.

Example:
    >>> # Inside a kernel:
    >>> # tri = make_triangle(vec3(-1, -1, -2), vec3(1, -1, -2), vec3(0, 1, -2))
    >>> # rec = hit_triangle(origin, direction, tri)
"""

import taichi as ti

from src.raytrace.core.vector import T_MAX, cross, dot, normalize, vec3

from .sphere import HitRecord, make_miss

# Determinant threshold for parallel rays and minimum hit distance
TRIANGLE_EPSILON = 1e-8


@ti.dataclass
class Triangle:
    """A triangle with optional per-vertex normals.

    Attributes:
        v0: First vertex.
        edge1: Edge from v0 to the second vertex.
        edge2: Edge from v0 to the third vertex.
        n0: Normal at v0 (only used when has_normals == 1).
        n1: Normal at the second vertex.
        n2: Normal at the third vertex.
        has_normals: 1 if per-vertex normals are set, 0 otherwise.
    """

    v0: vec3
    edge1: vec3
    edge2: vec3
    n0: vec3
    n1: vec3
    n2: vec3
    has_normals: ti.i32


@ti.func
def make_triangle(v0: vec3, v1: vec3, v2: vec3) -> Triangle:
    """Create a flat-shaded triangle from three vertices."""
    zero = vec3(0.0, 0.0, 0.0)
    return Triangle(
        v0=v0, edge1=v1 - v0, edge2=v2 - v0, n0=zero, n1=zero, n2=zero, has_normals=0
    )


@ti.func
def hit_triangle(ray_origin: vec3, ray_direction: vec3, tri: Triangle) -> HitRecord:
    """Test for ray-triangle intersection (Moller-Trumbore).

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The normalized direction of the ray.
        tri: The triangle to test against.

    Returns:
        A HitRecord. Parallel rays, hits outside the triangle and distances
        outside ``(TRIANGLE_EPSILON, T_MAX)`` miss.
    """
    result = make_miss()

    pvec = cross(ray_direction, tri.edge2)
    det = dot(tri.edge1, pvec)

    if ti.abs(det) >= TRIANGLE_EPSILON:
        inv_det = 1.0 / det
        tvec = ray_origin - tri.v0
        u = dot(tvec, pvec) * inv_det

        if u >= 0.0 and u <= 1.0:
            qvec = cross(tvec, tri.edge1)
            v = dot(ray_direction, qvec) * inv_det

            if v >= 0.0 and u + v <= 1.0:
                t = dot(tri.edge2, qvec) * inv_det

                if t > TRIANGLE_EPSILON and t < T_MAX:
                    normal = vec3(0.0, 0.0, 0.0)
                    if tri.has_normals == 1:
                        normal = normalize(tri.n0 * (1.0 - u - v) + tri.n1 * u + tri.n2 * v)
                    else:
                        normal = normalize(cross(tri.edge1, tri.edge2))
                    result = HitRecord(hit=1, t=t, normal=normal)

    return result
