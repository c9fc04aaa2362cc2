"""Geometry module for shape primitives.

Components:
    sphere: Sphere primitive and the shared HitRecord
    plane: Infinite one-sided plane
    triangle: Triangle primitive (Moller-Trumbore)
    mesh: Triangle soups loaded from Wavefront OBJ files

Intersection routines are Taichi functions following the pattern:
    rec = hit_shape(ray_origin, ray_direction, shape)
"""

from .mesh import MeshLoadError, TriangleMesh, load_model
from .plane import Plane, hit_plane
from .sphere import HitRecord, Sphere, hit_sphere, make_miss, make_sphere
from .triangle import Triangle, hit_triangle, make_triangle

__all__ = [
    "HitRecord",
    "make_miss",
    "Sphere",
    "hit_sphere",
    "make_sphere",
    "Plane",
    "hit_plane",
    "Triangle",
    "hit_triangle",
    "make_triangle",
    "TriangleMesh",
    "MeshLoadError",
    "load_model",
]
