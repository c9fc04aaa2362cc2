"""Scene-level primitive storage and ray intersection.

Entities (spheres, planes and triangle models) live in Taichi fields with a
Structure of Arrays layout. A small entity table records, in insertion
order, the kind of each entity, its index into the storage of that kind and
its material ID:

    entity i  ->  (entity_kinds[i], entity_indices[i], entity_material_ids[i])

Models own a contiguous range of the shared triangle storage. There is no
acceleration structure: ``intersect_scene`` scans every entity (and every
triangle of every model) and keeps the nearest hit.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.raytrace.scene.intersection import (
    ...     add_sphere_entity, add_plane_entity, clear_scene, intersect_scene
    ... )
    >>> clear_scene()
    >>> add_sphere_entity((0, 0, -5), 1.0, material_id=0)
    0
    >>> add_plane_entity((0, -2.5, 0), (0, -1, 0), material_id=1)
    1
    >>> # Use intersect_scene within a Taichi kernel
"""

import math
from collections.abc import Sequence
from enum import IntEnum

import numpy as np
import taichi as ti

from src.raytrace.core.vector import T_MAX, to_vec3_tuple, vec3
from src.raytrace.geometry.mesh import TriangleMesh
from src.raytrace.geometry.plane import Plane, hit_plane
from src.raytrace.geometry.sphere import HitRecord, Sphere, hit_sphere, make_miss
from src.raytrace.geometry.triangle import Triangle, hit_triangle


class EntityKind(IntEnum):
    """Kind of a scene entity, used for dispatch inside kernels."""

    PLANE = 0
    SPHERE = 1
    MODEL = 2


@ti.dataclass
class SceneHitRecord:
    """Record of a ray-scene intersection.

    Attributes:
        hit: 1 if any entity was hit, 0 otherwise.
        t: Distance to the nearest hit. Only valid if hit == 1.
        normal: Unit surface normal at the hit. Only valid if hit == 1.
        material_id: Material of the hit entity, -1 on a miss.
        entity_id: Index of the hit entity in insertion order, -1 on a miss.
    """

    hit: ti.i32
    t: ti.f64
    normal: vec3
    material_id: ti.i32
    entity_id: ti.i32


# Maximum number of primitives supported in the scene
MAX_ENTITIES = 4096
MAX_SPHERES = 2048
MAX_PLANES = 256
MAX_MODELS = 256
MAX_TRIANGLES = 262144

# Entity table, in insertion order
entity_kinds = ti.field(dtype=ti.i32, shape=MAX_ENTITIES)
entity_indices = ti.field(dtype=ti.i32, shape=MAX_ENTITIES)
entity_material_ids = ti.field(dtype=ti.i32, shape=MAX_ENTITIES)
num_entities = ti.field(dtype=ti.i32, shape=())

# Sphere storage
sphere_centers = ti.Vector.field(3, dtype=ti.f64, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f64, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())

# Plane storage (normals are stored normalized)
plane_centers = ti.Vector.field(3, dtype=ti.f64, shape=MAX_PLANES)
plane_normals = ti.Vector.field(3, dtype=ti.f64, shape=MAX_PLANES)
num_planes = ti.field(dtype=ti.i32, shape=())

# Model storage: a range [start, start + count) of the triangle storage
model_triangle_starts = ti.field(dtype=ti.i32, shape=MAX_MODELS)
model_triangle_counts = ti.field(dtype=ti.i32, shape=MAX_MODELS)
num_models = ti.field(dtype=ti.i32, shape=())

# Triangle storage, shared by all models
triangle_v0 = ti.Vector.field(3, dtype=ti.f64, shape=MAX_TRIANGLES)
triangle_edge1 = ti.Vector.field(3, dtype=ti.f64, shape=MAX_TRIANGLES)
triangle_edge2 = ti.Vector.field(3, dtype=ti.f64, shape=MAX_TRIANGLES)
triangle_n0 = ti.Vector.field(3, dtype=ti.f64, shape=MAX_TRIANGLES)
triangle_n1 = ti.Vector.field(3, dtype=ti.f64, shape=MAX_TRIANGLES)
triangle_n2 = ti.Vector.field(3, dtype=ti.f64, shape=MAX_TRIANGLES)
triangle_has_normals = ti.field(dtype=ti.i32, shape=MAX_TRIANGLES)
num_triangles = ti.field(dtype=ti.i32, shape=())

# Upper bound for the recursion depth (sizes the integrator's ray stacks)
MAX_DEPTH = 32

# Render settings read by the integrator
scene_bias = ti.field(dtype=ti.f64, shape=())
scene_max_depth = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Clear all entities from the scene.

    Resets the counts to zero. The actual field data is not cleared but
    will be overwritten when new entities are added.
    """
    num_entities[None] = 0
    num_spheres[None] = 0
    num_planes[None] = 0
    num_models[None] = 0
    num_triangles[None] = 0


def set_scene_settings(bias: float, max_depth: int) -> None:
    """Upload the shadow/secondary ray bias and the recursion limit."""
    scene_bias[None] = bias
    scene_max_depth[None] = max_depth


def get_scene_settings() -> tuple[float, int]:
    """Get the uploaded (bias, max_depth)."""
    return float(scene_bias[None]), int(scene_max_depth[None])


def _add_entity(kind: EntityKind, index: int, material_id: int) -> int:
    idx = num_entities[None]
    if idx >= MAX_ENTITIES:
        raise RuntimeError(f"Maximum number of entities ({MAX_ENTITIES}) exceeded")
    entity_kinds[idx] = int(kind)
    entity_indices[idx] = index
    entity_material_ids[idx] = material_id
    num_entities[None] = idx + 1
    return idx


def add_sphere_entity(center: Sequence[float], radius: float, material_id: int = 0) -> int:
    """Add a sphere to the scene.

    Args:
        center: The center point of the sphere.
        radius: The radius of the sphere (must be positive).
        material_id: The material ID to associate with this sphere.

    Returns:
        The entity index of the added sphere.

    Raises:
        ValueError: If the radius is not positive.
        RuntimeError: If the maximum number of spheres or entities is exceeded.
    """
    if radius <= 0.0:
        raise ValueError(f"Sphere radius must be positive, got {radius}")
    idx = num_spheres[None]
    if idx >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
    entity = _add_entity(EntityKind.SPHERE, idx, material_id)
    sphere_centers[idx] = list(to_vec3_tuple(center, "Sphere center"))
    sphere_radii[idx] = radius
    num_spheres[None] = idx + 1
    return entity


def add_plane_entity(center: Sequence[float], normal: Sequence[float], material_id: int = 0) -> int:
    """Add an infinite plane to the scene.

    The normal is normalized before it is stored.

    Args:
        center: Any point on the plane.
        normal: Normal pointing away from the visible side.
        material_id: The material ID to associate with this plane.

    Returns:
        The entity index of the added plane.

    Raises:
        ValueError: If the normal is the zero vector.
        RuntimeError: If the maximum number of planes or entities is exceeded.
    """
    nx, ny, nz = to_vec3_tuple(normal, "Plane normal")
    length = math.sqrt(nx * nx + ny * ny + nz * nz)
    if length == 0.0:
        raise ValueError("Plane normal must not be the zero vector")
    idx = num_planes[None]
    if idx >= MAX_PLANES:
        raise RuntimeError(f"Maximum number of planes ({MAX_PLANES}) exceeded")
    entity = _add_entity(EntityKind.PLANE, idx, material_id)
    plane_centers[idx] = list(to_vec3_tuple(center, "Plane center"))
    plane_normals[idx] = [nx / length, ny / length, nz / length]
    num_planes[None] = idx + 1
    return entity


@ti.kernel
def _upload_triangles(
    start: ti.i32,
    v0: ti.types.ndarray(),
    edge1: ti.types.ndarray(),
    edge2: ti.types.ndarray(),
    normals: ti.types.ndarray(),
    has_normals: ti.types.ndarray(),
):
    for i in range(v0.shape[0]):
        idx = start + i
        triangle_v0[idx] = vec3(v0[i, 0], v0[i, 1], v0[i, 2])
        triangle_edge1[idx] = vec3(edge1[i, 0], edge1[i, 1], edge1[i, 2])
        triangle_edge2[idx] = vec3(edge2[i, 0], edge2[i, 1], edge2[i, 2])
        triangle_n0[idx] = vec3(normals[i, 0, 0], normals[i, 0, 1], normals[i, 0, 2])
        triangle_n1[idx] = vec3(normals[i, 1, 0], normals[i, 1, 1], normals[i, 1, 2])
        triangle_n2[idx] = vec3(normals[i, 2, 0], normals[i, 2, 1], normals[i, 2, 2])
        triangle_has_normals[idx] = has_normals[i]


def add_model_entity(mesh: TriangleMesh, material_id: int = 0) -> int:
    """Add a triangle model to the scene.

    The triangles are appended to the shared triangle storage in one bulk
    kernel launch. A model without triangles is allowed and never hit.

    Args:
        mesh: World-space triangles of the model.
        material_id: The material ID for the whole model.

    Returns:
        The entity index of the added model.

    Raises:
        RuntimeError: If the maximum number of models, triangles or entities
            is exceeded.
    """
    idx = num_models[None]
    if idx >= MAX_MODELS:
        raise RuntimeError(f"Maximum number of models ({MAX_MODELS}) exceeded")
    start = num_triangles[None]
    count = len(mesh)
    if start + count > MAX_TRIANGLES:
        raise RuntimeError(
            f"Maximum number of triangles ({MAX_TRIANGLES}) exceeded: "
            f"{start} stored, {count} requested"
        )

    entity = _add_entity(EntityKind.MODEL, idx, material_id)
    if count > 0:
        v0, edge1, edge2 = mesh.edges()
        normals = mesh.normals if mesh.normals is not None else np.zeros_like(mesh.vertices)
        _upload_triangles(
            start,
            np.ascontiguousarray(v0),
            np.ascontiguousarray(edge1),
            np.ascontiguousarray(edge2),
            np.ascontiguousarray(normals),
            mesh.has_normals.astype(np.int32),
        )
    model_triangle_starts[idx] = start
    model_triangle_counts[idx] = count
    num_models[None] = idx + 1
    num_triangles[None] = start + count
    return entity


def get_entity_count() -> int:
    """Get the number of entities in the scene."""
    return int(num_entities[None])


def get_sphere_count() -> int:
    """Get the number of spheres in the scene."""
    return int(num_spheres[None])


def get_plane_count() -> int:
    """Get the number of planes in the scene."""
    return int(num_planes[None])


def get_model_count() -> int:
    """Get the number of models in the scene."""
    return int(num_models[None])


def get_triangle_count() -> int:
    """Get the number of triangles stored for all models."""
    return int(num_triangles[None])


def get_entity_kind(entity: int) -> EntityKind:
    """Get the kind of an entity by its index."""
    return EntityKind(int(entity_kinds[entity]))


@ti.func
def _make_miss_record() -> SceneHitRecord:
    return SceneHitRecord(hit=0, t=0.0, normal=vec3(0.0, 0.0, 0.0), material_id=-1, entity_id=-1)


@ti.func
def _hit_model(ray_origin: vec3, ray_direction: vec3, model: ti.i32) -> HitRecord:
    """Nearest hit among the triangles of one model (first wins ties)."""
    result = make_miss()
    closest_t = T_MAX
    start = model_triangle_starts[model]
    for k in range(model_triangle_counts[model]):
        i = start + k
        tri = Triangle(
            v0=triangle_v0[i],
            edge1=triangle_edge1[i],
            edge2=triangle_edge2[i],
            n0=triangle_n0[i],
            n1=triangle_n1[i],
            n2=triangle_n2[i],
            has_normals=triangle_has_normals[i],
        )
        rec = hit_triangle(ray_origin, ray_direction, tri)
        if rec.hit == 1 and rec.t < closest_t:
            closest_t = rec.t
            result = rec
    return result


@ti.func
def _hit_entity(ray_origin: vec3, ray_direction: vec3, entity: ti.i32) -> HitRecord:
    kind = entity_kinds[entity]
    index = entity_indices[entity]
    rec = make_miss()
    if kind == int(EntityKind.SPHERE):
        rec = hit_sphere(ray_origin, ray_direction, Sphere(center=sphere_centers[index], radius=sphere_radii[index]))
    elif kind == int(EntityKind.PLANE):
        rec = hit_plane(ray_origin, ray_direction, Plane(center=plane_centers[index], normal=plane_normals[index]))
    else:
        rec = _hit_model(ray_origin, ray_direction, index)
    return rec


@ti.func
def intersect_scene(ray_origin: vec3, ray_direction: vec3) -> SceneHitRecord:
    """Test a ray against every entity in the scene.

    Entities are tested in insertion order and the nearest hit is kept; on
    equal distances the earlier entity wins.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The normalized direction of the ray.

    Returns:
        A SceneHitRecord for the nearest intersection, or a miss record.
    """
    closest_t = T_MAX
    result = _make_miss_record()

    for e in range(num_entities[None]):
        rec = _hit_entity(ray_origin, ray_direction, e)
        if rec.hit == 1 and rec.t < closest_t:
            closest_t = rec.t
            result = SceneHitRecord(
                hit=1,
                t=rec.t,
                normal=rec.normal,
                material_id=entity_material_ids[e],
                entity_id=e,
            )

    return result
