"""Whitted-style shading integrator.

For every camera ray the integrator finds the nearest hit and shades it
according to the surface of the hit material:

    Diffuse       direct illumination from every light, with shadow rays
    Specular      diffuse * (1 - r) + reflected * r
    Transparent   (reflected * kr + transmitted * (1 - kr)) * transparency * color
                  with kr from the Fresnel equations

Rays that miss, and rays whose depth reaches the scene's maximum depth,
contribute the black background.

Taichi functions cannot recurse, so the recursion is unrolled into a
depth-first worklist per pixel. Each entry holds a ray, its depth and the
product of the blend weights along its path (the weight vector). The color
of a pixel is the sum over all entries of ``weight * local_term``, which is
the recursive formula multiplied out. Every pixel of a tile owns one stack
slot; a reflection and a transmission entry are pushed per transparent hit,
so ``MAX_DEPTH + 2`` entries bound the stack height.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.raytrace.core.integrator import trace_ray
    >>> from src.raytrace.scene.presets import create_default_scene
    >>> scene = create_default_scene(width=64, height=48)
    >>> scene.activate()
    >>> trace_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
    (0.427..., 0.170..., 0.0)
"""

from collections.abc import Sequence

import numpy as np
import taichi as ti
import taichi.math as tm

from src.raytrace.camera.pinhole import get_prime_ray
from src.raytrace.core.ray import create_reflection, create_transmission
from src.raytrace.core.vector import dot, normalize, vec3
from src.raytrace.lights.light import (
    light_color,
    light_direction_from,
    light_distance,
    light_intensity,
    num_lights,
)
from src.raytrace.materials.dielectric import fresnel
from src.raytrace.materials.material import (
    SurfaceType,
    get_material_albedo,
    get_material_color,
    get_material_surface,
    material_indices,
    material_reflectivities,
    material_transparencies,
)
from src.raytrace.scene.intersection import (
    MAX_DEPTH,
    intersect_scene,
    scene_bias,
    scene_max_depth,
)

# =============================================================================
# Rendering Constants
# =============================================================================

# Background color for rays that escape the scene or run out of depth
BACKGROUND_COLOR = vec3(0.0, 0.0, 0.0)

# Maximum number of pixels rendered per kernel launch
MAX_TILE_SIZE = 4096

# Entries per stack slot. A ray at depth d leaves at most d + 2 entries
# on the stack and depth never exceeds MAX_DEPTH, so the capacity check in
# _push never drops a ray. Grow this together with MAX_DEPTH.
STACK_CAPACITY = MAX_DEPTH + 2

# =============================================================================
# Ray Stacks and Tile Buffer
# =============================================================================

_stack_origins = ti.Vector.field(3, dtype=ti.f64, shape=(MAX_TILE_SIZE, STACK_CAPACITY))
_stack_directions = ti.Vector.field(3, dtype=ti.f64, shape=(MAX_TILE_SIZE, STACK_CAPACITY))
_stack_weights = ti.Vector.field(3, dtype=ti.f64, shape=(MAX_TILE_SIZE, STACK_CAPACITY))
_stack_depths = ti.field(dtype=ti.i32, shape=(MAX_TILE_SIZE, STACK_CAPACITY))

# Linear colors of the pixels of the last rendered tile
_tile_colors = ti.Vector.field(3, dtype=ti.f64, shape=MAX_TILE_SIZE)


@ti.func
def _push(slot: ti.i32, top: ti.i32, origin: vec3, direction: vec3, depth: ti.i32, weight: vec3) -> ti.i32:
    """Push a ray if it is still within the depth limit; return the new top."""
    new_top = top
    # top < STACK_CAPACITY holds whenever depth is within MAX_DEPTH
    if depth < scene_max_depth[None] and top < STACK_CAPACITY:
        _stack_origins[slot, top] = origin
        _stack_directions[slot, top] = direction
        _stack_depths[slot, top] = depth
        _stack_weights[slot, top] = weight
        new_top = top + 1
    return new_top


# =============================================================================
# Shading
# =============================================================================


@ti.func
def shade_diffuse(material_id: ti.i32, hit_point: vec3, normal: vec3) -> vec3:
    """Direct illumination of a diffuse surface point.

    A shadow ray is cast from ``hit_point + normal * bias`` toward each
    light. The light counts when nothing is hit or the nearest hit lies
    beyond the light.

    Args:
        material_id: Material of the surface.
        hit_point: The intersection point.
        normal: Unit surface normal at the hit point.

    Returns:
        The sum of all light contributions, clamped to [0, 1] per channel.
    """
    bias = scene_bias[None]
    surface_color = get_material_color(material_id)
    albedo = get_material_albedo(material_id)
    shadow_origin = hit_point + normal * bias

    color = vec3(0.0, 0.0, 0.0)
    for light in range(num_lights[None]):
        to_light = light_direction_from(light, hit_point)
        shadow = intersect_scene(shadow_origin, to_light)

        in_light = 0
        if shadow.hit == 0:
            in_light = 1
        elif shadow.t > light_distance(light, hit_point):
            in_light = 1

        if in_light == 1:
            power = tm.max(0.0, dot(normal, to_light)) * light_intensity(light, hit_point)
            reflected = albedo / tm.pi
            color += surface_color * light_color(light) * power * reflected

    return tm.clamp(color, 0.0, 1.0)


@ti.func
def trace_color(slot: ti.i32, origin: vec3, direction: vec3, depth: ti.i32) -> vec3:
    """Color seen along a ray, including reflections and refractions.

    Args:
        slot: Stack slot owned by the calling pixel.
        origin: Ray origin.
        direction: Normalized ray direction.
        depth: Recursion depth of the ray (0 for camera rays).

    Returns:
        The unclamped linear color.
    """
    bias = scene_bias[None]
    radiance = vec3(0.0, 0.0, 0.0)
    top = _push(slot, 0, origin, direction, depth, vec3(1.0, 1.0, 1.0))

    while top > 0:
        top -= 1
        ray_origin = _stack_origins[slot, top]
        ray_direction = _stack_directions[slot, top]
        ray_depth = _stack_depths[slot, top]
        weight = _stack_weights[slot, top]

        rec = intersect_scene(ray_origin, ray_direction)
        if rec.hit == 1:
            material_id = rec.material_id
            normal = rec.normal
            hit_point = ray_origin + ray_direction * rec.t
            surface = get_material_surface(material_id)

            if surface == int(SurfaceType.DIFFUSE):
                radiance += weight * shade_diffuse(material_id, hit_point, normal)

            elif surface == int(SurfaceType.SPECULAR):
                reflectivity = material_reflectivities[material_id]
                radiance += weight * shade_diffuse(material_id, hit_point, normal) * (1.0 - reflectivity)
                reflection = create_reflection(normal, ray_direction, hit_point, bias)
                top = _push(
                    slot, top, reflection.origin, reflection.direction, ray_depth + 1, weight * reflectivity
                )

            else:
                index = material_indices[material_id]
                tint = weight * get_material_color(material_id) * material_transparencies[material_id]
                kr = fresnel(ray_direction, normal, index)

                if kr < 1.0:
                    t_origin, t_direction, valid = create_transmission(
                        normal, ray_direction, hit_point, index, bias
                    )
                    if valid == 1:
                        top = _push(slot, top, t_origin, t_direction, ray_depth + 1, tint * (1.0 - kr))

                reflection = create_reflection(normal, ray_direction, hit_point, bias)
                top = _push(slot, top, reflection.origin, reflection.direction, ray_depth + 1, tint * kr)

        else:
            radiance += weight * BACKGROUND_COLOR

    return radiance


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_tile(start: ti.i32, count: ti.i32, height: ti.i32):
    """Render pixels ``start .. start + count - 1`` into the tile buffer.

    Pixel index ``i`` maps to column ``i // height`` and row ``i % height``.
    """
    for k in range(count):
        i = start + k
        ray = get_prime_ray(i // height, i % height)
        _tile_colors[k] = trace_color(k, ray.origin, ray.direction, 0)


@ti.kernel
def _trace_single(origin: vec3, direction: vec3, depth: ti.i32) -> vec3:
    return trace_color(0, origin, normalize(direction), depth)


@ti.kernel
def _render_single_pixel(x: ti.i32, y: ti.i32) -> vec3:
    ray = get_prime_ray(x, y)
    return trace_color(0, ray.origin, ray.direction, 0)


# =============================================================================
# Public Rendering API
# =============================================================================


def render_tile(start: int, count: int, height: int) -> None:
    """Render one tile of consecutive pixel indices.

    The colors are left in the tile buffer; see ``get_tile_colors``.

    Raises:
        ValueError: If ``count`` is outside ``[0, MAX_TILE_SIZE]``.
    """
    if not 0 <= count <= MAX_TILE_SIZE:
        raise ValueError(f"Tile size must be in [0, {MAX_TILE_SIZE}], got {count}")
    _render_tile(start, count, height)


def get_tile_colors(count: int) -> np.ndarray:
    """Get the first ``count`` colors of the tile buffer as a NumPy array of shape (count, 3)."""
    return _tile_colors.to_numpy()[:count]


def trace_ray(
    origin: Sequence[float],
    direction: Sequence[float],
    depth: int = 0,
) -> tuple[float, float, float]:
    """Trace a single ray through the active scene.

    This is a Python-callable function for testing and inspection. The
    scene must have been activated (``SceneManager.activate``).

    Args:
        origin: Ray origin as (x, y, z).
        direction: Ray direction; normalized before tracing.
        depth: Starting recursion depth.

    Returns:
        Tuple of (R, G, B) linear color values.
    """
    color = _trace_single(vec3(*origin), vec3(*direction), depth)
    return (float(color[0]), float(color[1]), float(color[2]))


def render_pixel(x: int, y: int) -> tuple[float, float, float]:
    """Render a single pixel of the active scene's camera.

    Args:
        x: Pixel column (0 = left).
        y: Pixel row (0 = top).

    Returns:
        Tuple of (R, G, B) linear color values.
    """
    color = _render_single_pixel(x, y)
    return (float(color[0]), float(color[1]), float(color[2]))
