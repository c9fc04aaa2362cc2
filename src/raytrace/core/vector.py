"""Three-component vector algebra for the ray tracer.

Vectors are used interchangeably as points, directions and RGB colors. All
components are 64-bit floats; Taichi's vector operators already provide
addition, subtraction, negation and scalar/component-wise multiplication, so
this module only adds the named operations and the zero-safe normalization.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.raytrace.core.vector import vec3, magnitude, normalize
    >>> @ti.kernel
    ... def length_of_unit() -> ti.f64:
    ...     return magnitude(normalize(vec3(3.0, 0.0, 4.0)))
"""

from collections.abc import Sequence

import taichi as ti

# 3D vector of 64-bit floats (points, directions and colors)
vec3 = ti.types.vector(3, ti.f64)

# Upper bound for ray parameters; also the distance of lights at infinity
T_MAX = 1.0e30


@ti.func
def dot(a: vec3, b: vec3) -> ti.f64:
    """Compute the dot product of two vectors."""
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


@ti.func
def cross(a: vec3, b: vec3) -> vec3:
    """Compute the right-handed cross product a x b.

    Args:
        a: First vector.
        b: Second vector.

    Returns:
        A vector perpendicular to both inputs. ``cross(a, b) == -cross(b, a)``.
    """
    return vec3(
        a[1] * b[2] - a[2] * b[1],
        a[2] * b[0] - a[0] * b[2],
        a[0] * b[1] - a[1] * b[0],
    )


@ti.func
def magnitude_squared(v: vec3) -> ti.f64:
    """Squared Euclidean length, avoiding the square root."""
    return dot(v, v)


@ti.func
def magnitude(v: vec3) -> ti.f64:
    """Euclidean length of a vector."""
    return ti.sqrt(magnitude_squared(v))


@ti.func
def normalize(v: vec3) -> vec3:
    """Scale a vector to unit length.

    Division by a zero magnitude yields the zero vector instead of NaN, so
    degenerate directions propagate as "no direction" rather than poisoning
    later arithmetic.

    Args:
        v: The input vector.

    Returns:
        ``v / magnitude(v)``, or the zero vector when ``v`` has no length.
    """
    length = magnitude(v)
    result = vec3(0.0, 0.0, 0.0)
    if length != 0.0:
        result = v / length
    return result


# =============================================================================
# Python-scope helpers
# =============================================================================


def to_vec3_tuple(values: Sequence[float], name: str = "vector") -> tuple[float, float, float]:
    """Convert a 3-sequence to a tuple of floats.

    Used by the scene-building API to validate user input before it is
    written into Taichi fields.

    Args:
        values: Any sequence of three numbers.
        name: Name used in the error message.

    Returns:
        The components as a tuple of Python floats.

    Raises:
        ValueError: If ``values`` does not have exactly three components.
    """
    items = list(values)
    if len(items) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(items)}")
    return (float(items[0]), float(items[1]), float(items[2]))
