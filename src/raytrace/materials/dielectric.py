"""Fresnel reflectance for transparent (dielectric) surfaces.

Transparent surfaces split incoming light between a reflected and a
refracted part. The reflected fraction ``kr`` comes from the Fresnel
equations for unpolarized light, averaging the s- and p-polarized
reflectances:

    r_s = (eta_t cos_i - eta_i cos_t) / (eta_t cos_i + eta_i cos_t)
    r_p = (eta_i cos_i - eta_t cos_t) / (eta_i cos_i + eta_t cos_t)
    kr  = (r_s^2 + r_p^2) / 2

When Snell's law gives ``sin_t > 1`` all light is reflected (total internal
reflection) and ``kr = 1``.

Example:
    >>> # Inside a kernel, glass at normal incidence:
    >>> # kr = fresnel(vec3(0.0, 0.0, -1.0), vec3(0.0, 0.0, 1.0), 1.5)  # 0.04
"""

import taichi as ti
import taichi.math as tm

from src.raytrace.core.vector import dot, vec3


@ti.func
def fresnel(incident: vec3, normal: vec3, index: ti.f64) -> ti.f64:
    """Compute the Fresnel reflectance at a dielectric interface.

    Args:
        incident: Direction of the incoming ray (normalized).
        normal: Outward unit surface normal.
        index: Refractive index of the medium behind the surface.

    Returns:
        The reflected fraction ``kr`` in [0, 1].
    """
    cos_i = tm.clamp(dot(incident, normal), -1.0, 1.0)
    eta_i = 1.0
    eta_t = index
    if cos_i > 0.0:
        # Leaving the medium
        eta_i = index
        eta_t = 1.0

    sin_t = eta_i / eta_t * ti.sqrt(tm.max(0.0, 1.0 - cos_i * cos_i))

    kr = 1.0
    if sin_t <= 1.0:
        cos_t = ti.sqrt(tm.max(0.0, 1.0 - sin_t * sin_t))
        cos_i_abs = ti.abs(cos_i)
        r_s = ((eta_t * cos_i_abs) - (eta_i * cos_t)) / ((eta_t * cos_i_abs) + (eta_i * cos_t))
        r_p = ((eta_i * cos_i_abs) - (eta_t * cos_t)) / ((eta_i * cos_i_abs) + (eta_t * cos_t))
        kr = (r_s * r_s + r_p * r_p) / 2.0

    return kr

