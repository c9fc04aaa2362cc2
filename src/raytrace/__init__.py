"""Taichi-based Whitted-style ray tracer.

This package renders declarative scenes with recursive ray tracing, with
support for:
- Direct illumination from directional and spherical (point) lights
- Hard shadows via shadow rays
- Mirror reflection and Fresnel-weighted refraction
- Spheres, infinite planes and triangle meshes loaded from OBJ files

Subpackages:
    core: Vector algebra, rays, the shading integrator and the render loop
    camera: Sensor-plane camera producing one primary ray per pixel
    geometry: Shape primitives, intersection routines and mesh loading
    materials: Surface variants and Fresnel reflectance
    lights: Directional and spherical light sources
    scene: Scene storage, scene manager and scene file loading
    preview: Image export and preview display

All hot-path computation runs in Taichi kernels using 64-bit floats, so
Taichi must be initialised with ``default_fp=ti.f64`` before any module
declaring fields is imported.
"""

__version__ = "0.1.0"
