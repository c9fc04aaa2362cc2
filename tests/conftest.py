"""Pytest configuration for raytracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session, before any module
declaring Taichi fields is imported.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts. All geometry is
    64-bit, so float literals in kernels must be too.
    """
    ti.init(arch=ti.cpu, default_fp=ti.f64, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear entities, materials and lights before and after each test."""
    # Import here to ensure Taichi is initialized first
    from src.raytrace.lights.light import clear_lights
    from src.raytrace.materials.material import clear_materials
    from src.raytrace.scene.intersection import clear_scene, set_scene_settings

    def _clear_all():
        clear_scene()
        clear_materials()
        clear_lights()
        set_scene_settings(1e-13, 16)

    _clear_all()
    yield
    _clear_all()


@pytest.fixture
def cube_obj(tmp_path):
    """Write a unit cube OBJ (quad faces, no normals) and return its path."""
    path = tmp_path / "cube.obj"
    path.write_text(
        "o cube\n"
        "v -0.5 -0.5 0.5\n"
        "v 0.5 -0.5 0.5\n"
        "v 0.5 0.5 0.5\n"
        "v -0.5 0.5 0.5\n"
        "v -0.5 -0.5 -0.5\n"
        "v 0.5 -0.5 -0.5\n"
        "v 0.5 0.5 -0.5\n"
        "v -0.5 0.5 -0.5\n"
        "f 1 2 3 4\n"
        "f 6 5 8 7\n"
        "f 5 1 4 8\n"
        "f 2 6 7 3\n"
        "f 4 3 7 8\n"
        "f 5 6 2 1\n"
    )
    return path
