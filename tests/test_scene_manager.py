"""Unit tests for SceneManager and scene intersection."""

import logging

import pytest
import taichi as ti


def _intersect(origin, direction):
    """Run intersect_scene in a kernel and return (hit, t, material_id, entity_id)."""
    from src.raytrace.core.vector import vec3
    from src.raytrace.scene.intersection import intersect_scene

    hit = ti.field(dtype=ti.i32, shape=())
    t_val = ti.field(dtype=ti.f64, shape=())
    material_id = ti.field(dtype=ti.i32, shape=())
    entity_id = ti.field(dtype=ti.i32, shape=())

    @ti.kernel
    def test_kernel(o: vec3, d: vec3):
        rec = intersect_scene(o, d)
        hit[None] = rec.hit
        t_val[None] = rec.t
        material_id[None] = rec.material_id
        entity_id[None] = rec.entity_id

    test_kernel(vec3(*origin), vec3(*direction))
    return hit[None], t_val[None], material_id[None], entity_id[None]


class TestSceneManagerBuild:
    """Tests for adding entities and lights."""

    def test_entity_indices_follow_insertion_order(self):
        from src.raytrace.scene.intersection import EntityKind, get_entity_kind
        from src.raytrace.scene.manager import SceneManager

        scene = SceneManager()
        assert scene.add_plane((0, -1, 0), (0, -1, 0)) == 0
        assert scene.add_sphere((0, 0, -5), 1.0) == 1
        assert scene.add_sphere((0, 0, -8), 2.0) == 2
        assert get_entity_kind(0) == EntityKind.PLANE
        assert get_entity_kind(1) == EntityKind.SPHERE

        assert scene.get_entity_count() == 3
        assert scene.get_sphere_count() == 2
        assert scene.get_plane_count() == 1

    def test_entity_material(self):
        from src.raytrace.materials.material import Material, Specular
        from src.raytrace.scene.manager import SceneManager

        scene = SceneManager()
        mirror = Material(surface=Specular(0.8))
        scene.add_sphere((0, 0, -5), 1.0, mirror)
        assert scene.entity_material(0) == mirror
        with pytest.raises(IndexError):
            scene.entity_material(1)

    def test_invalid_geometry_raises(self):
        from src.raytrace.scene.manager import SceneManager

        scene = SceneManager()
        with pytest.raises(ValueError):
            scene.add_sphere((0, 0, 0), 0.0)
        with pytest.raises(ValueError):
            scene.add_plane((0, 0, 0), (0, 0, 0))
        assert scene.get_entity_count() == 0

    @pytest.mark.parametrize("kwargs", [{"bias": -1.0}, {"depth": -1}, {"depth": 33}])
    def test_invalid_settings_raise(self, kwargs):
        from src.raytrace.scene.manager import SceneManager

        with pytest.raises(ValueError):
            SceneManager(**kwargs)

    def test_activate_uploads_settings(self):
        from src.raytrace.camera.pinhole import Camera, get_camera_info
        from src.raytrace.scene.intersection import get_scene_settings
        from src.raytrace.scene.manager import SceneManager

        scene = SceneManager(camera=Camera(width=10, height=20), bias=1e-4, depth=3)
        scene.activate()
        assert get_scene_settings() == (1e-4, 3)
        assert get_camera_info()["height"] == 20

    def test_lights(self):
        from src.raytrace.scene.manager import SceneManager

        scene = SceneManager()
        assert scene.add_directional_light((0, -1, 0)) == 0
        assert scene.add_spherical_light((0, 3, 0), intensity=100.0) == 1
        assert scene.get_light_count() == 2

    def test_clear_keeps_camera(self):
        from src.raytrace.camera.pinhole import Camera
        from src.raytrace.scene.manager import SceneManager

        scene = SceneManager(camera=Camera(width=8, height=8))
        scene.add_sphere((0, 0, -5), 1.0)
        scene.add_directional_light((0, -1, 0))
        scene.clear()
        assert scene.get_entity_count() == 0
        assert scene.get_light_count() == 0
        assert scene.entities == []
        assert scene.camera.width == 8

    def test_add_model(self, cube_obj):
        from src.raytrace.geometry.mesh import TriangleMesh, load_model
        from src.raytrace.scene.manager import SceneManager

        scene = SceneManager()
        assert scene.add_model(load_model(cube_obj, position=(0, 0, -3))) == 0
        assert scene.add_model(TriangleMesh.empty()) == 1
        assert scene.get_model_count() == 2
        assert scene.get_triangle_count() == 12


class TestSceneSerialization:
    """Tests for to_dict / from_dict."""

    def test_round_trip(self):
        from src.raytrace.camera.pinhole import Camera
        from src.raytrace.materials.material import Material, Transparent
        from src.raytrace.scene.manager import SceneManager

        scene = SceneManager(camera=Camera(width=32, height=16, fov=60.0), bias=1e-6, depth=5)
        scene.add_sphere((0, 0, -5), 1.5, Material(color=(0.1, 0.2, 0.3), surface=Transparent(1.4, 0.5)))
        scene.add_plane((0, -2, 0), (0, -1, 0))
        scene.add_spherical_light((0, 3, 0), intensity=50.0)
        data = scene.to_dict()

        restored = SceneManager.from_dict(data)
        assert restored.to_dict() == data
        assert restored.camera == scene.camera
        assert restored.depth == 5
        assert restored.entity_material(0) == scene.entity_material(0)

    def test_in_memory_model_is_skipped(self, caplog):
        from src.raytrace.geometry.mesh import TriangleMesh
        from src.raytrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_model(TriangleMesh.empty())
        with caplog.at_level(logging.WARNING):
            data = scene.to_dict()
        assert data["entities"] == []
        assert "without a source path" in caplog.text

    def test_model_path_is_relative_to_base_dir(self, cube_obj):
        from src.raytrace.scene.manager import SceneManager

        data = {"entities": [{"type": "model", "path": cube_obj.name, "position": [0, 0, -3]}]}
        scene = SceneManager.from_dict(data, base_dir=cube_obj.parent)
        assert scene.get_triangle_count() == 12
        assert scene.to_dict()["entities"][0]["path"] == cube_obj.name

    def test_missing_model_is_added_without_geometry(self, tmp_path, caplog):
        from src.raytrace.scene.manager import SceneManager

        data = {"entities": [{"type": "model", "path": "missing.obj"}]}
        with caplog.at_level(logging.WARNING):
            scene = SceneManager.from_dict(data, base_dir=tmp_path)
        assert scene.get_model_count() == 1
        assert scene.get_triangle_count() == 0
        assert "missing.obj" in caplog.text

    def test_unknown_entity_type_raises(self):
        from src.raytrace.scene.manager import SceneManager

        with pytest.raises(ValueError):
            SceneManager.from_dict({"entities": [{"type": "torus"}]})


class TestIntersectScene:
    """Tests for nearest-hit scene intersection."""

    def test_empty_scene_misses(self):
        hit, _, material_id, entity_id = _intersect((0, 0, 0), (0, 0, -1))
        assert hit == 0
        assert material_id == -1
        assert entity_id == -1

    def test_nearest_hit_wins(self):
        from src.raytrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_sphere((0, 0, -10), 1.0)
        scene.add_sphere((0, 0, -5), 1.0)
        hit, t, material_id, entity_id = _intersect((0, 0, 0), (0, 0, -1))
        assert hit == 1
        assert abs(t - 4.0) < 1e-12
        assert entity_id == 1
        assert material_id == scene.entities[1].material_id

    def test_equal_distance_keeps_first_entity(self):
        from src.raytrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_sphere((0, 0, -5), 1.0)
        scene.add_sphere((0, 0, -5), 1.0)
        _, _, _, entity_id = _intersect((0, 0, 0), (0, 0, -1))
        assert entity_id == 0

    def test_model_hit(self, cube_obj):
        from src.raytrace.geometry.mesh import load_model
        from src.raytrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_plane((0, 0, -20), (0, 0, -1))
        scene.add_model(load_model(cube_obj, position=(0, 0, -3)))
        hit, t, _, entity_id = _intersect((0, 0, 0), (0, 0, -1))
        assert hit == 1
        assert abs(t - 2.5) < 1e-12
        assert entity_id == 1


class TestSceneOwnership:
    """Tests for several managers sharing the global scene storage."""

    def test_adding_to_earlier_scene_restores_it(self):
        from src.raytrace.scene.intersection import EntityKind, get_entity_count, get_entity_kind
        from src.raytrace.scene.manager import SceneManager

        first = SceneManager()
        first.add_sphere((0, 0, -5), 1.0)
        second = SceneManager()
        second.add_plane((0, -1, 0), (0, -1, 0))

        assert first.add_plane((0, 0, -20), (0, 0, -1)) == 1
        assert get_entity_count() == 2
        assert get_entity_kind(0) == EntityKind.SPHERE
        hit, t, _, entity_id = _intersect((0, 0, 0), (0, 0, -1))
        assert hit == 1
        assert abs(t - 4.0) < 1e-12
        assert entity_id == 0

    def test_activate_uploads_records(self, cube_obj):
        """Test that the global counts match the records after activation."""
        from src.raytrace.geometry.mesh import load_model
        from src.raytrace.lights.light import get_light_count
        from src.raytrace.materials.material import Material, get_material_count
        from src.raytrace.scene import intersection
        from src.raytrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_sphere((0, 0, -5), 1.0, Material(albedo=0.3))
        scene.add_model(load_model(cube_obj, position=(0, 0, -3)))
        scene.add_spherical_light((0, 3, 0), intensity=10.0)

        SceneManager()
        assert intersection.get_entity_count() == 0
        assert get_light_count() == 0

        scene.activate()
        assert intersection.get_entity_count() == scene.get_entity_count() == 2
        assert intersection.get_sphere_count() == scene.get_sphere_count() == 1
        assert intersection.get_model_count() == scene.get_model_count() == 1
        assert intersection.get_triangle_count() == scene.get_triangle_count() == 12
        assert get_light_count() == scene.get_light_count() == 1
        assert get_material_count() == 2
        assert scene.entities[0].material_id == 0
