"""Tests for Whitted shading: direct light, shadows, mirrors and glass.

The expected values below are worked out by hand from the shading
formulas; lights are chosen so the irradiance at the shaded point is a
round number.
"""

import math

import pytest


def _mirror_corridor(depth):
    """Two facing mirrors one unit above and below a point light at the origin.

    Every bounce sees a diffuse term of 0.5, so a vertical ray accumulates
    ``0.5 * (1 - r^depth)`` with ``r = 0.5``.
    """
    from src.raytrace.materials.material import Material, Specular
    from src.raytrace.scene.manager import SceneManager

    scene = SceneManager(depth=depth)
    mirror = Material(color=(1.0, 1.0, 1.0), albedo=0.5, surface=Specular(0.5))
    scene.add_plane((0, -1, 0), (0, -1, 0), mirror)
    scene.add_plane((0, 1, 0), (0, 1, 0), mirror)
    # Irradiance pi at distance 1
    scene.add_spherical_light((0, 0, 0), intensity=4.0 * math.pi**2)
    scene.activate()
    return scene


class TestDirectLighting:
    """Tests for diffuse shading and shadow rays."""

    def test_background_is_black(self):
        from src.raytrace.core.integrator import trace_ray
        from src.raytrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_directional_light((0, -1, 0))
        scene.activate()
        assert trace_ray((0, 0, 0), (0, 0, -1)) == (0.0, 0.0, 0.0)

    def test_default_scene_center_ray(self):
        """Test the orange sphere lit by the sun at the image center."""
        from src.raytrace.core.integrator import trace_ray
        from src.raytrace.scene.presets import create_default_scene

        create_default_scene(width=64, height=48).activate()
        r, g, b = trace_ray((0, 0, 0), (0, 0, -1))

        expected = (0.3 / math.sqrt(1.25)) * 10.0 * 0.5 / math.pi
        assert abs(r - expected) < 1e-9
        assert abs(g - 0.4 * expected) < 1e-9
        assert b == 0.0

    def test_default_scene_floor(self):
        """Test a lit floor point with the tiny default bias (no shadow acne)."""
        from src.raytrace.core.integrator import trace_ray
        from src.raytrace.scene.presets import create_default_scene

        create_default_scene(width=64, height=48).activate()
        color = trace_ray((0, 0, 0), (0, -1, -0.2))

        expected = 0.2 * (1.0 / math.sqrt(1.25)) * 10.0 * 0.5 / math.pi
        for c in color:
            assert abs(c - expected) < 1e-9

    def test_occluder_casts_shadow(self):
        from src.raytrace.core.integrator import trace_ray
        from src.raytrace.materials.material import Material
        from src.raytrace.scene.manager import SceneManager

        white = Material(color=(1.0, 1.0, 1.0), albedo=0.5)
        scene = SceneManager()
        scene.add_plane((0, -1, 0), (0, -1, 0), white)
        # Irradiance 1 at distance 4
        scene.add_spherical_light((0, 3, 0), intensity=4.0 * math.pi * 16.0)
        scene.activate()

        lit = trace_ray((0, 0, 0), (0, -1, 0))
        assert abs(lit[0] - 0.5 / math.pi) < 1e-12

        scene.add_sphere((0, 1, 0), 0.5, white)
        scene.activate()
        assert trace_ray((0, 0, 0), (0, -1, 0)) == (0.0, 0.0, 0.0)

    def test_occluder_beyond_light_casts_no_shadow(self):
        from src.raytrace.core.integrator import trace_ray
        from src.raytrace.materials.material import Material
        from src.raytrace.scene.manager import SceneManager

        white = Material(color=(1.0, 1.0, 1.0), albedo=0.5)
        scene = SceneManager()
        scene.add_plane((0, -1, 0), (0, -1, 0), white)
        # Irradiance 1 at distance 4
        scene.add_spherical_light((0, 3, 0), intensity=4.0 * math.pi * 16.0)
        # The shadow ray hits this sphere at t = 6, past the light
        scene.add_sphere((0, 6, 0), 1.0, white)
        scene.activate()

        color = trace_ray((0, 0, 0), (0, -1, 0))
        for c in color:
            assert abs(c - 0.5 / math.pi) < 1e-12

    def test_light_behind_surface_contributes_nothing(self):
        from src.raytrace.core.integrator import trace_ray
        from src.raytrace.materials.material import Material
        from src.raytrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_plane((0, -1, 0), (0, -1, 0), Material(color=(1.0, 1.0, 1.0)))
        scene.add_directional_light((0, 1, 0), intensity=5.0)
        scene.activate()
        assert trace_ray((0, 0, 0), (0, -1, 0)) == (0.0, 0.0, 0.0)

    def test_diffuse_term_is_clamped(self):
        from src.raytrace.core.integrator import trace_ray
        from src.raytrace.materials.material import Material
        from src.raytrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_plane((0, -1, 0), (0, -1, 0), Material(color=(1.0, 1.0, 1.0), albedo=1.0))
        scene.add_directional_light((0, -1, 0), intensity=1000.0)
        scene.activate()
        assert trace_ray((0, 0, 0), (0, -1, 0)) == (1.0, 1.0, 1.0)


class TestRecursion:
    """Tests for specular and transparent secondary rays."""

    @pytest.mark.parametrize(
        "depth,expected",
        [(0, 0.0), (1, 0.25), (2, 0.375), (4, 0.46875)],
    )
    def test_mirror_corridor_depth(self, depth, expected):
        from src.raytrace.core.integrator import trace_ray

        _mirror_corridor(depth)
        color = trace_ray((0, 0, 0), (0, -1, 0))
        for c in color:
            assert abs(c - expected) < 1e-9

    def test_starting_depth_counts(self):
        """Test that a ray starting at depth d behaves like max_depth - d."""
        from src.raytrace.core.integrator import trace_ray

        _mirror_corridor(4)
        color = trace_ray((0, 0, 0), (0, -1, 0), depth=3)
        assert abs(color[0] - 0.25) < 1e-9

    def test_render_pixel_matches_trace_ray(self):
        from src.raytrace.core.integrator import render_pixel, trace_ray
        from src.raytrace.scene.presets import create_default_scene

        create_default_scene(width=3, height=3).activate()
        assert render_pixel(1, 1) == trace_ray((0, 0, 0), (0, 0, -1))

    def test_index_matched_glass_passes_light(self):
        """Test a clear sphere of index 1 in front of a lit diffuse sphere.

        With index 1 there is no reflection and no bending, so the back
        sphere is seen through two interfaces, each tinting by the glass
        color (0.5) times the transparency (1).
        """
        from src.raytrace.core.integrator import trace_ray
        from src.raytrace.materials.material import Material, Transparent
        from src.raytrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_sphere(
            (0, 0, -3), 1.0, Material(color=(0.5, 0.5, 0.5), surface=Transparent(index=1.0, transparency=1.0))
        )
        scene.add_sphere((0, 0, -10), 1.0, Material(color=(1.0, 1.0, 1.0), albedo=0.5))
        # Between the spheres, irradiance 1 at the back sphere
        scene.add_spherical_light((0, 0, -6), intensity=4.0 * math.pi * 9.0)
        scene.activate()

        color = trace_ray((0, 0, 0), (0, 0, -1))
        expected = 0.25 * 0.5 / math.pi
        for c in color:
            assert abs(c - expected) < 1e-9

    def test_opaque_glass_is_black(self):
        from src.raytrace.core.integrator import trace_ray
        from src.raytrace.materials.material import Material, Transparent
        from src.raytrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_sphere((0, 0, -3), 1.0, Material(surface=Transparent(index=1.5, transparency=0.0)))
        scene.add_plane((0, -2, 0), (0, -1, 0), Material(color=(1.0, 1.0, 1.0)))
        scene.add_directional_light((0, -1, -1), intensity=10.0)
        scene.activate()
        assert trace_ray((0, 0, 0), (0, 0, -1)) == (0.0, 0.0, 0.0)

    def test_glass_stays_finite_at_max_depth(self):
        from src.raytrace.core.integrator import trace_ray
        from src.raytrace.materials.material import Material, Transparent
        from src.raytrace.scene.intersection import MAX_DEPTH
        from src.raytrace.scene.manager import SceneManager

        scene = SceneManager(depth=MAX_DEPTH)
        glass = Material(color=(1.0, 1.0, 1.0), surface=Transparent(index=1.5))
        for z in (-3.0, -6.0, -9.0):
            scene.add_sphere((0.2, 0.1, z), 1.0, glass)
        scene.add_plane((0, -2, 0), (0, -1, 0), Material(color=(1.0, 1.0, 1.0)))
        scene.add_directional_light((0.3, -1, -0.5), intensity=5.0)
        scene.activate()

        color = trace_ray((0, 0, 0), (0, 0, -1))
        for c in color:
            assert math.isfinite(c)
            assert c >= 0.0

    def test_glass_blends_reflection_and_transmission(self):
        """Test kr = 0.04 for glass of index 1.5 at normal incidence.

        The camera looks through a glass plane at a diffuse wall. The
        reflected ray hits a diffuse wall behind the camera. Both walls are
        lit by two point lights on the axis. The glass shadows the far
        light from the near wall.
        """
        from src.raytrace.core.integrator import trace_ray
        from src.raytrace.materials.material import Material, Transparent
        from src.raytrace.scene.manager import SceneManager

        white = Material(color=(1.0, 1.0, 1.0), albedo=0.5)
        glass_color = (1.0, 0.5, 0.25)
        scene = SceneManager()
        scene.add_plane(
            (0, 0, -2), (0, 0, -1), Material(color=glass_color, surface=Transparent(index=1.5, transparency=0.8))
        )
        scene.add_plane((0, 0, -5), (0, 0, -1), white)
        scene.add_plane((0, 0, 2), (0, 0, 1), white)
        # Irradiance 1 at the far wall
        scene.add_spherical_light((0, 0, -3), intensity=16.0 * math.pi)
        # Irradiance 1 at the near wall and 1 / 36 at the far wall
        scene.add_spherical_light((0, 0, 1), intensity=4.0 * math.pi)
        scene.activate()

        transmitted = 0.5 / math.pi * (1.0 + 1.0 / 36.0)
        reflected = 0.5 / math.pi
        color = trace_ray((0, 0, 0), (0, 0, -1))
        for c, tint in zip(color, glass_color):
            expected = tint * 0.8 * (0.04 * reflected + 0.96 * transmitted)
            assert abs(c - expected) < 1e-9

    def test_total_internal_reflection_reflects_everything(self):
        """Test a ray leaving glass at sin_t = 1.2.

        The ray starts inside a glass sphere of radius 10 and meets the
        surface at (6, 8, 0) with cos_i = 0.6. All of it is reflected toward
        (0.28, -0.96, 0), onto a diffuse sphere inside the glass lit with
        irradiance 1 along its normal.
        """
        from src.raytrace.core.integrator import trace_ray
        from src.raytrace.materials.material import Material, Transparent
        from src.raytrace.scene.manager import SceneManager

        glass_color = (1.0, 0.5, 0.25)
        scene = SceneManager()
        scene.add_sphere(
            (0, 0, 0), 10.0, Material(color=glass_color, surface=Transparent(index=1.5, transparency=0.8))
        )
        scene.add_sphere((7.68, 2.24, 0), 1.0, Material(color=(1.0, 1.0, 1.0), albedo=0.5))
        # Two units from the hit point (7.4, 3.2, 0) along its normal
        scene.add_spherical_light((6.84, 5.12, 0), intensity=16.0 * math.pi)
        scene.activate()

        color = trace_ray((0, 8, 0), (1, 0, 0))
        for c, tint in zip(color, glass_color):
            assert abs(c - tint * 0.8 * 0.5 / math.pi) < 1e-9
