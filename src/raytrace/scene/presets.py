"""Built-in scenes.

The default scene is a quick smoke test for the renderer:
- Three diffuse spheres at different depths (orange, pink and green)
- A grey floor plane 2.5 units below the camera
- One white directional light shining down and away from the camera

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.raytrace.scene.presets import create_default_scene
    >>> scene = create_default_scene(width=800, height=600)
"""

from dataclasses import dataclass

from src.raytrace.camera.pinhole import Camera
from src.raytrace.materials.material import Material
from src.raytrace.scene.manager import DEFAULT_BIAS, DEFAULT_DEPTH, SceneManager


@dataclass
class DefaultSceneParams:
    """Tunable parts of the default scene.

    Attributes:
        light_direction: Direction the sun light travels in.
        light_intensity: Intensity of the sun light.
        floor_color: RGB color of the floor plane.
    """

    light_direction: tuple[float, float, float] = (-0.4, -1.0, -0.3)
    light_intensity: float = 10.0
    floor_color: tuple[float, float, float] = (0.2, 0.2, 0.2)


def create_default_scene(
    width: int = 1920,
    height: int = 1080,
    fov: float = 90.0,
    params: DefaultSceneParams | None = None,
) -> SceneManager:
    """Create the default three-sphere scene.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.
        fov: Field of view in degrees.
        params: Optional overrides for the light and floor.

    Returns:
        The populated SceneManager.
    """
    params = params or DefaultSceneParams()
    scene = SceneManager(camera=Camera(width=width, height=height, fov=fov), bias=DEFAULT_BIAS, depth=DEFAULT_DEPTH)

    scene.add_sphere((0.0, 0.0, -5.0), 1.0, Material(color=(1.0, 0.4, 0.0)))
    scene.add_sphere((1.5, 0.1, -3.0), 1.0, Material(color=(1.0, 0.0, 0.4)))
    scene.add_sphere((-3.0, -1.5, -8.0), 2.0, Material(color=(0.4, 1.0, 0.4)))
    scene.add_plane((0.0, -2.5, 0.0), (0.0, -1.0, 0.0), Material(color=params.floor_color))

    scene.add_directional_light(params.light_direction, color=(1.0, 1.0, 1.0), intensity=params.light_intensity)
    return scene
