"""Scene aggregate coordinating camera, entities, materials and lights.

The SceneManager is the Python-side view of a scene. Every entity is added
together with its material: the material is registered first, then the
entity is written to the intersection storage with that material ID. The
manager keeps a record of what it added so the scene can be queried and
serialized without reading the Taichi fields back.

Entity, material and light storage is global and holds one scene at a time.
Each manager owns a token; the token of the manager whose records are in
the fields is kept at module level. A manager that is not the current owner
re-uploads its records before it is modified or rendered, so several
managers can coexist and ``render(scene)`` always draws ``scene``.

The SceneManager maintains:
- The camera and the render settings (ray bias and recursion depth)
- Records of entities in insertion order (their index is the entity ID)
- Records of lights in insertion order
- Scene file (de)serialization

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.raytrace.scene.manager import SceneManager
    >>> from src.raytrace.materials.material import Material, Specular
    >>> scene = SceneManager()
    >>> scene.add_sphere((0, 0, -5), 1.0, Material(color=(1, 0.4, 0)))
    0
    >>> scene.add_plane((0, -2.5, 0), (0, -1, 0), Material(surface=Specular(0.3)))
    1
    >>> scene.add_directional_light((-0.4, -1, -0.3), intensity=10.0)
    0
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from src.raytrace.camera.pinhole import Camera, setup_camera
from src.raytrace.core.vector import to_vec3_tuple
from src.raytrace.geometry.mesh import MeshLoadError, TriangleMesh, load_model
from src.raytrace.lights.light import (
    DirectionalLight,
    Light,
    SphericalLight,
    add_light,
    clear_lights,
    light_from_dict,
    light_to_dict,
)
from src.raytrace.materials.material import (
    Material,
    add_material,
    clear_materials,
    material_from_dict,
    material_to_dict,
)
from src.raytrace.scene.intersection import (
    MAX_DEPTH,
    EntityKind,
    add_model_entity,
    add_plane_entity,
    add_sphere_entity,
    clear_scene,
    set_scene_settings,
)

logger = logging.getLogger(__name__)

DEFAULT_BIAS = 1e-13
DEFAULT_DEPTH = 16

_scene_tokens = itertools.count()

# Token of the manager whose records are currently in the Taichi fields
_uploaded_token: int | None = None


@dataclass
class EntityInfo:
    """Information about an entity in the scene.

    Attributes:
        kind: Plane, sphere or model.
        material: The material assigned to the entity.
        material_id: The registered material ID.
        params: The geometric parameters as provided during creation
            (scene file form, without the material).
        mesh: World-space triangles of a model, kept for re-uploading.
    """

    kind: EntityKind
    material: Material
    material_id: int
    params: dict[str, Any] = field(default_factory=dict)
    mesh: TriangleMesh | None = field(default=None, repr=False, compare=False)


def _upload_entity(info: EntityInfo) -> int:
    if info.kind == EntityKind.SPHERE:
        return add_sphere_entity(info.params["center"], info.params["radius"], info.material_id)
    if info.kind == EntityKind.PLANE:
        return add_plane_entity(info.params["center"], info.params["normal"], info.material_id)
    return add_model_entity(info.mesh, info.material_id)


class SceneManager:
    """A renderable scene: camera, entities, lights and render settings.

    Entity indices returned by the ``add_*`` methods are the entity IDs
    reported by ``intersect_scene``.

    Attributes:
        camera: Camera used for primary rays.
        bias: Offset applied to secondary and shadow ray origins.
        depth: Maximum recursion depth. A depth of 0 renders black.
        entities: EntityInfo records in insertion order.
        lights: Lights in insertion order.
    """

    def __init__(
        self,
        camera: Camera | None = None,
        bias: float = DEFAULT_BIAS,
        depth: int = DEFAULT_DEPTH,
    ) -> None:
        """Initialize an empty scene.

        Raises:
            ValueError: If ``bias`` is negative or ``depth`` is outside
                ``[0, MAX_DEPTH]``.
        """
        if bias < 0.0:
            raise ValueError(f"Bias must be non-negative, got {bias}")
        if not 0 <= depth <= MAX_DEPTH:
            raise ValueError(f"Depth must be in [0, {MAX_DEPTH}], got {depth}")
        self.camera = camera if camera is not None else Camera()
        self.bias = float(bias)
        self.depth = int(depth)
        self.entities: list[EntityInfo] = []
        self.lights: list[Light] = []
        self._token = next(_scene_tokens)
        self._clear_all()

    def _clear_all(self) -> None:
        global _uploaded_token
        clear_scene()
        clear_materials()
        clear_lights()
        self.entities.clear()
        self.lights.clear()
        _uploaded_token = self._token
        self.activate()

    def _ensure_uploaded(self) -> None:
        """Write this manager's entities, materials and lights to the fields.

        Does nothing while this manager is still the owner of the fields.
        """
        global _uploaded_token
        if _uploaded_token == self._token:
            return

        # No owner until the upload is complete
        _uploaded_token = None
        clear_scene()
        clear_materials()
        clear_lights()
        for info in self.entities:
            info.material_id = add_material(info.material)
            _upload_entity(info)
        for light in self.lights:
            add_light(light)
        _uploaded_token = self._token
        logger.debug("Uploaded scene: %d entities, %d lights", len(self.entities), len(self.lights))

    def clear(self) -> None:
        """Remove all entities, materials and lights.

        The camera and render settings are kept.
        """
        self._clear_all()

    def activate(self) -> None:
        """Make this scene the one that kernels trace.

        Re-uploads the entities, materials and lights if another manager
        has written the Taichi fields since, then uploads the camera and
        render settings.
        """
        self._ensure_uploaded()
        setup_camera(self.camera)
        set_scene_settings(self.bias, self.depth)

    # =========================================================================
    # Entities
    # =========================================================================

    def _register(
        self,
        kind: EntityKind,
        material: Material,
        params: dict[str, Any],
        mesh: TriangleMesh | None = None,
    ) -> int:
        self._ensure_uploaded()
        info = EntityInfo(
            kind=kind, material=material, material_id=add_material(material), params=params, mesh=mesh
        )
        idx = _upload_entity(info)
        self.entities.append(info)
        return idx

    def add_sphere(
        self,
        center: tuple[float, float, float],
        radius: float = 1.0,
        material: Material | None = None,
    ) -> int:
        """Add a sphere with its material.

        Args:
            center: The center point of the sphere as (x, y, z).
            radius: The radius of the sphere (must be positive).
            material: The sphere's material. Defaults to ``Material()``.

        Returns:
            The entity index of the sphere.

        Raises:
            ValueError: If the radius is not positive.
            RuntimeError: If a storage capacity is exceeded.
        """
        center = to_vec3_tuple(center, "Sphere center")
        if radius <= 0.0:
            raise ValueError(f"Sphere radius must be positive, got {radius}")
        return self._register(
            EntityKind.SPHERE, material or Material(), {"center": list(center), "radius": float(radius)}
        )

    def add_plane(
        self,
        center: tuple[float, float, float],
        normal: tuple[float, float, float],
        material: Material | None = None,
    ) -> int:
        """Add an infinite plane with its material.

        Args:
            center: Any point on the plane.
            normal: Normal pointing away from the visible side; normalized
                before upload.
            material: The plane's material. Defaults to ``Material()``.

        Returns:
            The entity index of the plane.

        Raises:
            ValueError: If the normal is the zero vector.
            RuntimeError: If a storage capacity is exceeded.
        """
        center = to_vec3_tuple(center, "Plane center")
        normal = to_vec3_tuple(normal, "Plane normal")
        if normal == (0.0, 0.0, 0.0):
            raise ValueError("Plane normal must not be the zero vector")
        return self._register(
            EntityKind.PLANE, material or Material(), {"center": list(center), "normal": list(normal)}
        )

    def add_model(
        self,
        mesh: TriangleMesh,
        material: Material | None = None,
        *,
        path: str | None = None,
        position: tuple[float, float, float] | None = None,
        scale: float = 1.0,
    ) -> int:
        """Add a triangle model with one material for the whole mesh.

        Args:
            mesh: World-space triangles (already positioned and scaled).
            material: The model's material. Defaults to ``Material()``.
            path: Source file of the mesh, kept for serialization.
            position: Placement the mesh was loaded with, kept for
                serialization.
            scale: Scale the mesh was loaded with, kept for serialization.

        Returns:
            The entity index of the model.

        Raises:
            RuntimeError: If a storage capacity is exceeded.
        """
        params: dict[str, Any] = {"triangles": len(mesh)}
        if path is not None:
            params = {
                "path": str(path),
                "position": list(to_vec3_tuple(position or (0.0, 0.0, 0.0), "Model position")),
                "scale": float(scale),
            }
        return self._register(EntityKind.MODEL, material or Material(), params, mesh)

    def entity_material(self, entity_index: int) -> Material:
        """Get the material of an entity.

        Raises:
            IndexError: If no entity has this index.
        """
        if not 0 <= entity_index < len(self.entities):
            raise IndexError(f"No entity with index {entity_index}")
        return self.entities[entity_index].material

    # =========================================================================
    # Lights
    # =========================================================================

    def add_light(self, light: Light) -> int:
        """Add a light to the scene.

        Returns:
            The index of the light.
        """
        self._ensure_uploaded()
        idx = add_light(light)
        self.lights.append(light)
        return idx

    def add_directional_light(
        self,
        direction: tuple[float, float, float],
        color: tuple[float, float, float] = (1.0, 1.0, 1.0),
        intensity: float = 1.0,
    ) -> int:
        """Add a light infinitely far away shining along ``direction``."""
        return self.add_light(DirectionalLight(direction=direction, color=color, intensity=intensity))

    def add_spherical_light(
        self,
        position: tuple[float, float, float],
        color: tuple[float, float, float] = (1.0, 1.0, 1.0),
        intensity: float = 1.0,
    ) -> int:
        """Add a point light at ``position``."""
        return self.add_light(SphericalLight(position=position, color=color, intensity=intensity))

    # =========================================================================
    # Scene Queries
    # =========================================================================

    def _count(self, kind: EntityKind) -> int:
        return sum(1 for info in self.entities if info.kind == kind)

    def get_entity_count(self) -> int:
        """Get the total number of entities in the scene."""
        return len(self.entities)

    def get_sphere_count(self) -> int:
        """Get the number of spheres in the scene."""
        return self._count(EntityKind.SPHERE)

    def get_plane_count(self) -> int:
        """Get the number of planes in the scene."""
        return self._count(EntityKind.PLANE)

    def get_model_count(self) -> int:
        """Get the number of models in the scene."""
        return self._count(EntityKind.MODEL)

    def get_triangle_count(self) -> int:
        """Get the number of triangles over all models."""
        return sum(len(info.mesh) for info in self.entities if info.mesh is not None)

    def get_light_count(self) -> int:
        """Get the number of lights in the scene."""
        return len(self.lights)

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a dictionary (for JSON serialization).

        Models added from an in-memory mesh (without a path) cannot be
        written back to a scene file and are skipped with a warning.
        """
        entities = []
        for info in self.entities:
            if info.kind == EntityKind.MODEL and "path" not in info.params:
                logger.warning("Skipping in-memory model without a source path")
                continue
            entities.append(
                {
                    "type": info.kind.name.lower(),
                    **info.params,
                    "material": material_to_dict(info.material),
                }
            )
        return {
            "bias": self.bias,
            "depth": self.depth,
            "camera": self.camera.to_dict(),
            "entities": entities,
            "lights": [light_to_dict(light) for light in self.lights],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], base_dir: str | Path | None = None) -> SceneManager:
        """Build a scene from a dictionary in the scene file schema.

        Model paths are resolved relative to ``base_dir`` (the current
        directory when None). A model that fails to load is logged and added
        without geometry, so it never intersects.

        Args:
            data: The scene description.
            base_dir: Directory that relative model paths refer to.

        Returns:
            The populated scene.

        Raises:
            ValueError: If the description contains invalid data.
        """
        base = Path(base_dir) if base_dir is not None else Path(".")
        scene = cls(
            camera=Camera.from_dict(data.get("camera", {})),
            bias=float(data.get("bias", DEFAULT_BIAS)),
            depth=int(data.get("depth", DEFAULT_DEPTH)),
        )

        for entity in data.get("entities", []):
            entity_type = str(entity.get("type", "")).lower()
            material = material_from_dict(entity.get("material", {}))
            if entity_type == "sphere":
                scene.add_sphere(
                    entity.get("center", (0.0, 0.0, 0.0)), float(entity.get("radius", 1.0)), material
                )
            elif entity_type == "plane":
                scene.add_plane(entity.get("center", (0.0, 0.0, 0.0)), entity.get("normal", (0.0, -1.0, 0.0)), material)
            elif entity_type == "model":
                if "path" not in entity:
                    raise ValueError("Model entity without a path")
                position = to_vec3_tuple(entity.get("position", (0.0, 0.0, 0.0)), "Model position")
                scale = float(entity.get("scale", 1.0))
                model_path = base / entity["path"]
                try:
                    mesh = load_model(model_path, position=position, scale=scale)
                except MeshLoadError as e:
                    logger.warning("Skipping model geometry: %s", e)
                    mesh = TriangleMesh.empty()
                scene.add_model(mesh, material, path=entity["path"], position=position, scale=scale)
            else:
                raise ValueError(f"Unknown entity type: {entity_type!r}")

        for light in data.get("lights", []):
            scene.add_light(light_from_dict(light))

        return scene
