"""Scene module for scene storage and management.

Components:
    intersection: Entity storage in Taichi fields and nearest-hit queries
    manager: SceneManager coordinating camera, entities, materials and lights
    loader: JSON scene files
    presets: Built-in scenes

Scene data is organized for parallel access:
    - Structure-of-Arrays layout for geometric data
    - One entity table in insertion order, shared by all entity kinds
    - Triangles of all models in one contiguous storage
"""

from .intersection import (
    MAX_DEPTH,
    EntityKind,
    SceneHitRecord,
    clear_scene,
    intersect_scene,
)
from .loader import SceneLoadError, load_scene, save_scene
from .manager import EntityInfo, SceneManager
from .presets import DefaultSceneParams, create_default_scene

__all__ = [
    # Intersection module
    "SceneHitRecord",
    "EntityKind",
    "MAX_DEPTH",
    "clear_scene",
    "intersect_scene",
    # Manager module
    "SceneManager",
    "EntityInfo",
    # Scene files
    "load_scene",
    "save_scene",
    "SceneLoadError",
    # Presets
    "create_default_scene",
    "DefaultSceneParams",
]
