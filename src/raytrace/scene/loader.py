"""Scene file loading.

Scene files are JSON documents in the schema written by
``SceneManager.to_dict``. Model paths inside a scene file are relative to
the file's directory.
"""

import json
import logging
from pathlib import Path

from src.raytrace.scene.manager import SceneManager

logger = logging.getLogger(__name__)


class SceneLoadError(ValueError):
    """Raised when a scene file cannot be read or describes an invalid scene."""


def load_scene(path: str | Path) -> SceneManager:
    """Read a scene file and build the scene.

    Args:
        path: Path to the JSON scene file.

    Returns:
        The populated SceneManager.

    Raises:
        SceneLoadError: If the file cannot be read, is not valid JSON, or
            contains invalid scene data.
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise SceneLoadError(f"Cannot read scene file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise SceneLoadError(f"Invalid JSON in scene file {path}: {e}") from e

    if not isinstance(data, dict):
        raise SceneLoadError(f"Scene file {path} must contain a JSON object")

    try:
        scene = SceneManager.from_dict(data, base_dir=path.parent)
    except (ValueError, TypeError, KeyError) as e:
        raise SceneLoadError(f"Invalid scene in {path}: {e}") from e

    logger.info(
        "Loaded scene %s: %d entities, %d lights", path, scene.get_entity_count(), scene.get_light_count()
    )
    return scene


def save_scene(scene: SceneManager, path: str | Path) -> None:
    """Write a scene to a JSON scene file."""
    path = Path(path)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(scene.to_dict(), f, indent=2)
