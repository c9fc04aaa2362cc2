"""Triangle soup container and Wavefront OBJ model loading.

Models are loaded once, before rendering, into a ``TriangleMesh``: an array
of triangles with optional per-vertex normals. The mesh is then uploaded to
the scene's triangle storage and intersected by a linear scan (there is no
spatial index, so render time grows linearly with the triangle count).

OBJ parsing is delegated to pywavefront, which triangulates polygon faces
and emits interleaved vertex data per material, e.g. ``T2F_N3F_V3F``.

Example:
    >>> from src.raytrace.geometry.mesh import load_model
    >>> mesh = load_model("scenes/models/cube.obj", position=(0, 0, -3))
    >>> len(mesh)
    12
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import numpy.typing as npt
import pywavefront
from pywavefront.exceptions import PywavefrontException

logger = logging.getLogger(__name__)


class MeshLoadError(RuntimeError):
    """Raised when a model file cannot be read or parsed."""


@dataclass
class TriangleMesh:
    """A batch of triangles.

    Attributes:
        vertices: Array of shape (n, 3, 3): three positions per triangle.
        normals: Optional array of shape (n, 3, 3): three vertex normals per
            triangle. Rows of triangles without normals are zero.
        normal_mask: Optional boolean array of shape (n,) marking which
            triangles carry vertex normals. Defaults to all True when
            ``normals`` is given.
    """

    vertices: npt.NDArray[np.float64]
    normals: npt.NDArray[np.float64] | None = None
    normal_mask: npt.NDArray[np.bool_] | None = None

    def __post_init__(self) -> None:
        self.vertices = np.asarray(self.vertices, dtype=np.float64).reshape(-1, 3, 3)
        if self.normals is None:
            self.normal_mask = None
            return
        self.normals = np.asarray(self.normals, dtype=np.float64).reshape(-1, 3, 3)
        if self.normals.shape != self.vertices.shape:
            raise ValueError(
                f"Normals shape {self.normals.shape} does not match vertices "
                f"shape {self.vertices.shape}"
            )
        if self.normal_mask is None:
            self.normal_mask = np.ones(len(self.vertices), dtype=bool)
        else:
            self.normal_mask = np.asarray(self.normal_mask, dtype=bool).reshape(-1)

    def __len__(self) -> int:
        return int(self.vertices.shape[0])

    @property
    def has_normals(self) -> npt.NDArray[np.bool_]:
        """Per-triangle flag: True where vertex normals are available."""
        if self.normal_mask is None:
            return np.zeros(len(self), dtype=bool)
        return self.normal_mask

    @classmethod
    def empty(cls) -> TriangleMesh:
        """A mesh with no triangles (never intersected)."""
        return cls(vertices=np.zeros((0, 3, 3), dtype=np.float64))

    @classmethod
    def concatenate(cls, batches: Iterable[TriangleMesh]) -> TriangleMesh:
        """Merge several batches into one mesh, preserving triangle order."""
        batches = [b for b in batches if len(b) > 0]
        if not batches:
            return cls.empty()

        vertices = np.concatenate([b.vertices for b in batches])
        if all(b.normals is None for b in batches):
            return cls(vertices=vertices)

        normals = np.concatenate(
            [b.normals if b.normals is not None else np.zeros_like(b.vertices) for b in batches]
        )
        mask = np.concatenate([b.has_normals for b in batches])
        return cls(vertices=vertices, normals=normals, normal_mask=mask)

    def transformed(self, position: Sequence[float] = (0.0, 0.0, 0.0), scale: float = 1.0) -> TriangleMesh:
        """Place the mesh in world space: ``vertex * scale + position``.

        Normals are unaffected by a positive uniform scale and translation.

        Raises:
            ValueError: If scale is not positive.
        """
        if scale <= 0.0:
            raise ValueError(f"Model scale must be positive, got {scale}")
        offset = np.asarray(position, dtype=np.float64).reshape(1, 1, 3)
        return TriangleMesh(
            vertices=self.vertices * scale + offset,
            normals=None if self.normals is None else self.normals.copy(),
            normal_mask=None if self.normal_mask is None else self.normal_mask.copy(),
        )

    def edges(self) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        """Return ``(v0, edge1, edge2)`` arrays of shape (n, 3)."""
        v0 = self.vertices[:, 0, :]
        return v0, self.vertices[:, 1, :] - v0, self.vertices[:, 2, :] - v0


def _vertex_layout(vertex_format: str) -> tuple[dict[str, int], int]:
    """Parse a pywavefront vertex format such as ``T2F_N3F_V3F``.

    Returns:
        Tuple of (offsets by component letter, stride in floats).
    """
    offsets: dict[str, int] = {}
    stride = 0
    for token in vertex_format.split("_"):
        if len(token) < 3 or not token.endswith("F"):
            raise MeshLoadError(f"Unsupported vertex format: {vertex_format}")
        offsets[token[0]] = stride
        stride += int(token[1:-1])
    if "V" not in offsets:
        raise MeshLoadError(f"Vertex format without positions: {vertex_format}")
    return offsets, stride


def _batch_from_material(material: pywavefront.material.Material) -> TriangleMesh:
    """Convert one pywavefront material's interleaved vertices to triangles."""
    offsets, stride = _vertex_layout(material.vertex_format)
    data = np.asarray(material.vertices, dtype=np.float64)
    if data.size == 0:
        return TriangleMesh.empty()
    if data.size % stride != 0:
        raise MeshLoadError(
            f"Vertex data length ({data.size}) not divisible by stride ({stride}) "
            f"for format {material.vertex_format}"
        )

    rows = data.reshape(-1, stride)
    if len(rows) % 3 != 0:
        raise MeshLoadError(f"Vertex count {len(rows)} is not a multiple of 3")

    v = offsets["V"]
    vertices = rows[:, v : v + 3].reshape(-1, 3, 3)
    normals = None
    if "N" in offsets:
        n = offsets["N"]
        normals = rows[:, n : n + 3].reshape(-1, 3, 3)
    return TriangleMesh(vertices=vertices, normals=normals)


def load_model(
    path: str | Path,
    position: Sequence[float] = (0.0, 0.0, 0.0),
    scale: float = 1.0,
) -> TriangleMesh:
    """Load a Wavefront OBJ file into world-space triangles.

    Args:
        path: Path to the .obj file.
        position: World-space offset added to every vertex.
        scale: Uniform scale applied before the offset.

    Returns:
        The merged triangles of every mesh and material in the file.

    Raises:
        MeshLoadError: If the file is missing or cannot be parsed.
    """
    path = Path(path)
    if not path.is_file():
        raise MeshLoadError(f"Model file not found: {path}")

    try:
        wavefront = pywavefront.Wavefront(str(path), create_materials=True, parse=True)
    except (OSError, PywavefrontException, ValueError, IndexError) as e:
        raise MeshLoadError(f"Failed to parse model file {path}: {e}") from e

    batches = [
        _batch_from_material(material)
        for mesh in wavefront.mesh_list
        for material in mesh.materials
    ]
    mesh = TriangleMesh.concatenate(batches).transformed(position, scale)
    logger.debug("Loaded %d triangles from %s", len(mesh), path)
    return mesh
