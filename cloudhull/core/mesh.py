from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict
import numpy as np

from .utils import as_points

@dataclass
class Mesh:
    """Vertex list plus triangles indexing into it."""
    vertices: np.ndarray                  # (V, 3) float64
    triangles: np.ndarray                 # (F, 3) int64

    def __post_init__(self) -> None:
        self.vertices = as_points(self.vertices, name="vertices")
        tris = np.asarray(self.triangles, dtype=np.int64)
        if tris.size == 0:
            tris = np.zeros((0, 3), dtype=np.int64)
        if tris.ndim != 2 or tris.shape[1] != 3:
            raise ValueError(f"triangles must have shape (F, 3), got {tris.shape}")
        n = len(self.vertices)
        if len(tris) and (tris.min() < 0 or tris.max() >= n):
            raise ValueError(f"triangle index out of range for {n} vertices")
        self.triangles = tris

    @classmethod
    def empty(cls) -> "Mesh":
        return cls(np.zeros((0, 3)), np.zeros((0, 3), dtype=np.int64))

    @property
    def n_vertices(self) -> int:
        return int(self.vertices.shape[0])

    @property
    def n_triangles(self) -> int:
        return int(self.triangles.shape[0])

    @property
    def is_empty(self) -> bool:
        return self.n_vertices == 0 and self.n_triangles == 0

    def edges(self) -> np.ndarray:
        """Unique undirected edges as (E, 2) sorted index pairs."""
        if self.n_triangles == 0:
            return np.zeros((0, 2), dtype=np.int64)
        t = self.triangles
        pairs = np.vstack([t[:, [0, 1]], t[:, [1, 2]], t[:, [2, 0]]])
        pairs.sort(axis=1)
        return np.unique(pairs, axis=0)

    def euler_characteristic(self) -> int:
        return self.n_vertices - len(self.edges()) + self.n_triangles

    def triangle_areas(self) -> np.ndarray:
        if self.n_triangles == 0:
            return np.zeros((0,), dtype=np.float64)
        tri = self.vertices[self.triangles]
        cross = np.cross(tri[:, 1] - tri[:, 0], tri[:, 2] - tri[:, 0])
        return 0.5 * np.linalg.norm(cross, axis=1)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "vertices": self.vertices.tolist(),
            "triangles": self.triangles.tolist(),
        }
