from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Tuple
import numpy as np

from scipy.spatial import ConvexHull, QhullError, cKDTree  # type: ignore

from .errors import DegenerateGeometryError
from .pointcloud import PointCloud
from .utils import get_logger

_log = get_logger()


class HullKind(str, Enum):
    VOLUMETRIC = "volumetric"    # closed 3D hull
    PLANAR = "planar"            # coplanar input, fan-triangulated polygon
    LINEAR = "linear"            # collinear input, no triangles


@dataclass
class HullResult:
    vertices: PointCloud
    triangles: np.ndarray            # (F, 3) into vertices
    kind: HullKind
    source_index: np.ndarray         # (V,) index of each hull vertex in the input cloud
    area: float = 0.0
    volume: float = 0.0

    @property
    def is_degenerate(self) -> bool:
        return self.kind is not HullKind.VOLUMETRIC


def deduplicate(xyz: np.ndarray, tolerance: float) -> np.ndarray:
    """Indices of the first point of every group of points closer than ``tolerance``."""
    if len(xyz) == 0:
        return np.zeros((0,), dtype=np.int64)
    tree = cKDTree(xyz)
    groups = tree.query_ball_point(xyz, r=max(tolerance, 0.0), return_sorted=True)
    owner = np.full(len(xyz), -1, dtype=np.int64)
    keep = []
    for i, members in enumerate(groups):
        if owner[i] >= 0:
            continue
        owner[i] = i
        keep.append(i)
        for j in members:
            if owner[j] < 0:
                owner[j] = i
    return np.asarray(keep, dtype=np.int64)


def _affine_rank(centered: np.ndarray, tolerance: float) -> Tuple[int, np.ndarray]:
    _, s, vt = np.linalg.svd(centered, full_matrices=False)
    if s[0] <= 0.0:
        return 0, vt
    return int(np.sum(s > tolerance * s[0])), vt


def _volumetric(points: np.ndarray) -> Tuple[np.ndarray, np.ndarray, float, float]:
    hull = ConvexHull(points)
    tris = hull.simplices.astype(np.int64, copy=True)
    # Qhull does not orient simplices; flip the ones whose normal disagrees with the facet plane.
    a, b, c = points[tris[:, 0]], points[tris[:, 1]], points[tris[:, 2]]
    facing = np.einsum("ij,ij->i", np.cross(b - a, c - a), hull.equations[:, :3])
    flip = facing < 0
    tris[flip] = tris[flip][:, [0, 2, 1]]
    return np.sort(hull.vertices).astype(np.int64), tris, float(hull.area), float(hull.volume)


def _planar(points: np.ndarray, basis: np.ndarray) -> Tuple[np.ndarray, np.ndarray, float]:
    coords = (points - points.mean(axis=0)) @ basis[:2].T
    hull = ConvexHull(coords)
    ring = hull.vertices.astype(np.int64)    # counter-clockwise in the plane basis
    tris = np.array([[ring[0], ring[k], ring[k + 1]] for k in range(1, len(ring) - 1)], dtype=np.int64)
    return np.sort(ring), tris.reshape(-1, 3), float(hull.volume)


def _linear(points: np.ndarray, basis: np.ndarray) -> np.ndarray:
    t = (points - points.mean(axis=0)) @ basis[0]
    return np.unique(np.array([np.argmin(t), np.argmax(t)], dtype=np.int64))


def reconstruct_hull(
    cloud: PointCloud,
    *,
    dedup_tolerance: float = 1e-9,
    planar_tolerance: float = 1e-9,
    min_triangle_area: float = 1e-12,
) -> HullResult:
    """Convex hull of ``cloud`` as a triangle mesh over the hull vertices.

    Coincident points are merged first. Coplanar input yields a planar fan,
    collinear input an edge without triangles; the ``kind`` of the result
    says which case occurred. Fewer than three distinct points raise
    :class:`DegenerateGeometryError`.
    """
    unique = deduplicate(cloud.xyz, dedup_tolerance)
    if len(unique) < len(cloud):
        _log.info("Merged %d coincident points", len(cloud) - len(unique))
    if len(unique) < 3:
        raise DegenerateGeometryError(
            f"Convex hull needs at least 3 distinct points, got {len(unique)}", stage="hull_building"
        )

    points = cloud.xyz[unique]
    rank, basis = _affine_rank(points - points.mean(axis=0), planar_tolerance)

    kind = HullKind.VOLUMETRIC
    area = 0.0
    volume = 0.0
    tris = np.zeros((0, 3), dtype=np.int64)
    if rank >= 3:
        try:
            hull_ids, tris, area, volume = _volumetric(points)
        except QhullError as exc:
            _log.warning("3D hull failed (%s); treating input as planar.", str(exc).splitlines()[0])
            rank = 2
    if rank == 2:
        kind = HullKind.PLANAR
        try:
            hull_ids, tris, area = _planar(points, basis)
        except QhullError as exc:
            _log.warning("Planar hull failed (%s); treating input as collinear.", str(exc).splitlines()[0])
            rank = 1
    if rank <= 1:
        kind = HullKind.LINEAR
        hull_ids = _linear(points, basis)
        tris = np.zeros((0, 3), dtype=np.int64)

    if kind is not HullKind.VOLUMETRIC:
        _log.warning("Degenerate input: %s hull over %d points", kind.value, len(points))

    # Re-index triangles from the deduplicated points onto the hull vertices.
    remap = np.full(len(points), -1, dtype=np.int64)
    remap[hull_ids] = np.arange(len(hull_ids), dtype=np.int64)
    tris = remap[tris] if len(tris) else tris
    vertices = PointCloud(points[hull_ids])

    if len(tris):
        corners = vertices.xyz[tris]
        areas = 0.5 * np.linalg.norm(np.cross(corners[:, 1] - corners[:, 0], corners[:, 2] - corners[:, 0]), axis=1)
        keep = areas > min_triangle_area
        if not np.all(keep):
            _log.info("Dropped %d zero-area hull triangles", int(np.sum(~keep)))
        tris = tris[keep]

    return HullResult(
        vertices=vertices,
        triangles=tris.reshape(-1, 3),
        kind=kind,
        source_index=unique[hull_ids],
        area=area,
        volume=volume,
    )
