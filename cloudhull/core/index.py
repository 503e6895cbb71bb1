from __future__ import annotations
from typing import List
import numpy as np

from scipy.spatial import cKDTree  # type: ignore

from .errors import EmptyInputError
from .pointcloud import PointCloud
from .utils import get_logger

_log = get_logger()


class SpatialIndex:
    """kd-tree over a single PointCloud snapshot.

    The index keeps a reference to the cloud it was built from. PointCloud
    buffers are read-only, so the snapshot cannot drift; a different cloud
    needs a new index (see :meth:`check_indexes`).
    """
    def __init__(self, cloud: PointCloud) -> None:
        if cloud.is_empty:
            raise EmptyInputError("Cannot build a spatial index over an empty point cloud.", stage="indexing")
        self.cloud = cloud
        self._tree = cKDTree(cloud.xyz)

    def __len__(self) -> int:
        return len(self.cloud)

    def indexes(self, cloud: PointCloud) -> bool:
        if cloud is self.cloud:
            return True
        return len(cloud) == len(self.cloud) and np.array_equal(cloud.xyz, self.cloud.xyz)

    def check_indexes(self, cloud: PointCloud) -> None:
        if not self.indexes(cloud):
            raise ValueError("Spatial index was built from a different point cloud; rebuild it.")

    def query_radius(self, point, radius: float) -> np.ndarray:
        """Sorted indices of all points within ``radius`` of ``point``."""
        if radius <= 0:
            raise ValueError(f"radius must be positive, got {radius}")
        p = np.asarray(point, dtype=np.float64).reshape(3)
        idx = self._tree.query_ball_point(p, r=radius, return_sorted=True)
        return np.asarray(idx, dtype=np.int64)

    def query_radius_batch(self, points, radius: float) -> List[np.ndarray]:
        if radius <= 0:
            raise ValueError(f"radius must be positive, got {radius}")
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        if len(pts) == 0:
            return []
        lists = self._tree.query_ball_point(pts, r=radius, return_sorted=True)
        return [np.asarray(ids, dtype=np.int64) for ids in lists]

    def query_knn(self, point, k: int) -> np.ndarray:
        if k <= 0:
            raise ValueError(f"k must be positive, got {k}")
        k = min(int(k), len(self))
        p = np.asarray(point, dtype=np.float64).reshape(3)
        _, idx = self._tree.query(p, k=k)
        return np.atleast_1d(np.asarray(idx, dtype=np.int64))


def build_index(cloud: PointCloud) -> SpatialIndex:
    index = SpatialIndex(cloud)
    _log.debug("Built kd-tree over %d points", len(cloud))
    return index


def query_radius(index: SpatialIndex, point, radius: float) -> np.ndarray:
    return index.query_radius(point, radius)
