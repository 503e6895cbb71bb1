from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Tuple
import numpy as np

from .errors import RecoverableAnomaly
from .index import SpatialIndex
from .pointcloud import PointCloud, SmoothedCloud
from .utils import ensure_unit_vectors, get_logger, orient_deterministic

_log = get_logger()

DEFAULT_SEARCH_RADIUS = 0.03


def polynomial_terms(order: int) -> List[Tuple[int, int]]:
    """Exponent pairs (i, j) of the terms u**i * v**j with i + j <= order."""
    return [(i, d - i) for d in range(order + 1) for i in range(d, -1, -1)]


def coefficient_count(order: int) -> int:
    return (order + 1) * (order + 2) // 2


@dataclass
class MovingLeastSquares:
    """Moving Least Squares surface smoother.

    Every point is projected onto a weighted least-squares fit of its radius
    neighbourhood: a bivariate polynomial of ``polynomial_order`` over the
    local tangent plane when there are enough neighbours for it, the tangent
    plane itself otherwise. Points with fewer than ``min_neighbors`` neighbours
    (themselves included) are left out of the result.
    """
    search_radius: float = DEFAULT_SEARCH_RADIUS
    polynomial_fit: bool = True
    polynomial_order: int = 2
    min_neighbors: int = 3
    sqr_gauss_param: Optional[float] = None
    compute_normals: bool = True

    def __post_init__(self) -> None:
        if self.search_radius <= 0:
            raise ValueError(f"search_radius must be positive, got {self.search_radius}")
        if self.polynomial_order < 1:
            raise ValueError("polynomial_order must be >= 1")
        if self.min_neighbors < 1:
            raise ValueError("min_neighbors must be >= 1")
        if self.sqr_gauss_param is None:
            self.sqr_gauss_param = self.search_radius ** 2
        if self.sqr_gauss_param <= 0:
            raise ValueError("sqr_gauss_param must be positive")
        self._terms = polynomial_terms(self.polynomial_order)

    @property
    def nr_coeff(self) -> int:
        return coefficient_count(self.polynomial_order)

    def process(self, cloud: PointCloud, index: SpatialIndex) -> SmoothedCloud:
        index.check_indexes(cloud)
        neighborhoods = index.query_radius_batch(cloud.xyz, self.search_radius)

        positions: List[np.ndarray] = []
        normals: List[np.ndarray] = []
        kept: List[int] = []
        anomalies: List[RecoverableAnomaly] = []
        for i, nn in enumerate(neighborhoods):
            if len(nn) < self.min_neighbors:
                anomalies.append(RecoverableAnomaly(
                    "smoothing", i, f"{len(nn)} neighbours within {self.search_radius:g} (< {self.min_neighbors})"
                ))
                _log.debug("Point %d has %d neighbours; skipping.", i, len(nn))
                continue
            p, n = self.project_point(cloud.xyz[i], cloud.xyz[nn])
            positions.append(p)
            normals.append(n)
            kept.append(i)

        if anomalies:
            _log.warning("MLS dropped %d of %d points with fewer than %d neighbours.",
                         len(anomalies), len(cloud), self.min_neighbors)

        if kept:
            out = PointCloud(np.vstack(positions), ensure_unit_vectors(np.vstack(normals)) if self.compute_normals else None)
        else:
            out = PointCloud.empty()
        _log.info("MLS smoothed %d → %d points (radius=%g)", len(cloud), len(out), self.search_radius)
        return SmoothedCloud(cloud=out, source_index=np.asarray(kept, dtype=np.int64), anomalies=anomalies)

    def project_point(self, query: np.ndarray, neighbors: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Project ``query`` onto the local fit of ``neighbors``; returns (position, unnormalised normal)."""
        d2 = np.sum((neighbors - query) ** 2, axis=1)
        w = np.exp(-d2 / self.sqr_gauss_param)
        w_sum = float(w.sum())
        mean = (w[:, None] * neighbors).sum(axis=0) / w_sum
        centered = neighbors - mean
        cov = (w[:, None] * centered).T @ centered / w_sum

        _, vecs = np.linalg.eigh(cov)
        normal = orient_deterministic(vecs[:, 0])
        u_axis = orient_deterministic(vecs[:, 2])
        v_axis = np.cross(normal, u_axis)

        rel = query - mean
        u0 = float(rel @ u_axis)
        v0 = float(rel @ v_axis)

        if not self.polynomial_fit or len(neighbors) < self.nr_coeff:
            return query - float(rel @ normal) * normal, normal

        u = centered @ u_axis
        v = centered @ v_axis
        h = centered @ normal
        design = np.column_stack([u ** i * v ** j for i, j in self._terms])
        sw = np.sqrt(w)
        coeffs, *_ = np.linalg.lstsq(design * sw[:, None], h * sw, rcond=None)

        height = 0.0
        du = 0.0
        dv = 0.0
        for c, (i, j) in zip(coeffs, self._terms):
            height += c * u0 ** i * v0 ** j
            if i > 0:
                du += c * i * u0 ** (i - 1) * v0 ** j
            if j > 0:
                dv += c * j * u0 ** i * v0 ** (j - 1)

        position = mean + u0 * u_axis + v0 * v_axis + height * normal
        return position, normal - du * u_axis - dv * v_axis


def smooth(
    cloud: PointCloud,
    index: SpatialIndex,
    search_radius: float = DEFAULT_SEARCH_RADIUS,
    *,
    polynomial_fit: bool = True,
    polynomial_order: int = 2,
    min_neighbors: int = 3,
    sqr_gauss_param: Optional[float] = None,
    compute_normals: bool = True,
) -> SmoothedCloud:
    mls = MovingLeastSquares(
        search_radius=search_radius,
        polynomial_fit=polynomial_fit,
        polynomial_order=polynomial_order,
        min_neighbors=min_neighbors,
        sqr_gauss_param=sqr_gauss_param,
        compute_normals=compute_normals,
    )
    return mls.process(cloud, index)
