from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from ..config import ReconstructionConfig
from .errors import InsufficientDataError, InternalError, RecoverableAnomaly, ReconstructionError
from .exporter import export_mesh
from .hull import HullKind, reconstruct_hull
from .index import build_index
from .mesh import Mesh
from .pointcloud import PointCloud
from .smoother import MovingLeastSquares
from .utils import get_logger

_log = get_logger()


class Stage(str, Enum):
    INDEXING = "indexing"
    SMOOTHING = "smoothing"
    HULL_BUILDING = "hull_building"
    EXPORTING = "exporting"
    DONE = "done"
    FAILED = "failed"


@dataclass
class ReconstructionResult:
    mesh: Mesh
    hull_kind: HullKind
    area: float = 0.0
    volume: float = 0.0
    anomalies: List[RecoverableAnomaly] = field(default_factory=list)
    stats: Dict[str, int] = field(default_factory=dict)


class Reconstructor:
    """Runs index → smooth → hull → export once for a single point cloud.

    ``state`` follows the stage being executed; any fatal error moves it to
    ``Stage.FAILED``, keeps the error in ``failure`` and re-raises it. No mesh
    is produced on failure.
    """
    def __init__(self, config: Optional[ReconstructionConfig] = None) -> None:
        self.config = config.model_copy(deep=True) if config is not None else ReconstructionConfig()
        self.state: Optional[Stage] = None
        self.history: List[Stage] = []
        self.failure: Optional[ReconstructionError] = None

    def _enter(self, stage: Stage) -> None:
        self.state = stage
        self.history.append(stage)
        _log.debug("Stage → %s", stage.value)

    def run(self, cloud: PointCloud) -> ReconstructionResult:
        if self.state is not None:
            raise RuntimeError("Reconstructor instances run a single request; create a new one.")
        try:
            return self._run(cloud)
        except ReconstructionError as exc:
            if exc.stage is None:
                exc.stage = self.state.value if self.state is not None else None
            self.failure = exc
            self._enter(Stage.FAILED)
            _log.error("Reconstruction failed during %s: %s", exc.stage, exc)
            raise
        except Exception as exc:
            stage = self.state.value if self.state is not None else None
            err = InternalError(f"{type(exc).__name__}: {exc}", stage=stage)
            self.failure = err
            self._enter(Stage.FAILED)
            _log.exception("Unexpected error during %s", stage)
            raise err from exc

    def _run(self, cloud: PointCloud) -> ReconstructionResult:
        smoothing = self.config.smoothing
        hull_cfg = self.config.hull

        self._enter(Stage.INDEXING)
        index = build_index(cloud)

        self._enter(Stage.SMOOTHING)
        mls = MovingLeastSquares(
            search_radius=smoothing.search_radius,
            polynomial_fit=smoothing.polynomial_fit,
            polynomial_order=smoothing.polynomial_order,
            min_neighbors=smoothing.min_neighbors,
            sqr_gauss_param=smoothing.sqr_gauss_param,
            compute_normals=smoothing.compute_normals,
        )
        smoothed = mls.process(cloud, index)
        if len(smoothed) == 0:
            raise InsufficientDataError(
                f"Smoothing kept no points: every neighbourhood within radius {smoothing.search_radius:g} "
                f"has fewer than {smoothing.min_neighbors} points",
                stage=Stage.SMOOTHING.value,
            )

        self._enter(Stage.HULL_BUILDING)
        hull = reconstruct_hull(
            smoothed.cloud,
            dedup_tolerance=hull_cfg.dedup_tolerance,
            planar_tolerance=hull_cfg.planar_tolerance,
            min_triangle_area=hull_cfg.min_triangle_area,
        )

        self._enter(Stage.EXPORTING)
        exported = export_mesh(hull.vertices, hull.triangles)

        self._enter(Stage.DONE)
        mesh = exported.mesh
        stats = {
            "input_points": len(cloud),
            "smoothed_points": len(smoothed),
            "hull_vertices": mesh.n_vertices,
            "triangles": mesh.n_triangles,
        }
        _log.info("Reconstructed %s hull: %d vertices, %d triangles",
                  hull.kind.value, mesh.n_vertices, mesh.n_triangles)
        return ReconstructionResult(
            mesh=mesh,
            hull_kind=hull.kind,
            area=hull.area,
            volume=hull.volume,
            anomalies=list(smoothed.anomalies) + list(exported.anomalies),
            stats=stats,
        )


def reconstruct(cloud: PointCloud, config: Optional[ReconstructionConfig] = None) -> ReconstructionResult:
    return Reconstructor(config).run(cloud)
