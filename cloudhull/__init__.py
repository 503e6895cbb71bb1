"""cloudhull – point cloud to convex mesh reconstruction.

Pipeline components:
- SpatialIndex (core.index): kd-tree radius / k-NN queries
- MovingLeastSquares (core.smoother): polynomial MLS denoising
- reconstruct_hull (core.hull): convex hull triangulation with degenerate cases
- MeshExporter (core.exporter): validated mesh assembly + mesh/point file I/O
- Reconstructor (core.pipeline): index → smooth → hull → export
- handle_request (service.handler): request/response contract of the
  ``triangulate`` service
"""

from .core.errors import (
    ReconstructionError, EmptyInputError, InsufficientDataError,
    DegenerateGeometryError, InternalError, RecoverableAnomaly,
)
from .core.pointcloud import PointCloud, SmoothedCloud
from .core.mesh import Mesh
from .core.index import SpatialIndex, build_index, query_radius
from .core.smoother import MovingLeastSquares, smooth
from .core.hull import HullKind, HullResult, reconstruct_hull
from .core.exporter import MeshExporter, export_mesh, read_point_cloud, write_mesh
from .core.pipeline import Reconstructor, ReconstructionResult, Stage, reconstruct
from .config import ReconstructionConfig, load_config
from .service.handler import TriangulateRequest, TriangulateResponse, TriangulateService, handle_request
