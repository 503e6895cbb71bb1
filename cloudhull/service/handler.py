"""Request/response contract of the ``triangulate`` service.

The transport layer (RPC server, ROS node, HTTP endpoint, ...) owns the event
loop and calls :func:`handle_request` once per request. Nothing here keeps
state between calls.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Tuple, Union

import numpy as np
from pydantic import BaseModel, Field, NonNegativeInt, ValidationError

from ..config import ReconstructionConfig
from ..core.errors import ReconstructionError
from ..core.mesh import Mesh
from ..core.pipeline import Reconstructor
from ..core.pointcloud import PointCloud
from ..core.utils import get_logger

_log = get_logger()

SERVICE_NAME = "triangulate"


class Point(BaseModel):
    x: float
    y: float
    z: float


class TriangulateRequest(BaseModel):
    points: List[Point] = Field(default_factory=list)


class MeshTriangle(BaseModel):
    vertex_indices: Tuple[NonNegativeInt, NonNegativeInt, NonNegativeInt]


class MeshMessage(BaseModel):
    vertices: List[Point] = Field(default_factory=list)
    triangles: List[MeshTriangle] = Field(default_factory=list)


class TriangulateResponse(BaseModel):
    success: bool
    mesh: MeshMessage = Field(default_factory=MeshMessage)
    error: Optional[str] = None
    error_kind: Optional[str] = None
    hull_kind: Optional[str] = None


def decode_request(request: TriangulateRequest) -> PointCloud:
    if not request.points:
        return PointCloud.empty()
    xyz = np.array([[p.x, p.y, p.z] for p in request.points], dtype=np.float64)
    return PointCloud(xyz)


def encode_mesh(mesh: Mesh) -> MeshMessage:
    vertices = [Point(x=float(x), y=float(y), z=float(z)) for x, y, z in mesh.vertices]
    triangles = [MeshTriangle(vertex_indices=(int(a), int(b), int(c))) for a, b, c in mesh.triangles]
    return MeshMessage(vertices=vertices, triangles=triangles)


def _failure(kind: str, message: str) -> TriangulateResponse:
    return TriangulateResponse(success=False, mesh=MeshMessage(), error=message, error_kind=kind)


def handle_request(
    request: Union[TriangulateRequest, Mapping[str, Any]],
    config: Optional[ReconstructionConfig] = None,
) -> TriangulateResponse:
    """Decode ``request``, run the reconstruction and encode the response.

    Failures never escape: malformed requests and reconstruction errors come
    back as ``success=False`` with an empty mesh.
    """
    _log.info("Service request received")
    try:
        if not isinstance(request, TriangulateRequest):
            request = TriangulateRequest.model_validate(request)
        cloud = decode_request(request)
    except (ValidationError, ValueError) as exc:
        _log.error("Rejected malformed request: %s", exc)
        return _failure("InvalidRequest", str(exc))

    _log.info("Triangulating")
    try:
        result = Reconstructor(config).run(cloud)
    except ReconstructionError as exc:
        return _failure(exc.kind, str(exc))
    except Exception as exc:
        _log.exception("Unexpected error while triangulating")
        return _failure("InternalError", str(exc))
    _log.info("Triangulation done")

    _log.info("Converting to mesh message")
    response = TriangulateResponse(
        success=True, mesh=encode_mesh(result.mesh), hull_kind=result.hull_kind.value
    )
    _log.info("Service processing done")
    return response


class TriangulateService:
    """Binds a configuration to :func:`handle_request` for a transport layer to register."""
    name = SERVICE_NAME

    def __init__(self, config: Optional[ReconstructionConfig] = None) -> None:
        self.config = config or ReconstructionConfig()

    def __call__(self, request: Union[TriangulateRequest, Mapping[str, Any]]) -> TriangulateResponse:
        return handle_request(request, self.config)
