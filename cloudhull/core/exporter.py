from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterable, List, Sequence
import numpy as np
import pathlib
import trimesh

from .errors import RecoverableAnomaly
from .mesh import Mesh
from .pointcloud import PointCloud
from .utils import get_logger

_log = get_logger()


@dataclass
class ExportResult:
    mesh: Mesh
    anomalies: List[RecoverableAnomaly] = field(default_factory=list)


class MeshExporter:
    """Turns a vertex cloud and a polygon list into a :class:`Mesh`.

    Vertices are copied in order. Each polygon is checked and, if valid,
    appended with its own index values; polygons with more than three
    indices are split into a fan. Invalid polygons are skipped and reported
    as recoverable anomalies.
    """

    def export(self, vertices: PointCloud, triangles: Iterable[Sequence[int]]) -> ExportResult:
        n = len(vertices)
        polygons = [np.asarray(p, dtype=np.int64).reshape(-1) for p in triangles]
        _log.info("Found %d polygons", len(polygons))

        out: List[np.ndarray] = []
        anomalies: List[RecoverableAnomaly] = []
        for k, polygon in enumerate(polygons):
            reason = self._reject_reason(polygon, n)
            if reason is not None:
                _log.warning("Skipping polygon %d (%s).", k, reason)
                anomalies.append(RecoverableAnomaly("export", k, reason))
                continue
            for j in range(1, len(polygon) - 1):
                out.append(np.array([polygon[0], polygon[j], polygon[j + 1]], dtype=np.int64))

        tris = np.vstack(out) if out else np.zeros((0, 3), dtype=np.int64)
        mesh = Mesh(vertices=vertices.xyz.copy(), triangles=tris)
        return ExportResult(mesh=mesh, anomalies=anomalies)

    @staticmethod
    def _reject_reason(polygon: np.ndarray, n_vertices: int):
        if len(polygon) < 3:
            return f"{len(polygon)} vertex indices"
        valid = (polygon >= 0) & (polygon < n_vertices)
        if not np.all(valid):
            return f"{int(np.sum(valid))} of {len(polygon)} indices within {n_vertices} vertices"
        if len(np.unique(polygon)) != len(polygon):
            return "repeated vertex index"
        return None


def export_mesh(vertices: PointCloud, triangles: Iterable[Sequence[int]]) -> ExportResult:
    return MeshExporter().export(vertices, triangles)


# Mesh writers
class PlyMeshWriter:
    def __init__(self, path: str) -> None:
        self.path = path

    def write(self, mesh: Mesh) -> None:
        path = pathlib.Path(self.path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write("ply\nformat ascii 1.0\n")
            f.write(f"element vertex {mesh.n_vertices}\n")
            f.write("property double x\nproperty double y\nproperty double z\n")
            f.write(f"element face {mesh.n_triangles}\n")
            f.write("property list uchar int vertex_indices\n")
            f.write("end_header\n")
            for x, y, z in mesh.vertices:
                f.write(f"{float(x)!r} {float(y)!r} {float(z)!r}\n")
            for a, b, c in mesh.triangles:
                f.write(f"3 {int(a)} {int(b)} {int(c)}\n")


class NpzMeshWriter:
    def __init__(self, path: str) -> None:
        self.path = path

    def write(self, mesh: Mesh) -> None:
        path = pathlib.Path(self.path)
        path.parent.mkdir(parents=True, exist_ok=True)
        np.savez_compressed(path, vertices=mesh.vertices, triangles=mesh.triangles)


MESH_WRITERS = {".ply": PlyMeshWriter, ".npz": NpzMeshWriter}


def write_mesh(mesh: Mesh, path: str | pathlib.Path) -> pathlib.Path:
    path = pathlib.Path(path)
    writer_cls = MESH_WRITERS.get(path.suffix.lower())
    if writer_cls is None:
        raise ValueError(f"Unsupported mesh format '{path.suffix}' (expected .ply or .npz)")
    writer_cls(str(path)).write(mesh)
    _log.info("Wrote %s (%d vertices, %d triangles)", path.name, mesh.n_vertices, mesh.n_triangles)
    return path


# Point cloud readers
def _read_ply_vertices(path: pathlib.Path) -> np.ndarray:
    try:
        loaded = trimesh.load(str(path), file_type="ply", process=False)
    except Exception as exc:
        raise ValueError(f"Could not read PLY file {path}: {exc}") from exc
    vertices = getattr(loaded, "vertices", None)
    if vertices is None:
        raise ValueError(f"{path} has no vertex element")
    return np.asarray(vertices, dtype=np.float64).reshape(-1, 3)


def read_point_cloud(path: str | pathlib.Path) -> PointCloud:
    path = pathlib.Path(path)
    suffix = path.suffix.lower()
    if suffix == ".npz":
        with np.load(path) as data:
            key = "xyz" if "xyz" in data else "points"
            if key not in data:
                raise ValueError(f"{path} has neither 'xyz' nor 'points' array")
            xyz = data[key]
    elif suffix == ".ply":
        xyz = _read_ply_vertices(path)
    elif suffix in {".xyz", ".txt"}:
        xyz = np.loadtxt(path, dtype=np.float64, ndmin=2)
        if xyz.size:
            xyz = xyz[:, :3]
    else:
        raise ValueError(f"Unsupported point cloud format '{path.suffix}'")
    cloud = PointCloud(xyz)
    _log.info("Read %d points from %s", len(cloud), path.name)
    return cloud
