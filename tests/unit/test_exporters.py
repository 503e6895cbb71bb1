import numpy as np
import pytest

from cloudhull.core.exporter import (
    NpzMeshWriter,
    PlyMeshWriter,
    export_mesh,
    read_point_cloud,
    write_mesh,
)
from cloudhull.core.mesh import Mesh
from cloudhull.core.pointcloud import PointCloud
from cloudhull.examples.synthetic import write_cloud


def _square() -> PointCloud:
    return PointCloud(np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [1.0, 1.0, 0.0], [0.0, 1.0, 0.0]]))


def test_accepted_triangles_are_copied_verbatim() -> None:
    verts = _square()
    result = export_mesh(verts, [[0, 1, 2], [2, 3, 0]])
    np.testing.assert_array_equal(result.mesh.triangles, np.array([[0, 1, 2], [2, 3, 0]]))
    np.testing.assert_array_equal(result.mesh.vertices, verts.xyz)
    assert result.anomalies == []


def test_invalid_polygons_are_skipped_and_reported() -> None:
    polygons = [[0, 1], [0, 1, 2], [0, 1, 7], [1, 1, 2], [], [-1, 2, 3], [3, 2, 1]]
    result = export_mesh(_square(), polygons)
    assert result.mesh.triangles.tolist() == [[0, 1, 2], [3, 2, 1]]
    assert [a.index for a in result.anomalies] == [0, 2, 3, 4, 5]
    assert all(a.stage == "export" for a in result.anomalies)


def test_larger_polygons_are_fanned_without_renumbering() -> None:
    result = export_mesh(_square(), [np.array([3, 0, 1, 2])])
    assert result.mesh.triangles.tolist() == [[3, 0, 1], [3, 1, 2]]


def test_no_polygons_gives_vertex_only_mesh() -> None:
    result = export_mesh(_square(), [])
    assert result.mesh.n_vertices == 4
    assert result.mesh.triangles.shape == (0, 3)


def test_ply_mesh_writer_round_trips_faces(tmp_path) -> None:
    mesh = Mesh(_square().xyz, np.array([[0, 1, 2], [0, 2, 3]]))
    path = tmp_path / "mesh.ply"
    PlyMeshWriter(str(path)).write(mesh)
    lines = path.read_text(encoding="utf-8").splitlines()
    assert "element vertex 4" in lines
    assert "element face 2" in lines
    end = lines.index("end_header")
    assert lines[end + 5:] == ["3 0 1 2", "3 0 2 3"]
    cloud = read_point_cloud(path)
    np.testing.assert_allclose(cloud.xyz, mesh.vertices)


def test_npz_mesh_writer(tmp_path) -> None:
    mesh = Mesh(_square().xyz, np.array([[0, 1, 2]]))
    path = tmp_path / "mesh.npz"
    NpzMeshWriter(str(path)).write(mesh)
    with np.load(path) as data:
        np.testing.assert_array_equal(data["triangles"], [[0, 1, 2]])
        np.testing.assert_allclose(data["vertices"], mesh.vertices)


def test_write_mesh_rejects_unknown_suffix(tmp_path) -> None:
    with pytest.raises(ValueError):
        write_mesh(Mesh.empty(), tmp_path / "mesh.obj")


@pytest.mark.parametrize("suffix", [".npz", ".xyz", ".ply"])
def test_read_point_cloud_formats(tmp_path, suffix) -> None:
    xyz = np.array([[0.0, 1.0, 2.0], [3.5, -4.25, 5.0]])
    path = tmp_path / f"cloud{suffix}"
    write_cloud(path, xyz)
    cloud = read_point_cloud(path)
    np.testing.assert_allclose(cloud.xyz, xyz)


def _write_binary_ply(path, xyz: np.ndarray) -> None:
    header = (
        "ply\n"
        "format binary_little_endian 1.0\n"
        f"element vertex {len(xyz)}\n"
        "property float x\nproperty float y\nproperty float z\n"
        "end_header\n"
    )
    with open(path, "wb") as f:
        f.write(header.encode("ascii"))
        f.write(np.asarray(xyz, dtype="<f4").tobytes())


def test_read_point_cloud_binary_ply(tmp_path) -> None:
    xyz = np.array([[0.5, -1.25, 2.0], [3.0, 0.0, -0.75], [1.0, 1.0, 1.0]])
    path = tmp_path / "cloud.ply"
    _write_binary_ply(path, xyz)
    cloud = read_point_cloud(path)
    assert cloud.xyz.dtype == np.float64
    np.testing.assert_allclose(cloud.xyz, xyz)


def test_read_point_cloud_unreadable_ply_raises_value_error(tmp_path) -> None:
    path = tmp_path / "broken.ply"
    path.write_bytes(b"\x80\x81\x82 not a ply file")
    with pytest.raises(ValueError):
        read_point_cloud(path)
