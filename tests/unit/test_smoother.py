import numpy as np
import pytest

from cloudhull.core.index import build_index
from cloudhull.core.pointcloud import PointCloud
from cloudhull.core.smoother import MovingLeastSquares, coefficient_count, polynomial_terms, smooth
from cloudhull.examples.synthetic import fibonacci_sphere, grid_plane


def test_polynomial_terms_count_matches_coefficients() -> None:
    for order in (1, 2, 3):
        assert len(polynomial_terms(order)) == coefficient_count(order)
    assert polynomial_terms(1) == [(0, 0), (1, 0), (0, 1)]


def test_exact_plane_is_left_in_place_with_vertical_normals() -> None:
    cloud = PointCloud(grid_plane(10, size=0.1))
    out = smooth(cloud, build_index(cloud), search_radius=0.03)
    assert len(out) == len(cloud)
    np.testing.assert_array_equal(out.source_index, np.arange(len(cloud)))
    np.testing.assert_allclose(out.cloud.xyz, cloud.xyz, atol=1e-9)
    np.testing.assert_allclose(out.cloud.normals, np.tile([0.0, 0.0, 1.0], (len(cloud), 1)), atol=1e-9)


def test_noisy_plane_is_flattened() -> None:
    rng = np.random.default_rng(7)
    xyz = grid_plane(20, size=1.0)
    xyz[:, 2] += rng.normal(scale=0.005, size=len(xyz))
    cloud = PointCloud(xyz)
    out = smooth(cloud, build_index(cloud), search_radius=0.2)
    assert len(out) == len(cloud)
    assert np.std(out.cloud.xyz[:, 2]) < 0.85 * np.std(xyz[:, 2])


def test_sphere_points_stay_on_the_sphere() -> None:
    cloud = PointCloud(fibonacci_sphere(600))
    out = smooth(cloud, build_index(cloud), search_radius=0.3)
    assert len(out) == 600
    radii = np.linalg.norm(out.cloud.xyz, axis=1)
    assert np.all(np.abs(radii - 1.0) < 0.01)
    # Normals point along the radius (up to sign).
    cos = np.abs(np.einsum("ij,ij->i", out.cloud.normals, out.cloud.xyz / radii[:, None]))
    assert np.all(cos > 0.99)


def test_points_with_too_few_neighbours_are_dropped_not_fatal() -> None:
    xyz = np.array([[0.0, 0.0, 0.0], [0.01, 0.0, 0.0], [0.0, 0.01, 0.0], [5.0, 5.0, 5.0]])
    cloud = PointCloud(xyz)
    out = smooth(cloud, build_index(cloud), search_radius=0.1)
    assert out.source_index.tolist() == [0, 1, 2]
    assert out.dropped == 1
    anomaly = out.anomalies[0]
    assert anomaly.stage == "smoothing"
    assert anomaly.index == 3


def test_sparse_cloud_yields_empty_result() -> None:
    xyz = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]])
    cloud = PointCloud(xyz)
    out = smooth(cloud, build_index(cloud))
    assert len(out) == 0
    assert out.cloud.xyz.shape == (0, 3)
    assert [a.index for a in out.anomalies] == [0, 1, 2, 3]


def test_smoothing_is_deterministic() -> None:
    rng = np.random.default_rng(3)
    xyz = fibonacci_sphere(300) + rng.normal(scale=0.01, size=(300, 3))
    cloud = PointCloud(xyz)
    first = smooth(cloud, build_index(cloud), search_radius=0.4)
    second = smooth(PointCloud(xyz), build_index(PointCloud(xyz)), search_radius=0.4)
    np.testing.assert_allclose(first.cloud.xyz, second.cloud.xyz, rtol=0, atol=1e-12)


def test_stale_index_is_rejected() -> None:
    cloud = PointCloud(grid_plane(4, size=0.1))
    other = PointCloud(grid_plane(4, size=0.2))
    with pytest.raises(ValueError):
        smooth(other, build_index(cloud))


def test_invalid_parameters_raise() -> None:
    with pytest.raises(ValueError):
        MovingLeastSquares(search_radius=0.0)
    with pytest.raises(ValueError):
        MovingLeastSquares(polynomial_order=0)
    assert MovingLeastSquares(search_radius=0.5).sqr_gauss_param == pytest.approx(0.25)


def test_normals_can_be_skipped() -> None:
    cloud = PointCloud(grid_plane(6, size=0.05))
    out = smooth(cloud, build_index(cloud), compute_normals=False)
    assert out.cloud.normals is None
