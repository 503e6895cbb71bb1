import numpy as np
import pytest

from cloudhull.core.errors import EmptyInputError
from cloudhull.core.index import build_index, query_radius
from cloudhull.core.pointcloud import PointCloud


def _line_cloud() -> PointCloud:
    return PointCloud(np.column_stack([np.arange(10) * 0.1, np.zeros(10), np.zeros(10)]))


def test_build_index_rejects_empty_cloud() -> None:
    with pytest.raises(EmptyInputError):
        build_index(PointCloud.empty())


def test_query_radius_returns_sorted_indices_including_self() -> None:
    index = build_index(_line_cloud())
    ids = query_radius(index, [0.5, 0.0, 0.0], 0.15)
    assert ids.tolist() == [4, 5, 6]


def test_query_radius_batch_matches_single_queries() -> None:
    cloud = _line_cloud()
    index = build_index(cloud)
    batch = index.query_radius_batch(cloud.xyz, 0.25)
    assert len(batch) == len(cloud)
    for i, ids in enumerate(batch):
        np.testing.assert_array_equal(ids, index.query_radius(cloud.xyz[i], 0.25))
        assert np.all(np.diff(ids) > 0)


def test_query_radius_requires_positive_radius() -> None:
    index = build_index(_line_cloud())
    with pytest.raises(ValueError):
        index.query_radius([0.0, 0.0, 0.0], 0.0)


def test_query_knn_orders_by_distance_and_clips_k() -> None:
    index = build_index(_line_cloud())
    assert index.query_knn([0.01, 0.0, 0.0], 3).tolist() == [0, 1, 2]
    assert len(index.query_knn([0.0, 0.0, 0.0], 50)) == 10


def test_index_refuses_a_different_cloud() -> None:
    cloud = _line_cloud()
    index = build_index(cloud)
    assert index.indexes(PointCloud(cloud.xyz.copy()))
    with pytest.raises(ValueError):
        index.check_indexes(PointCloud(cloud.xyz + 1.0))
