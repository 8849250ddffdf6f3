import numpy as np

from vofuse.point_cloud import POINT_STEP, pack_point_cloud, select_points_within_radius


def test_radius_selection_is_strict():
    points = np.array([
        [0.0, 0.0, 0.0],
        [0.5, 0.0, 0.0],
        [1.0, 0.0, 0.0],
        [3.0, 0.0, 0.0],
    ])
    selected = select_points_within_radius(points, np.zeros(3), 1.0)
    assert np.allclose(selected, points[:2])


def test_radius_selection_around_offset_center():
    points = np.array([[10.0, 10.0, 10.0], [0.0, 0.0, 0.0]])
    selected = select_points_within_radius(points, [10.0, 10.0, 10.2], 0.5)
    assert selected.shape == (1, 3)


def test_pack_points_as_float32():
    points = np.array([[1.0, 2.0, 3.0], [-4.0, 5.5, 6.25]])
    msg = pack_point_cloud(points, frame_id="map", stamp=12.5)
    assert msg.frame_id == "map"
    assert msg.stamp == 12.5
    assert msg.point_step == POINT_STEP
    assert msg.width == 2
    assert msg.height == 1
    assert msg.row_step == 2 * POINT_STEP
    assert [f.name for f in msg.fields] == ["x", "y", "z"]
    assert np.allclose(msg.points(), points)


def test_empty_cloud_carries_one_zero_point():
    msg = pack_point_cloud(np.zeros((0, 3)))
    assert msg.width == 1
    assert np.array_equal(msg.points(), np.zeros((1, 3), dtype=np.float32))
