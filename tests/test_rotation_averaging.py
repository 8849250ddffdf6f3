import numpy as np
import pytest

from vofuse.math_utils import axis_angle_to_quat, quat_angle_between
from vofuse.rotation_averaging import (
    average_quaternions_markley,
    median_quaternions_weiszfeld,
)


AXIS = np.array([1.0, 2.0, 3.0]) / np.linalg.norm([1.0, 2.0, 3.0])


def test_markley_identical_batch_returns_sample():
    q = axis_angle_to_quat(0.7, AXIS)
    q_avg = average_quaternions_markley(np.tile(q, (5, 1)))
    assert np.allclose(q_avg, q, atol=1e-10) or np.allclose(q_avg, -q, atol=1e-10)


def test_markley_resolves_double_cover():
    q = axis_angle_to_quat(0.4, AXIS)
    q_avg = average_quaternions_markley(np.array([q, -q, q]))
    assert q_avg[0] >= 0.0
    assert quat_angle_between(q_avg, q) < 1e-9


def test_markley_symmetric_pair_averages_to_midpoint():
    q1 = axis_angle_to_quat(0.2, AXIS)
    q2 = axis_angle_to_quat(0.6, AXIS)
    q_avg = average_quaternions_markley(np.array([q1, q2]))
    assert quat_angle_between(q_avg, axis_angle_to_quat(0.4, AXIS)) < 1e-9


def test_markley_rejects_empty_batch():
    with pytest.raises(ValueError):
        average_quaternions_markley(np.zeros((0, 4)))


def test_weiszfeld_majority_wins_over_outliers():
    q_true = axis_angle_to_quat(np.radians(20.0), np.array([1.0, 0.0, 0.0]))
    outliers = [
        axis_angle_to_quat(np.radians(40.0), np.array([0.1, 0.2, 1.0])),
        axis_angle_to_quat(np.radians(60.0), np.array([0.2, 0.1, 1.0])),
        axis_angle_to_quat(np.radians(80.0), np.array([0.1, 0.1, 1.0])),
    ]
    batch = np.array([q_true] * 4 + outliers)

    q_med = median_quaternions_weiszfeld(batch)
    q_avg = average_quaternions_markley(batch)

    assert quat_angle_between(q_med, q_true) <= 1e-4
    # The plain mean is pulled toward the outliers
    assert quat_angle_between(q_avg, q_true) > 1e-2
    assert q_med[0] >= 0.0


def test_weiszfeld_identical_batch_keeps_seed():
    q = axis_angle_to_quat(1.1, AXIS)
    q_med = median_quaternions_weiszfeld(np.tile(q, (4, 1)))
    assert quat_angle_between(q_med, q) < 1e-9


def test_weiszfeld_terminates_with_zero_iterations():
    q1 = axis_angle_to_quat(0.1, AXIS)
    q2 = axis_angle_to_quat(0.9, AXIS)
    q_med = median_quaternions_weiszfeld(np.array([q1, q2]), max_iterations=0)
    assert np.isclose(np.linalg.norm(q_med), 1.0)
    assert np.all(np.isfinite(q_med))


def _random_quat(rng):
    q = rng.normal(size=4)
    return q / np.linalg.norm(q)


def test_weiszfeld_majority_within_update_bound_random_batches():
    rng = np.random.default_rng(7)
    max_update = 1e-4
    for _ in range(200):
        m = int(rng.integers(3, 12))
        q_true = _random_quat(rng)
        batch = [q_true] * (m // 2 + 1)
        batch += [_random_quat(rng) for _ in range(m - len(batch))]
        batch = np.array(batch)
        rng.shuffle(batch)

        q_med = median_quaternions_weiszfeld(batch, max_angular_update=max_update)

        assert quat_angle_between(q_med, q_true) <= max_update
        assert np.isclose(np.linalg.norm(q_med), 1.0)
