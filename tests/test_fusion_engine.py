import numpy as np
import pytest

from vofuse.fusion_engine import FusionEngine
from vofuse.math_utils import axis_angle_to_quat, quat_angle_between
from vofuse.output_utils import FuserDebugLogger
from vofuse.pose import FuserStatus, Pose, TrackingQuality


LOST = TrackingQuality.LOST
LOW = TrackingQuality.LOW
MED = TrackingQuality.MED
OK = TrackingQuality.OK

AXIS = np.array([1.0, 1.0, 1.0]) / np.sqrt(3.0)


def _make_engine(**overrides):
    config = {'FILTER_WINDOW': 3, 'RECOVERY_BUFFER': 4}
    config.update(overrides)
    return FusionEngine(config)


def _camera_pose(i, quality=OK):
    return Pose([0.1 * i, 0.05 * i, 0.0], axis_angle_to_quat(0.01 * i, AXIS), quality)


def _slam_pose(i, quality=OK):
    return Pose([0.2 * i, -0.1 * i, 0.02 * i], axis_angle_to_quat(0.02 * i, [0.0, 0.0, 1.0]), quality)


def test_alpha_selection_table():
    engine = _make_engine(ALPHA_BLENDING=0.8, ALPHA_WEIGHT=0.5)
    assert engine.select_alpha(LOST, OK) == 0.0
    assert engine.select_alpha(LOW, OK) == 0.0
    assert engine.select_alpha(MED, OK) == pytest.approx(0.4)
    assert engine.select_alpha(OK, OK) == pytest.approx(0.8)
    for cam in (LOST, LOW, MED, OK):
        assert engine.select_alpha(cam, LOST) == 1.0


def test_blend_integrates_weighted_deltas():
    engine = _make_engine(ALPHA_BLENDING=0.75)
    engine.state.quality.cam_qos = OK
    engine.state.quality.orb_qos = OK
    delta_cam = np.array([1.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0])
    delta_orb = np.array([0.0, 1.0, 0.0, 0.0, 0.0, 0.0, 0.0])

    pose = engine.blend(delta_cam, delta_orb)

    assert np.allclose(pose.as_vector(), [0.75, 0.25, 0.0, 1.0, 0.0, 0.0, 0.0])
    assert engine.alpha == 0.75


def test_first_step_initializes_engine():
    engine = _make_engine()
    assert engine.status == FuserStatus.UNINITIALIZED

    cam = _camera_pose(3)
    assert engine.fuse(cam, Pose.identity(LOST)) is True

    assert engine.status == FuserStatus.RUNNING
    assert engine.counter == 1
    assert np.allclose(engine.get_fused_pose().as_vector(), cam.as_vector())
    assert np.allclose(engine.get_delta_cam(), cam.as_vector() - Pose.identity().as_vector())


def test_slam_lost_follows_camera_exactly():
    engine = _make_engine(ALPHA_BLENDING=0.3)
    for i in range(15):
        cam = _camera_pose(i)
        engine.fuse(cam, _slam_pose(i, LOST))
        assert engine.alpha == 1.0
        assert np.allclose(engine.get_raw_fused_pose().as_vector(), cam.as_vector(), atol=1e-12)


def test_published_pose_is_sliding_median_of_fused():
    engine = _make_engine()
    for i in range(10):
        engine.fuse(_camera_pose(i), _slam_pose(i, LOST))
        if i >= 2:
            published = engine.get_fused_pose()
            expected = _camera_pose(i - 1)
            assert np.allclose(published.translation, expected.translation, atol=1e-12)
            assert quat_angle_between(published.rotation, expected.rotation) < 1e-6


def test_camera_low_tracks_slam():
    engine = _make_engine(FILTER_WINDOW=50)
    for i in range(10):
        slam = _slam_pose(i)
        engine.fuse(Pose.identity(LOW), slam)
        assert engine.alpha == 0.0
        assert np.allclose(engine.get_raw_fused_pose().as_vector(), slam.as_vector(), atol=1e-12)


def test_static_streams_hold_initial_pose():
    engine = _make_engine()
    start = Pose([1.0, -2.0, 0.5], axis_angle_to_quat(0.3, AXIS), OK)
    for _ in range(20):
        engine.fuse(start, Pose.identity(OK))
        fused = engine.get_fused_pose()
        assert np.allclose(fused.translation, start.translation, atol=1e-12)
        assert quat_angle_between(fused.rotation, start.rotation) < 1e-6
    assert np.allclose(engine.get_delta_cam(), 0.0)
    assert np.allclose(engine.get_delta_orb(), 0.0)


def test_static_streams_reach_fixed_point():
    engine = _make_engine()
    cam = Pose([1.0, 0.0, 0.0], axis_angle_to_quat(0.2, AXIS), OK)
    slam = Pose([0.0, 3.0, 0.0], axis_angle_to_quat(0.4, [0.0, 1.0, 0.0]), OK)
    published = []
    for _ in range(20):
        engine.fuse(cam, slam)
        published.append(engine.get_fused_pose())

    raw = engine.get_raw_fused_pose()
    for pose in published[-5:]:
        assert np.allclose(pose.translation, raw.translation, atol=1e-12)
        assert np.allclose(pose.translation, published[-1].translation)


def test_published_rotation_is_canonical():
    engine = _make_engine()
    flipped = Pose([0.0, 0.0, 0.0], -axis_angle_to_quat(0.3, AXIS), OK)
    engine.fuse(flipped, Pose.identity(LOST))
    assert engine.get_fused_pose().rotation[0] >= 0.0
    # The integrator keeps the raw sign
    assert engine.get_raw_fused_pose().rotation[0] < 0.0


def _run_recovery_scenario(engine, lost_steps, n_steps):
    published, raw = [], []
    for i in range(n_steps):
        if i in lost_steps:
            slam = Pose.identity(LOST)
        elif i > max(lost_steps):
            # New SLAM map after re-acquisition
            slam = _slam_pose(i - max(lost_steps))
        else:
            slam = _slam_pose(i)
        engine.fuse(_camera_pose(i), slam)
        published.append(engine.get_fused_pose())
        raw.append(engine.get_raw_fused_pose())
    return published, raw


def test_recovery_reanchors_on_last_published_pose():
    engine = _make_engine(FILTER_WINDOW=3, RECOVERY_BUFFER=4)
    lost = {8, 9}
    published = []
    recovered_at = None
    for i in range(20):
        if i in lost:
            slam = Pose.identity(LOST)
        elif i > 9:
            slam = _slam_pose(i - 9)
        else:
            slam = _slam_pose(i)
        engine.fuse(_camera_pose(i), slam)
        published.append(engine.get_fused_pose())
        if engine.recovered and recovered_at is None:
            recovered_at = i

    # History [LOST, OK, OK, OK] first seen at step 13
    assert recovered_at == 13
    assert engine.recovery.recovery_count == 1
    assert engine.get_recovered_pose() == published[12]
    assert engine.state.nan_events == 0


def test_reset_smoothing_after_recovery():
    fw = 3
    engine = _make_engine(FILTER_WINDOW=fw, RECOVERY_BUFFER=4, REDUCTION_FACTOR=0.01)
    published, raw = _run_recovery_scenario(engine, {8, 9}, 20)

    # Steps 13..15 run with recover_steps 1..3 <= FILTER_WINDOW
    for i in (13, 14, 15):
        expected = (published[i - 1].as_vector()
                    + (raw[i - 1].as_vector() - raw[i].as_vector()) * 0.01)
        assert np.allclose(published[i].as_vector(), expected, atol=1e-12)

    # Median filtering resumes afterwards
    assert engine.recovery.recover_steps > fw


def test_reset_smoothing_holds_while_oldest_sample_lost():
    engine = _make_engine(FILTER_WINDOW=5, RECOVERY_BUFFER=3)
    published, raw = _run_recovery_scenario(engine, {10, 11, 12}, 22)

    assert engine.recovery.recovery_count == 1
    # Recovered at step 15; the reset history still starts with a LOST
    # sample for steps 15..17
    for i in (15, 16, 17):
        assert np.allclose(published[i].as_vector(), published[14].as_vector())
    for i in (18, 19):
        expected = (published[i - 1].as_vector()
                    + (raw[i - 1].as_vector() - raw[i].as_vector()) * 0.01)
        assert np.allclose(published[i].as_vector(), expected, atol=1e-12)


def test_nan_input_trips_wire_without_raising(capsys):
    engine = _make_engine()
    bad = Pose([0.0, 0.0, 0.0], [np.nan, 0.0, 0.0, 0.0], OK)
    assert engine.fuse(bad, Pose.identity(LOST)) is True
    assert engine.state.nan_events > 0
    out = capsys.readouterr().out
    assert "[TRIPWIRE]" in out
    assert "alpha: 1.0" in out
    assert "delta_cam:" in out


def test_debug_logger_writes_one_row_per_step(tmp_path):
    logger = FuserDebugLogger(str(tmp_path), enabled=True)
    engine = FusionEngine({'FILTER_WINDOW': 3, 'RECOVERY_BUFFER': 4}, debug_logger=logger)
    for i in range(4):
        engine.fuse(_camera_pose(i), _slam_pose(i))

    lines = (tmp_path / "debug_fuser_steps.csv").read_text().strip().splitlines()
    assert len(lines) == 5
    assert lines[0].startswith("step,cam_qos,orb_qos_raw,orb_qos,alpha")


def test_reset_restarts_session():
    engine = _make_engine()
    for i in range(6):
        engine.fuse(_camera_pose(i), _slam_pose(i))
    engine.reset()
    assert engine.status == FuserStatus.UNINITIALIZED
    assert engine.counter == 0
    assert len(engine.pose_window) == 0
    assert not engine.state.median_filter_ready


def test_verbose_mode_prints_each_step(capsys):
    engine = _make_engine(VERBOSE_DEBUG=True)
    engine.fuse(_camera_pose(1), _slam_pose(1))
    out = capsys.readouterr().out
    assert "[FUSER] step=0" in out
    assert "recovery=NORMAL" in out
