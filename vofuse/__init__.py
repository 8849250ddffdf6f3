"""
VO Fuser Package

Fuses a camera visual-odometry stream with an intermittently tracking
SLAM stream into one pose: stream synchronization, sliding median
filtering (scalar + geometric rotation median), QoS-weighted delta
blending and re-anchoring of the SLAM trajectory after tracking recovery.

Modules:
    pose                - Pose value type, TrackingQuality, FuserStatus
    math_utils          - Quaternion helpers ([w,x,y,z] Hamilton)
    rotation_averaging  - Markley average, Weiszfeld rotation median
    median_filter       - ScalarMedianFilter, PoseWindow
    synchronizer        - synchronize(), SplineInterpolator
    recovery            - RecoveryTracker
    state_container     - FusionState
    fusion_engine       - FusionEngine (fuse, get_fused_pose)
    numerical_checks    - NaN tripwires
    config              - YAML configuration
    data_loaders        - Pose stream / map point CSV loaders
    point_cloud         - Map-point radius selection + packing
    output_utils        - CSV output and debug writers
    main_loop           - FuserRunner (offline replay)

Usage:
    from vofuse import FusionEngine, Pose, TrackingQuality, synchronize

    engine = FusionEngine()
    synced = synchronize(t1, t2, t_cam, slam_prev, slam_now)
    engine.fuse(cam_pose, synced)
    fused = engine.get_fused_pose()
"""

__version__ = "1.0.0"

import importlib

from .pose import FuserStatus, Pose, TrackingQuality
from .synchronizer import synchronize
from .fusion_engine import FusionEngine

# Available submodules (lazy, avoids pulling pandas for engine-only users)
_SUBMODULES = {
    "pose", "math_utils", "rotation_averaging", "median_filter",
    "synchronizer", "recovery", "state_container", "fusion_engine",
    "numerical_checks", "config", "data_loaders", "point_cloud",
    "output_utils", "main_loop",
}


def __getattr__(name):
    """Lazy module loading to avoid importing all dependencies at once."""
    if name in _SUBMODULES:
        module = importlib.import_module(f".{name}", __name__)
        globals()[name] = module
        return module
    raise AttributeError(f"module 'vofuse' has no attribute '{name}'")


__all__ = ["FusionEngine", "FuserStatus", "Pose", "TrackingQuality", "synchronize"]
