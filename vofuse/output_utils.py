#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Fuser Output Utilities Module

CSV writers for the replay runner:
- fused_pose.csv: published fused pose + coarse tracking-state code
- point_cloud.csv: size of each point-cloud snapshot
- debug_fuser_steps.csv: per-step blending internals (debug only)

Author: VO fuser project
"""

import os
from typing import Optional

import numpy as np

from .pose import Pose


DELTA_NAMES = ["x", "y", "z", "wq", "xq", "yq", "zq"]


class FuserOutputWriter:
    """
    Writes the published pose stream and point-cloud snapshot sizes.

    Usage:
        writer = FuserOutputWriter(output_dir="output/")
        writer.log_pose(t=1.0, pose=engine.get_fused_pose(), state=3)
    """

    def __init__(self, output_dir: str):
        self.output_dir = output_dir
        os.makedirs(self.output_dir, exist_ok=True)

        self.pose_csv = os.path.join(self.output_dir, "fused_pose.csv")
        with open(self.pose_csv, "w", newline="") as f:
            f.write("t,tx,ty,tz,qw,qx,qy,qz,state\n")

        self.pc_csv = os.path.join(self.output_dir, "point_cloud.csv")
        with open(self.pc_csv, "w", newline="") as f:
            f.write("t,num_points\n")

    def log_pose(self, t: float, pose: Pose, state: int):
        tr = pose.translation
        q = pose.rotation
        with open(self.pose_csv, "a", newline="") as f:
            f.write(f"{t:.6f},{tr[0]:.9f},{tr[1]:.9f},{tr[2]:.9f},"
                    f"{q[0]:.9f},{q[1]:.9f},{q[2]:.9f},{q[3]:.9f},{int(state)}\n")

    def log_point_cloud(self, t: float, num_points: int):
        with open(self.pc_csv, "a", newline="") as f:
            f.write(f"{t:.6f},{int(num_points)}\n")


class FuserDebugLogger:
    """
    Per-step fuser debug log.

    Creates debug_fuser_steps.csv with qualities, blending weight, recovery
    state and both 7-element deltas.

    Usage:
        logger = FuserDebugLogger(output_dir="output/", enabled=True)
        engine = FusionEngine(config, debug_logger=logger)
    """

    def __init__(self, output_dir: str, enabled: bool = False):
        self.output_dir = output_dir
        self.enabled = enabled
        self.steps_csv: Optional[str] = None

        if self.enabled:
            self._init_files()

    def _init_files(self):
        """Initialize CSV files with headers."""
        os.makedirs(self.output_dir, exist_ok=True)
        self.steps_csv = os.path.join(self.output_dir, "debug_fuser_steps.csv")
        header = ["step", "cam_qos", "orb_qos_raw", "orb_qos", "alpha", "recovered", "recover_steps"]
        header += [f"dcam_{n}" for n in DELTA_NAMES]
        header += [f"dorb_{n}" for n in DELTA_NAMES]
        with open(self.steps_csv, "w", newline="") as f:
            f.write(",".join(header) + "\n")

    def log_step(self,
                 step: int,
                 cam_qos: int,
                 orb_qos_raw: int,
                 orb_qos: int,
                 alpha: float,
                 recovered: bool,
                 recover_steps: int,
                 delta_cam: np.ndarray,
                 delta_orb: np.ndarray):
        """Append one fusion step."""
        if not self.enabled or self.steps_csv is None:
            return

        deltas = ",".join(f"{v:.9f}" for v in np.concatenate((delta_cam, delta_orb)))
        with open(self.steps_csv, "a", newline="") as f:
            f.write(f"{step},{cam_qos},{orb_qos_raw},{orb_qos},{alpha:.4f},"
                    f"{int(recovered)},{recover_steps},{deltas}\n")
