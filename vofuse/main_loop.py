"""
Main Fuser Loop Runner

This module provides the FuserRunner class that replays two recorded pose
streams through the synchronizer and the fusion engine:

- Data loading (config, camera-VO CSV, SLAM-VO CSV, optional map points)
- Synchronization of the SLAM stream to each camera timestamp
- Fusion step
- Output logging (fused pose, point-cloud sizes, debug CSV)

Usage:
    from vofuse.main_loop import FuserRunner
    from vofuse.config import FuserConfig

    config = FuserConfig(
        camera_path="camera_vo.csv",
        secondary_path="slam_vo.csv",
        output_dir="output/",
    )

    runner = FuserRunner(config)
    summary = runner.run()

Author: VO fuser project
"""

import time
from typing import Any, Dict, List, Optional

import numpy as np

from .config import FuserConfig, load_config
from .data_loaders import PoseRecord, load_map_points_csv, load_pose_csv
from .fusion_engine import FusionEngine
from .output_utils import FuserDebugLogger, FuserOutputWriter
from .point_cloud import pack_point_cloud, select_points_within_radius
from .pose import Pose, TrackingQuality
from .synchronizer import UNINITIALIZED_TIMESTAMP, synchronize


class FuserRunner:
    """
    Offline replay of the fuser.

    One camera-VO sample drives one fusion step, as the 10 ms VIO timer
    does on the vehicle. The SLAM stream is consumed at its own rate.
    """

    def __init__(self, config: FuserConfig):
        self.config = config
        self.global_config = load_config(config.config_yaml)

        self.debug_logger = FuserDebugLogger(config.output_dir, enabled=config.save_debug_data)
        self.engine = FusionEngine(self.global_config, debug_logger=self.debug_logger)
        self.writer: Optional[FuserOutputWriter] = None

        self.camera: List[PoseRecord] = []
        self.secondary: List[PoseRecord] = []
        self.map_points = np.zeros((0, 3))

        # Previous SLAM sample used by the synchronizer
        self.orb_prev_ts = UNINITIALIZED_TIMESTAMP
        self.orb_prev_pose = Pose.identity()
        self.last_cloud = None

    def load_data(self):
        self.camera = load_pose_csv(self.config.camera_path, label="CAMERA")
        self.secondary = load_pose_csv(self.config.secondary_path, label="SLAM")
        self.map_points = load_map_points_csv(self.config.map_points_path)

    def step(self, t_cam: float, cam_pose: Pose, orb_record: Optional[PoseRecord]) -> Pose:
        """
        Synchronize the newest SLAM sample to t_cam and run one fusion step.

        Args:
            t_cam: Camera-VO timestamp
            cam_pose: Camera-VO pose
            orb_record: Newest SLAM sample with t <= t_cam (None if none yet)

        Returns:
            Published fused pose
        """
        if orb_record is None:
            synced = Pose.identity(TrackingQuality.LOST)
            t_orb = UNINITIALIZED_TIMESTAMP
        else:
            t_orb = orb_record.t
            synced = synchronize(self.orb_prev_ts, t_orb, t_cam,
                                 self.orb_prev_pose, orb_record.pose)
            synced.quality = orb_record.pose.quality

        self.engine.fuse(cam_pose, synced)

        if orb_record is not None:
            self.orb_prev_pose = orb_record.pose.copy()
            self.orb_prev_ts = t_orb

        return self.engine.get_fused_pose()

    def publish_point_cloud(self, t: float) -> int:
        """Select map points around the raw SLAM pose; returns the cloud size."""
        center = self.orb_prev_pose.translation
        selected = select_points_within_radius(
            self.map_points, center, self.global_config['POINT_CLOUD_RADIUS'])
        self.last_cloud = pack_point_cloud(
            selected, frame_id=self.global_config['POINT_CLOUD_FRAME_ID'], stamp=t)
        return int(selected.shape[0])

    def run(self) -> Dict[str, Any]:
        """Replay both streams; returns a run summary."""
        t_start = time.time()
        if not self.camera:
            self.load_data()
        self.writer = FuserOutputWriter(self.config.output_dir)

        print(f"[RUN] Fusing {len(self.camera)} camera samples with "
              f"{len(self.secondary)} SLAM samples")

        orb_idx = -1
        pc_every = max(1, int(self.config.pc_every))
        for i, cam in enumerate(self.camera):
            while orb_idx + 1 < len(self.secondary) and self.secondary[orb_idx + 1].t <= cam.t:
                orb_idx += 1
            orb_record = self.secondary[orb_idx] if orb_idx >= 0 else None

            fused = self.step(cam.t, cam.pose, orb_record)
            # Coarse tracking state = camera-VO confidence
            self.writer.log_pose(cam.t, fused, int(cam.pose.quality))

            if self.map_points.shape[0] > 0 and i % pc_every == 0:
                self.writer.log_point_cloud(cam.t, self.publish_point_cloud(cam.t))

        summary = {
            'steps': self.engine.counter,
            'recoveries': self.engine.recovery.recovery_count,
            'nan_events': self.engine.state.nan_events,
            'fused_pose_csv': self.writer.pose_csv,
            'point_cloud_csv': self.writer.pc_csv,
            'debug_csv': self.debug_logger.steps_csv,
            'elapsed_s': time.time() - t_start,
        }
        print(f"[RUN] Done: {summary['steps']} steps, {summary['recoveries']} recoveries, "
              f"{summary['nan_events']} NaN events ({summary['elapsed_s']:.2f}s)")
        return summary
