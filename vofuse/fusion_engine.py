#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Fusion Engine
=============

Fuses camera visual odometry (primary) with SLAM visual odometry
(secondary) into one pose.

Per-step pipeline (fuse):
-------------------------
1. Cache both qualities; remember the first camera pose ever seen.
2. Recovery check + re-anchoring of the SLAM pose (RecoveryTracker).
3. SLAM median filter bank (per-axis scalar median + rotation median),
   once its ring buffer is full.
4. 7-element deltas [X,Y,Z,WQ,XQ,YQ,ZQ] of both streams against their own
   previous samples (against identity on the very first step).
5. QoS-weighted blend of the deltas, integrated onto the previous raw
   fused pose. Quaternion components are added, not slerped: this is an
   incremental complementary filter.
6. Fused-pose median filter bank, or raw fused pose plus reset smoothing
   while the filter restarts after a recovery.
7. Bookkeeping: previous poses, quality histories, NaN tripwire, counter.

Blending weight (alpha = camera weight):
----------------------------------------
    camera LOST -> 0
    camera LOW  -> 0
    camera MED  -> alpha_blending * alpha_weight
    camera OK   -> alpha_blending
    SLAM LOST   -> 1 (overrides the above)

The engine is single threaded; callers serialize fuse() calls.

Author: VO fuser project
"""

from __future__ import annotations

from collections import deque
from typing import Any, Deque, Dict, Optional

import numpy as np

from .config import default_config
from .math_utils import quat_canonical
from .median_filter import PoseWindow
from .numerical_checks import check_rotations
from .pose import FuserStatus, Pose, TrackingQuality
from .recovery import RecoveryTracker
from .state_container import FusionState


class FusionEngine:
    """
    Camera-VO / SLAM-VO fuser.

    Usage:
        engine = FusionEngine(load_config("configs/config_default.yaml"))
        engine.fuse(cam_pose, synced_slam_pose)
        fused = engine.get_fused_pose()
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None,
                 debug_logger: Optional[Any] = None):
        """
        Args:
            config: Flat configuration dictionary (see config.load_config).
                Missing keys take the module defaults.
            debug_logger: Optional FuserDebugLogger receiving one row per step
        """
        cfg = default_config()
        cfg.update(config or {})
        self.config = cfg

        self.filter_window = int(cfg['FILTER_WINDOW'])
        self.recovery_buffer = int(cfg['RECOVERY_BUFFER'])
        self.alpha_blending = float(cfg['ALPHA_BLENDING'])
        self.alpha_weight = float(cfg['ALPHA_WEIGHT'])
        self.reduction_factor = float(cfg['REDUCTION_FACTOR'])
        self.verbose = bool(cfg['VERBOSE_DEBUG'])
        self.debug_logger = debug_logger

        self._median_kwargs = dict(
            median_p=float(cfg['MEDIAN_P']),
            max_angular_update=float(cfg['MEDIAN_MAX_ANGULAR_UPDATE']),
            max_iterations=int(cfg['MEDIAN_MAX_ITERATIONS']),
        )
        self.orb_window = PoseWindow(self.filter_window, **self._median_kwargs)
        self.pose_window = PoseWindow(self.filter_window, **self._median_kwargs)

        self.recovery = RecoveryTracker(self.recovery_buffer, self.filter_window)
        self.reset_history: Deque[TrackingQuality] = deque(maxlen=self.filter_window)

        self.state = FusionState()

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def status(self) -> FuserStatus:
        return self.state.status

    @property
    def counter(self) -> int:
        return self.state.counter

    @property
    def recovered(self) -> bool:
        return self.recovery.recovered

    @property
    def alpha(self) -> float:
        return self.state.blend.alpha

    def get_fused_pose(self) -> Pose:
        """Published (filtered) fused pose."""
        return self.state.fused.pose_filtered.copy()

    def get_raw_fused_pose(self) -> Pose:
        """Integrated fused pose before the output filter."""
        return self.state.fused.pose.copy()

    # Debugging purpose only
    def get_orb_pose(self) -> Pose:
        """Anchored, unfiltered SLAM pose of the last step."""
        return self.state.streams.orb_pose.copy()

    def get_recovered_pose(self) -> Pose:
        """Current recovery anchor."""
        return self.recovery.anchor.copy()

    def get_delta_cam(self) -> np.ndarray:
        return self.state.blend.delta_cam.copy()

    def get_delta_orb(self) -> np.ndarray:
        return self.state.blend.delta_orb.copy()

    # =========================================================================
    # Blending
    # =========================================================================

    def select_alpha(self, cam_qos: TrackingQuality, orb_qos: TrackingQuality) -> float:
        """Camera-VO weight for the given qualities."""
        if orb_qos == TrackingQuality.LOST:
            return 1.0
        if cam_qos == TrackingQuality.MED:
            return self.alpha_blending * self.alpha_weight
        if cam_qos == TrackingQuality.OK:
            return self.alpha_blending
        return 0.0

    def blend(self, delta_cam: np.ndarray, delta_orb: np.ndarray) -> Pose:
        """
        Blend both deltas and integrate onto the previous raw fused pose.

        Quaternion components are integrated additively and left
        unnormalized.
        """
        alpha = self.select_alpha(self.state.quality.cam_qos, self.state.quality.orb_qos)
        delta = delta_cam * alpha + delta_orb * (1.0 - alpha)

        self.state.blend.alpha = alpha
        self.state.blend.delta = delta

        prev = self.state.fused.pose_prev.as_vector()
        return Pose.from_vector(prev + delta, self.state.quality.cam_qos)

    # =========================================================================
    # Per-step helpers
    # =========================================================================

    def _delta(self, current: Pose, previous: Pose) -> np.ndarray:
        if self.state.status == FuserStatus.UNINITIALIZED:
            previous = Pose.identity()
        return current.as_vector() - previous.as_vector()

    def _filter_secondary(self, orb_pose: Pose) -> Pose:
        """SLAM median filter bank; pass-through while the buffer warms up."""
        self.orb_window.push(orb_pose)
        if self.state.median_filter_ready:
            return self.orb_window.median_pose(orb_pose.quality)
        if self.orb_window.is_full():
            self.state.median_filter_ready = True
        return orb_pose.copy()

    def _filter_fused(self, pose: Pose) -> Pose:
        """Fused-pose median filter bank, or raw pose with reset smoothing."""
        self.pose_window.push(pose)
        if self.state.median_filter_ready and self.recovery.recover_steps > self.filter_window:
            return self.pose_window.median_pose(pose.quality)

        published = pose.copy()
        if self.pose_window.is_full():
            self.state.median_filter_ready = True

        # Smoothing during the filter reset phase after a recovery.
        if self.state.counter > self.filter_window:
            filtered_prev = self.state.fused.pose_filtered_prev
            if self.reset_history[0] != TrackingQuality.LOST:
                buffered_prev = self.pose_window[-2]
                pull = (buffered_prev.as_vector() - pose.as_vector()) * self.reduction_factor
                published = Pose.from_vector(filtered_prev.as_vector() + pull, pose.quality)
            else:
                published = filtered_prev.copy()
                published.quality = pose.quality

        return published

    # =========================================================================
    # Main step
    # =========================================================================

    def fuse(self, cam_vo: Pose, orb_vo: Pose) -> bool:
        """
        Run one fusion step.

        Args:
            cam_vo: Camera-VO pose with quality
            orb_vo: SLAM pose already synchronized to the camera timestamp

        Returns:
            Always True
        """
        st = self.state
        cam_vo = cam_vo.copy()
        orb_qos_now = TrackingQuality.from_code(orb_vo.quality)

        st.quality.cam_qos = TrackingQuality.from_code(cam_vo.quality)
        st.quality.orb_qos_raw = orb_qos_now

        if st.status == FuserStatus.UNINITIALIZED:
            st.streams.first_cam_vo = cam_vo.copy()

        # Recovery after a SLAM fault: re-initialize the SLAM trajectory
        # with the corrected roto-translation.
        st.quality.orb_qos = self.recovery.check(orb_qos_now, st.fused.pose_filtered_prev)
        orb_pose, st.streams.orb_vo_prev = self.recovery.reanchor(
            orb_vo, st.streams.orb_vo_prev, st.streams.first_cam_vo, st.quality.orb_qos)
        st.streams.orb_pose = orb_pose.copy()

        # Filtering SLAM spikes
        orb_filtered = self._filter_secondary(orb_pose)

        st.blend.delta_cam = self._delta(cam_vo, st.streams.cam_vo_prev)
        st.blend.delta_orb = self._delta(orb_filtered, st.streams.orb_vo_prev)

        st.fused.pose = self.blend(st.blend.delta_cam, st.blend.delta_orb)

        published = self._filter_fused(st.fused.pose)
        published.rotation = quat_canonical(published.rotation)
        st.fused.pose_filtered = published

        if self.verbose:
            t = published.translation
            print(f"[FUSER] step={st.counter} alpha={st.blend.alpha:.3f} "
                  f"cam={st.quality.cam_qos.name} orb={st.quality.orb_qos.name} "
                  f"recovery={self.recovery.state.name} pos=({t[0]:.3f}, {t[1]:.3f}, {t[2]:.3f})")

        if self.debug_logger is not None:
            self.debug_logger.log_step(
                step=st.counter,
                cam_qos=int(st.quality.cam_qos),
                orb_qos_raw=int(orb_qos_now),
                orb_qos=int(st.quality.orb_qos),
                alpha=st.blend.alpha,
                recovered=self.recovery.recovered,
                recover_steps=self.recovery.recover_steps,
                delta_cam=st.blend.delta_cam,
                delta_orb=st.blend.delta_orb,
            )

        # Saving previous camera and SLAM poses
        st.streams.cam_vo_prev = cam_vo
        st.streams.orb_vo_prev = orb_filtered.copy()
        st.fused.pose_prev = st.fused.pose.copy()
        st.fused.pose_filtered_prev = st.fused.pose_filtered.copy()

        # NaN tripwire on the stored rotations
        st.nan_events += check_rotations({
            'camVOPrev': st.streams.cam_vo_prev.rotation,
            'orbVOPrev': st.streams.orb_vo_prev.rotation,
            'posePrev': st.fused.pose_prev.rotation,
            'poseFilteredPrev': st.fused.pose_filtered_prev.rotation,
        }, step=st.counter, extra_info={
            'alpha': st.blend.alpha,
            'delta_cam': st.blend.delta_cam,
            'delta_orb': st.blend.delta_orb,
        })

        # Buffering SLAM quality for recovery and for filter-reset smoothing
        self.recovery.record(orb_qos_now)
        self.reset_history.append(orb_qos_now)

        if st.status == FuserStatus.UNINITIALIZED:
            st.status = FuserStatus.RUNNING

        st.counter += 1
        return True

    def reset(self):
        """Drop all session state (new fusion session)."""
        self.orb_window = PoseWindow(self.filter_window, **self._median_kwargs)
        self.pose_window = PoseWindow(self.filter_window, **self._median_kwargs)
        self.recovery = RecoveryTracker(self.recovery_buffer, self.filter_window)
        self.reset_history = deque(maxlen=self.filter_window)
        self.state = FusionState()
