"""Structured runtime state container for FusionEngine."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from .pose import POSE_ELEMENTS, FuserStatus, Pose, TrackingQuality


@dataclass
class QualityState:
    """Qualities cached for the current step."""

    cam_qos: TrackingQuality = TrackingQuality.LOST
    orb_qos: TrackingQuality = TrackingQuality.LOST  # effective (after recovery check)
    orb_qos_raw: TrackingQuality = TrackingQuality.LOST


@dataclass
class StreamState:
    """Previous samples of both input streams."""

    first_cam_vo: Pose = field(default_factory=Pose.identity)
    cam_vo_prev: Pose = field(default_factory=Pose.identity)
    orb_vo_prev: Pose = field(default_factory=Pose.identity)
    orb_pose: Pose = field(default_factory=Pose.identity)  # anchored, unfiltered


@dataclass
class FusedState:
    """Raw (integrated) and published fused poses."""

    pose: Pose = field(default_factory=Pose.identity)
    pose_prev: Pose = field(default_factory=Pose.identity)
    pose_filtered: Pose = field(default_factory=Pose.identity)
    pose_filtered_prev: Pose = field(default_factory=Pose.identity)


@dataclass
class BlendState:
    """Last deltas and blending weight."""

    delta_cam: np.ndarray = field(default_factory=lambda: np.zeros(POSE_ELEMENTS))
    delta_orb: np.ndarray = field(default_factory=lambda: np.zeros(POSE_ELEMENTS))
    delta: np.ndarray = field(default_factory=lambda: np.zeros(POSE_ELEMENTS))
    alpha: float = 0.0


@dataclass
class FusionState:
    """
    Grouped mutable state of one fusion session.

    Owned by a single FusionEngine; nothing here is shared between engines.
    """

    status: FuserStatus = FuserStatus.UNINITIALIZED
    counter: int = 0
    median_filter_ready: bool = False
    nan_events: int = 0
    quality: QualityState = field(default_factory=QualityState)
    streams: StreamState = field(default_factory=StreamState)
    fused: FusedState = field(default_factory=FusedState)
    blend: BlendState = field(default_factory=BlendState)
