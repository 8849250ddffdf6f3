#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SLAM Recovery Tracker
=====================

Detects when the secondary (SLAM) tracker loses and re-acquires tracking,
and re-anchors its poses so that fusion can resume without a jump.

After a re-acquisition the SLAM tracker starts a new map whose origin is
unrelated to the old one. The tracker captures the last published fused
pose as the recovery anchor and re-expresses every later SLAM pose in the
frame of that anchor.

States:
-------
- NORMAL: SLAM poses are anchored on the first camera-VO pose ever seen
  (the initial common frame), unless the effective quality is LOST.
- RECOVERED: SLAM poses are anchored on the recovery anchor.

Transitions:
------------
NORMAL -> RECOVERED when the quality history is full, the current quality
is OK, the oldest history slot is LOST and every newer slot is OK (a
sustained re-acquisition rather than a flicker).

RECOVERED -> NORMAL whenever a LOST sample sits in the history outside the
oldest slot. The same condition forces the effective SLAM quality to LOST
so the fuser ignores a trajectory that has not stabilized yet.

Author: VO fuser project
"""

from __future__ import annotations

from collections import deque
from enum import Enum
from typing import Deque, Tuple

from .pose import Pose, TrackingQuality


class RecoveryState(Enum):
    NORMAL = "NORMAL"
    RECOVERED = "RECOVERED"


class RecoveryTracker:
    """Quality-history state machine for SLAM re-acquisition."""

    def __init__(self, recovery_buffer: int, filter_window: int):
        self.recovery_buffer = int(recovery_buffer)
        self.history: Deque[TrackingQuality] = deque(maxlen=self.recovery_buffer)
        self.recovered = False
        self.first_recover = True
        # Starts above the filter window so the fused-pose median runs
        # normally until the first recovery.
        self.recover_steps = int(filter_window) + 1
        self.anchor = Pose.identity()
        self.recovery_count = 0

    @property
    def state(self) -> RecoveryState:
        return RecoveryState.RECOVERED if self.recovered else RecoveryState.NORMAL

    def history_full(self) -> bool:
        return len(self.history) == self.recovery_buffer

    def check(self, quality_now: TrackingQuality, last_published: Pose) -> TrackingQuality:
        """
        Run recovery detection for one step.

        Args:
            quality_now: Raw SLAM quality of the current sample
            last_published: Previous published fused pose (recovery anchor candidate)

        Returns:
            Effective SLAM quality used by the rest of the step
        """
        effective = TrackingQuality.from_code(quality_now)
        if not self.history_full():
            return effective

        history = list(self.history)

        if (effective == TrackingQuality.OK
                and history[0] == TrackingQuality.LOST
                and all(q == TrackingQuality.OK for q in history[1:])):
            self.recovered = True
            self.first_recover = True
            self.recovery_count += 1
            self.anchor = last_published.copy()
            t = self.anchor.translation
            q = self.anchor.rotation
            print(f"[RECOVERY] SLAM recovered @ {t[0]:.4f} {t[1]:.4f} {t[2]:.4f} "
                  f"{q[0]:.4f} {q[1]:.4f} {q[2]:.4f} {q[3]:.4f}")

        # A LOST sample anywhere but the oldest slot: not stable yet.
        if any(q == TrackingQuality.LOST for q in history[1:]):
            effective = TrackingQuality.LOST
            self.recovered = False

        return effective

    def reanchor(self, orb_pose: Pose, orb_prev: Pose, first_cam: Pose,
                 effective_quality: TrackingQuality) -> Tuple[Pose, Pose]:
        """
        Express the SLAM pose (and, right after a recovery, the previous SLAM
        pose) in the common fused frame.

        Returns:
            (anchored SLAM pose, possibly re-anchored previous SLAM pose)
        """
        orb_pose = orb_pose.copy()
        orb_prev = orb_prev.copy()

        if self.recovered:
            orb_pose.roto_translation(self.anchor.translation, self.anchor.rotation)
            if self.first_recover:
                orb_prev.roto_translation(self.anchor.translation, self.anchor.rotation)
                self.first_recover = False
                self.recover_steps = 0
            self.recover_steps += 1
        elif effective_quality != TrackingQuality.LOST:
            orb_pose.roto_translation(first_cam.translation, first_cam.rotation)

        return orb_pose, orb_prev

    def record(self, quality_now: TrackingQuality):
        """Push the raw SLAM quality of the finished step into the history."""
        self.history.append(TrackingQuality.from_code(quality_now))
