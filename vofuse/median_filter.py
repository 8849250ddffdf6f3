#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Sliding-Window Median Filters
=============================

- ScalarMedianFilter: median of the N most recent samples of one channel.
- PoseWindow: fixed-capacity ring buffer of poses whose median pose is the
  per-axis translation median combined with the geometric median rotation.

Both buffers grow during a one-time warm-up and hold exactly their
capacity afterwards.

Author: VO fuser project
"""

from __future__ import annotations

from collections import deque
from typing import Deque, Optional

import numpy as np

from .pose import Pose, X, Y, Z
from .rotation_averaging import median_quaternions_weiszfeld


class ScalarMedianFilter:
    """Median of the last `window` samples added."""

    def __init__(self, window: int):
        if int(window) < 1:
            raise ValueError(f"Median filter window must be >= 1, got {window}")
        self.window = int(window)
        self._samples: Deque[float] = deque(maxlen=self.window)

    def add_sample(self, value: float):
        """Append a sample, evicting the oldest one on overflow."""
        self._samples.append(float(value))

    def median(self) -> float:
        """Middle value (mean of the two middle values for even counts); NaN when empty."""
        n = len(self._samples)
        if n == 0:
            return float("nan")
        ordered = sorted(self._samples)
        mid = n // 2
        if n % 2 == 1:
            return ordered[mid]
        return 0.5 * (ordered[mid - 1] + ordered[mid])

    def __len__(self) -> int:
        return len(self._samples)

    def is_full(self) -> bool:
        return len(self._samples) == self.window


class PoseWindow:
    """
    Fixed-capacity pose ring buffer feeding a median filter bank.

    The bank is one ScalarMedianFilter per translation axis plus the
    Weiszfeld rotation median over the buffered quaternions.
    """

    def __init__(self, capacity: int,
                 median_p: float = 1.0,
                 max_angular_update: float = 1e-4,
                 max_iterations: int = 1000):
        self.capacity = int(capacity)
        self.median_p = median_p
        self.max_angular_update = max_angular_update
        self.max_iterations = max_iterations
        self._poses: Deque[Pose] = deque(maxlen=self.capacity)

    def push(self, pose: Pose):
        """Store a copy of pose; the oldest entry drops out once full."""
        self._poses.append(pose.copy())

    def is_full(self) -> bool:
        return len(self._poses) == self.capacity

    def __len__(self) -> int:
        return len(self._poses)

    def __getitem__(self, idx: int) -> Pose:
        return self._poses[idx]

    def median_pose(self, quality=None) -> Optional[Pose]:
        """
        Median pose over the buffered entries, or None when empty.

        Translation: per-axis sliding median. Rotation: geometric median.
        """
        if not self._poses:
            return None

        filters = [ScalarMedianFilter(self.capacity) for _ in range(3)]
        q_samples = np.zeros((len(self._poses), 4))
        for j, pose in enumerate(self._poses):
            filters[X].add_sample(pose.translation[X])
            filters[Y].add_sample(pose.translation[Y])
            filters[Z].add_sample(pose.translation[Z])
            q_samples[j] = pose.rotation

        q_median = median_quaternions_weiszfeld(
            q_samples,
            p=self.median_p,
            max_angular_update=self.max_angular_update,
            max_iterations=self.max_iterations,
        )
        if quality is None:
            quality = self._poses[-1].quality
        return Pose(
            np.array([filters[X].median(), filters[Y].median(), filters[Z].median()]),
            q_median,
            quality,
        )
