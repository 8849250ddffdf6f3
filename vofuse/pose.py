#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Pose Data Model
===============

Value types shared by every fuser component.

Pose Vector Layout:
-------------------
Poses are flattened to 7 elements for delta computation and blending:

    [X, Y, Z, WQ, XQ, YQ, ZQ]

Translation first, then the raw quaternion components [w, x, y, z].

Quality Codes:
--------------
TrackingQuality values equal the tracker-confidence integers reported by
the primary tracker (0=failed, 1=low, 2=medium, 3=high). The secondary
SLAM tracker only reports OK (3) while tracking and LOST (0) otherwise.

Author: VO fuser project
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum

import numpy as np

from .math_utils import IDENTITY_QUAT, quat_multiply, quat_rotate


# Pose element indices
X, Y, Z = 0, 1, 2
WQ, XQ, YQ, ZQ = 3, 4, 5, 6
POSE_ELEMENTS = 7


class TrackingQuality(IntEnum):
    """Discrete confidence of a tracker's current estimate."""

    LOST = 0
    LOW = 1
    MED = 2
    OK = 3

    @classmethod
    def from_code(cls, code) -> "TrackingQuality":
        try:
            return cls(int(code))
        except ValueError:
            raise ValueError(f"Unknown tracking quality code: {code!r}") from None


class FuserStatus(Enum):
    """One-way engine lifecycle."""

    UNINITIALIZED = "UNINITIALIZED"
    RUNNING = "RUNNING"


@dataclass
class Pose:
    """Translation + rotation + quality of one tracker sample."""

    translation: np.ndarray = field(default_factory=lambda: np.zeros(3))  # [x, y, z]
    rotation: np.ndarray = field(default_factory=lambda: IDENTITY_QUAT.copy())  # [w, x, y, z]
    quality: TrackingQuality = TrackingQuality.LOST

    def __post_init__(self):
        self.translation = np.array(self.translation, dtype=float).reshape(3)
        self.rotation = np.array(self.rotation, dtype=float).reshape(4)
        self.quality = TrackingQuality.from_code(self.quality)

    @classmethod
    def identity(cls, quality: TrackingQuality = TrackingQuality.LOST) -> "Pose":
        return cls(np.zeros(3), IDENTITY_QUAT.copy(), quality)

    @classmethod
    def from_vector(cls, vec: np.ndarray,
                    quality: TrackingQuality = TrackingQuality.LOST) -> "Pose":
        """Build a pose from the 7-element [X,Y,Z,WQ,XQ,YQ,ZQ] layout."""
        vec = np.asarray(vec, dtype=float)
        return cls(vec[X:Z + 1], vec[WQ:ZQ + 1], quality)

    def as_vector(self) -> np.ndarray:
        return np.concatenate((self.translation, self.rotation))

    def copy(self) -> "Pose":
        return Pose(self.translation.copy(), self.rotation.copy(), self.quality)

    def set_translation(self, x: float, y: float, z: float):
        self.translation = np.array([x, y, z], dtype=float)

    def roto_translation(self, t_anchor: np.ndarray, q_anchor: np.ndarray):
        """
        Re-express this pose in the frame anchored at (t_anchor, q_anchor).

        t' = t_anchor + R(q_anchor) @ t
        q' = q_anchor ⊗ q
        """
        self.translation = np.asarray(t_anchor, dtype=float) + quat_rotate(q_anchor, self.translation)
        self.rotation = quat_multiply(q_anchor, self.rotation)

    def has_nan(self) -> bool:
        return bool(np.any(np.isnan(self.translation)) or np.any(np.isnan(self.rotation)))

    def __eq__(self, other) -> bool:
        if not isinstance(other, Pose):
            return NotImplemented
        return (np.array_equal(self.translation, other.translation)
                and np.array_equal(self.rotation, other.rotation)
                and self.quality == other.quality)
