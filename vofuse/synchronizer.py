#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Stream Synchronizer
===================

Aligns a secondary-stream (SLAM) sample to the timestamp of a primary
(camera VO) sample.

Given two secondary samples (t1, s1), (t2, s2) with t1 <= t2 and a target
time t3, the rules below are applied in priority order:

1. t1 is the "uninitialized" sentinel (-1)   -> s3 = s2
2. t3 < t1                                    -> s3 = s1
3. t3 < t2 or t1 == t2                        -> s3 = s2
4. otherwise                                  -> curve fit / rotation scaling

Translation in case 4 is evaluated per axis on a B-spline fitted over the
reference samples, the independent variable normalized to [0, 1] across
the sample times (degree = min(samples - 1, 3); two samples give a line).
Rotation in case 4 scales the angle of r = q2 ⊗ q1^{-1} by
dt = (t3 - t1) / (t2 - t1) and applies it to q1.

Author: VO fuser project
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np
from scipy.interpolate import make_interp_spline

from .math_utils import (
    angle_wrap, axis_angle_to_quat, quat_canonical, quat_inverse,
    quat_multiply, quat_to_axis_angle,
)
from .pose import Pose


UNINITIALIZED_TIMESTAMP = -1


class SplineInterpolator:
    """1-D B-spline through (x_vec, y_vec), x normalized to [0, 1]."""

    def __init__(self, x_vec: Sequence[float], y_vec: Sequence[float]):
        x_vec = np.asarray(x_vec, dtype=float)
        y_vec = np.asarray(y_vec, dtype=float)
        if x_vec.shape != y_vec.shape or x_vec.size < 2:
            raise ValueError("SplineInterpolator needs at least two (x, y) pairs of equal length")
        self.x_min = float(x_vec.min())
        self.x_max = float(x_vec.max())
        if self.x_max == self.x_min:
            raise ValueError("SplineInterpolator needs a non-degenerate x range")
        degree = min(x_vec.size - 1, 3)
        order = np.argsort(x_vec)
        self._spline = make_interp_spline(self.scaled_value(x_vec[order]), y_vec[order], k=degree)

    def scaled_value(self, x):
        return (np.asarray(x, dtype=float) - self.x_min) / (self.x_max - self.x_min)

    def __call__(self, x: float) -> float:
        return float(self._spline(self.scaled_value(x), extrapolate=True))


def _has_zero_component(q: np.ndarray) -> bool:
    return bool(np.any(np.asarray(q) == 0.0))


def interpolate_rotation(q1: np.ndarray, q2: np.ndarray, dt: float) -> np.ndarray:
    """
    Scale the relative rotation q2 ⊗ q1^{-1} by dt and apply it to q1.

    dt = 0 returns q1, dt = 1 returns q2 (up to sign); dt > 1 extrapolates.
    """
    relative = quat_multiply(q2, quat_inverse(q1))
    angle, axis = quat_to_axis_angle(relative)
    angle = angle_wrap(angle)
    angle = np.fmod(angle * dt, 2 * np.pi)
    scaled = axis_angle_to_quat(angle, axis)
    return quat_canonical(quat_multiply(scaled, q1))


def synchronize(t1: float, t2: float, t3: float,
                s1: Pose, s2: Pose,
                out: Optional[Pose] = None) -> Pose:
    """
    Estimate the secondary-stream pose at time t3.

    Pure function: s1, s2 and out are never modified.

    Args:
        t1: Timestamp of s1 (UNINITIALIZED_TIMESTAMP before the first sample)
        t2: Timestamp of s2
        t3: Target (primary stream) timestamp
        s1: Older secondary sample
        s2: Newer secondary sample
        out: Pose whose rotation is kept when rotation interpolation is
            skipped (any exact-zero quaternion component). Identity if None.

    Returns:
        Synchronized pose s3
    """
    if t1 == UNINITIALIZED_TIMESTAMP:
        return s2.copy()
    if t3 < t1:
        return s1.copy()
    if t3 < t2 or t1 == t2:
        return s2.copy()

    s3 = out.copy() if out is not None else Pose.identity(s2.quality)

    t_vals = [t1, t2]
    translation = np.array([
        SplineInterpolator(t_vals, [s1.translation[axis], s2.translation[axis]])(t3)
        for axis in range(3)
    ])
    s3.translation = translation

    # Rotation is only interpolated when no quaternion component is exactly
    # zero; otherwise s3 keeps the rotation it was created with.
    if not (_has_zero_component(s1.rotation) or _has_zero_component(s2.rotation)):
        dt = (t3 - t1) / (t2 - t1)
        s3.rotation = interpolate_rotation(s1.rotation, s2.rotation, dt)

    return s3


def synchronize_translation(times: Sequence[float],
                            translations: Sequence[Sequence[float]],
                            t: float) -> np.ndarray:
    """
    Per-axis spline evaluation over an arbitrary number of reference samples.

    Generalizes the two-sample case used by synchronize (degree grows to a
    cubic with four or more samples).
    """
    translations = np.asarray(translations, dtype=float)
    return np.array([
        SplineInterpolator(times, translations[:, axis])(t)
        for axis in range(translations.shape[1])
    ])
