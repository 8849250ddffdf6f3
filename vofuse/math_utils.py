#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Fuser Math Utilities Module
===========================

Quaternion operations and small geometric helpers shared by the
synchronizer, the rotation averaging code and the fusion engine.

Quaternion Convention:
----------------------
All quaternions use Hamilton convention with [w, x, y, z] ordering:
- w is the scalar (real) part
- [x, y, z] is the vector (imaginary) part
- q = w + xi + yj + zk

q1 ⊗ q2 represents rotation q2 followed by rotation q1.

Double Cover:
-------------
q and -q encode the same rotation. Wherever a quaternion is produced by
averaging, a median or the published fused pose, the sign is
canonicalized so that w >= 0 (see quat_canonical).

Key Operations:
---------------
- quat_multiply: Hamilton quaternion product
- quat_normalize: Ensure unit quaternion
- quat_canonical: Resolve double cover (w >= 0)
- quat_to_axis_angle / axis_angle_to_quat: angle-axis conversion
- quat_to_rot: Convert to 3x3 rotation matrix
- quat_rotate: Rotate a 3-vector

Author: VO fuser project
"""

from typing import Tuple

import numpy as np


IDENTITY_QUAT = np.array([1.0, 0.0, 0.0, 0.0])


# =============================================================================
# Quaternion Operations (all use [w, x, y, z] Hamilton convention)
# =============================================================================

def quat_multiply(q1: np.ndarray, q2: np.ndarray) -> np.ndarray:
    """
    Quaternion multiplication: q1 ⊗ q2, both in [w,x,y,z] format.

    Args:
        q1: First quaternion [w, x, y, z]
        q2: Second quaternion [w, x, y, z]

    Returns:
        Product quaternion [w, x, y, z]
    """
    w1, x1, y1, z1 = q1
    w2, x2, y2, z2 = q2
    return np.array([
        w1*w2 - x1*x2 - y1*y2 - z1*z2,
        w1*x2 + x1*w2 + y1*z2 - z1*y2,
        w1*y2 - x1*z2 + y1*w2 + z1*x2,
        w1*z2 + x1*y2 - y1*x2 + z1*w2
    ])


def quat_normalize(q: np.ndarray) -> np.ndarray:
    """
    Normalize quaternion to unit length.

    Returns identity for a (near) zero-norm input.
    """
    norm = np.linalg.norm(q)
    if norm < 1e-10:
        return IDENTITY_QUAT.copy()
    return np.asarray(q, dtype=float) / norm


def quat_inverse(q: np.ndarray) -> np.ndarray:
    """Compute quaternion inverse (conjugate for unit quaternion)."""
    return np.array([q[0], -q[1], -q[2], -q[3]], dtype=float)


def quat_canonical(q: np.ndarray) -> np.ndarray:
    """
    Resolve the double-cover ambiguity: flip all four components if w < 0.

    The magnitude is left untouched.
    """
    q = np.asarray(q, dtype=float)
    if q[0] < 0:
        return -q
    return q.copy()


def quat_to_axis_angle(q: np.ndarray) -> Tuple[float, np.ndarray]:
    """
    Extract (angle, axis) from a unit quaternion [w,x,y,z].

    The angle is returned in [0, π]: a quaternion with negative scalar part
    is mapped to the equivalent shorter rotation. For a (near) identity
    rotation the axis defaults to +X.
    """
    q = quat_canonical(quat_normalize(q))
    vec = q[1:4]
    vec_norm = np.linalg.norm(vec)
    if vec_norm < 1e-12:
        return 0.0, np.array([1.0, 0.0, 0.0])
    angle = 2.0 * np.arctan2(vec_norm, q[0])
    return float(angle), vec / vec_norm


def axis_angle_to_quat(angle: float, axis: np.ndarray) -> np.ndarray:
    """Build the unit quaternion [w,x,y,z] for a rotation of `angle` about `axis`."""
    axis = np.asarray(axis, dtype=float)
    axis_norm = np.linalg.norm(axis)
    if axis_norm < 1e-12:
        return IDENTITY_QUAT.copy()
    half = 0.5 * angle
    return np.concatenate(([np.cos(half)], np.sin(half) * axis / axis_norm))


def quat_to_rot(q: np.ndarray) -> np.ndarray:
    """Convert quaternion [w,x,y,z] to 3x3 rotation matrix."""
    w, x, y, z = quat_normalize(q)
    return np.array([
        [1-2*(y*y+z*z), 2*(x*y-w*z),   2*(x*z+w*y)],
        [2*(x*y+w*z),   1-2*(x*x+z*z), 2*(y*z-w*x)],
        [2*(x*z-w*y),   2*(y*z+w*x),   1-2*(x*x+y*y)]
    ])


def quat_rotate(q: np.ndarray, v: np.ndarray) -> np.ndarray:
    """Rotate 3-vector v by quaternion q."""
    return quat_to_rot(q) @ np.asarray(v, dtype=float)


def quat_angle_between(q1: np.ndarray, q2: np.ndarray) -> float:
    """Rotation angle (rad) of q1 ⊗ q2^{-1}, in [0, π]."""
    dq = quat_multiply(quat_normalize(q1), quat_inverse(quat_normalize(q2)))
    angle, _ = quat_to_axis_angle(dq)
    return angle


# =============================================================================
# Scalar Helpers
# =============================================================================

def angle_wrap(angle: float) -> float:
    """Wrap angle to (-π, π]."""
    while angle > np.pi:
        angle -= 2 * np.pi
    while angle <= -np.pi:
        angle += 2 * np.pi
    return angle
