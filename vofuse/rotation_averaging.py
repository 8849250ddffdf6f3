#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Rotation Averaging Module
=========================

Batch reductions over unit quaternions [w, x, y, z]:

- average_quaternions_markley: eigen-based mean rotation (Markley et al.,
  "Averaging Quaternions", 2007). One-shot, deterministic, used as seed.
- median_quaternions_weiszfeld: geometric median rotation computed with a
  Weiszfeld-style iteration on the rotation manifold (Hartley et al.,
  "L1 rotation averaging using the Weiszfeld algorithm", 2011). Robust to
  single-frame tracking glitches.

Batches are (M, 4) arrays, one quaternion per row.

Author: VO fuser project
"""

from typing import Sequence, Union

import numpy as np

from .math_utils import quat_canonical, quat_inverse, quat_multiply, quat_normalize


# Samples closer than this to the estimate contribute no gradient.
EPS_ANGLE = 1e-7

QuaternionBatch = Union[np.ndarray, Sequence[Sequence[float]]]


def _as_batch(quats: QuaternionBatch) -> np.ndarray:
    Q = np.asarray(quats, dtype=float)
    if Q.ndim == 1:
        Q = Q.reshape(1, 4)
    if Q.ndim != 2 or Q.shape[1] != 4:
        raise ValueError(f"Expected an (M, 4) quaternion batch, got shape {Q.shape}")
    if Q.shape[0] == 0:
        raise ValueError("Cannot average an empty quaternion batch")
    return Q


def _angular_cost(q: np.ndarray, Q: np.ndarray, p: float) -> float:
    """Sum of angle^p from q to every sample (shorter rotation)."""
    q_inv = quat_inverse(quat_normalize(q))
    cost = 0.0
    for sample in Q:
        w = abs(quat_multiply(quat_normalize(sample), q_inv)[0])
        cost += (2.0 * np.arccos(min(w, 1.0))) ** p
    return cost


def average_quaternions_markley(quats: QuaternionBatch) -> np.ndarray:
    """
    Mean rotation of a quaternion batch.

    Each sample is sign-flipped so that w >= 0, the outer products q·qᵀ are
    accumulated and divided by M, and the eigenvector belonging to the
    largest eigenvalue of the resulting 4x4 matrix is returned.

    Args:
        quats: (M, 4) array of unit quaternions [w,x,y,z], M >= 1

    Returns:
        Mean quaternion [w,x,y,z] (unit norm, w >= 0)
    """
    Q = _as_batch(quats)
    A = np.zeros((4, 4))
    for q in Q:
        if q[0] < 0:
            q = -q
        A += np.outer(q, q)
    A /= Q.shape[0]

    # eigh returns eigenvalues in ascending order
    _, eigvecs = np.linalg.eigh(A)
    return quat_canonical(eigvecs[:, -1])


def median_quaternions_weiszfeld(quats: QuaternionBatch,
                                 p: float = 1.0,
                                 max_angular_update: float = 1e-4,
                                 max_iterations: int = 1000) -> np.ndarray:
    """
    Geometric median rotation of a quaternion batch.

    Seeded with the Markley average. Each iteration computes the angle-axis
    offset of every sample from the current estimate, weights it by
    1 / angle^(2-p), and applies the weighted mean offset to the estimate.
    Terminates when the update angle drops below `max_angular_update` or
    after `max_iterations` iterations, whichever comes first. The result is
    whichever of the iterate and the input samples has the lowest summed
    angle^p to the batch.

    Args:
        quats: (M, 4) array of unit quaternions [w,x,y,z]
        p: Weighting exponent (1 = L1 median)
        max_angular_update: Convergence threshold in radians (floored at 1e-7)
        max_iterations: Hard iteration cap

    Returns:
        Median quaternion [w,x,y,z] with w >= 0
    """
    Q = _as_batch(quats)
    q_median = average_quaternions_markley(Q)
    max_angular_update = max(max_angular_update, EPS_ANGLE)
    theta = 10 * max_angular_update
    iteration = 0

    while theta > max_angular_update and iteration <= max_iterations:
        delta = np.zeros(3)
        weight_sum = 0.0
        q_median_inv = quat_inverse(q_median)

        for q in Q:
            qj = quat_multiply(q, q_median_inv)
            # Shorter of the two equivalent rotations
            if qj[0] < 0:
                qj = -qj
            angle = 2.0 * np.arccos(np.clip(qj[0], -1.0, 1.0))
            if angle > EPS_ANGLE:
                axis_angle = qj[1:4] / np.sin(angle / 2.0) * angle
                weight = 1.0 / angle ** (2.0 - p)
                delta += weight * axis_angle
                weight_sum += weight

        if weight_sum > EPS_ANGLE:
            delta /= weight_sum
            theta = float(np.linalg.norm(delta))
            if theta > EPS_ANGLE:
                axis = delta / theta
                half = 0.5 * theta
                q_step = np.concatenate(([np.cos(half)], np.sin(half) * axis))
                q_median = quat_canonical(quat_multiply(q_step, q_median))
        else:
            theta = 0.0

        iteration += 1

    # The iteration stalls near a sample that is itself the median; keep
    # the best of the iterate and the samples.
    best_cost = _angular_cost(q_median, Q, p)
    for sample in Q:
        cost = _angular_cost(sample, Q, p)
        if cost < best_cost:
            best_cost = cost
            q_median = quat_canonical(quat_normalize(sample))

    return q_median
