#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Fuser Data Loaders Module

Loading utilities for recorded camera-VO / SLAM-VO pose streams and SLAM
map points.

Pose CSV layout:
    t, tx, ty, tz, qw, qx, qy, qz, quality

`quality` is the tracker confidence integer (0=LOST .. 3=OK). Streams may
be sampled at different rates but must share one clock.
"""

import os
from dataclasses import dataclass
from typing import List, Optional

import numpy as np
import pandas as pd

from .pose import Pose, TrackingQuality


POSE_COLUMNS = ["t", "tx", "ty", "tz", "qw", "qx", "qy", "qz", "quality"]


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class PoseRecord:
    """Single timestamped tracker sample."""
    t: float  # timestamp (seconds)
    pose: Pose


# =============================================================================
# Loader Functions
# =============================================================================

def load_pose_csv(path: str, label: str = "POSE") -> List[PoseRecord]:
    """
    Load a pose stream from CSV, sorted by time.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If a column is missing or a quality code is unknown
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"{label} CSV not found: {path}")

    df = pd.read_csv(path)
    df.columns = [c.strip() for c in df.columns]
    for c in POSE_COLUMNS:
        if c not in df.columns:
            raise ValueError(f"{label} CSV missing column: {c}")

    df = df.sort_values("t", kind="stable").reset_index(drop=True)
    recs = []
    for r in df.itertuples(index=False):
        recs.append(PoseRecord(
            t=float(r.t),
            pose=Pose(
                np.array([r.tx, r.ty, r.tz], dtype=float),
                np.array([r.qw, r.qx, r.qy, r.qz], dtype=float),
                TrackingQuality.from_code(r.quality),
            ),
        ))

    print(f"[DATA] {label}: loaded {len(recs)} samples from {os.path.basename(path)}")
    return recs


def load_map_points_csv(path: Optional[str]) -> np.ndarray:
    """Load SLAM map points (x, y, z). Missing path -> empty (0, 3) array."""
    if not path or not os.path.exists(path):
        return np.zeros((0, 3))

    df = pd.read_csv(path)
    df.columns = [c.strip() for c in df.columns]
    if not all(c in df.columns for c in ("x", "y", "z")):
        print(f"[DATA] WARNING: map point CSV missing x/y/z columns")
        return np.zeros((0, 3))

    points = df[["x", "y", "z"]].to_numpy(dtype=float)
    print(f"[DATA] Loaded {len(points)} map points")
    return points


def save_pose_csv(path: str, records: List[PoseRecord]):
    """Write a pose stream in the layout read by load_pose_csv."""
    rows = []
    for rec in records:
        t = rec.pose.translation
        q = rec.pose.rotation
        rows.append([rec.t, t[0], t[1], t[2], q[0], q[1], q[2], q[3], int(rec.pose.quality)])
    pd.DataFrame(rows, columns=POSE_COLUMNS).to_csv(path, index=False)
