"""
Point cloud sink helpers.

Selects the SLAM map points around the current SLAM pose and packs them
into a PointCloud2-style payload (x, y, z as little-endian float32).
Nothing here feeds back into the fusion state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np


POINT_STEP = 12  # 3 x float32


@dataclass
class PointField:
    name: str
    offset: int
    datatype: str = "FLOAT32"
    count: int = 1


@dataclass
class PointCloudMessage:
    """PointCloud2-compatible payload."""

    frame_id: str
    stamp: float
    data: bytes
    fields: List[PointField] = field(default_factory=lambda: [
        PointField("x", 0), PointField("y", 4), PointField("z", 8),
    ])
    point_step: int = POINT_STEP
    height: int = 1
    is_bigendian: bool = False
    is_dense: bool = True

    @property
    def row_step(self) -> int:
        return len(self.data)

    @property
    def width(self) -> int:
        return self.row_step // self.point_step

    def points(self) -> np.ndarray:
        """Decode the payload back to an (N, 3) float32 array."""
        return np.frombuffer(self.data, dtype="<f4").reshape(-1, 3)


def select_points_within_radius(points: np.ndarray, center: np.ndarray,
                                radius: float) -> np.ndarray:
    """Map points strictly closer than `radius` to `center`."""
    points = np.asarray(points, dtype=float).reshape(-1, 3)
    if points.size == 0:
        return points
    dist = np.linalg.norm(points - np.asarray(center, dtype=float).reshape(1, 3), axis=1)
    return points[dist < radius]


def pack_point_cloud(points: np.ndarray, frame_id: str = "fuser_cloud",
                     stamp: Optional[float] = None) -> PointCloudMessage:
    """
    Pack points into a PointCloudMessage.

    An empty cloud still carries one zeroed point, so consumers always get a
    non-empty buffer.
    """
    points = np.asarray(points, dtype="<f4").reshape(-1, 3)
    n_slots = max(1, points.shape[0])
    buf = np.zeros((n_slots, 3), dtype="<f4")
    buf[:points.shape[0]] = points
    return PointCloudMessage(
        frame_id=frame_id,
        stamp=float(stamp) if stamp is not None else 0.0,
        data=buf.tobytes(),
    )
