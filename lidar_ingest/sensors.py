"""
sensors.py

Accumulators filled by the loaders and handed, read-only, to the consumer.

* :class:`Lidar` collects normalised point-cloud scans.
* :class:`Odom` collects timestamped rigid transforms.

Neither enforces any policy: the scan cap and the empty-load check live in
:mod:`lidar_ingest.loader`.
"""

from __future__ import annotations

from typing import Iterator, List, Tuple

import numpy as np

from lidar_ingest.point_cloud import PointCloud
from lidar_ingest.timestamps import Timestamp
from lidar_ingest.transform import RigidTransform


# ---------------------------------------------------------------------------
# Lidar
# ---------------------------------------------------------------------------


class Lidar:
    """Ordered collection of scans plus a running point count.

    Example::

        lidar = Lidar()
        loader.load_pointclouds_from_bag("scans.bag", lidar)
        print(lidar.num_scans, lidar.total_points)
    """

    def __init__(self) -> None:
        self._scans: List[PointCloud] = []
        self._total_points = 0

    def add_pointcloud(self, cloud: PointCloud) -> None:
        """Append *cloud* and add its points to the running total."""
        self._scans.append(cloud)
        self._total_points += len(cloud)

    @property
    def num_scans(self) -> int:
        return len(self._scans)

    @property
    def total_points(self) -> int:
        return self._total_points

    @property
    def scans(self) -> Tuple[PointCloud, ...]:
        """Stored scans in arrival order."""
        return tuple(self._scans)

    def __len__(self) -> int:
        return len(self._scans)

    def __iter__(self) -> Iterator[PointCloud]:
        return iter(self._scans)

    def __repr__(self) -> str:
        return f"Lidar(num_scans={self.num_scans}, total_points={self.total_points})"


# ---------------------------------------------------------------------------
# Odom
# ---------------------------------------------------------------------------


class Odom:
    """Timestamped rigid transforms in source order.

    Inserts are append-only: samples are never re-sorted, and samples that
    share a timestamp are all retained.
    """

    def __init__(self) -> None:
        self._stamps: List[Timestamp] = []
        self._transforms: List[RigidTransform] = []

    def add_transform_data(self, timestamp: Timestamp, transform: RigidTransform) -> None:
        """Append one ``(timestamp, transform)`` sample."""
        self._stamps.append(int(timestamp))
        self._transforms.append(transform)

    @property
    def is_empty(self) -> bool:
        return not self._stamps

    @property
    def timestamps(self) -> np.ndarray:
        """1-D int64 array of sample timestamps (µs) in insertion order."""
        return np.array(self._stamps, dtype=np.int64)

    @property
    def transforms(self) -> Tuple[RigidTransform, ...]:
        return tuple(self._transforms)

    def transforms_at(self, timestamp: Timestamp) -> List[RigidTransform]:
        """All transforms stored at exactly *timestamp*, in insertion order."""
        return [T for t, T in zip(self._stamps, self._transforms) if t == timestamp]

    def lookup(self, timestamp: Timestamp) -> RigidTransform:
        """Return the most recently inserted transform at exactly *timestamp*.

        Raises:
            KeyError: If no sample has that timestamp.
        """
        matches = self.transforms_at(timestamp)
        if not matches:
            raise KeyError(f"No transform stored at timestamp {timestamp}")
        return matches[-1]

    def __len__(self) -> int:
        return len(self._stamps)

    def __iter__(self) -> Iterator[Tuple[Timestamp, RigidTransform]]:
        return iter(zip(self._stamps, self._transforms))

    def __repr__(self) -> str:
        return f"Odom(num_transforms={len(self)})"
