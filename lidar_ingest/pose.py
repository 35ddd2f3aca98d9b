"""
pose.py

Front ends that turn one unit of pose input into a
``(timestamp_us, RigidTransform)`` sample.

Supported sources
-----------------
* **Pose records** – ``geometry_msgs/PoseStamped`` and
  ``geometry_msgs/PoseWithCovarianceStamped`` messages (the covariance is
  ignored).  The stamp is given as seconds + nanoseconds.
* **maplab CSV** – one comma-separated line per pose:

  ======  ==========================================
  Column  Content
  ======  ==========================================
  0       timestamp in nanoseconds
  1       unused
  2-4     translation x, y, z
  5-8     rotation quaternion w, x, y, z
  ======  ==========================================

  Lines starting with ``#`` are comments.  Lines with fewer than nine
  columns are skipped.

Both front ends return ``None`` when the input yields no sample.  Neither
validates pose magnitude or quaternion normalisation.
"""

from __future__ import annotations

from typing import Any, List, Optional, Tuple

from lidar_ingest.timestamps import Timestamp, nanoseconds_to_microseconds, stamp_to_microseconds
from lidar_ingest.transform import RigidTransform

# A single pose sample.
PoseSample = Tuple[Timestamp, RigidTransform]

CSV_COMMENT = "#"
CSV_MIN_COLUMNS = 9

# Column indices of the maplab CSV layout
_TIME = 0
_X, _Y, _Z = 2, 3, 4
_RW, _RX, _RY, _RZ = 5, 6, 7, 8


class CsvParseError(ValueError):
    """A CSV line has the right shape but a column is not a number."""


# ---------------------------------------------------------------------------
# Pose records
# ---------------------------------------------------------------------------


def parse_pose_msg(msg: Any) -> PoseSample:
    """Convert a stamped pose record into a pose sample.

    ``PoseStamped`` keeps position and orientation in ``msg.pose``;
    ``PoseWithCovarianceStamped`` nests them one level deeper in
    ``msg.pose.pose``.  Both layouts are accepted.
    """
    stamp = stamp_to_microseconds(msg.header.stamp)
    pose = msg.pose
    if not hasattr(pose, "position") and hasattr(pose, "pose"):
        pose = pose.pose
    p, q = pose.position, pose.orientation
    transform = RigidTransform(
        translation=[p.x, p.y, p.z],
        rotation=[q.w, q.x, q.y, q.z],
    )
    return stamp, transform


# ---------------------------------------------------------------------------
# maplab CSV
# ---------------------------------------------------------------------------


def parse_csv_line(line: str) -> Optional[PoseSample]:
    """Parse one line of a maplab pose CSV.

    Returns:
        The pose sample, or ``None`` for comment lines and lines with fewer
        than nine columns.

    Raises:
        CsvParseError: If a required column is present but not numeric.
    """
    line = line.rstrip("\r\n")
    if line.startswith(CSV_COMMENT):
        return None

    columns = line.split(",")
    if len(columns) < CSV_MIN_COLUMNS:
        return None

    try:
        stamp = nanoseconds_to_microseconds(int(columns[_TIME]))
        translation = _floats(columns, (_X, _Y, _Z))
        rotation = _floats(columns, (_RW, _RX, _RY, _RZ))
    except ValueError as exc:
        raise CsvParseError(f"Malformed CSV pose line {line!r}: {exc}") from exc

    return stamp, RigidTransform(translation=translation, rotation=rotation)


def _floats(columns: List[str], indices: Tuple[int, ...]) -> List[float]:
    return [float(columns[i]) for i in indices]
