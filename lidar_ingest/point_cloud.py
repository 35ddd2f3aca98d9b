"""
point_cloud.py

Unified point representation and the schema detector that rebuilds it from
``sensor_msgs/PointCloud2`` records.

Point schemas
-------------
Each record is classified once, from its declared field names only:

==============  ===============================  ========================
 Schema          Detected when                    Finite-value filtering
==============  ===============================  ========================
 ALL_FIELDS      ``time_offset_us`` is declared   none (trusted)
 XYZI            ``intensity`` is declared        x, y, z, intensity
 XYZ             otherwise                        x, y, z
==============  ===============================  ========================

Whatever the schema, the output is a structured numpy array with dtype
:data:`POINT_ALL_FIELDS_DTYPE`.  Fields the source does not provide are
zero-filled; :attr:`PointCloud.fields` lists the ones that were provided.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Iterable, Tuple

import numpy as np

from lidar_ingest.timestamps import Timestamp, stamp_to_microseconds

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

TIME_OFFSET_FIELD = "time_offset_us"
INTENSITY_FIELD = "intensity"

POINT_ALL_FIELDS_DTYPE = np.dtype([
    ("x", np.float32),
    ("y", np.float32),
    ("z", np.float32),
    ("intensity", np.float32),
    ("time_offset_us", np.int32),
    ("reflectivity", np.uint16),
    ("ring", np.uint8),
])

# sensor_msgs/PointField datatype constants
_POINTFIELD_DTYPES: dict[int, str] = {
    1: "i1",  # INT8
    2: "u1",  # UINT8
    3: "i2",  # INT16
    4: "u2",  # UINT16
    5: "i4",  # INT32
    6: "u4",  # UINT32
    7: "f4",  # FLOAT32
    8: "f8",  # FLOAT64
}

_XYZ = ("x", "y", "z")


class PointSchema(enum.Enum):
    """The three point layouts a point-cloud record can carry."""

    ALL_FIELDS = "all_fields"
    XYZI = "xyzi"
    XYZ = "xyz"


# Fields each schema claims to provide (ALL_FIELDS provides whatever is declared).
_SCHEMA_FIELDS: dict[PointSchema, Tuple[str, ...]] = {
    PointSchema.XYZI: _XYZ + (INTENSITY_FIELD,),
    PointSchema.XYZ: _XYZ,
}


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CloudHeader:
    """Capture metadata copied from the source record.

    Attributes:
        stamp: Acquisition time in microseconds.
        frame_id: Coordinate frame identifier.
        seq: Sequence index of the record.
    """

    stamp: Timestamp = 0
    frame_id: str = ""
    seq: int = 0


@dataclass
class PointCloud:
    """One normalised scan.

    Attributes:
        points: Structured array with dtype :data:`POINT_ALL_FIELDS_DTYPE`.
        header: Capture metadata.
        fields: Names of the unified fields the source actually provided.
    """

    points: np.ndarray
    header: CloudHeader
    fields: Tuple[str, ...] = _XYZ

    def __len__(self) -> int:
        return len(self.points)

    def has_field(self, name: str) -> bool:
        return name in self.fields

    def xyz(self) -> np.ndarray:
        """Return an ``(N, 3)`` float32 array of ``[x, y, z]`` coordinates."""
        return np.column_stack([self.points["x"], self.points["y"], self.points["z"]])


# ---------------------------------------------------------------------------
# Schema detection
# ---------------------------------------------------------------------------


def detect_point_schema(field_names: Iterable[str]) -> PointSchema:
    """Classify a record by the names of its declared point fields."""
    names = set(field_names)
    if TIME_OFFSET_FIELD in names:
        return PointSchema.ALL_FIELDS
    if INTENSITY_FIELD in names:
        return PointSchema.XYZI
    return PointSchema.XYZ


def parse_pointcloud_msg(msg: Any, seq: int = 0) -> PointCloud:
    """Build a :class:`PointCloud` from one ``PointCloud2``-shaped record.

    The record must expose ``header``, ``fields`` (each with ``name``,
    ``offset``, ``datatype`` and ``count``), ``width``, ``height``,
    ``point_step``, ``row_step``, ``is_bigendian`` and ``data``.

    Args:
        msg: The source record.
        seq: Sequence index used when the record header carries none.

    Returns:
        A fresh point cloud.  It may be empty.

    Raises:
        ValueError: If the record lacks an ``x``/``y``/``z`` field, declares
            an unknown datatype, or its buffer is shorter than declared.
    """
    declared = [f.name for f in msg.fields]
    schema = detect_point_schema(declared)
    raw = _decode_buffer(msg)

    if schema is PointSchema.ALL_FIELDS:
        provided = tuple(n for n in POINT_ALL_FIELDS_DTYPE.names if n in raw.dtype.names)
    else:
        provided = _SCHEMA_FIELDS[schema]

    points = np.zeros(len(raw), dtype=POINT_ALL_FIELDS_DTYPE)
    with np.errstate(invalid="ignore", over="ignore"):
        for name in provided:
            column = raw[name]
            if column.ndim > 1:
                column = column[:, 0]
            points[name] = column

    if schema is not PointSchema.ALL_FIELDS:
        keep = np.ones(len(points), dtype=bool)
        for name in provided:
            keep &= np.isfinite(points[name])
        points = points[keep]

    return PointCloud(points=points, header=_header_from_msg(msg, seq), fields=provided)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _decode_buffer(msg: Any) -> np.ndarray:
    """Decode the record's row-major point buffer into a structured array.

    Only fields that map onto the unified point type are decoded.
    """
    byte_order = ">" if getattr(msg, "is_bigendian", False) else "<"
    names, formats, offsets = [], [], []
    for field in msg.fields:
        if field.name not in POINT_ALL_FIELDS_DTYPE.names or field.name in names:
            continue
        if field.datatype not in _POINTFIELD_DTYPES:
            raise ValueError(
                f"Unknown PointField datatype {field.datatype} for field '{field.name}'"
            )
        fmt = byte_order + _POINTFIELD_DTYPES[field.datatype]
        count = int(getattr(field, "count", 1) or 1)
        names.append(field.name)
        formats.append((fmt, (count,)) if count > 1 else fmt)
        offsets.append(int(field.offset))

    missing = [n for n in _XYZ if n not in names]
    if missing:
        raise ValueError(f"Point cloud record is missing coordinate fields {missing}")

    point_step = int(msg.point_step)
    width, height = int(msg.width), int(msg.height)
    dtype = np.dtype(
        {"names": names, "formats": formats, "offsets": offsets, "itemsize": point_step}
    )
    n_points = width * height
    if n_points == 0:
        return np.empty(0, dtype=dtype)

    row_step = int(getattr(msg, "row_step", 0) or width * point_step)
    buf = _as_uint8(msg.data)
    if buf.size < height * row_step:
        raise ValueError(
            f"Point buffer holds {buf.size} bytes, expected {height * row_step} "
            f"({height} rows of {row_step} bytes)"
        )
    rows = buf[: height * row_step].reshape(height, row_step)[:, : width * point_step]
    return np.ascontiguousarray(rows).reshape(-1).view(dtype)


def _as_uint8(data: Any) -> np.ndarray:
    if isinstance(data, np.ndarray):
        return data.astype(np.uint8, copy=False).reshape(-1)
    return np.frombuffer(bytes(data), dtype=np.uint8)


def _header_from_msg(msg: Any, seq: int) -> CloudHeader:
    header = msg.header
    return CloudHeader(
        stamp=stamp_to_microseconds(header.stamp),
        frame_id=str(getattr(header, "frame_id", "")),
        seq=int(getattr(header, "seq", seq)),
    )
