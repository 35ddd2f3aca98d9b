"""Shared fixtures: in-memory ROS-shaped records and a fake bag container."""

from types import SimpleNamespace

import numpy as np
import pytest

from lidar_ingest.containers import RecordContainer, normalize_type_name

_POINTFIELD_CODES = {"i1": 1, "u1": 2, "i2": 3, "u2": 4, "i4": 5, "u4": 6, "f4": 7, "f8": 8}


def _stamp(sec: int, nanosec: int) -> SimpleNamespace:
    return SimpleNamespace(sec=sec, nanosec=nanosec)


def build_cloud_msg(
    fields,
    rows,
    sec: int = 0,
    nanosec: int = 0,
    frame_id: str = "lidar",
    bigendian: bool = False,
    row_padding: int = 0,
    height: int = 1,
):
    """Build a PointCloud2-shaped record.

    Args:
        fields: ``[(name, "f4"), ...]`` in buffer order.
        rows: ``(N, len(fields))`` values.
        row_padding: Extra bytes appended after every row.
        height: Number of rows the N points are split into.
    """
    prefix = ">" if bigendian else "<"
    dtype = np.dtype([(name, prefix + fmt) for name, fmt in fields])
    values = np.asarray(rows, dtype=float).reshape(-1, len(fields))
    packed = np.zeros(len(values), dtype=dtype)
    with np.errstate(invalid="ignore"):
        for i, (name, _) in enumerate(fields):
            packed[name] = values[:, i]

    width = len(values) // height if height else 0
    row_step = width * dtype.itemsize + row_padding
    data = b""
    for r in range(height):
        data += packed[r * width:(r + 1) * width].tobytes() + b"\x00" * row_padding

    return SimpleNamespace(
        header=SimpleNamespace(stamp=_stamp(sec, nanosec), frame_id=frame_id),
        fields=[
            SimpleNamespace(
                name=name, offset=dtype.fields[name][1], datatype=_POINTFIELD_CODES[fmt], count=1
            )
            for name, fmt in fields
        ],
        height=height,
        width=width,
        point_step=dtype.itemsize,
        row_step=row_step,
        is_bigendian=bigendian,
        is_dense=False,
        data=data,
    )


def build_pose_msg(
    sec: int = 0,
    nanosec: int = 0,
    position=(0.0, 0.0, 0.0),
    orientation=(1.0, 0.0, 0.0, 0.0),
    with_covariance: bool = False,
):
    """Build a PoseStamped- or PoseWithCovarianceStamped-shaped record."""
    pose = SimpleNamespace(
        position=SimpleNamespace(x=position[0], y=position[1], z=position[2]),
        orientation=SimpleNamespace(
            w=orientation[0], x=orientation[1], y=orientation[2], z=orientation[3]
        ),
    )
    if with_covariance:
        pose = SimpleNamespace(pose=pose, covariance=[0.0] * 36)
    return SimpleNamespace(header=SimpleNamespace(stamp=_stamp(sec, nanosec), frame_id="map"), pose=pose)


class FakeContainer(RecordContainer):
    """Container over a list of ``(type_name, record)`` pairs."""

    def __init__(self, records):
        self.records = [(normalize_type_name(t), r) for t, r in records]
        self.closed = False
        self.yielded = 0

    def read_records(self, type_names):
        wanted = {normalize_type_name(t) for t in type_names}
        for type_name, record in self.records:
            if type_name in wanted:
                self.yielded += 1
                yield record

    def close(self):
        self.closed = True


@pytest.fixture
def cloud_msg():
    return build_cloud_msg


@pytest.fixture
def pose_msg():
    return build_pose_msg


@pytest.fixture
def fake_bag():
    """Return a factory ``fake_bag(records) -> (opener, container)``."""

    def factory(records):
        container = FakeContainer(records)
        opened = []

        def opener(path):
            opened.append(path)
            return container

        opener.opened = opened
        return opener, container

    return factory
