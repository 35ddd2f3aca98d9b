"""
containers.py

Typed-record containers the loaders read from.

A container is opened by path and yields deserialised records filtered by
message type.  Each call to :meth:`RecordContainer.read_records` starts from
the beginning of the recording.

:class:`Ros2BagContainer` reads ROS 2 bags (sqlite3 or MCAP storage) through
``rosbag2_py``.  ROS 2 is not installable from PyPI, so its modules are only
imported when a bag is actually opened; when they are missing the open fails
with :class:`~lidar_ingest.errors.OpenFailure`.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Iterator, Optional, Sequence

from lidar_ingest.errors import OpenFailure

logger = logging.getLogger(__name__)

POINTCLOUD2 = "sensor_msgs/msg/PointCloud2"
POSE_STAMPED = "geometry_msgs/msg/PoseStamped"
POSE_WITH_COVARIANCE_STAMPED = "geometry_msgs/msg/PoseWithCovarianceStamped"


class RecordContainer:
    """Interface of a typed-record container.

    Subclasses implement :meth:`read_records` and, if they hold resources,
    :meth:`close`.  Containers are context managers.
    """

    def read_records(self, type_names: Sequence[str]) -> Iterator[Any]:
        """Yield every record whose type is one of *type_names*, in file order."""
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self) -> "RecordContainer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


# ---------------------------------------------------------------------------
# ROS 2 bags
# ---------------------------------------------------------------------------


class Ros2BagContainer(RecordContainer):
    """Read-only view of a ROS 2 bag.

    Args:
        path: Bag directory or single ``.mcap`` / ``.db3`` file.
        storage_id: rosbag2 storage plugin; empty lets rosbag2 detect it.

    Raises:
        OpenFailure: If the bag does not exist, ROS 2 is not available, or
            rosbag2 refuses to open it.

    Example::

        with Ros2BagContainer("drive_01") as bag:
            for msg in bag.read_records([POINTCLOUD2]):
                print(msg.header.frame_id)
    """

    def __init__(self, path: str | os.PathLike, storage_id: str = "") -> None:
        self._path = Path(path)
        self._storage_id = storage_id
        if not self._path.exists():
            raise OpenFailure(path, "no such file or directory")
        try:
            import rosbag2_py
            from rclpy.serialization import deserialize_message
            from rosidl_runtime_py.utilities import get_message
        except ImportError as exc:
            raise OpenFailure(path, f"ROS 2 bag support is not available ({exc})") from exc

        self._rosbag2 = rosbag2_py
        self._deserialize = deserialize_message
        self._get_message = get_message
        self._reader: Optional[Any] = self._open_reader()
        self._consumed = False

    @property
    def path(self) -> Path:
        return self._path

    def read_records(self, type_names: Sequence[str]) -> Iterator[Any]:
        wanted = {normalize_type_name(t) for t in type_names}
        if self._reader is None or self._consumed:
            self.close()
            self._reader = self._open_reader()
        reader = self._reader
        self._consumed = True

        topics = {
            md.name: md.type
            for md in reader.get_all_topics_and_types()
            if md.type in wanted
        }
        if not topics:
            logger.debug("No topics of type %s in %s", sorted(wanted), self._path)
            return
        reader.set_filter(self._rosbag2.StorageFilter(topics=list(topics)))
        classes = {t: self._get_message(t) for t in set(topics.values())}

        while reader.has_next():
            topic, raw, _t_ns = reader.read_next()
            msg_type = topics.get(topic)
            if msg_type is not None:
                yield self._deserialize(raw, classes[msg_type])

    def close(self) -> None:
        reader, self._reader = self._reader, None
        if reader is not None and hasattr(reader, "close"):
            reader.close()

    def _open_reader(self) -> Any:
        storage = self._rosbag2.StorageOptions(uri=str(self._path), storage_id=self._storage_id)
        converter = self._rosbag2.ConverterOptions("", "")
        reader = self._rosbag2.SequentialReader()
        try:
            reader.open(storage, converter)
        except RuntimeError as exc:
            raise OpenFailure(self._path, str(exc)) from exc
        return reader


def open_bag(path: str | os.PathLike) -> RecordContainer:
    """Open a ROS 2 bag for reading.  The default container opener of the loader."""
    return Ros2BagContainer(path)


def normalize_type_name(type_name: str) -> str:
    """Return the ROS 2 form of a message type name.

    ``"sensor_msgs/PointCloud2"`` becomes ``"sensor_msgs/msg/PointCloud2"``;
    names already in ROS 2 form are returned unchanged.
    """
    parts = type_name.split("/")
    if len(parts) == 2:
        return f"{parts[0]}/msg/{parts[1]}"
    return type_name
