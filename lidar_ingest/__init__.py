"""
lidar_ingest: Loads recorded LiDAR scans and pose streams from ROS bags and
maplab CSV files into time-ordered, in-memory collections.
"""

from lidar_ingest.errors import EmptyResultFailure, IngestError, OpenFailure, ParseFailure
from lidar_ingest.loader import Loader, LoaderConfig, LoadResult
from lidar_ingest.point_cloud import (
    POINT_ALL_FIELDS_DTYPE,
    CloudHeader,
    PointCloud,
    PointSchema,
    detect_point_schema,
    parse_pointcloud_msg,
)
from lidar_ingest.pose import CsvParseError, parse_csv_line, parse_pose_msg
from lidar_ingest.sensors import Lidar, Odom
from lidar_ingest.transform import RigidTransform

__version__ = "0.1.0"

__all__ = [
    "Loader",
    "LoaderConfig",
    "LoadResult",
    "Lidar",
    "Odom",
    "RigidTransform",
    "PointCloud",
    "CloudHeader",
    "PointSchema",
    "POINT_ALL_FIELDS_DTYPE",
    "detect_point_schema",
    "parse_pointcloud_msg",
    "parse_pose_msg",
    "parse_csv_line",
    "CsvParseError",
    "IngestError",
    "OpenFailure",
    "EmptyResultFailure",
    "ParseFailure",
]
