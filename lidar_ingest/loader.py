"""
loader.py

Load orchestrators that fill the :class:`~lidar_ingest.sensors.Lidar` and
:class:`~lidar_ingest.sensors.Odom` accumulators from recorded data.

Every load follows the same sequence::

    open source -> iterate matching records -> decode -> feed accumulator
                -> finished (success) | empty (EmptyResultFailure)

An open failure aborts immediately with :class:`~lidar_ingest.errors.OpenFailure`.
Scan loads stop early once ``use_n_scans`` scans are stored; a capped load is
reported exactly like a fully consumed one.

Loads never raise for expected failures: they log the cause and return a
:class:`LoadResult` whose truth value is the success flag.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

import yaml

from lidar_ingest.containers import (
    POINTCLOUD2,
    POSE_STAMPED,
    POSE_WITH_COVARIANCE_STAMPED,
    RecordContainer,
    open_bag,
)
from lidar_ingest.errors import EmptyResultFailure, IngestError, OpenFailure, ParseFailure
from lidar_ingest.point_cloud import parse_pointcloud_msg
from lidar_ingest.pose import CsvParseError, parse_csv_line, parse_pose_msg
from lidar_ingest.sensors import Lidar, Odom

logger = logging.getLogger(__name__)

# progress(kind, count) with kind "scan" or "transform"
ProgressCallback = Callable[[str, int], None]
ContainerOpener = Callable[[str], RecordContainer]


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass
class LoaderConfig:
    """Settings recognised by :class:`Loader`.

    Attributes:
        use_n_scans: Maximum number of scans to load from a bag.  ``None``
            loads every scan.
        strict_csv: When ``True`` an unparsable CSV line fails the whole
            load; otherwise the line is skipped with a warning.
        progress_interval: Number of records between progress reports.
        pose_record_types: Message types read as poses from a bag.
    """

    use_n_scans: Optional[int] = None
    strict_csv: bool = False
    progress_interval: int = 100
    pose_record_types: List[str] = field(
        default_factory=lambda: [POSE_STAMPED, POSE_WITH_COVARIANCE_STAMPED]
    )

    def __post_init__(self) -> None:
        if self.use_n_scans is not None and self.use_n_scans <= 0:
            raise ValueError(f"use_n_scans must be positive, got {self.use_n_scans}")
        if self.progress_interval <= 0:
            raise ValueError(
                f"progress_interval must be positive, got {self.progress_interval}"
            )
        if not self.pose_record_types:
            raise ValueError("pose_record_types must name at least one message type")

    def to_dict(self) -> dict:
        return {
            "use_n_scans": None if self.use_n_scans is None else int(self.use_n_scans),
            "strict_csv": bool(self.strict_csv),
            "progress_interval": int(self.progress_interval),
            "pose_record_types": list(self.pose_record_types),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LoaderConfig":
        defaults = cls()
        use_n_scans = data.get("use_n_scans")
        return cls(
            use_n_scans=None if use_n_scans is None else int(use_n_scans),
            strict_csv=bool(data.get("strict_csv", defaults.strict_csv)),
            progress_interval=int(data.get("progress_interval", defaults.progress_interval)),
            pose_record_types=[
                str(t) for t in data.get("pose_record_types", defaults.pose_record_types)
            ],
        )

    def to_yaml(self, path: str | os.PathLike) -> None:
        """Write the configuration to a YAML file."""
        Path(path).write_text(
            yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)
        )

    @classmethod
    def from_yaml(cls, path: str | os.PathLike) -> "LoaderConfig":
        """Load a :class:`LoaderConfig` from a YAML file."""
        raw = yaml.safe_load(Path(path).read_text())
        return cls.from_dict(raw or {})


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


@dataclass
class LoadResult:
    """Outcome of one load call.

    Attributes:
        success: ``True`` when the accumulator received usable data.
        path: The source that was loaded.
        failure: Failure-kind name (``"OpenFailure"``, ``"EmptyResultFailure"``
            or ``"ParseFailure"``); ``None`` on success.
        message: Human-readable cause of the failure.
        error: The underlying exception, if any.
    """

    success: bool
    path: str
    failure: Optional[str] = None
    message: str = ""
    error: Optional[IngestError] = field(default=None, repr=False, compare=False)

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, path: str | os.PathLike) -> "LoadResult":
        return cls(success=True, path=os.fspath(path))

    @classmethod
    def from_error(cls, error: IngestError) -> "LoadResult":
        return cls(
            success=False,
            path=error.path,
            failure=error.kind,
            message=error.message,
            error=error,
        )

    def raise_for_failure(self) -> None:
        """Re-raise the underlying error of a failed load."""
        if self.error is not None:
            raise self.error


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------


class Loader:
    """Drives one source into one accumulator per call.

    Args:
        config: Loader settings.  Defaults to :class:`LoaderConfig()`.
        open_container: Callable opening a typed-record container by path.
            Defaults to :func:`~lidar_ingest.containers.open_bag`.
        progress: Optional ``progress(kind, count)`` callback, invoked every
            ``config.progress_interval`` records.

    Example::

        loader = Loader(LoaderConfig(use_n_scans=500))
        lidar, odom = Lidar(), Odom()
        if not loader.load_pointclouds_from_bag("scans", lidar):
            sys.exit(1)
        loader.load_transforms_from_csv("poses.csv", odom).raise_for_failure()
    """

    def __init__(
        self,
        config: Optional[LoaderConfig] = None,
        open_container: ContainerOpener = open_bag,
        progress: Optional[ProgressCallback] = None,
    ) -> None:
        self._config = config if config is not None else LoaderConfig()
        self._open_container = open_container
        self._progress = progress

    @property
    def config(self) -> LoaderConfig:
        return self._config

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def load_pointclouds_from_bag(self, path: str | os.PathLike, lidar: Lidar) -> LoadResult:
        """Load ``PointCloud2`` records from a bag into *lidar*."""
        return self._run(path, self._load_pointclouds, lidar)

    def load_transforms_from_bag(self, path: str | os.PathLike, odom: Odom) -> LoadResult:
        """Load stamped pose records from a bag into *odom*."""
        return self._run(path, self._load_bag_transforms, odom)

    def load_transforms_from_csv(self, path: str | os.PathLike, odom: Odom) -> LoadResult:
        """Load poses from a maplab CSV file into *odom*."""
        return self._run(path, self._load_csv_transforms, odom)

    # ------------------------------------------------------------------
    # Load bodies
    # ------------------------------------------------------------------

    def _load_pointclouds(self, path: str, lidar: Lidar) -> None:
        cap = self._config.use_n_scans
        with self._open(path) as container:
            for scan_num, msg in enumerate(container.read_records([POINTCLOUD2])):
                self._report("scan", scan_num + 1)
                try:
                    cloud = parse_pointcloud_msg(msg, seq=scan_num)
                except ValueError as exc:
                    logger.warning("Skipping point cloud %d of %s: %s", scan_num, path, exc)
                    continue
                lidar.add_pointcloud(cloud)
                if cap is not None and lidar.num_scans >= cap:
                    logger.info("Reached use_n_scans=%d, stopping early", cap)
                    break

        if lidar.total_points == 0:
            raise EmptyResultFailure(
                path,
                "no points were loaded, verify that the bag contains populated "
                "messages of type sensor_msgs/PointCloud2",
            )
        logger.info(
            "Loaded %d scans (%d points) from %s", lidar.num_scans, lidar.total_points, path
        )

    def _load_bag_transforms(self, path: str, odom: Odom) -> None:
        with self._open(path) as container:
            records = container.read_records(self._config.pose_record_types)
            for tform_num, msg in enumerate(records):
                self._report("transform", tform_num + 1)
                odom.add_transform_data(*parse_pose_msg(msg))

        if odom.is_empty:
            raise EmptyResultFailure(path, "no pose messages found")
        logger.info("Loaded %d transforms from %s", len(odom), path)

    def _load_csv_transforms(self, path: str, odom: Odom) -> None:
        try:
            stream = open(path, "r", encoding="utf-8", errors="replace")
        except OSError as exc:
            raise OpenFailure(path, exc.strerror or str(exc)) from exc

        skipped = 0
        with stream:
            for line_num, line in enumerate(stream, start=1):
                self._report("transform", line_num)
                try:
                    sample = parse_csv_line(line)
                except CsvParseError as exc:
                    if self._config.strict_csv:
                        raise ParseFailure(path, f"line {line_num}: {exc}") from exc
                    logger.warning("Skipping line %d of %s: %s", line_num, path, exc)
                    skipped += 1
                    continue
                if sample is not None:
                    odom.add_transform_data(*sample)

        if odom.is_empty:
            raise EmptyResultFailure(path, "no transforms found in CSV file")
        logger.info(
            "Loaded %d transforms from %s (%d unparsable lines skipped)",
            len(odom), path, skipped,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _run(self, path: str | os.PathLike, body, accumulator) -> LoadResult:
        path = os.fspath(path)
        try:
            body(path, accumulator)
        except IngestError as exc:
            logger.error("Loading %s failed: %s", path, exc)
            return LoadResult.from_error(exc)
        return LoadResult.ok(path)

    def _open(self, path: str) -> RecordContainer:
        try:
            return self._open_container(path)
        except OpenFailure:
            raise
        except OSError as exc:
            raise OpenFailure(path, str(exc)) from exc

    def _report(self, kind: str, count: int) -> None:
        if count % self._config.progress_interval:
            return
        logger.debug("Loading %s %d", kind, count)
        if self._progress is not None:
            self._progress(kind, count)
