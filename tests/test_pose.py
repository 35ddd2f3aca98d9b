"""Tests for the pose-record and CSV pose parsers."""

from types import SimpleNamespace

import numpy as np
import pytest

from lidar_ingest.pose import CsvParseError, parse_csv_line, parse_pose_msg
from lidar_ingest.timestamps import nanoseconds_to_microseconds, stamp_to_microseconds
from lidar_ingest.transform import RigidTransform


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------


class TestTimestamps:
    def test_ros2_stamp(self):
        assert stamp_to_microseconds(SimpleNamespace(sec=5, nanosec=500_000_000)) == 5_500_000

    def test_ros1_stamp(self):
        assert stamp_to_microseconds(SimpleNamespace(secs=2, nsecs=1_999)) == 2_000_001

    def test_sub_microsecond_truncated(self):
        assert stamp_to_microseconds(SimpleNamespace(sec=0, nanosec=999)) == 0

    def test_result_is_int(self):
        assert isinstance(stamp_to_microseconds(SimpleNamespace(sec=1, nanosec=0)), int)

    def test_missing_attribute_raises(self):
        with pytest.raises(AttributeError):
            stamp_to_microseconds(SimpleNamespace(sec=1))

    def test_nanoseconds_to_microseconds(self):
        assert nanoseconds_to_microseconds(1_000_000) == 1_000

    def test_negative_nanoseconds_truncate_toward_zero(self):
        assert nanoseconds_to_microseconds(-1500) == -1
        assert nanoseconds_to_microseconds(-999) == 0
        assert nanoseconds_to_microseconds(-2000) == -2

    def test_positive_nanoseconds_truncate(self):
        assert nanoseconds_to_microseconds(1999) == 1


# ---------------------------------------------------------------------------
# Pose records
# ---------------------------------------------------------------------------


class TestParsePoseMsg:
    def test_pose_stamped(self, pose_msg):
        msg = pose_msg(5, 500_000_000, position=(1.0, 2.0, 3.0), orientation=(0.0, 1.0, 0.0, 0.0))
        stamp, T = parse_pose_msg(msg)
        assert stamp == 5_500_000
        np.testing.assert_allclose(T.translation, [1.0, 2.0, 3.0])
        np.testing.assert_allclose(T.rotation, [0.0, 1.0, 0.0, 0.0])

    def test_pose_with_covariance_matches_pose_stamped(self, pose_msg):
        kwargs = dict(sec=1, nanosec=2_000, position=(4.0, 5.0, 6.0), orientation=(1.0, 0.0, 0.0, 0.0))
        plain = parse_pose_msg(pose_msg(**kwargs))
        with_cov = parse_pose_msg(pose_msg(with_covariance=True, **kwargs))
        assert plain == with_cov

    def test_no_validation_of_quaternion(self, pose_msg):
        _, T = parse_pose_msg(pose_msg(orientation=(2.0, 0.0, 0.0, 0.0)))
        np.testing.assert_allclose(T.rotation, [2.0, 0.0, 0.0, 0.0])

    def test_non_finite_values_propagate(self, pose_msg):
        _, T = parse_pose_msg(pose_msg(position=(float("nan"), 0.0, 0.0)))
        assert np.isnan(T.translation[0])


# ---------------------------------------------------------------------------
# CSV lines
# ---------------------------------------------------------------------------


class TestParseCsvLine:
    def test_basic_line(self):
        stamp, T = parse_csv_line("1000000,0,1.0,2.0,3.0,1.0,0.0,0.0,0.0")
        assert stamp == 1000
        assert T == RigidTransform([1.0, 2.0, 3.0], [1.0, 0.0, 0.0, 0.0])

    def test_trailing_newline(self):
        stamp, _ = parse_csv_line("1000000,0,1.0,2.0,3.0,1.0,0.0,0.0,0.0\r\n")
        assert stamp == 1000

    def test_column_one_ignored(self):
        stamp, T = parse_csv_line("2000,not-a-number,0,0,0,1,0,0,0")
        assert stamp == 2
        np.testing.assert_allclose(T.translation, [0.0, 0.0, 0.0])

    def test_extra_columns_ignored(self):
        sample = parse_csv_line("1000,0,1,2,3,1,0,0,0,extra,columns")
        assert sample is not None

    def test_whitespace_around_values(self):
        _, T = parse_csv_line("1000, 0, 1.5, 2.5, 3.5, 1, 0, 0, 0")
        np.testing.assert_allclose(T.translation, [1.5, 2.5, 3.5])

    def test_comment_line(self):
        assert parse_csv_line("# timestamp, vertex, x, y, z, qw, qx, qy, qz") is None

    def test_short_line(self):
        assert parse_csv_line("1000,0,1.0,2.0,3.0") is None

    def test_empty_line(self):
        assert parse_csv_line("") is None
        assert parse_csv_line("\n") is None

    def test_non_numeric_translation_raises(self):
        with pytest.raises(CsvParseError):
            parse_csv_line("1000,0,abc,2.0,3.0,1.0,0.0,0.0,0.0")

    def test_non_integer_timestamp_raises(self):
        with pytest.raises(CsvParseError, match="Malformed"):
            parse_csv_line("12.5e3,0,1.0,2.0,3.0,1.0,0.0,0.0,0.0")

    def test_parse_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_csv_line("1000,0,1,2,3,1,0,0,")

    def test_negative_timestamp_truncates_toward_zero(self):
        stamp, _ = parse_csv_line("-1500,0,1.0,2.0,3.0,1.0,0.0,0.0,0.0")
        assert stamp == -1
