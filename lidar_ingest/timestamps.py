"""
timestamps.py

Every timestamp handed to the accumulators is an ``int`` count of
microseconds.  Sources encode time differently; the helpers here do the unit
conversion so downstream code only ever sees one unit.
"""

from __future__ import annotations

from typing import Any

# Integer microseconds since a fixed epoch.
Timestamp = int

_US_PER_SECOND = 1_000_000
_NS_PER_US = 1_000


def stamp_to_microseconds(stamp: Any) -> Timestamp:
    """Convert a ``(seconds, nanoseconds)`` message stamp to microseconds.

    Both ROS 2 (``sec`` / ``nanosec``) and ROS 1 (``secs`` / ``nsecs`` or
    ``sec`` / ``nsec``) stamp layouts are accepted.

    Example::

        stamp_to_microseconds(msg.header.stamp)  # sec=5, nanosec=500_000_000
        # -> 5_500_000
    """
    sec = _first_attr(stamp, ("sec", "secs"))
    nsec = _first_attr(stamp, ("nanosec", "nsec", "nsecs"))
    return int(sec) * _US_PER_SECOND + int(nsec) // _NS_PER_US


def nanoseconds_to_microseconds(value: int) -> Timestamp:
    """Convert a raw nanosecond count (as written in maplab CSVs) to microseconds.

    The division truncates toward zero, so negative counts round up.
    """
    value = int(value)
    if value < 0:
        return -(-value // _NS_PER_US)
    return value // _NS_PER_US


def _first_attr(obj: Any, names: tuple) -> Any:
    for name in names:
        if hasattr(obj, name):
            return getattr(obj, name)
    raise AttributeError(f"Stamp {obj!r} has none of the attributes {list(names)}")
