"""
transform.py

Immutable rigid transform (translation + unit quaternion) shared by every
pose source, with helpers for turning it into a 4×4 homogeneous matrix and
applying it to point clouds.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np


class RigidTransform:
    """A translation vector plus a quaternion rotation ``[w, x, y, z]``.

    The values are stored exactly as given: the quaternion is only normalised
    when a rotation matrix is requested.  Instances are immutable.

    Args:
        translation: ``[x, y, z]`` translation.  Defaults to zero.
        rotation: Quaternion ``[w, x, y, z]``.  Defaults to identity.
    """

    __slots__ = ("_translation", "_rotation")

    def __init__(
        self,
        translation: Sequence[float] | None = None,
        rotation: Sequence[float] | None = None,
    ) -> None:
        t = np.zeros(3, dtype=float) if translation is None else np.array(translation, dtype=float)
        q = np.array([1.0, 0.0, 0.0, 0.0]) if rotation is None else np.array(rotation, dtype=float)
        if t.shape != (3,):
            raise ValueError(f"Translation must have 3 elements, got shape {t.shape}.")
        if q.shape != (4,):
            raise ValueError(f"Rotation quaternion must have 4 elements, got shape {q.shape}.")
        t.flags.writeable = False
        q.flags.writeable = False
        object.__setattr__(self, "_translation", t)
        object.__setattr__(self, "_rotation", q)

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} is immutable")

    # ------------------------------------------------------------------
    # Factory helpers
    # ------------------------------------------------------------------

    @classmethod
    def identity(cls) -> "RigidTransform":
        """Return the identity transform."""
        return cls()

    @classmethod
    def from_matrix(cls, matrix: np.ndarray) -> "RigidTransform":
        """Build a transform from a 4×4 homogeneous matrix."""
        m = np.asarray(matrix, dtype=float)
        if m.shape != (4, 4):
            raise ValueError(f"Transform matrix must be 4×4, got {m.shape}.")
        return cls(m[:3, 3], _rotation_matrix_to_quaternion(m[:3, :3]))

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def translation(self) -> np.ndarray:
        """The read-only ``(3,)`` translation vector."""
        return self._translation

    @property
    def rotation(self) -> np.ndarray:
        """The read-only quaternion ``[w, x, y, z]``."""
        return self._rotation

    @property
    def rotation_matrix(self) -> np.ndarray:
        """The 3×3 rotation matrix of the normalised quaternion."""
        return quaternion_to_rotation_matrix(self._rotation)

    @property
    def matrix(self) -> np.ndarray:
        """A fresh 4×4 homogeneous matrix."""
        T = np.eye(4, dtype=float)
        T[:3, :3] = self.rotation_matrix
        T[:3, 3] = self._translation
        return T

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def inverse(self) -> "RigidTransform":
        """Return the inverse of this transform."""
        return RigidTransform.from_matrix(np.linalg.inv(self.matrix))

    def __matmul__(self, other: "RigidTransform") -> "RigidTransform":
        """Compose two transforms: ``self @ other``."""
        if isinstance(other, RigidTransform):
            return RigidTransform.from_matrix(self.matrix @ other.matrix)
        return NotImplemented

    def apply_to_points(self, points: np.ndarray) -> np.ndarray:
        """Transform an ``(N, 3)`` array of points.

        Returns:
            Shape ``(N, 3)`` numpy array of transformed points.
        """
        pts = np.asarray(points, dtype=float)
        if pts.ndim != 2 or pts.shape[1] != 3:
            raise ValueError(f"Points array must have shape (N, 3), got {pts.shape}.")
        return pts @ self.rotation_matrix.T + self._translation

    # ------------------------------------------------------------------
    # Dunder helpers
    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RigidTransform):
            return NotImplemented
        return np.array_equal(self._translation, other._translation) and np.array_equal(
            self._rotation, other._rotation
        )

    def __repr__(self) -> str:
        return (
            f"RigidTransform(translation={self._translation.tolist()}, "
            f"rotation={self._rotation.tolist()})"
        )


# ---------------------------------------------------------------------------
# Quaternion helpers
# ---------------------------------------------------------------------------


def quaternion_to_rotation_matrix(q: Sequence[float]) -> np.ndarray:
    """Convert a quaternion [w, x, y, z] to a 3×3 rotation matrix."""
    w, x, y, z = (float(v) for v in q)
    norm = np.sqrt(w * w + x * x + y * y + z * z)
    if norm < 1e-10:
        raise ValueError("Quaternion has near-zero norm; cannot normalise.")
    w, x, y, z = w / norm, x / norm, y / norm, z / norm

    return np.array([
        [1 - 2 * (y * y + z * z),     2 * (x * y - w * z),     2 * (x * z + w * y)],
        [    2 * (x * y + w * z), 1 - 2 * (x * x + z * z),     2 * (y * z - w * x)],
        [    2 * (x * z - w * y),     2 * (y * z + w * x), 1 - 2 * (x * x + y * y)],
    ], dtype=float)


def _rotation_matrix_to_quaternion(R: np.ndarray) -> np.ndarray:
    """Convert a 3×3 rotation matrix to a quaternion [w, x, y, z] with w >= 0."""
    trace = R[0, 0] + R[1, 1] + R[2, 2]
    if trace > 0:
        s = 2.0 * np.sqrt(trace + 1.0)
        q = [0.25 * s, (R[2, 1] - R[1, 2]) / s, (R[0, 2] - R[2, 0]) / s, (R[1, 0] - R[0, 1]) / s]
    elif R[0, 0] > R[1, 1] and R[0, 0] > R[2, 2]:
        s = 2.0 * np.sqrt(1.0 + R[0, 0] - R[1, 1] - R[2, 2])
        q = [(R[2, 1] - R[1, 2]) / s, 0.25 * s, (R[0, 1] + R[1, 0]) / s, (R[0, 2] + R[2, 0]) / s]
    elif R[1, 1] > R[2, 2]:
        s = 2.0 * np.sqrt(1.0 + R[1, 1] - R[0, 0] - R[2, 2])
        q = [(R[0, 2] - R[2, 0]) / s, (R[0, 1] + R[1, 0]) / s, 0.25 * s, (R[1, 2] + R[2, 1]) / s]
    else:
        s = 2.0 * np.sqrt(1.0 + R[2, 2] - R[0, 0] - R[1, 1])
        q = [(R[1, 0] - R[0, 1]) / s, (R[0, 2] + R[2, 0]) / s, (R[1, 2] + R[2, 1]) / s, 0.25 * s]
    q = np.array(q, dtype=float)
    return -q if q[0] < 0 else q
