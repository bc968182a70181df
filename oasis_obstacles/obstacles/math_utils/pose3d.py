################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################
"""Rigid 3D poses.

A Pose3D T_AB is the pose of frame B expressed in frame A. It maps points
from B coordinates into A coordinates: x_A = R x_B + p.

Composition reads right to left: T_AC = T_AB * T_BC. The pose of a past
robot frame R0 relative to the current robot frame R1, both known in a
reference frame W, is therefore T_R1R0 = T_WR1.inverse() * T_WR0, which
inverse_compose() computes.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from .linalg import SO3
from .linalg import ensure_shape
from .quat import Quaternion
from .units import as_points_array
from .units import assert_finite


@dataclass(frozen=True)
class Pose3D:
    """Rigid-body pose with rotation and translation."""

    R: NDArray[np.float64]
    p: NDArray[np.float64]

    def __post_init__(self) -> None:
        """Validate inputs, project the rotation and freeze the arrays."""
        R_mat: NDArray[np.float64] = np.asarray(self.R, dtype=float)
        p_vec: NDArray[np.float64] = np.array(self.p, dtype=float)
        ensure_shape(R_mat, (3, 3), "R")
        ensure_shape(p_vec, (3,), "p")
        assert_finite(R_mat, "R")
        assert_finite(p_vec, "p")
        R_proj: NDArray[np.float64] = SO3.project_to_so3(R_mat)
        R_proj.setflags(write=False)
        p_vec.setflags(write=False)
        object.__setattr__(self, "R", R_proj)
        object.__setattr__(self, "p", p_vec)

    @staticmethod
    def identity() -> "Pose3D":
        """Return the identity pose."""
        return Pose3D(np.eye(3, dtype=float), np.zeros(3, dtype=float))

    @staticmethod
    def from_quat_translation(q: Quaternion, p: NDArray[np.float64]) -> "Pose3D":
        """Create a pose from a quaternion and translation."""
        return Pose3D(q.as_matrix(), np.asarray(p, dtype=float))

    @staticmethod
    def from_xyz_yaw(x: float, y: float, z: float, yaw: float) -> "Pose3D":
        """Create a planar pose with a heading about +Z."""
        return Pose3D(SO3.from_yaw(yaw), np.array([x, y, z], dtype=float))

    def quaternion(self) -> Quaternion:
        """Return the rotation as a unit quaternion."""
        return Quaternion.from_matrix(self.R)

    def inverse(self) -> "Pose3D":
        """Return the inverse pose."""
        R_inv: NDArray[np.float64] = self.R.T
        return Pose3D(R_inv, -(R_inv @ self.p))

    def __mul__(self, other: "Pose3D") -> "Pose3D":
        """Compose two poses, applying other first."""
        return Pose3D(self.R @ other.R, self.R @ other.p + self.p)

    def inverse_compose(self, other: "Pose3D") -> "Pose3D":
        """Return other expressed in the frame of this pose."""
        R_inv: NDArray[np.float64] = self.R.T
        return Pose3D(R_inv @ other.R, R_inv @ (other.p - self.p))

    def transform_point(self, x: NDArray[np.float64]) -> NDArray[np.float64]:
        """Transform a single point by rotation and translation."""
        vec: NDArray[np.float64] = np.asarray(x, dtype=float)
        ensure_shape(vec, (3,), "x")
        assert_finite(vec, "x")
        return self.R @ vec + self.p

    def transform_points(self, points: NDArray[np.float64]) -> NDArray[np.float64]:
        """Transform an (N, 3) array of points."""
        pts: NDArray[np.float64] = as_points_array(points, "points")
        return pts @ self.R.T + self.p

    def almost_equal(self, other: "Pose3D", atol: float = 1e-9) -> bool:
        """Check approximate equality of rotation and translation."""
        return bool(
            np.allclose(self.R, other.R, atol=atol)
            and np.allclose(self.p, other.p, atol=atol)
        )

    def __repr__(self) -> str:
        q: NDArray[np.float64] = self.quaternion().wxyz
        return (
            f"Pose3D(p=[{self.p[0]:.3f}, {self.p[1]:.3f}, {self.p[2]:.3f}], "
            f"q_wxyz=[{q[0]:.3f}, {q[1]:.3f}, {q[2]:.3f}, {q[3]:.3f}])"
        )
