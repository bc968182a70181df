################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################
"""Quaternion utilities using the wxyz convention.

ROS messages order quaternion components as xyzw. Use from_xyzw() at the
message boundary and keep wxyz everywhere else.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from .units import Tolerances
from .units import assert_finite


@dataclass(frozen=True)
class Quaternion:
    """Quaternion stored in wxyz order."""

    wxyz: NDArray[np.float64]

    def __post_init__(self) -> None:
        """Validate quaternion inputs and normalize storage."""
        wxyz: NDArray[np.float64] = np.asarray(self.wxyz, dtype=float)
        if wxyz.shape != (4,):
            raise ValueError("wxyz must be shape (4,)")
        assert_finite(wxyz, "wxyz")
        object.__setattr__(self, "wxyz", wxyz)

    @staticmethod
    def from_wxyz(w: float, x: float, y: float, z: float) -> "Quaternion":
        """Create a quaternion from components."""
        return Quaternion(np.array([w, x, y, z], dtype=float))

    @staticmethod
    def from_xyzw(x: float, y: float, z: float, w: float) -> "Quaternion":
        """Create a quaternion from components in ROS message order."""
        return Quaternion.from_wxyz(w, x, y, z)

    @staticmethod
    def from_matrix(R: NDArray[np.float64]) -> "Quaternion":
        """Create a quaternion from a rotation matrix."""
        mat: NDArray[np.float64] = np.asarray(R, dtype=float)
        if mat.shape != (3, 3):
            raise ValueError("R must be shape (3, 3)")
        assert_finite(mat, "R")
        trace: float = float(np.trace(mat))
        if trace > 0.0:
            s: float = float(np.sqrt(trace + 1.0) * 2.0)
            w: float = 0.25 * s
            x: float = float((mat[2, 1] - mat[1, 2]) / s)
            y: float = float((mat[0, 2] - mat[2, 0]) / s)
            z: float = float((mat[1, 0] - mat[0, 1]) / s)
        else:
            idx: int = int(np.argmax(np.diag(mat)))
            if idx == 0:
                s = float(np.sqrt(1.0 + mat[0, 0] - mat[1, 1] - mat[2, 2]) * 2.0)
                w = float((mat[2, 1] - mat[1, 2]) / s)
                x = 0.25 * s
                y = float((mat[0, 1] + mat[1, 0]) / s)
                z = float((mat[0, 2] + mat[2, 0]) / s)
            elif idx == 1:
                s = float(np.sqrt(1.0 + mat[1, 1] - mat[0, 0] - mat[2, 2]) * 2.0)
                w = float((mat[0, 2] - mat[2, 0]) / s)
                x = float((mat[0, 1] + mat[1, 0]) / s)
                y = 0.25 * s
                z = float((mat[1, 2] + mat[2, 1]) / s)
            else:
                s = float(np.sqrt(1.0 + mat[2, 2] - mat[0, 0] - mat[1, 1]) * 2.0)
                w = float((mat[1, 0] - mat[0, 1]) / s)
                x = float((mat[0, 2] + mat[2, 0]) / s)
                y = float((mat[1, 2] + mat[2, 1]) / s)
                z = 0.25 * s
        return Quaternion.from_wxyz(w, x, y, z).normalized()

    def as_matrix(self) -> NDArray[np.float64]:
        """Return the rotation matrix representation."""
        q: NDArray[np.float64] = self.normalized().wxyz
        w: float = float(q[0])
        x: float = float(q[1])
        y: float = float(q[2])
        z: float = float(q[3])
        return np.array(
            [
                [
                    1.0 - 2.0 * (y * y + z * z),
                    2.0 * (x * y - z * w),
                    2.0 * (x * z + y * w),
                ],
                [
                    2.0 * (x * y + z * w),
                    1.0 - 2.0 * (x * x + z * z),
                    2.0 * (y * z - x * w),
                ],
                [
                    2.0 * (x * z - y * w),
                    2.0 * (y * z + x * w),
                    1.0 - 2.0 * (x * x + y * y),
                ],
            ],
            dtype=float,
        )

    def normalized(self) -> "Quaternion":
        """Return a normalized quaternion."""
        norm: float = float(np.linalg.norm(self.wxyz))
        if norm < Tolerances.EPS:
            raise ValueError("Quaternion norm is too small")
        return Quaternion(self.wxyz / norm)

