################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################
"""Rotation matrix utilities."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from .units import assert_finite


class SO3:
    """SO(3) rotation utilities."""

    @staticmethod
    def from_yaw(yaw: float) -> NDArray[np.float64]:
        """Return the rotation about +Z by the given angle."""
        cos_yaw: float = float(np.cos(yaw))
        sin_yaw: float = float(np.sin(yaw))
        return np.array(
            [
                [cos_yaw, -sin_yaw, 0.0],
                [sin_yaw, cos_yaw, 0.0],
                [0.0, 0.0, 1.0],
            ],
            dtype=float,
        )

    @staticmethod
    def project_to_so3(R: NDArray[np.float64]) -> NDArray[np.float64]:
        """Project a matrix to the nearest SO(3) rotation matrix."""
        mat: NDArray[np.float64] = np.asarray(R, dtype=float)
        ensure_shape(mat, (3, 3), "R")
        assert_finite(mat, "R")
        U: NDArray[np.float64]
        S: NDArray[np.float64]
        Vt: NDArray[np.float64]
        U, S, Vt = np.linalg.svd(mat)
        R_proj: NDArray[np.float64] = U @ Vt
        if np.linalg.det(R_proj) < 0.0:
            U[:, -1] *= -1.0
            R_proj = U @ Vt
        return R_proj


def ensure_shape(x: NDArray[np.float64], shape: tuple[int, ...], name: str) -> None:
    """Ensure an array has the expected shape."""
    if x.shape != shape:
        raise ValueError(f"{name} must have shape {shape}")
