################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################
"""Numeric tolerances and array validation helpers."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray


class Tolerances:
    """Tolerances shared by the pose math utilities."""

    # Units: unitless. Meaning: smallest norm treated as non-zero
    EPS: float = 1e-12


def assert_finite(x: NDArray[np.float64], name: str) -> None:
    """Raise ValueError when the array contains non-finite values."""
    if not np.all(np.isfinite(x)):
        raise ValueError(f"{name} must be finite")


def as_points_array(points: object, name: str) -> NDArray[np.float64]:
    """Return an (N, 3) float array, accepting an empty input."""
    arr: NDArray[np.float64] = np.asarray(points, dtype=float)
    if arr.size == 0:
        return np.zeros((0, 3), dtype=float)
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise ValueError(f"{name} must have shape (N, 3)")
    return arr
