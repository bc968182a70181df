################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################
"""Tests for quaternion helpers."""

from __future__ import annotations

import math

import numpy as np
import pytest
from numpy.typing import NDArray

from oasis_obstacles.obstacles.math_utils.linalg import SO3
from oasis_obstacles.obstacles.math_utils.quat import Quaternion


def test_from_matrix_round_trip() -> None:
    """Checks matrix -> quaternion -> matrix for random rotations."""
    rng: np.random.Generator = np.random.default_rng(1)
    for _ in range(100):
        R: NDArray[np.float64] = SO3.project_to_so3(rng.normal(size=(3, 3)))
        q: Quaternion = Quaternion.from_matrix(R)
        assert np.isclose(float(np.linalg.norm(q.wxyz)), 1.0)
        assert np.allclose(q.as_matrix(), R, atol=1e-9)


def test_xyzw_order() -> None:
    """ROS messages store the scalar part last."""
    half: float = math.sqrt(0.5)
    q: Quaternion = Quaternion.from_xyzw(0.0, 0.0, half, half)
    assert np.allclose(q.wxyz, [half, 0.0, 0.0, half])
    assert np.allclose(q.as_matrix(), SO3.from_yaw(math.pi / 2.0))


def test_as_matrix_normalizes() -> None:
    q: Quaternion = Quaternion.from_wxyz(2.0, 0.0, 0.0, 0.0)
    assert np.allclose(q.as_matrix(), np.eye(3))


def test_rejects_zero_norm() -> None:
    with pytest.raises(ValueError):
        Quaternion.from_wxyz(0.0, 0.0, 0.0, 0.0).normalized()


def test_rejects_wrong_shape() -> None:
    with pytest.raises(ValueError):
        Quaternion(np.zeros(3))
