################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""
Aggregate point map rebuilt every cycle
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from oasis_obstacles.obstacles.math_utils.pose3d import Pose3D
from oasis_obstacles.obstacles.math_utils.units import as_points_array
from oasis_obstacles.obstacles.obstacles_types import ObservationKind
from oasis_obstacles.obstacles.obstacles_types import PointCloud3D
from oasis_obstacles.obstacles.obstacles_types import RangeScan2D
from oasis_obstacles.obstacles.obstacles_types import SensorObservation


class PointsMap:
    """
    Unordered set of 3D points

    Observations are inserted as-is: no minimum distance between points and
    no interpolation between neighboring rays.
    """

    def __init__(self) -> None:
        self._chunks: list[NDArray[np.float64]] = []
        self._size: int = 0

    def clear(self) -> None:
        self._chunks = []
        self._size = 0

    def size(self) -> int:
        return self._size

    def insert_points(self, points: NDArray[np.float64]) -> None:
        pts: NDArray[np.float64] = as_points_array(points, "points")
        if pts.shape[0] == 0:
            return
        self._chunks.append(np.array(pts, dtype=float))
        self._size += pts.shape[0]

    def insert_observation(
        self, observation: SensorObservation, robot_pose: Pose3D
    ) -> int:
        """
        Insert an observation taken with the robot at robot_pose

        The observation's own sensor pose is applied on top of robot_pose.

        :return: The number of points added
        """

        placement: Pose3D = robot_pose * observation.sensor_pose

        if observation.kind == ObservationKind.RANGE_SCAN_2D:
            scan: RangeScan2D = observation.payload  # type: ignore[assignment]
            sensor_points: NDArray[np.float64] = scan.sensor_points()
        elif observation.kind == ObservationKind.POINT_CLOUD_3D:
            cloud: PointCloud3D = observation.payload  # type: ignore[assignment]
            sensor_points = cloud.sensor_points()
        else:
            raise ValueError(f"Unsupported observation kind: {observation.kind}")

        if sensor_points.shape[0] == 0:
            return 0

        self.insert_points(placement.transform_points(sensor_points))
        return int(sensor_points.shape[0])

    def points(self) -> NDArray[np.float64]:
        """Return all points as an (N, 3) array."""
        if not self._chunks:
            return np.zeros((0, 3), dtype=float)
        if len(self._chunks) > 1:
            self._chunks = [np.vstack(self._chunks)]
        return self._chunks[0]
