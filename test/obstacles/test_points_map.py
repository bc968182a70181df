################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

from __future__ import annotations

import math

import numpy as np
from numpy.typing import NDArray

from oasis_obstacles.obstacles.math_utils.pose3d import Pose3D
from oasis_obstacles.obstacles.obstacles_types import PointCloud3D
from oasis_obstacles.obstacles.obstacles_types import RangeScan2D
from oasis_obstacles.obstacles.obstacles_types import SensorObservation
from oasis_obstacles.obstacles.points_map import PointsMap


def test_empty_map() -> None:
    local_map: PointsMap = PointsMap()

    assert local_map.size() == 0
    assert local_map.points().shape == (0, 3)


def test_insert_scan_applies_sensor_and_robot_pose() -> None:
    # Sensor mounted 0.5 m ahead of the robot, robot 1 m further ahead
    scan: RangeScan2D = RangeScan2D.from_angle_increment(
        ranges=np.array([2.0]),
        angle_min=0.0,
        angle_increment=0.1,
        range_min=0.0,
        range_max=10.0,
        sensor_pose=Pose3D.from_xyz_yaw(0.5, 0.0, 0.0, 0.0),
    )
    local_map: PointsMap = PointsMap()

    added: int = local_map.insert_observation(
        SensorObservation.range_scan(scan), Pose3D.from_xyz_yaw(1.0, 0.0, 0.0, 0.0)
    )

    assert added == 1
    assert np.allclose(local_map.points(), [[3.5, 0.0, 0.0]])


def test_insert_scan_with_rotated_robot() -> None:
    scan: RangeScan2D = RangeScan2D.from_angle_increment(
        ranges=np.array([1.0]),
        angle_min=0.0,
        angle_increment=0.1,
        range_min=0.0,
        range_max=10.0,
        sensor_pose=Pose3D.identity(),
    )
    local_map: PointsMap = PointsMap()

    local_map.insert_observation(
        SensorObservation.range_scan(scan),
        Pose3D.from_xyz_yaw(0.0, 0.0, 0.0, math.pi / 2.0),
    )

    assert np.allclose(local_map.points(), [[0.0, 1.0, 0.0]])


def test_insert_point_cloud() -> None:
    cloud: PointCloud3D = PointCloud3D(
        points=np.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.5]]),
        sensor_pose=Pose3D.from_xyz_yaw(0.0, 0.0, 1.0, 0.0),
    )
    local_map: PointsMap = PointsMap()

    added: int = local_map.insert_observation(
        SensorObservation.point_cloud(cloud), Pose3D.identity()
    )

    assert added == 2
    assert np.allclose(local_map.points(), [[1.0, 0.0, 1.0], [0.0, 1.0, 1.5]])


def test_observations_accumulate_without_deduplication() -> None:
    cloud: PointCloud3D = PointCloud3D(
        points=np.array([[1.0, 0.0, 0.0]]), sensor_pose=Pose3D.identity()
    )
    local_map: PointsMap = PointsMap()

    for _ in range(3):
        local_map.insert_observation(
            SensorObservation.point_cloud(cloud), Pose3D.identity()
        )

    points: NDArray[np.float64] = local_map.points()
    assert local_map.size() == 3
    assert points.shape == (3, 3)


def test_empty_observation_adds_nothing() -> None:
    cloud: PointCloud3D = PointCloud3D(
        points=np.zeros((0, 3)), sensor_pose=Pose3D.identity()
    )
    local_map: PointsMap = PointsMap()

    assert local_map.insert_observation(
        SensorObservation.point_cloud(cloud), Pose3D.identity()
    ) == 0
    assert local_map.size() == 0


def test_clear() -> None:
    local_map: PointsMap = PointsMap()
    local_map.insert_points(np.array([[1.0, 2.0, 3.0]]))

    local_map.clear()

    assert local_map.size() == 0
    assert local_map.points().shape == (0, 3)
