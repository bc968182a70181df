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
Conversions between ROS messages and local obstacles types
"""

from __future__ import annotations

import numpy as np
from builtin_interfaces.msg import Time as TimeMsg
from geometry_msgs.msg import TransformStamped as TransformStampedMsg
from numpy.typing import NDArray
from sensor_msgs.msg import LaserScan as LaserScanMsg
from sensor_msgs.msg import PointCloud2 as PointCloud2Msg
from sensor_msgs_py import point_cloud2
from std_msgs.msg import Header as HeaderMsg

from oasis_obstacles.obstacles.math_utils.pose3d import Pose3D
from oasis_obstacles.obstacles.math_utils.quat import Quaternion
from oasis_obstacles.obstacles.math_utils.units import as_points_array
from oasis_obstacles.obstacles.obstacles_types import NS_PER_S
from oasis_obstacles.obstacles.obstacles_types import PointCloudData
from oasis_obstacles.obstacles.obstacles_types import RangeScanData
from oasis_obstacles.obstacles.obstacles_types import SensorMessage


def stamp_to_ns(stamp: TimeMsg) -> int:
    return int(stamp.sec) * NS_PER_S + int(stamp.nanosec)


def ns_to_stamp(timestamp_ns: int) -> TimeMsg:
    sec: int
    nanosec: int
    sec, nanosec = divmod(timestamp_ns, NS_PER_S)
    return TimeMsg(sec=sec, nanosec=nanosec)


def transform_to_pose(msg: TransformStampedMsg) -> Pose3D:
    """
    Convert a transform into the pose of its child frame in its parent frame
    """

    translation = msg.transform.translation
    rotation = msg.transform.rotation
    quat: Quaternion = Quaternion.from_xyzw(
        rotation.x, rotation.y, rotation.z, rotation.w
    )
    return Pose3D.from_quat_translation(
        quat, np.array([translation.x, translation.y, translation.z], dtype=float)
    )


def laser_scan_to_message(msg: LaserScanMsg) -> SensorMessage:
    return SensorMessage(
        frame_id=msg.header.frame_id,
        timestamp_ns=stamp_to_ns(msg.header.stamp),
        payload=RangeScanData(
            angle_min=float(msg.angle_min),
            angle_increment=float(msg.angle_increment),
            range_min=float(msg.range_min),
            range_max=float(msg.range_max),
            ranges=np.asarray(msg.ranges, dtype=float),
        ),
    )


def point_cloud_to_message(msg: PointCloud2Msg) -> SensorMessage:
    points: NDArray[np.float64] = np.asarray(
        point_cloud2.read_points_numpy(
            msg, field_names=("x", "y", "z"), skip_nans=True
        ),
        dtype=float,
    )
    return SensorMessage(
        frame_id=msg.header.frame_id,
        timestamp_ns=stamp_to_ns(msg.header.stamp),
        payload=PointCloudData(points=as_points_array(points, "points")),
    )


def points_to_point_cloud(
    points: NDArray[np.float64], frame_id: str, stamp_ns: int
) -> PointCloud2Msg:
    header: HeaderMsg = HeaderMsg()
    header.frame_id = frame_id
    header.stamp = ns_to_stamp(stamp_ns)
    return point_cloud2.create_cloud_xyz32(
        header, as_points_array(points, "points").astype(np.float32)
    )
