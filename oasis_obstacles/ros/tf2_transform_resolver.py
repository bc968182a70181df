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
Transform lookups backed by a tf2 buffer
"""

from __future__ import annotations

import rclpy.duration
import rclpy.time
import tf2_ros
from geometry_msgs.msg import TransformStamped as TransformStampedMsg

from oasis_obstacles.obstacles.math_utils.pose3d import Pose3D
from oasis_obstacles.obstacles.obstacles_errors import TransformExtrapolationError
from oasis_obstacles.obstacles.obstacles_errors import TransformUnavailableError
from oasis_obstacles.ros.obstacles_ros_conversions import transform_to_pose


class Tf2TransformResolver:
    """
    Resolve frame poses from a tf2 buffer, blocking up to a timeout
    """

    def __init__(self, tf_buffer: tf2_ros.Buffer) -> None:
        self._tf_buffer: tf2_ros.Buffer = tf_buffer

    def resolve(
        self, target_frame: str, source_frame: str, stamp_ns: int, timeout: float
    ) -> Pose3D:
        lookup_time: rclpy.time.Time = rclpy.time.Time(nanoseconds=stamp_ns)
        return self._lookup(target_frame, source_frame, lookup_time, timeout)

    def resolve_latest(
        self, target_frame: str, source_frame: str, timeout: float
    ) -> Pose3D:
        # Time zero asks tf2 for the most recent available transform
        return self._lookup(target_frame, source_frame, rclpy.time.Time(), timeout)

    def _lookup(
        self,
        target_frame: str,
        source_frame: str,
        lookup_time: rclpy.time.Time,
        timeout: float,
    ) -> Pose3D:
        try:
            transform: TransformStampedMsg = self._tf_buffer.lookup_transform(
                target_frame,
                source_frame,
                lookup_time,
                timeout=rclpy.duration.Duration(seconds=timeout),
            )
        except tf2_ros.ExtrapolationException as exc:
            raise TransformExtrapolationError(str(exc)) from exc
        except tf2_ros.TransformException as exc:
            raise TransformUnavailableError(str(exc)) from exc

        return transform_to_pose(transform)
