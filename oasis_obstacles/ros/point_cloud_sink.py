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
Map sink that publishes the local obstacle map as a PointCloud2
"""

from __future__ import annotations

import numpy as np
import rclpy.publisher
from numpy.typing import NDArray

from oasis_obstacles.ros.obstacles_ros_conversions import points_to_point_cloud


class PointCloudSink:
    def __init__(self, publisher: rclpy.publisher.Publisher) -> None:
        self._publisher: rclpy.publisher.Publisher = publisher

    def subscriber_count(self) -> int:
        return int(self._publisher.get_subscription_count())

    def publish(
        self, points: NDArray[np.float64], frame_id: str, stamp_ns: int
    ) -> None:
        self._publisher.publish(points_to_point_cloud(points, frame_id, stamp_ns))
