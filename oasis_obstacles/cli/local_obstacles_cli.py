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
ROS entry point for the local obstacles aggregator

Sensor callbacks and the map rebuild timer run in different callback groups,
so a multithreaded executor lets ingestion continue while a rebuild is in
progress.
"""

from __future__ import annotations

import sys
from typing import Optional

import rclpy
from rclpy.executors import MultiThreadedExecutor

from oasis_obstacles.nodes.local_obstacles_node import LocalObstaclesNode
from oasis_obstacles.obstacles.obstacles_errors import StartupConfigurationError


################################################################################
# ROS entry point
################################################################################


def main(args: Optional[list[str]] = None) -> None:
    rclpy.init(args=args)

    try:
        node: LocalObstaclesNode = LocalObstaclesNode()
    except StartupConfigurationError:
        rclpy.shutdown()
        sys.exit(1)

    executor: MultiThreadedExecutor = MultiThreadedExecutor()
    executor.add_node(node)

    try:
        executor.spin()
    except KeyboardInterrupt:
        pass
    finally:
        executor.shutdown()
        node.stop()
        rclpy.shutdown()
