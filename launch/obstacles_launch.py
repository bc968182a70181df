################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

import os
import socket

from ament_index_python import get_package_share_directory
from launch.launch_description import LaunchDescription

from oasis_obstacles.launch.obstacles_descriptions import OBSTACLES_PACKAGE_NAME
from oasis_obstacles.launch.obstacles_descriptions import ObstaclesDescriptions


################################################################################
# System parameters
################################################################################


HOST_ID: str = socket.gethostname().replace("-", "_")

# Sensors feeding the local obstacle map
SCAN_TOPICS: list[str] = ["scan"]
POINTCLOUD_TOPICS: list[str] = []

# Voxel decimation of the aggregate map
FILTER_YAML_FILE: str = os.path.join(
    get_package_share_directory(OBSTACLES_PACKAGE_NAME),
    "filters",
    "voxel_decimation.yaml",
)
FILTER_OUTPUT_LAYER_NAME: str = "decimated"


################################################################################
# Launch description
################################################################################


def generate_launch_description() -> LaunchDescription:
    ld: LaunchDescription = LaunchDescription()

    ObstaclesDescriptions.add_local_obstacles(
        ld,
        HOST_ID,
        SCAN_TOPICS,
        POINTCLOUD_TOPICS,
        filter_yaml_file=FILTER_YAML_FILE,
        filter_output_layer_name=FILTER_OUTPUT_LAYER_NAME,
    )

    return ld
