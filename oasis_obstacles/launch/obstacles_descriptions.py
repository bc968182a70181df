################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

from typing import Any

from launch.launch_description import LaunchDescription
from launch_ros.actions import Node


################################################################################
# ROS parameters
################################################################################


ROS_NAMESPACE: str = "oasis"

OBSTACLES_PACKAGE_NAME: str = "oasis_obstacles"


################################################################################
# Node descriptions
################################################################################


class ObstaclesDescriptions:
    #
    # Local obstacles
    #

    @staticmethod
    def add_local_obstacles(
        ld: LaunchDescription,
        host_id: str,
        scan_topics: list[str],
        pointcloud_topics: list[str],
        show_gui: bool = False,
        filter_yaml_file: str = "",
        filter_output_layer_name: str = "",
    ) -> None:
        parameters: dict[str, Any] = {
            "frameid_reference": "odom",
            "frameid_robot": "base_link",
            "topic_local_map_pointcloud": "local_map_pointcloud",
            "source_topics_2dscan": ",".join(scan_topics),
            "source_topics_pointclouds": ",".join(pointcloud_topics),
            "show_gui": show_gui,
            "filter_yaml_file": filter_yaml_file,
            "filter_output_layer_name": filter_output_layer_name,
        }

        local_obstacles_node: Node = Node(
            namespace=ROS_NAMESPACE,
            package=OBSTACLES_PACKAGE_NAME,
            executable="local_obstacles",
            name=f"local_obstacles_{host_id}",
            output="screen",
            parameters=[parameters],
            remappings=[
                ("local_map_pointcloud", f"{host_id}/local_map_pointcloud"),
                (
                    "local_map_pointcloud/markers",
                    f"{host_id}/local_map_pointcloud/markers",
                ),
                *[(topic, f"{host_id}/{topic}") for topic in scan_topics],
                *[(topic, f"{host_id}/{topic}") for topic in pointcloud_topics],
            ],
        )
        ld.add_action(local_obstacles_node)
