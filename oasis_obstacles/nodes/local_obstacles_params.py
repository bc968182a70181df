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
Centralized local obstacles ROS parameter names and defaults
"""

# Frame the robot pose is tracked in
PARAM_FRAMEID_REFERENCE: str = "frameid_reference"

# Default frame the robot pose is tracked in
DEFAULT_FRAMEID_REFERENCE: str = "odom"

# Frame attached to the robot body
PARAM_FRAMEID_ROBOT: str = "frameid_robot"

# Default frame attached to the robot body
DEFAULT_FRAMEID_ROBOT: str = "base_link"

# Topic for the aggregated obstacle point cloud
PARAM_TOPIC_LOCAL_MAP_POINTCLOUD: str = "topic_local_map_pointcloud"

# Default topic for the aggregated obstacle point cloud
DEFAULT_TOPIC_LOCAL_MAP_POINTCLOUD: str = "local_map_pointcloud"

# Comma or whitespace separated list of LaserScan topics
PARAM_SOURCE_TOPICS_2DSCAN: str = "source_topics_2dscan"

# Default list of LaserScan topics
DEFAULT_SOURCE_TOPICS_2DSCAN: str = "scan,laser1"

# Comma or whitespace separated list of PointCloud2 topics
PARAM_SOURCE_TOPICS_POINTCLOUDS: str = "source_topics_pointclouds"

# Default list of PointCloud2 topics
DEFAULT_SOURCE_TOPICS_POINTCLOUDS: str = ""

# Span of observation history kept in the map, seconds
PARAM_TIME_WINDOW: str = "time_window"

# Default span of observation history kept in the map, seconds
DEFAULT_TIME_WINDOW: float = 0.20

# Period between map rebuilds, seconds
PARAM_PUBLISH_PERIOD: str = "publish_period"

# Default period between map rebuilds, seconds
DEFAULT_PUBLISH_PERIOD: float = 0.05

# Whether to publish visualization markers
PARAM_SHOW_GUI: str = "show_gui"

# Default visualization setting
DEFAULT_SHOW_GUI: bool = False

# Optional path to a filter pipeline YAML file
PARAM_FILTER_YAML_FILE: str = "filter_yaml_file"

# Default filter pipeline path, empty for no filtering
DEFAULT_FILTER_YAML_FILE: str = ""

# Filter pipeline layer published as the final output
PARAM_FILTER_OUTPUT_LAYER_NAME: str = "filter_output_layer_name"

# Default filter pipeline output layer
DEFAULT_FILTER_OUTPUT_LAYER_NAME: str = ""

# Bounded wait for each transform lookup, seconds
PARAM_TRANSFORM_TIMEOUT: str = "transform_timeout"

# Default bounded wait for each transform lookup, seconds
DEFAULT_TRANSFORM_TIMEOUT: float = 1.0
