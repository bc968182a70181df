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
Configuration data for the local obstacles aggregator
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

from oasis_obstacles.obstacles.obstacles_errors import StartupConfigurationError


# Separators accepted between topic names in a channel list
_CHANNEL_SEPARATORS: re.Pattern[str] = re.compile(r"[ ,\t\n]+")


def parse_channel_list(channels: str) -> list[str]:
    """
    Split a comma or whitespace separated list of topic names

    Empty tokens are dropped, so "" yields no channels.
    """

    return [token for token in _CHANNEL_SEPARATORS.split(channels) if token]


@dataclass(frozen=True)
class ObstaclesConfig:
    """
    Local obstacles configuration values

    Fields:
        reference_frame: Slowly drifting frame the robot pose is tracked in
        robot_frame: Frame attached to the robot body, used for the output
        output_topic: Topic for the aggregated point cloud
        scan_topics: Topics carrying 2D range scans
        pointcloud_topics: Topics carrying 3D point clouds
        time_window: Span of observation history kept in the map, seconds
        publish_period: Rebuild period, seconds
        show_gui: Whether to render the aggregate for visualization
        filter_yaml_file: Optional path to a filter pipeline definition
        filter_output_layer_name: Pipeline layer used as the final output
        transform_timeout: Bounded wait for transform lookups, seconds
    """

    reference_frame: str = "odom"
    robot_frame: str = "base_link"
    output_topic: str = "local_map_pointcloud"
    scan_topics: tuple[str, ...] = ("scan", "laser1")
    pointcloud_topics: tuple[str, ...] = ()
    time_window: float = 0.20
    publish_period: float = 0.05
    show_gui: bool = False
    filter_yaml_file: str = ""
    filter_output_layer_name: str = ""
    transform_timeout: float = 1.0

    @property
    def channel_count(self) -> int:
        return len(self.scan_topics) + len(self.pointcloud_topics)

    @property
    def has_filter(self) -> bool:
        return bool(self.filter_yaml_file)

    def validate(self) -> None:
        """
        Check the startup invariants, raising StartupConfigurationError
        """

        if not self.reference_frame:
            raise StartupConfigurationError("reference frame must be non-empty")
        if not self.robot_frame:
            raise StartupConfigurationError("robot frame must be non-empty")
        if not self.output_topic:
            raise StartupConfigurationError("output topic must be non-empty")

        if not math.isfinite(self.publish_period) or self.publish_period <= 0.0:
            raise StartupConfigurationError(
                f"publish_period must be positive, got {self.publish_period}"
            )
        if not math.isfinite(self.time_window) or (
            self.time_window <= self.publish_period
        ):
            raise StartupConfigurationError(
                f"time_window ({self.time_window}) must be larger than "
                f"publish_period ({self.publish_period})"
            )
        if not math.isfinite(self.transform_timeout) or self.transform_timeout <= 0.0:
            raise StartupConfigurationError(
                f"transform_timeout must be positive, got {self.transform_timeout}"
            )

        if self.channel_count == 0:
            raise StartupConfigurationError(
                "It is mandatory to set at least one source topic for sensory "
                "information"
            )

        if self.filter_yaml_file and not self.filter_output_layer_name:
            raise StartupConfigurationError(
                "'filter_yaml_file' also requires 'filter_output_layer_name'"
            )
