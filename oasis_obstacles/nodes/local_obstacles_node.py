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
ROS 2 node that aggregates recent range sensor observations into a local
obstacle point cloud expressed in the robot frame
"""

from __future__ import annotations

from typing import Callable
from typing import Optional

import rclpy.callback_groups
import rclpy.node
import rclpy.publisher
import rclpy.qos
import rclpy.subscription
import rclpy.timer
import tf2_ros
from sensor_msgs.msg import LaserScan as LaserScanMsg
from sensor_msgs.msg import PointCloud2 as PointCloud2Msg
from visualization_msgs.msg import MarkerArray as MarkerArrayMsg

from oasis_obstacles.nodes.local_obstacles_params import (
    DEFAULT_FILTER_OUTPUT_LAYER_NAME,
)
from oasis_obstacles.nodes.local_obstacles_params import DEFAULT_FILTER_YAML_FILE
from oasis_obstacles.nodes.local_obstacles_params import DEFAULT_FRAMEID_REFERENCE
from oasis_obstacles.nodes.local_obstacles_params import DEFAULT_FRAMEID_ROBOT
from oasis_obstacles.nodes.local_obstacles_params import DEFAULT_PUBLISH_PERIOD
from oasis_obstacles.nodes.local_obstacles_params import DEFAULT_SHOW_GUI
from oasis_obstacles.nodes.local_obstacles_params import DEFAULT_SOURCE_TOPICS_2DSCAN
from oasis_obstacles.nodes.local_obstacles_params import (
    DEFAULT_SOURCE_TOPICS_POINTCLOUDS,
)
from oasis_obstacles.nodes.local_obstacles_params import DEFAULT_TIME_WINDOW
from oasis_obstacles.nodes.local_obstacles_params import (
    DEFAULT_TOPIC_LOCAL_MAP_POINTCLOUD,
)
from oasis_obstacles.nodes.local_obstacles_params import DEFAULT_TRANSFORM_TIMEOUT
from oasis_obstacles.nodes.local_obstacles_params import PARAM_FILTER_OUTPUT_LAYER_NAME
from oasis_obstacles.nodes.local_obstacles_params import PARAM_FILTER_YAML_FILE
from oasis_obstacles.nodes.local_obstacles_params import PARAM_FRAMEID_REFERENCE
from oasis_obstacles.nodes.local_obstacles_params import PARAM_FRAMEID_ROBOT
from oasis_obstacles.nodes.local_obstacles_params import PARAM_PUBLISH_PERIOD
from oasis_obstacles.nodes.local_obstacles_params import PARAM_SHOW_GUI
from oasis_obstacles.nodes.local_obstacles_params import PARAM_SOURCE_TOPICS_2DSCAN
from oasis_obstacles.nodes.local_obstacles_params import (
    PARAM_SOURCE_TOPICS_POINTCLOUDS,
)
from oasis_obstacles.nodes.local_obstacles_params import PARAM_TIME_WINDOW
from oasis_obstacles.nodes.local_obstacles_params import (
    PARAM_TOPIC_LOCAL_MAP_POINTCLOUD,
)
from oasis_obstacles.nodes.local_obstacles_params import PARAM_TRANSFORM_TIMEOUT
from oasis_obstacles.obstacles.filter_pipeline import FilterPipeline
from oasis_obstacles.obstacles.history_buffer import HistoryBuffer
from oasis_obstacles.obstacles.map_builder import MapBuilder
from oasis_obstacles.obstacles.obstacles_config import ObstaclesConfig
from oasis_obstacles.obstacles.obstacles_config import parse_channel_list
from oasis_obstacles.obstacles.obstacles_errors import FilterPipelineError
from oasis_obstacles.obstacles.obstacles_errors import StartupConfigurationError
from oasis_obstacles.obstacles.obstacles_types import CycleReport
from oasis_obstacles.obstacles.obstacles_types import CycleStatus
from oasis_obstacles.obstacles.obstacles_types import ObservationKind
from oasis_obstacles.obstacles.obstacles_types import SensorMessage
from oasis_obstacles.obstacles.sensor_ingestion import IngestResult
from oasis_obstacles.obstacles.sensor_ingestion import IngestStatus
from oasis_obstacles.obstacles.sensor_ingestion import SensorIngestion
from oasis_obstacles.ros.obstacles_markers import MarkerSceneSurface
from oasis_obstacles.ros.obstacles_ros_conversions import laser_scan_to_message
from oasis_obstacles.ros.obstacles_ros_conversions import point_cloud_to_message
from oasis_obstacles.ros.point_cloud_sink import PointCloudSink
from oasis_obstacles.ros.tf2_transform_resolver import Tf2TransformResolver


################################################################################
# ROS parameters
################################################################################


NODE_NAME: str = "local_obstacles"

# Suffix appended to the output topic for visualization markers
MARKERS_TOPIC_SUFFIX: str = "markers"

# Queue depth for the published map
PUBLISHER_QUEUE_DEPTH: int = 10

# Minimum interval between repeated ingestion warnings, seconds
WARN_THROTTLE_SEC: float = 1.0


################################################################################
# Helper functions
################################################################################


def load_filter_pipeline(config: ObstaclesConfig) -> Optional[FilterPipeline]:
    """
    Load the configured filter pipeline, or None when filtering is disabled

    Raises StartupConfigurationError if the pipeline file cannot be used.
    """

    if not config.has_filter:
        return None

    try:
        return FilterPipeline.from_yaml_file(config.filter_yaml_file)
    except FilterPipelineError as exc:
        raise StartupConfigurationError(
            f"Invalid filter pipeline '{config.filter_yaml_file}': {exc}"
        ) from exc


################################################################################
# ROS node
################################################################################


class LocalObstaclesNode(rclpy.node.Node):
    def __init__(self) -> None:
        """Initialize resources."""

        super().__init__(NODE_NAME)

        # ROS parameters
        self.declare_parameter(PARAM_FRAMEID_REFERENCE, DEFAULT_FRAMEID_REFERENCE)
        self.declare_parameter(PARAM_FRAMEID_ROBOT, DEFAULT_FRAMEID_ROBOT)
        self.declare_parameter(
            PARAM_TOPIC_LOCAL_MAP_POINTCLOUD, DEFAULT_TOPIC_LOCAL_MAP_POINTCLOUD
        )
        self.declare_parameter(
            PARAM_SOURCE_TOPICS_2DSCAN, DEFAULT_SOURCE_TOPICS_2DSCAN
        )
        self.declare_parameter(
            PARAM_SOURCE_TOPICS_POINTCLOUDS, DEFAULT_SOURCE_TOPICS_POINTCLOUDS
        )
        self.declare_parameter(PARAM_TIME_WINDOW, DEFAULT_TIME_WINDOW)
        self.declare_parameter(PARAM_PUBLISH_PERIOD, DEFAULT_PUBLISH_PERIOD)
        self.declare_parameter(PARAM_SHOW_GUI, DEFAULT_SHOW_GUI)
        self.declare_parameter(PARAM_FILTER_YAML_FILE, DEFAULT_FILTER_YAML_FILE)
        self.declare_parameter(
            PARAM_FILTER_OUTPUT_LAYER_NAME, DEFAULT_FILTER_OUTPUT_LAYER_NAME
        )
        self.declare_parameter(PARAM_TRANSFORM_TIMEOUT, DEFAULT_TRANSFORM_TIMEOUT)

        config: ObstaclesConfig = self._load_config()
        try:
            config.validate()
            filter_pipeline: Optional[FilterPipeline] = load_filter_pipeline(config)
        except StartupConfigurationError as exc:
            self.get_logger().error(str(exc))
            raise

        self._config: ObstaclesConfig = config

        # Transforms
        self._tf_buffer: tf2_ros.Buffer = tf2_ros.Buffer()
        self._tf_listener: tf2_ros.TransformListener = tf2_ros.TransformListener(
            self._tf_buffer, self
        )
        resolver: Tf2TransformResolver = Tf2TransformResolver(self._tf_buffer)

        # Observation history shared by all sensor callbacks and the timer
        self._history: HistoryBuffer = HistoryBuffer()

        # Callback groups
        self._sensor_group: rclpy.callback_groups.ReentrantCallbackGroup = (
            rclpy.callback_groups.ReentrantCallbackGroup()
        )
        self._timer_group: rclpy.callback_groups.MutuallyExclusiveCallbackGroup = (
            rclpy.callback_groups.MutuallyExclusiveCallbackGroup()
        )

        # QoS profiles
        sensor_data_qos: rclpy.qos.QoSProfile = (
            rclpy.qos.QoSPresetProfiles.SENSOR_DATA.value
        )

        # ROS Publishers
        self._map_pub: rclpy.publisher.Publisher = self.create_publisher(
            msg_type=PointCloud2Msg,
            topic=config.output_topic,
            qos_profile=PUBLISHER_QUEUE_DEPTH,
        )
        self._marker_pub: Optional[rclpy.publisher.Publisher] = None
        marker_surface: Optional[MarkerSceneSurface] = None
        if config.show_gui:
            self._marker_pub = self.create_publisher(
                msg_type=MarkerArrayMsg,
                topic=f"{config.output_topic}/{MARKERS_TOPIC_SUFFIX}",
                qos_profile=PUBLISHER_QUEUE_DEPTH,
            )
            marker_surface = MarkerSceneSurface(self._marker_pub)

        # Map builder
        self._builder: MapBuilder = MapBuilder(
            config=config,
            history=self._history,
            resolver=resolver,
            sink=PointCloudSink(self._map_pub),
            filter_pipeline=filter_pipeline,
            visualizer=marker_surface,
        )

        # ROS Subscribers
        self._ingestions: list[SensorIngestion] = []
        self._sensor_subs: list[rclpy.subscription.Subscription] = []
        for topic in config.scan_topics:
            self._subscribe(
                topic,
                ObservationKind.RANGE_SCAN_2D,
                LaserScanMsg,
                laser_scan_to_message,
                resolver,
                sensor_data_qos,
            )
        for topic in config.pointcloud_topics:
            self._subscribe(
                topic,
                ObservationKind.POINT_CLOUD_3D,
                PointCloud2Msg,
                point_cloud_to_message,
                resolver,
                sensor_data_qos,
            )

        self.get_logger().info(
            f"Total number of sensor subscriptions: {len(self._sensor_subs)}"
        )

        # ROS Timers
        self._build_timer: rclpy.timer.Timer = self.create_timer(
            timer_period_sec=config.publish_period,
            callback=self._build_map,
            callback_group=self._timer_group,
        )

        if filter_pipeline is not None:
            self.get_logger().info(
                f"Loaded {len(filter_pipeline)} point filters from "
                f"{config.filter_yaml_file}, output layer "
                f"'{config.filter_output_layer_name}'"
            )

        self.get_logger().info("Local obstacles node initialized")

    def stop(self) -> None:
        self.get_logger().info("Local obstacles node deinitialized")

        self.destroy_node()

    @property
    def config(self) -> ObstaclesConfig:
        return self._config

    @property
    def ingestions(self) -> list[SensorIngestion]:
        return list(self._ingestions)

    @property
    def builder(self) -> MapBuilder:
        return self._builder

    def _load_config(self) -> ObstaclesConfig:
        return ObstaclesConfig(
            reference_frame=str(self.get_parameter(PARAM_FRAMEID_REFERENCE).value),
            robot_frame=str(self.get_parameter(PARAM_FRAMEID_ROBOT).value),
            output_topic=str(
                self.get_parameter(PARAM_TOPIC_LOCAL_MAP_POINTCLOUD).value
            ),
            scan_topics=tuple(
                parse_channel_list(
                    str(self.get_parameter(PARAM_SOURCE_TOPICS_2DSCAN).value)
                )
            ),
            pointcloud_topics=tuple(
                parse_channel_list(
                    str(self.get_parameter(PARAM_SOURCE_TOPICS_POINTCLOUDS).value)
                )
            ),
            time_window=float(self.get_parameter(PARAM_TIME_WINDOW).value),
            publish_period=float(self.get_parameter(PARAM_PUBLISH_PERIOD).value),
            show_gui=bool(self.get_parameter(PARAM_SHOW_GUI).value),
            filter_yaml_file=str(self.get_parameter(PARAM_FILTER_YAML_FILE).value),
            filter_output_layer_name=str(
                self.get_parameter(PARAM_FILTER_OUTPUT_LAYER_NAME).value
            ),
            transform_timeout=float(
                self.get_parameter(PARAM_TRANSFORM_TIMEOUT).value
            ),
        )

    def _subscribe(
        self,
        topic: str,
        kind: ObservationKind,
        msg_type: type,
        convert: Callable[..., SensorMessage],
        resolver: Tf2TransformResolver,
        qos_profile: rclpy.qos.QoSProfile,
    ) -> None:
        ingestion: SensorIngestion = SensorIngestion(
            channel=topic,
            kind=kind,
            robot_frame=self._config.robot_frame,
            reference_frame=self._config.reference_frame,
            resolver=resolver,
            history=self._history,
            transform_timeout=self._config.transform_timeout,
        )

        def handle_message(msg: object) -> None:
            try:
                message: SensorMessage = convert(msg)
            except ValueError as exc:
                self.get_logger().error(
                    f"[{topic}] Dropped malformed {kind.value} message: {exc}",
                    throttle_duration_sec=WARN_THROTTLE_SEC,
                )
                return
            self._handle_sensor_message(ingestion, message)

        subscription: rclpy.subscription.Subscription = self.create_subscription(
            msg_type=msg_type,
            topic=topic,
            callback=handle_message,
            qos_profile=qos_profile,
            callback_group=self._sensor_group,
        )

        self._ingestions.append(ingestion)
        self._sensor_subs.append(subscription)

        self.get_logger().info(f"Subscribed to {kind.value} topic '{topic}'")

    def _handle_sensor_message(
        self, ingestion: SensorIngestion, message: SensorMessage
    ) -> None:
        result: IngestResult = ingestion.ingest(message)
        if result.accepted:
            return

        if result.status == IngestStatus.ROBOT_EXTRAPOLATION:
            reason: str = (
                f"robot pose at t={result.timestamp:.3f} is outside the "
                f"'{self._config.reference_frame}' transform history"
            )
        elif result.status == IngestStatus.INVALID_MESSAGE:
            reason = "message does not match the channel type"
        else:
            reason = "transform lookup failed"

        self.get_logger().error(
            f"[{result.channel}] Dropped observation, {reason}: {result.error}",
            throttle_duration_sec=WARN_THROTTLE_SEC,
        )

    def _build_map(self) -> None:
        report: CycleReport = self._builder.run_cycle()

        if report.status in (
            CycleStatus.POSE_UNAVAILABLE,
            CycleStatus.POSE_EXTRAPOLATION,
            CycleStatus.FILTER_FAILED,
        ):
            self.get_logger().error(
                f"Local map not built ({report.status.value}): {report.error}",
                throttle_duration_sec=WARN_THROTTLE_SEC,
            )
            return

        if report.status == CycleStatus.BUSY:
            self.get_logger().warning(
                "Skipping map rebuild, previous rebuild still running",
                throttle_duration_sec=WARN_THROTTLE_SEC,
            )
            return

        if report.status == CycleStatus.COMPLETED:
            self.get_logger().debug(
                f"Local map built from {report.record_count} observations: "
                f"{report.raw_point_count} raw points, "
                f"{report.final_point_count} final points, "
                f"published={report.published}"
            )
