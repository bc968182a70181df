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
Conversion of inbound sensor messages into observation records
"""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass

from oasis_obstacles.obstacles.history_buffer import HistoryBuffer
from oasis_obstacles.obstacles.math_utils.pose3d import Pose3D
from oasis_obstacles.obstacles.obstacles_errors import TransformError
from oasis_obstacles.obstacles.obstacles_errors import TransformExtrapolationError
from oasis_obstacles.obstacles.obstacles_interfaces import TransformResolver
from oasis_obstacles.obstacles.obstacles_types import ObservationKind
from oasis_obstacles.obstacles.obstacles_types import ObservationRecord
from oasis_obstacles.obstacles.obstacles_types import PointCloud3D
from oasis_obstacles.obstacles.obstacles_types import PointCloudData
from oasis_obstacles.obstacles.obstacles_types import RangeScan2D
from oasis_obstacles.obstacles.obstacles_types import RangeScanData
from oasis_obstacles.obstacles.obstacles_types import SensorMessage
from oasis_obstacles.obstacles.obstacles_types import SensorObservation


_LOG: logging.Logger = logging.getLogger(__name__)


class IngestStatus(enum.Enum):
    """
    Outcome of ingesting one sensor message

    Attributes:
        ACCEPTED: Record inserted into the history buffer
        INVALID_MESSAGE: Payload does not match the channel modality
        SENSOR_TRANSFORM_FAILED: Sensor to robot transform unavailable
        ROBOT_EXTRAPOLATION: Robot pose requested outside the TF history
        ROBOT_TRANSFORM_FAILED: Robot to reference transform unavailable
    """

    ACCEPTED = "accepted"
    INVALID_MESSAGE = "invalid_message"
    SENSOR_TRANSFORM_FAILED = "sensor_transform_failed"
    ROBOT_EXTRAPOLATION = "robot_extrapolation"
    ROBOT_TRANSFORM_FAILED = "robot_transform_failed"


@dataclass(frozen=True)
class IngestResult:
    """
    Result of ingesting one sensor message

    Fields:
        status: Ingestion outcome
        channel: Topic the message arrived on
        timestamp: Capture time of the message, seconds
        error: Error description when the message was dropped
    """

    status: IngestStatus
    channel: str
    timestamp: float
    error: str = ""

    @property
    def accepted(self) -> bool:
        return self.status == IngestStatus.ACCEPTED


class SensorIngestion:
    """
    Ingestion path for one subscribed sensor channel

    Each message is handled independently. A failed transform lookup drops
    that message only and the channel stays live for the next one.
    """

    def __init__(
        self,
        *,
        channel: str,
        kind: ObservationKind,
        robot_frame: str,
        reference_frame: str,
        resolver: TransformResolver,
        history: HistoryBuffer,
        transform_timeout: float = 1.0,
    ) -> None:
        self._channel: str = channel
        self._kind: ObservationKind = kind
        self._robot_frame: str = robot_frame
        self._reference_frame: str = reference_frame
        self._resolver: TransformResolver = resolver
        self._history: HistoryBuffer = history
        self._transform_timeout: float = transform_timeout

        self._counter_lock: threading.Lock = threading.Lock()
        self._accepted_count: int = 0
        self._rejected_count: int = 0

    @property
    def channel(self) -> str:
        return self._channel

    @property
    def kind(self) -> ObservationKind:
        return self._kind

    @property
    def accepted_count(self) -> int:
        return self._accepted_count

    @property
    def rejected_count(self) -> int:
        return self._rejected_count

    def ingest(self, message: SensorMessage) -> IngestResult:
        result: IngestResult = self._ingest(message)
        with self._counter_lock:
            if result.accepted:
                self._accepted_count += 1
            else:
                self._rejected_count += 1
        return result

    def _ingest(self, message: SensorMessage) -> IngestResult:
        timestamp: float = message.timestamp
        timestamp_ns: int = message.timestamp_ns

        # Pose of the sensor on the robot at capture time
        try:
            sensor_pose: Pose3D = self._resolver.resolve(
                self._robot_frame,
                message.frame_id,
                timestamp_ns,
                self._transform_timeout,
            )
        except TransformError as exc:
            return self._reject(IngestStatus.SENSOR_TRANSFORM_FAILED, timestamp, exc)

        try:
            observation: SensorObservation = self._build_observation(
                message, sensor_pose
            )
        except ValueError as exc:
            return self._reject(IngestStatus.INVALID_MESSAGE, timestamp, exc)

        _LOG.debug(
            "[%s] %s, sensor pose on robot %s",
            self._channel,
            self._kind.value,
            sensor_pose,
        )

        # Pose of the robot in the reference frame at capture time
        try:
            robot_pose: Pose3D = self._resolver.resolve(
                self._reference_frame,
                self._robot_frame,
                timestamp_ns,
                self._transform_timeout,
            )
        except TransformExtrapolationError as exc:
            return self._reject(IngestStatus.ROBOT_EXTRAPOLATION, timestamp, exc)
        except TransformError as exc:
            return self._reject(IngestStatus.ROBOT_TRANSFORM_FAILED, timestamp, exc)

        _LOG.debug("[%s] robot pose %s", self._channel, robot_pose)

        self._history.insert(
            ObservationRecord(
                timestamp_ns=timestamp_ns,
                observation=observation,
                robot_pose=robot_pose,
            )
        )

        return IngestResult(
            status=IngestStatus.ACCEPTED, channel=self._channel, timestamp=timestamp
        )

    def _build_observation(
        self, message: SensorMessage, sensor_pose: Pose3D
    ) -> SensorObservation:
        payload = message.payload

        if self._kind == ObservationKind.RANGE_SCAN_2D:
            if not isinstance(payload, RangeScanData):
                raise ValueError(f"Expected a range scan on {self._channel}")
            return SensorObservation.range_scan(
                RangeScan2D.from_angle_increment(
                    ranges=payload.ranges,
                    angle_min=payload.angle_min,
                    angle_increment=payload.angle_increment,
                    range_min=payload.range_min,
                    range_max=payload.range_max,
                    sensor_pose=sensor_pose,
                )
            )

        if not isinstance(payload, PointCloudData):
            raise ValueError(f"Expected a point cloud on {self._channel}")
        return SensorObservation.point_cloud(
            PointCloud3D(points=payload.points, sensor_pose=sensor_pose)
        )

    def _reject(
        self, status: IngestStatus, timestamp: float, exc: Exception
    ) -> IngestResult:
        return IngestResult(
            status=status,
            channel=self._channel,
            timestamp=timestamp,
            error=str(exc),
        )
