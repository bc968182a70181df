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
Types for the local obstacles aggregator
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Optional
from typing import Union

import numpy as np
from numpy.typing import NDArray

from oasis_obstacles.obstacles.math_utils.pose3d import Pose3D
from oasis_obstacles.obstacles.math_utils.units import as_points_array


class ObservationKind(enum.Enum):
    """
    Enumerates the sensor modalities that can be aggregated

    Attributes:
        RANGE_SCAN_2D: Planar range scan, e.g. from a 2D LiDAR
        POINT_CLOUD_3D: Unorganized 3D point cloud
    """

    RANGE_SCAN_2D = "range_scan_2d"
    POINT_CLOUD_3D = "point_cloud_3d"


# Nanoseconds per second for converting capture times
NS_PER_S: int = 1_000_000_000


def ns_to_sec(timestamp_ns: int) -> float:
    return timestamp_ns / NS_PER_S


def _check_timestamp_ns(timestamp_ns: object) -> int:
    if isinstance(timestamp_ns, bool) or not isinstance(
        timestamp_ns, (int, np.integer)
    ):
        raise ValueError("timestamp_ns must be an integer number of nanoseconds")
    return int(timestamp_ns)


def _frozen_array(values: object, dtype: type = float) -> NDArray[np.float64]:
    arr: NDArray[np.float64] = np.array(values, dtype=dtype)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True)
class RangeScan2D:
    """
    Planar range scan tagged with the sensor pose on the robot

    Fields:
        ranges: Measured ranges in meters, one per ray
        angles: Ray angles in radians in the sensor frame, one per ray
        range_min: Smallest valid range in meters
        range_max: Largest valid range in meters
        sensor_pose: Sensor pose in the robot frame at capture time
    """

    ranges: NDArray[np.float64]
    angles: NDArray[np.float64]
    range_min: float
    range_max: float
    sensor_pose: Pose3D

    def __post_init__(self) -> None:
        ranges: NDArray[np.float64] = _frozen_array(self.ranges).reshape(-1)
        angles: NDArray[np.float64] = _frozen_array(self.angles).reshape(-1)
        if ranges.shape != angles.shape:
            raise ValueError("ranges and angles must have the same length")
        if not math.isfinite(self.range_min) or not math.isfinite(self.range_max):
            raise ValueError("range limits must be finite")
        if self.range_min < 0.0 or self.range_max < self.range_min:
            raise ValueError("range limits must satisfy 0 <= range_min <= range_max")
        object.__setattr__(self, "ranges", ranges)
        object.__setattr__(self, "angles", angles)

    @staticmethod
    def from_angle_increment(
        *,
        ranges: NDArray[np.float64],
        angle_min: float,
        angle_increment: float,
        range_min: float,
        range_max: float,
        sensor_pose: Pose3D,
    ) -> "RangeScan2D":
        """Create a scan whose ray i points at angle_min + i * angle_increment."""
        ranges_arr: NDArray[np.float64] = np.asarray(ranges, dtype=float).reshape(-1)
        angles: NDArray[np.float64] = angle_min + angle_increment * np.arange(
            ranges_arr.shape[0], dtype=float
        )
        return RangeScan2D(
            ranges=ranges_arr,
            angles=angles,
            range_min=range_min,
            range_max=range_max,
            sensor_pose=sensor_pose,
        )

    def valid_mask(self) -> NDArray[np.bool_]:
        """Return the rays that hit something inside the sensor limits."""
        finite: NDArray[np.bool_] = np.isfinite(self.ranges)
        # NaN compares False, so mask after the finiteness check
        with np.errstate(invalid="ignore"):
            in_range: NDArray[np.bool_] = (self.ranges >= self.range_min) & (
                self.ranges <= self.range_max
            )
        return finite & in_range

    def sensor_points(self) -> NDArray[np.float64]:
        """Return the valid returns as (N, 3) points in the sensor frame."""
        mask: NDArray[np.bool_] = self.valid_mask()
        r: NDArray[np.float64] = self.ranges[mask]
        a: NDArray[np.float64] = self.angles[mask]
        return np.column_stack((r * np.cos(a), r * np.sin(a), np.zeros_like(r)))


@dataclass(frozen=True)
class PointCloud3D:
    """
    3D point cloud tagged with the sensor pose on the robot

    Fields:
        points: (N, 3) points in meters in the sensor frame
        sensor_pose: Sensor pose in the robot frame at capture time
    """

    points: NDArray[np.float64]
    sensor_pose: Pose3D

    def __post_init__(self) -> None:
        points: NDArray[np.float64] = np.array(
            as_points_array(self.points, "points"), dtype=float
        )
        points.setflags(write=False)
        object.__setattr__(self, "points", points)

    def sensor_points(self) -> NDArray[np.float64]:
        """Return the finite points in the sensor frame."""
        finite: NDArray[np.bool_] = np.all(np.isfinite(self.points), axis=1)
        return self.points[finite]


ObservationPayload = Union[RangeScan2D, PointCloud3D]


_PAYLOAD_TYPES: dict[ObservationKind, type] = {
    ObservationKind.RANGE_SCAN_2D: RangeScan2D,
    ObservationKind.POINT_CLOUD_3D: PointCloud3D,
}


@dataclass(frozen=True)
class SensorObservation:
    """
    Tagged union over the supported sensor payloads

    Fields:
        kind: Modality tag used for dispatch
        payload: Modality-specific data matching kind
    """

    kind: ObservationKind
    payload: ObservationPayload

    def __post_init__(self) -> None:
        expected: type = _PAYLOAD_TYPES[self.kind]
        if not isinstance(self.payload, expected):
            raise ValueError(
                f"{self.kind.value} observation requires a {expected.__name__} payload"
            )

    @staticmethod
    def range_scan(scan: RangeScan2D) -> "SensorObservation":
        return SensorObservation(kind=ObservationKind.RANGE_SCAN_2D, payload=scan)

    @staticmethod
    def point_cloud(cloud: PointCloud3D) -> "SensorObservation":
        return SensorObservation(kind=ObservationKind.POINT_CLOUD_3D, payload=cloud)

    @property
    def sensor_pose(self) -> Pose3D:
        return self.payload.sensor_pose


@dataclass(frozen=True)
class ObservationRecord:
    """
    Immutable capture of one sensor reading and the robot pose at that time

    Fields:
        timestamp_ns: Capture time in nanoseconds, exactly as stamped
        observation: Sensor data tagged with its pose on the robot
        robot_pose: Robot pose in the reference frame at capture time
    """

    timestamp_ns: int
    observation: SensorObservation
    robot_pose: Pose3D

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "timestamp_ns", _check_timestamp_ns(self.timestamp_ns)
        )

    @property
    def timestamp(self) -> float:
        """Capture time in seconds, for time window arithmetic"""
        return ns_to_sec(self.timestamp_ns)


################################################################################
# Raw sensor messages
################################################################################


@dataclass(frozen=True)
class RangeScanData:
    """
    Transport-agnostic contents of a planar laser scan message

    Fields:
        angle_min: Angle of the first ray in radians
        angle_increment: Angle between consecutive rays in radians
        range_min: Smallest valid range in meters
        range_max: Largest valid range in meters
        ranges: Measured ranges in meters
    """

    angle_min: float
    angle_increment: float
    range_min: float
    range_max: float
    ranges: NDArray[np.float64]


@dataclass(frozen=True)
class PointCloudData:
    """
    Transport-agnostic contents of a point cloud message

    Fields:
        points: (N, 3) XYZ points in meters
    """

    points: NDArray[np.float64]


SensorPayload = Union[RangeScanData, PointCloudData]


@dataclass(frozen=True)
class SensorMessage:
    """
    Inbound sensor message for one channel

    Fields:
        frame_id: Native sensor frame of the data
        timestamp_ns: Capture time in nanoseconds
        payload: Modality-specific contents
    """

    frame_id: str
    timestamp_ns: int
    payload: SensorPayload

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "timestamp_ns", _check_timestamp_ns(self.timestamp_ns)
        )

    @property
    def timestamp(self) -> float:
        return ns_to_sec(self.timestamp_ns)


################################################################################
# Map builder outputs
################################################################################


@dataclass(frozen=True)
class SceneUpdate:
    """
    Complete visualization contents for one rebuild cycle

    Fields:
        frame_id: Frame the scene is expressed in (the robot frame)
        stamp_ns: Newest observation timestamp used this cycle, nanoseconds
        raw_points: Aggregate points before filtering
        final_points: Aggregate points after filtering
        observation_poses: Robot pose of each retained observation relative
            to the current robot pose
    """

    frame_id: str
    stamp_ns: int
    raw_points: NDArray[np.float64]
    final_points: NDArray[np.float64]
    observation_poses: list[Pose3D]


class CycleStatus(enum.Enum):
    """
    Outcome of one rebuild cycle

    Attributes:
        COMPLETED: Map rebuilt, filtered, and handed to the sinks
        EMPTY: No observations in the time window, nothing to do
        BUSY: A previous cycle was still running
        POSE_UNAVAILABLE: Current robot pose could not be resolved
        POSE_EXTRAPOLATION: Current robot pose lies outside the TF history
        FILTER_FAILED: The filter pipeline raised an error
    """

    COMPLETED = "completed"
    EMPTY = "empty"
    BUSY = "busy"
    POSE_UNAVAILABLE = "pose_unavailable"
    POSE_EXTRAPOLATION = "pose_extrapolation"
    FILTER_FAILED = "filter_failed"


@dataclass(frozen=True)
class CycleReport:
    """
    Summary of one rebuild cycle

    Fields:
        status: Cycle outcome
        record_count: Observations retained in the time window
        raw_point_count: Points in the aggregate before filtering
        final_point_count: Points in the aggregate after filtering
        published: True when the map was sent to the sink
        rendered: True when the scene was sent to the visualizer
        stamp_ns: Header stamp used for the output, nanoseconds
        error: Error description for failed cycles
    """

    status: CycleStatus
    record_count: int = 0
    raw_point_count: int = 0
    final_point_count: int = 0
    published: bool = False
    rendered: bool = False
    stamp_ns: Optional[int] = None
    error: str = ""
