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
RViz rendering of the local obstacle map

Every scene starts with a DELETEALL marker so the previous cycle's render is
replaced as a whole.
"""

from __future__ import annotations

import numpy as np
import rclpy.publisher
from geometry_msgs.msg import Point as PointMsg
from numpy.typing import NDArray
from std_msgs.msg import ColorRGBA as ColorRGBAMsg
from visualization_msgs.msg import Marker as MarkerMsg
from visualization_msgs.msg import MarkerArray as MarkerArrayMsg

from oasis_obstacles.obstacles.math_utils.pose3d import Pose3D
from oasis_obstacles.obstacles.obstacles_types import SceneUpdate
from oasis_obstacles.ros.obstacles_ros_conversions import ns_to_stamp


# Marker namespaces
NS_GRID: str = "grid"
NS_ROBOT_FRAME: str = "robot_frame"
NS_OBSTACLES: str = "obstacles"
NS_RAW_POINTS: str = "raw_points"
NS_FINAL_POINTS: str = "final_points"

# Reference grid on the XY plane, meters
GRID_HALF_SIZE_M: float = 10.0
GRID_SPACING_M: float = 1.0

# Axis lengths and line widths, meters
ROBOT_AXIS_LENGTH_M: float = 1.0
OBSERVATION_AXIS_LENGTH_M: float = 0.9
AXIS_LINE_WIDTH_M: float = 0.02
GRID_LINE_WIDTH_M: float = 0.005

# Point sizes, meters
RAW_POINT_SIZE_M: float = 0.01
FINAL_POINT_SIZE_M: float = 0.03

_AXIS_COLORS: tuple[tuple[float, float, float], ...] = (
    (1.0, 0.0, 0.0),
    (0.0, 1.0, 0.0),
    (0.0, 0.0, 1.0),
)


def _color(r: float, g: float, b: float, a: float = 1.0) -> ColorRGBAMsg:
    return ColorRGBAMsg(r=r, g=g, b=b, a=a)


def _point(xyz: NDArray[np.float64]) -> PointMsg:
    return PointMsg(x=float(xyz[0]), y=float(xyz[1]), z=float(xyz[2]))


def _base_marker(scene: SceneUpdate, ns: str, marker_type: int) -> MarkerMsg:
    marker: MarkerMsg = MarkerMsg()
    marker.header.frame_id = scene.frame_id
    marker.header.stamp = ns_to_stamp(scene.stamp_ns)
    marker.ns = ns
    marker.id = 0
    marker.type = marker_type
    marker.action = MarkerMsg.ADD
    marker.pose.orientation.w = 1.0
    return marker


def _points_marker(
    scene: SceneUpdate,
    ns: str,
    points: NDArray[np.float64],
    size_m: float,
    color: ColorRGBAMsg,
) -> MarkerMsg:
    marker: MarkerMsg = _base_marker(scene, ns, MarkerMsg.POINTS)
    marker.scale.x = size_m
    marker.scale.y = size_m
    marker.color = color
    marker.points = [_point(xyz) for xyz in points]
    return marker


def _append_axes(marker: MarkerMsg, pose: Pose3D, length_m: float) -> None:
    origin: PointMsg = _point(pose.p)
    for axis_index, rgb in enumerate(_AXIS_COLORS):
        tip: NDArray[np.float64] = pose.p + length_m * pose.R[:, axis_index]
        marker.points.extend([origin, _point(tip)])
        marker.colors.extend([_color(*rgb), _color(*rgb)])


def _axes_marker(
    scene: SceneUpdate, ns: str, poses: list[Pose3D], length_m: float
) -> MarkerMsg:
    marker: MarkerMsg = _base_marker(scene, ns, MarkerMsg.LINE_LIST)
    marker.scale.x = AXIS_LINE_WIDTH_M
    marker.color = _color(1.0, 1.0, 1.0)
    for pose in poses:
        _append_axes(marker, pose, length_m)
    return marker


def _grid_marker(scene: SceneUpdate) -> MarkerMsg:
    marker: MarkerMsg = _base_marker(scene, NS_GRID, MarkerMsg.LINE_LIST)
    marker.scale.x = GRID_LINE_WIDTH_M
    marker.color = _color(0.5, 0.5, 0.5, 0.5)
    ticks: NDArray[np.float64] = np.arange(
        -GRID_HALF_SIZE_M, GRID_HALF_SIZE_M + 0.5 * GRID_SPACING_M, GRID_SPACING_M
    )
    for tick in ticks:
        marker.points.extend(
            [
                PointMsg(x=float(tick), y=-GRID_HALF_SIZE_M, z=0.0),
                PointMsg(x=float(tick), y=GRID_HALF_SIZE_M, z=0.0),
                PointMsg(x=-GRID_HALF_SIZE_M, y=float(tick), z=0.0),
                PointMsg(x=GRID_HALF_SIZE_M, y=float(tick), z=0.0),
            ]
        )
    return marker


def scene_to_marker_array(scene: SceneUpdate) -> MarkerArrayMsg:
    """
    Render a complete scene: grid, robot axes, one axis triad per
    observation pose, raw points in green and filtered points in blue
    """

    clear_marker: MarkerMsg = MarkerMsg()
    clear_marker.header.frame_id = scene.frame_id
    clear_marker.action = MarkerMsg.DELETEALL

    msg: MarkerArrayMsg = MarkerArrayMsg()
    msg.markers = [
        clear_marker,
        _grid_marker(scene),
        _axes_marker(scene, NS_ROBOT_FRAME, [Pose3D.identity()], ROBOT_AXIS_LENGTH_M),
        _axes_marker(
            scene, NS_OBSTACLES, scene.observation_poses, OBSERVATION_AXIS_LENGTH_M
        ),
        _points_marker(
            scene,
            NS_RAW_POINTS,
            scene.raw_points,
            RAW_POINT_SIZE_M,
            _color(0.0, 1.0, 0.0),
        ),
        _points_marker(
            scene,
            NS_FINAL_POINTS,
            scene.final_points,
            FINAL_POINT_SIZE_M,
            _color(0.0, 0.0, 1.0),
        ),
    ]
    return msg


class MarkerSceneSurface:
    """
    Visualization surface that publishes each scene as a MarkerArray
    """

    def __init__(self, publisher: rclpy.publisher.Publisher) -> None:
        self._publisher: rclpy.publisher.Publisher = publisher

    def replace_scene(self, scene: SceneUpdate) -> None:
        self._publisher.publish(scene_to_marker_array(scene))
