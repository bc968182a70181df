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
Periodic rebuild of the local obstacle map

Each cycle:

  1. Snapshots and purges the history buffer (empty: skip the cycle)
  2. Resolves the latest robot pose in the reference frame (failure: abort)
  3. Reprojects every retained observation into the current robot frame
  4. Runs the optional filter pipeline
  5. Publishes the result when someone is listening
  6. Replaces the visualization scene when a surface is attached

Aborted cycles have no side effects on the sinks. Purged history is not
restored.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

import numpy as np
from numpy.typing import NDArray

from oasis_obstacles.obstacles.filter_pipeline import RAW_LAYER
from oasis_obstacles.obstacles.filter_pipeline import FilterPipeline
from oasis_obstacles.obstacles.history_buffer import HistoryBuffer
from oasis_obstacles.obstacles.math_utils.pose3d import Pose3D
from oasis_obstacles.obstacles.obstacles_config import ObstaclesConfig
from oasis_obstacles.obstacles.obstacles_errors import FilterPipelineError
from oasis_obstacles.obstacles.obstacles_errors import TransformError
from oasis_obstacles.obstacles.obstacles_errors import TransformExtrapolationError
from oasis_obstacles.obstacles.obstacles_interfaces import MapSink
from oasis_obstacles.obstacles.obstacles_interfaces import TransformResolver
from oasis_obstacles.obstacles.obstacles_interfaces import VisualizationSurface
from oasis_obstacles.obstacles.obstacles_types import CycleReport
from oasis_obstacles.obstacles.obstacles_types import CycleStatus
from oasis_obstacles.obstacles.obstacles_types import ObservationRecord
from oasis_obstacles.obstacles.obstacles_types import SceneUpdate
from oasis_obstacles.obstacles.points_map import PointsMap


_LOG: logging.Logger = logging.getLogger(__name__)


def relative_pose(current_robot_pose: Pose3D, past_robot_pose: Pose3D) -> Pose3D:
    """
    Return where the robot was, in the robot's current frame

    Both poses are expressed in the reference frame.
    """

    return current_robot_pose.inverse_compose(past_robot_pose)


class MapBuilder:
    """
    Single consumer of the history buffer that rebuilds the local map
    """

    def __init__(
        self,
        *,
        config: ObstaclesConfig,
        history: HistoryBuffer,
        resolver: TransformResolver,
        sink: MapSink,
        filter_pipeline: Optional[FilterPipeline] = None,
        visualizer: Optional[VisualizationSurface] = None,
    ) -> None:
        self._config: ObstaclesConfig = config
        self._history: HistoryBuffer = history
        self._resolver: TransformResolver = resolver
        self._sink: MapSink = sink
        self._filter_pipeline: Optional[FilterPipeline] = filter_pipeline
        self._visualizer: Optional[VisualizationSurface] = visualizer

        self._cycle_lock: threading.Lock = threading.Lock()

    def run_cycle(self) -> CycleReport:
        """
        Run one rebuild cycle, returning a summary

        A cycle triggered while another one is in flight returns BUSY
        immediately.
        """

        if not self._cycle_lock.acquire(blocking=False):
            return CycleReport(status=CycleStatus.BUSY)
        try:
            return self._run_cycle()
        finally:
            self._cycle_lock.release()

    def _run_cycle(self) -> CycleReport:
        records: list[ObservationRecord] = self._history.snapshot_and_purge(
            self._config.time_window
        )

        _LOG.debug("Building local map with %d observations", len(records))
        if not records:
            return CycleReport(status=CycleStatus.EMPTY)

        # Latest robot pose, so the map can be built relative to it
        try:
            current_robot_pose: Pose3D = self._resolver.resolve_latest(
                self._config.reference_frame,
                self._config.robot_frame,
                self._config.transform_timeout,
            )
        except TransformExtrapolationError as exc:
            return CycleReport(
                status=CycleStatus.POSE_EXTRAPOLATION,
                record_count=len(records),
                error=str(exc),
            )
        except TransformError as exc:
            return CycleReport(
                status=CycleStatus.POSE_UNAVAILABLE,
                record_count=len(records),
                error=str(exc),
            )

        _LOG.debug(
            "Building local map relative to latest robot pose %s", current_robot_pose
        )

        local_map: PointsMap = PointsMap()
        observation_poses: list[Pose3D] = []
        for record in records:
            pose: Pose3D = relative_pose(current_robot_pose, record.robot_pose)
            local_map.insert_observation(record.observation, pose)
            observation_poses.append(pose)

        raw_points: NDArray[np.float64] = local_map.points()

        final_points: NDArray[np.float64] = raw_points
        if self._filter_pipeline is not None and not self._filter_pipeline.empty:
            try:
                final_points = self._filter_pipeline.output_layer(
                    {RAW_LAYER: raw_points},
                    self._config.filter_output_layer_name,
                )
            except FilterPipelineError as exc:
                return CycleReport(
                    status=CycleStatus.FILTER_FAILED,
                    record_count=len(records),
                    raw_point_count=int(raw_points.shape[0]),
                    error=str(exc),
                )

        # Records are sorted, so the last one is the newest
        stamp_ns: int = records[-1].timestamp_ns

        published: bool = False
        if self._sink.subscriber_count() > 0:
            self._sink.publish(final_points, self._config.robot_frame, stamp_ns)
            published = True

        rendered: bool = False
        if self._visualizer is not None:
            self._visualizer.replace_scene(
                SceneUpdate(
                    frame_id=self._config.robot_frame,
                    stamp_ns=stamp_ns,
                    raw_points=raw_points,
                    final_points=final_points,
                    observation_poses=observation_poses,
                )
            )
            rendered = True

        return CycleReport(
            status=CycleStatus.COMPLETED,
            record_count=len(records),
            raw_point_count=int(raw_points.shape[0]),
            final_point_count=int(final_points.shape[0]),
            published=published,
            rendered=rendered,
            stamp_ns=stamp_ns,
        )
