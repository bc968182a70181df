################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

from __future__ import annotations

import math
import threading
from typing import Optional

import numpy as np
from numpy.typing import NDArray

from oasis_obstacles.obstacles.filter_pipeline import FilterPipeline
from oasis_obstacles.obstacles.history_buffer import HistoryBuffer
from oasis_obstacles.obstacles.map_builder import MapBuilder
from oasis_obstacles.obstacles.map_builder import relative_pose
from oasis_obstacles.obstacles.math_utils.pose3d import Pose3D
from oasis_obstacles.obstacles.obstacles_config import ObstaclesConfig
from oasis_obstacles.obstacles.obstacles_errors import TransformExtrapolationError
from oasis_obstacles.obstacles.obstacles_errors import TransformUnavailableError
from oasis_obstacles.obstacles.obstacles_types import NS_PER_S
from oasis_obstacles.obstacles.obstacles_types import CycleReport
from oasis_obstacles.obstacles.obstacles_types import CycleStatus
from oasis_obstacles.obstacles.obstacles_types import ObservationRecord
from oasis_obstacles.obstacles.obstacles_types import PointCloud3D
from oasis_obstacles.obstacles.obstacles_types import RangeScan2D
from oasis_obstacles.obstacles.obstacles_types import SceneUpdate
from oasis_obstacles.obstacles.obstacles_types import SensorObservation


_CONFIG: ObstaclesConfig = ObstaclesConfig()


class _FakeResolver:
    def __init__(self, current_pose: Optional[Pose3D] = None) -> None:
        self.current_pose: Optional[Pose3D] = current_pose
        self.error: Optional[Exception] = None

    def resolve(
        self, target_frame: str, source_frame: str, stamp_ns: int, timeout: float
    ) -> Pose3D:
        raise AssertionError("map builder must use the latest robot pose")

    def resolve_latest(
        self, target_frame: str, source_frame: str, timeout: float
    ) -> Pose3D:
        assert target_frame == _CONFIG.reference_frame
        assert source_frame == _CONFIG.robot_frame
        if self.error is not None:
            raise self.error
        assert self.current_pose is not None
        return self.current_pose


class _FakeSink:
    def __init__(self, subscribers: int = 1) -> None:
        self.subscribers: int = subscribers
        self.published: list[tuple[NDArray[np.float64], str, int]] = []

    def subscriber_count(self) -> int:
        return self.subscribers

    def publish(
        self, points: NDArray[np.float64], frame_id: str, stamp_ns: int
    ) -> None:
        self.published.append((points, frame_id, stamp_ns))


class _FakeSurface:
    def __init__(self) -> None:
        self.scenes: list[SceneUpdate] = []

    def replace_scene(self, scene: SceneUpdate) -> None:
        self.scenes.append(scene)


def _cloud_record(
    timestamp: float, robot_pose: Pose3D, points: list[list[float]]
) -> ObservationRecord:
    cloud: PointCloud3D = PointCloud3D(
        points=np.array(points, dtype=float), sensor_pose=Pose3D.identity()
    )
    return ObservationRecord(
        timestamp_ns=round(timestamp * NS_PER_S),
        observation=SensorObservation.point_cloud(cloud),
        robot_pose=robot_pose,
    )


def _build(
    history: HistoryBuffer,
    resolver: _FakeResolver,
    sink: _FakeSink,
    surface: Optional[_FakeSurface] = None,
    filter_pipeline: Optional[FilterPipeline] = None,
    config: ObstaclesConfig = _CONFIG,
) -> MapBuilder:
    return MapBuilder(
        config=config,
        history=history,
        resolver=resolver,
        sink=sink,
        filter_pipeline=filter_pipeline,
        visualizer=surface,
    )


def test_relative_pose_of_current_pose_is_identity() -> None:
    pose: Pose3D = Pose3D.from_xyz_yaw(3.0, -2.0, 0.0, 1.1)

    assert relative_pose(pose, pose).almost_equal(Pose3D.identity())


def test_empty_history_skips_cycle() -> None:
    sink: _FakeSink = _FakeSink()
    surface: _FakeSurface = _FakeSurface()
    builder: MapBuilder = _build(
        HistoryBuffer(), _FakeResolver(Pose3D.identity()), sink, surface
    )

    report: CycleReport = builder.run_cycle()

    assert report.status == CycleStatus.EMPTY
    assert sink.published == []
    assert surface.scenes == []


def test_stationary_robot_keeps_points_in_place() -> None:
    robot_pose: Pose3D = Pose3D.from_xyz_yaw(4.0, 2.0, 0.0, 0.3)
    history: HistoryBuffer = HistoryBuffer()
    history.insert(_cloud_record(1.0, robot_pose, [[1.0, 0.5, 0.2]]))
    sink: _FakeSink = _FakeSink()
    builder: MapBuilder = _build(history, _FakeResolver(robot_pose), sink)

    report: CycleReport = builder.run_cycle()

    assert report.status == CycleStatus.COMPLETED
    assert report.published
    points, frame_id, stamp_ns = sink.published[0]
    assert frame_id == _CONFIG.robot_frame
    assert stamp_ns == 1_000_000_000
    assert np.allclose(points, [[1.0, 0.5, 0.2]])


def test_points_are_reprojected_into_current_robot_frame() -> None:
    """A wall 2 m ahead looks 1 m ahead after driving 1 m forward."""
    history: HistoryBuffer = HistoryBuffer()
    history.insert(
        _cloud_record(1.00, Pose3D.from_xyz_yaw(0.0, 0.0, 0.0, 0.0), [[2.0, 0.0, 0.0]])
    )
    sink: _FakeSink = _FakeSink()
    resolver: _FakeResolver = _FakeResolver(Pose3D.from_xyz_yaw(1.0, 0.0, 0.0, 0.0))
    builder: MapBuilder = _build(history, resolver, sink)

    builder.run_cycle()

    assert np.allclose(sink.published[0][0], [[1.0, 0.0, 0.0]])


def test_reprojection_with_rotation() -> None:
    history: HistoryBuffer = HistoryBuffer()
    history.insert(
        _cloud_record(1.0, Pose3D.from_xyz_yaw(0.0, 0.0, 0.0, 0.0), [[1.0, 0.0, 0.0]])
    )
    sink: _FakeSink = _FakeSink()
    # Robot turned left by 90 degrees in place
    resolver: _FakeResolver = _FakeResolver(
        Pose3D.from_xyz_yaw(0.0, 0.0, 0.0, math.pi / 2.0)
    )
    builder: MapBuilder = _build(history, resolver, sink)

    builder.run_cycle()

    assert np.allclose(sink.published[0][0], [[0.0, -1.0, 0.0]])


def test_scan_observation_is_reprojected() -> None:
    scan: RangeScan2D = RangeScan2D.from_angle_increment(
        ranges=np.array([2.0]),
        angle_min=0.0,
        angle_increment=0.1,
        range_min=0.0,
        range_max=10.0,
        sensor_pose=Pose3D.from_xyz_yaw(0.5, 0.0, 0.2, 0.0),
    )
    history: HistoryBuffer = HistoryBuffer()
    history.insert(
        ObservationRecord(
            timestamp_ns=1_000_000_000,
            observation=SensorObservation.range_scan(scan),
            robot_pose=Pose3D.identity(),
        )
    )
    sink: _FakeSink = _FakeSink()
    builder: MapBuilder = _build(history, _FakeResolver(Pose3D.identity()), sink)

    builder.run_cycle()

    assert np.allclose(sink.published[0][0], [[2.5, 0.0, 0.2]])


def test_stamp_is_newest_record() -> None:
    history: HistoryBuffer = HistoryBuffer()
    for timestamp in (1.05, 1.00, 1.10):
        history.insert(_cloud_record(timestamp, Pose3D.identity(), [[1.0, 0.0, 0.0]]))
    sink: _FakeSink = _FakeSink()
    surface: _FakeSurface = _FakeSurface()
    builder: MapBuilder = _build(
        history, _FakeResolver(Pose3D.identity()), sink, surface
    )

    report: CycleReport = builder.run_cycle()

    assert report.stamp_ns == 1_100_000_000
    assert report.record_count == 3
    assert report.raw_point_count == 3
    assert sink.published[0][2] == 1_100_000_000
    assert surface.scenes[0].stamp_ns == 1_100_000_000


def test_records_outside_window_are_excluded() -> None:
    history: HistoryBuffer = HistoryBuffer()
    history.insert(_cloud_record(0.00, Pose3D.identity(), [[9.0, 0.0, 0.0]]))
    history.insert(_cloud_record(0.50, Pose3D.identity(), [[1.0, 0.0, 0.0]]))
    sink: _FakeSink = _FakeSink()
    builder: MapBuilder = _build(history, _FakeResolver(Pose3D.identity()), sink)

    report: CycleReport = builder.run_cycle()

    assert report.record_count == 1
    assert np.allclose(sink.published[0][0], [[1.0, 0.0, 0.0]])
    assert len(history) == 1


def test_pose_unavailable_aborts_cycle() -> None:
    history: HistoryBuffer = HistoryBuffer()
    history.insert(_cloud_record(1.0, Pose3D.identity(), [[1.0, 0.0, 0.0]]))
    resolver: _FakeResolver = _FakeResolver()
    resolver.error = TransformUnavailableError("odom does not exist")
    sink: _FakeSink = _FakeSink()
    surface: _FakeSurface = _FakeSurface()
    builder: MapBuilder = _build(history, resolver, sink, surface)

    report: CycleReport = builder.run_cycle()

    assert report.status == CycleStatus.POSE_UNAVAILABLE
    assert "odom" in report.error
    assert sink.published == []
    assert surface.scenes == []


def test_pose_extrapolation_aborts_cycle() -> None:
    history: HistoryBuffer = HistoryBuffer()
    history.insert(_cloud_record(1.0, Pose3D.identity(), [[1.0, 0.0, 0.0]]))
    resolver: _FakeResolver = _FakeResolver()
    resolver.error = TransformExtrapolationError("future")
    sink: _FakeSink = _FakeSink()
    builder: MapBuilder = _build(history, resolver, sink)

    report: CycleReport = builder.run_cycle()

    assert report.status == CycleStatus.POSE_EXTRAPOLATION
    assert sink.published == []


def test_pose_failure_leaves_previous_outputs_untouched() -> None:
    history: HistoryBuffer = HistoryBuffer()
    history.insert(_cloud_record(1.0, Pose3D.identity(), [[1.0, 0.0, 0.0]]))
    resolver: _FakeResolver = _FakeResolver(Pose3D.identity())
    sink: _FakeSink = _FakeSink()
    surface: _FakeSurface = _FakeSurface()
    builder: MapBuilder = _build(history, resolver, sink, surface)
    assert builder.run_cycle().status == CycleStatus.COMPLETED
    published_points: NDArray[np.float64] = sink.published[0][0].copy()
    scene: SceneUpdate = surface.scenes[0]

    history.insert(_cloud_record(1.1, Pose3D.identity(), [[5.0, 5.0, 0.0]]))
    for error in (
        TransformUnavailableError("odom does not exist"),
        TransformExtrapolationError("future"),
    ):
        resolver.error = error
        assert builder.run_cycle().status != CycleStatus.COMPLETED

    assert len(sink.published) == 1
    assert np.array_equal(sink.published[0][0], published_points)
    assert len(surface.scenes) == 1
    assert surface.scenes[0] is scene
    assert scene.final_points.shape == (1, 3)


def test_no_subscribers_skips_publish_but_renders() -> None:
    history: HistoryBuffer = HistoryBuffer()
    history.insert(_cloud_record(1.0, Pose3D.identity(), [[1.0, 0.0, 0.0]]))
    sink: _FakeSink = _FakeSink(subscribers=0)
    surface: _FakeSurface = _FakeSurface()
    builder: MapBuilder = _build(
        history, _FakeResolver(Pose3D.identity()), sink, surface
    )

    report: CycleReport = builder.run_cycle()

    assert report.status == CycleStatus.COMPLETED
    assert not report.published
    assert report.rendered
    assert sink.published == []
    assert len(surface.scenes) == 1


def test_scene_contains_raw_final_and_poses() -> None:
    history: HistoryBuffer = HistoryBuffer()
    history.insert(
        _cloud_record(
            1.0,
            Pose3D.from_xyz_yaw(-1.0, 0.0, 0.0, 0.0),
            [[0.1, 0.1, 0.0], [0.2, 0.2, 0.0], [3.0, 0.0, 0.0]],
        )
    )
    pipeline: FilterPipeline = FilterPipeline.from_yaml(
        "filters:\n"
        "  - class_name: FilterDecimateVoxels\n"
        "    params:\n"
        "      output_pointcloud_layer: decimated\n"
        "      voxel_filter_resolution: 1.0\n"
    )
    config: ObstaclesConfig = ObstaclesConfig(
        filter_yaml_file="filters.yaml", filter_output_layer_name="decimated"
    )
    sink: _FakeSink = _FakeSink()
    surface: _FakeSurface = _FakeSurface()
    builder: MapBuilder = _build(
        history,
        _FakeResolver(Pose3D.identity()),
        sink,
        surface,
        filter_pipeline=pipeline,
        config=config,
    )

    report: CycleReport = builder.run_cycle()

    assert report.raw_point_count == 3
    assert report.final_point_count == 2
    scene: SceneUpdate = surface.scenes[0]
    assert scene.frame_id == config.robot_frame
    assert scene.raw_points.shape == (3, 3)
    assert scene.final_points.shape == (2, 3)
    assert len(scene.observation_poses) == 1
    assert np.allclose(scene.observation_poses[0].p, [-1.0, 0.0, 0.0])
    assert np.allclose(sink.published[0][0], scene.final_points)


def test_filter_failure_aborts_cycle() -> None:
    history: HistoryBuffer = HistoryBuffer()
    history.insert(_cloud_record(1.0, Pose3D.identity(), [[1.0, 0.0, 0.0]]))
    pipeline: FilterPipeline = FilterPipeline.from_yaml(
        "filters:\n"
        "  - class_name: FilterDecimateVoxels\n"
        "    params:\n"
        "      output_pointcloud_layer: decimated\n"
        "      voxel_filter_resolution: 1.0\n"
    )
    config: ObstaclesConfig = ObstaclesConfig(
        filter_yaml_file="filters.yaml", filter_output_layer_name="not_a_layer"
    )
    sink: _FakeSink = _FakeSink()
    builder: MapBuilder = _build(
        history,
        _FakeResolver(Pose3D.identity()),
        sink,
        filter_pipeline=pipeline,
        config=config,
    )

    report: CycleReport = builder.run_cycle()

    assert report.status == CycleStatus.FILTER_FAILED
    assert sink.published == []


def test_overlapping_cycle_reports_busy() -> None:
    history: HistoryBuffer = HistoryBuffer()
    history.insert(_cloud_record(1.0, Pose3D.identity(), [[1.0, 0.0, 0.0]]))
    entered: threading.Event = threading.Event()
    release: threading.Event = threading.Event()

    class _BlockingSink(_FakeSink):
        def publish(
            self, points: NDArray[np.float64], frame_id: str, stamp_ns: int
        ) -> None:
            entered.set()
            release.wait(timeout=5.0)
            super().publish(points, frame_id, stamp_ns)

    sink: _BlockingSink = _BlockingSink()
    builder: MapBuilder = _build(history, _FakeResolver(Pose3D.identity()), sink)
    reports: list[CycleReport] = []
    worker: threading.Thread = threading.Thread(
        target=lambda: reports.append(builder.run_cycle())
    )
    worker.start()
    try:
        assert entered.wait(timeout=5.0)
        assert builder.run_cycle().status == CycleStatus.BUSY
    finally:
        release.set()
        worker.join(timeout=5.0)

    assert reports[0].status == CycleStatus.COMPLETED
