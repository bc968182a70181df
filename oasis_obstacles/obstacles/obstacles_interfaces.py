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
Collaborators consumed by the local obstacles aggregator

The ROS node provides implementations backed by tf2, a PointCloud2
publisher and an RViz marker publisher. Tests provide in-memory fakes.
"""

from __future__ import annotations

from typing import Protocol

import numpy as np
from numpy.typing import NDArray

from oasis_obstacles.obstacles.math_utils.pose3d import Pose3D
from oasis_obstacles.obstacles.obstacles_types import SceneUpdate


class TransformResolver(Protocol):
    """
    Protocol for a rigid transform lookup service

    Both methods return the pose of source_frame expressed in target_frame
    and resolve() looks it up at an exact nanosecond stamp. They
    raise TransformUnavailableError or TransformExtrapolationError.
    """

    def resolve(
        self, target_frame: str, source_frame: str, stamp_ns: int, timeout: float
    ) -> Pose3D: ...

    def resolve_latest(
        self, target_frame: str, source_frame: str, timeout: float
    ) -> Pose3D: ...


class MapSink(Protocol):
    """
    Protocol for the aggregated point cloud output
    """

    def subscriber_count(self) -> int: ...

    def publish(
        self, points: NDArray[np.float64], frame_id: str, stamp_ns: int
    ) -> None: ...


class VisualizationSurface(Protocol):
    """
    Protocol for a scene that is redrawn from scratch every cycle
    """

    def replace_scene(self, scene: SceneUpdate) -> None: ...
