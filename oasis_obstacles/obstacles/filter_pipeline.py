################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################
"""Point cloud filter pipeline applied to the aggregate map.

A pipeline is an ordered list of filters. Each filter reads one named point
layer and writes another, so a pipeline maps a dict of layers to a dict of
layers. Pipelines are defined in YAML:

    filters:
      - class_name: FilterDecimateVoxels
        params:
          input_pointcloud_layer: raw
          output_pointcloud_layer: decimated
          voxel_filter_resolution: 0.10
"""

from __future__ import annotations

import numbers
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from typing import Callable
from typing import Mapping
from typing import Protocol

import numpy as np
import yaml
from numpy.typing import NDArray

from oasis_obstacles.obstacles.math_utils.units import as_points_array
from oasis_obstacles.obstacles.obstacles_errors import FilterPipelineError


# Layer holding the unfiltered aggregate
RAW_LAYER: str = "raw"

PointLayers = dict[str, NDArray[np.float64]]


class PointFilter(Protocol):
    """Protocol for one pipeline stage."""

    input_layer: str
    output_layer: str

    def filter_points(self, points: NDArray[np.float64]) -> NDArray[np.float64]: ...


@dataclass(frozen=True)
class FilterDecimateVoxels:
    """Keep the first point that falls into each cubic voxel.

    Attributes:
        input_layer: Layer to read
        output_layer: Layer to write
        voxel_size: Voxel edge length in meters
    """

    input_layer: str
    output_layer: str
    voxel_size: float

    def __post_init__(self) -> None:
        if not np.isfinite(self.voxel_size) or self.voxel_size <= 0.0:
            raise FilterPipelineError("voxel_filter_resolution must be positive")

    def filter_points(self, points: NDArray[np.float64]) -> NDArray[np.float64]:
        if points.shape[0] == 0:
            return points
        voxel_indices: NDArray[np.int64] = np.floor(points / self.voxel_size).astype(
            np.int64
        )
        first_index: NDArray[np.int64]
        _, first_index = np.unique(voxel_indices, axis=0, return_index=True)
        return points[np.sort(first_index)]


@dataclass(frozen=True)
class FilterBoundingBox:
    """Keep the points inside, or outside, an axis-aligned box.

    Attributes:
        input_layer: Layer to read
        output_layer: Layer to write
        box_min: Lower box corner in meters
        box_max: Upper box corner in meters
        invert: True to keep the points outside the box
    """

    input_layer: str
    output_layer: str
    box_min: tuple[float, float, float]
    box_max: tuple[float, float, float]
    invert: bool = False

    def __post_init__(self) -> None:
        if any(lo > hi for lo, hi in zip(self.box_min, self.box_max)):
            raise FilterPipelineError(
                "bounding_box_min must not exceed bounding_box_max"
            )

    def filter_points(self, points: NDArray[np.float64]) -> NDArray[np.float64]:
        inside: NDArray[np.bool_] = np.all(
            (points >= np.asarray(self.box_min)) & (points <= np.asarray(self.box_max)),
            axis=1,
        )
        return points[~inside] if self.invert else points[inside]


@dataclass(frozen=True)
class FilterByRange:
    """Keep the points whose distance to the origin lies in a range.

    Attributes:
        input_layer: Layer to read
        output_layer: Layer to write
        range_min: Smallest kept distance in meters
        range_max: Largest kept distance in meters
    """

    input_layer: str
    output_layer: str
    range_min: float
    range_max: float

    def __post_init__(self) -> None:
        if self.range_min < 0.0 or self.range_max < self.range_min:
            raise FilterPipelineError("range limits must satisfy 0 <= min <= max")

    def filter_points(self, points: NDArray[np.float64]) -> NDArray[np.float64]:
        distances: NDArray[np.float64] = np.linalg.norm(points, axis=1)
        keep: NDArray[np.bool_] = (distances >= self.range_min) & (
            distances <= self.range_max
        )
        return points[keep]


class FilterPipeline:
    """Ordered list of point filters."""

    def __init__(self, filters: list[PointFilter]) -> None:
        self._filters: list[PointFilter] = list(filters)

    def __len__(self) -> int:
        return len(self._filters)

    @property
    def empty(self) -> bool:
        return not self._filters

    @staticmethod
    def from_yaml_file(path: str | Path) -> "FilterPipeline":
        """Load a pipeline definition from a YAML file."""
        file_path: Path = Path(path)
        try:
            text: str = file_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise FilterPipelineError(
                f"Unable to read filter pipeline {file_path}: {exc}"
            ) from exc
        return FilterPipeline.from_yaml(text)

    @staticmethod
    def from_yaml(text: str) -> "FilterPipeline":
        try:
            data: Any = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise FilterPipelineError(f"Invalid filter pipeline YAML: {exc}") from exc
        return FilterPipeline.from_dict(data)

    @staticmethod
    def from_dict(data: Any) -> "FilterPipeline":
        if not isinstance(data, Mapping):
            raise FilterPipelineError("filter pipeline must be a mapping")
        entries: Any = data.get("filters")
        if not isinstance(entries, list):
            raise FilterPipelineError("filter pipeline requires a 'filters' list")
        return FilterPipeline([_build_filter(entry) for entry in entries])

    def apply(self, layers: Mapping[str, NDArray[np.float64]]) -> PointLayers:
        """Run all filters, returning the input layers plus every output."""
        result: PointLayers = dict(layers)
        for point_filter in self._filters:
            if point_filter.input_layer not in result:
                raise FilterPipelineError(
                    f"{type(point_filter).__name__}: unknown input layer "
                    f"'{point_filter.input_layer}'"
                )
            points: NDArray[np.float64] = as_points_array(
                result[point_filter.input_layer], point_filter.input_layer
            )
            result[point_filter.output_layer] = point_filter.filter_points(points)
        return result

    def output_layer(
        self, layers: Mapping[str, NDArray[np.float64]], name: str
    ) -> NDArray[np.float64]:
        """Run the pipeline on the given layers and return one output layer."""
        result: PointLayers = self.apply(layers)
        if name not in result:
            raise FilterPipelineError(f"Pipeline produced no layer named '{name}'")
        return result[name]


################################################################################
# YAML parsing
################################################################################


def _build_decimate_voxels(params: Mapping[str, Any]) -> PointFilter:
    return FilterDecimateVoxels(
        input_layer=_require_str(params, "input_pointcloud_layer", RAW_LAYER),
        output_layer=_require_str(params, "output_pointcloud_layer"),
        voxel_size=_require_float(params, "voxel_filter_resolution"),
    )


def _build_bounding_box(params: Mapping[str, Any]) -> PointFilter:
    invert: Any = params.get("invert", False)
    if not isinstance(invert, bool):
        raise FilterPipelineError("invert must be a bool")
    return FilterBoundingBox(
        input_layer=_require_str(params, "input_pointcloud_layer", RAW_LAYER),
        output_layer=_require_str(params, "output_pointcloud_layer"),
        box_min=_require_vector3(params, "bounding_box_min"),
        box_max=_require_vector3(params, "bounding_box_max"),
        invert=invert,
    )


def _build_by_range(params: Mapping[str, Any]) -> PointFilter:
    return FilterByRange(
        input_layer=_require_str(params, "input_pointcloud_layer", RAW_LAYER),
        output_layer=_require_str(params, "output_pointcloud_layer"),
        range_min=_require_float(params, "range_min"),
        range_max=_require_float(params, "range_max"),
    )


_FILTER_BUILDERS: dict[str, Callable[[Mapping[str, Any]], PointFilter]] = {
    "FilterDecimateVoxels": _build_decimate_voxels,
    "FilterBoundingBox": _build_bounding_box,
    "FilterByRange": _build_by_range,
}


def _build_filter(entry: Any) -> PointFilter:
    if not isinstance(entry, Mapping):
        raise FilterPipelineError("each filter entry must be a mapping")
    class_name: Any = entry.get("class_name")
    builder = _FILTER_BUILDERS.get(class_name) if isinstance(class_name, str) else None
    if builder is None:
        raise FilterPipelineError(f"Unknown filter class_name: {class_name!r}")
    params: Any = entry.get("params", {})
    if not isinstance(params, Mapping):
        raise FilterPipelineError(f"{class_name}: params must be a mapping")
    return builder(params)


def _require_str(params: Mapping[str, Any], key: str, default: str = "") -> str:
    value: Any = params.get(key, default)
    if not isinstance(value, str) or not value:
        raise FilterPipelineError(f"{key} must be a non-empty string")
    return value


def _require_float(params: Mapping[str, Any], key: str) -> float:
    value: Any = params.get(key)
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise FilterPipelineError(f"{key} must be a number")
    return float(value)


def _require_vector3(params: Mapping[str, Any], key: str) -> tuple[float, float, float]:
    value: Any = params.get(key)
    if not isinstance(value, (list, tuple)) or len(value) != 3:
        raise FilterPipelineError(f"{key} must be a list of 3 numbers")
    if any(isinstance(v, bool) or not isinstance(v, numbers.Real) for v in value):
        raise FilterPipelineError(f"{key} must be a list of 3 numbers")
    return (float(value[0]), float(value[1]), float(value[2]))
