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
Exceptions raised by the local obstacles aggregator
"""


class ObstaclesError(Exception):
    """Base class for local obstacles errors."""


class TransformError(ObstaclesError):
    """Raised when a rigid transform cannot be resolved."""


class TransformUnavailableError(TransformError):
    """Raised when the frames are disconnected or no data has arrived yet."""


class TransformExtrapolationError(TransformError):
    """Raised when the requested time is outside the known transform history."""


class StartupConfigurationError(ObstaclesError):
    """Raised when the node configuration is invalid."""


class FilterPipelineError(ObstaclesError):
    """Raised when a filter pipeline cannot be loaded or applied."""
