"""
Exceptions raised by the cell migration pipeline.

Every error here aborts the run. Tracking needs an unbroken frame sequence,
so nothing is retried or skipped.
"""

from typing import Optional, Tuple


class CellMigrationError(Exception):
    """Base class for all pipeline errors."""


class EmptyFrameSource(CellMigrationError):
    """The image stack contains no frames."""


class InconsistentFrameDimensions(CellMigrationError):
    """Frames in one stack do not share the same shape."""


class ConfigurationError(CellMigrationError):
    """A configuration value is missing, unknown or out of range."""


class InvalidSeedPoint(CellMigrationError):
    """A seed point lies outside the first frame."""

    def __init__(self, message: str, seed: Optional[Tuple[float, float]] = None):
        super().__init__(message)
        self.seed = seed


class NoRegionsAvailable(CellMigrationError):
    """Segmentation produced no candidate regions for a frame that needs them."""

    def __init__(self, frame_index: int):
        super().__init__(f"No cell regions detected in frame {frame_index}")
        self.frame_index = frame_index
