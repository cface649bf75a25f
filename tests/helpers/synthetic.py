"""Synthetic phase-contrast-like frames with dark disk-shaped cells."""

from __future__ import annotations

import numpy as np
from skimage.draw import disk

from cellmigration.config import KinematicsConfig, PipelineConfig, SegmentationConfig

BACKGROUND = 120
CELL = 40


def make_frame(cells, shape=(64, 64), radius=8, background=BACKGROUND, cell=CELL):
    """Uniform background with one dark disk per (x, y) center."""
    frame = np.full(shape, background, dtype=np.uint8)
    for cell_def in cells:
        x, y = cell_def[0], cell_def[1]
        r = cell_def[2] if len(cell_def) > 2 else radius
        rr, cc = disk((y, x), r, shape=shape)
        frame[rr, cc] = cell
    return frame


def segmentation_config(**overrides) -> SegmentationConfig:
    values = dict(
        edge_threshold_factor=0.1,
        first_dilation_radius=3,
        first_erosion_radius=1,
        halo_brightness_threshold=250,
        second_dilation_radius=3,
        second_erosion_radius=1,
        min_region_area=20,
    )
    values.update(overrides)
    return SegmentationConfig(**values)


def pipeline_config(**overrides) -> PipelineConfig:
    return PipelineConfig(
        segmentation=segmentation_config(**overrides),
        kinematics=KinematicsConfig(frame_interval=1.0, pixel_size=1.0),
    )


def config_dict() -> dict:
    return {
        "edge_threshold_factor": 0.1,
        "first_dilation_radius": 3,
        "first_erosion_radius": 1,
        "halo_brightness_threshold": 250,
        "second_dilation_radius": 3,
        "second_erosion_radius": 1,
        "min_region_area": 20,
        "frame_interval": 2.0,
        "pixel_size": 0.5,
    }
