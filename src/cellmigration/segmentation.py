"""
Morphological segmentation of phase-contrast frames into binary cell masks.
"""

from typing import Sequence
import logging

import numpy as np
from scipy import ndimage
from skimage.filters import threshold_otsu
from skimage.morphology import disk

from .config import SegmentationConfig

logger = logging.getLogger(__name__)

# Orientations of the linear structuring elements, in degrees
LINE_ANGLES = (0, 30, 60, 90)

# 8-connectivity, matching the diagonal reach of the 30 and 60 degree lines
CONNECTIVITY = np.ones((3, 3), dtype=bool)


def line_footprint(length: int, angle: float) -> np.ndarray:
    """
    Centred linear structuring element.

    Parameters
    ----------
    length : int
        Number of pixels along the line
    angle : float
        Orientation in degrees, counter-clockwise from the x axis

    Returns
    -------
    np.ndarray
        Square boolean footprint with odd side length
    """
    if length < 1:
        raise ValueError(f"Line length must be >= 1, got {length}")

    theta = np.deg2rad(angle)
    cos, sin = np.cos(theta), np.sin(theta)
    # One pixel per step along the dominant axis keeps the line contiguous
    t = np.arange(int(length)) - (int(length) - 1) // 2
    if abs(cos) >= abs(sin):
        cols = np.sign(cos) * t
        rows = np.rint(-t * sin / abs(cos))
    else:
        # Rows grow downwards in image space
        rows = -np.sign(sin) * t
        cols = np.rint(t * cos / abs(sin))
    cols = cols.astype(int)
    rows = rows.astype(int)

    extent = int(max(np.abs(cols).max(), np.abs(rows).max()))
    footprint = np.zeros((2 * extent + 1, 2 * extent + 1), dtype=bool)
    footprint[rows + extent, cols + extent] = True
    return footprint


def union_footprint(length: int, angles: Sequence[float] = LINE_ANGLES) -> np.ndarray:
    """
    Union of centred lines at several orientations.

    Dilating with the union equals the union of the separate dilations.
    """
    lines = [line_footprint(length, angle) for angle in angles]
    size = max(fp.shape[0] for fp in lines)
    combined = np.zeros((size, size), dtype=bool)
    for fp in lines:
        pad = (size - fp.shape[0]) // 2
        combined[pad:pad + fp.shape[0], pad:pad + fp.shape[1]] |= fp
    return combined


def normalize_intensity(image: np.ndarray) -> np.ndarray:
    """Scale an integer image to [0, 1] by its dtype range; floats pass through."""
    if np.issubdtype(image.dtype, np.integer):
        info = np.iinfo(image.dtype)
        return (image.astype(np.float64) - info.min) / (info.max - info.min)
    return image.astype(np.float64)


class FrameSegmenter:
    """
    Converts grayscale frames into binary masks of candidate cell regions.

    The stage order matters: edges are closed and filled into blobs, shrunk back,
    cleared of bright halo pixels, then re-smoothed before small debris is removed.
    """

    def __init__(self, config: SegmentationConfig):
        self.config = config
        self._first_dilation = union_footprint(config.first_dilation_radius)
        self._second_dilation = union_footprint(config.second_dilation_radius)
        self._first_erosion = disk(config.first_erosion_radius).astype(bool)
        self._second_erosion = disk(config.second_erosion_radius).astype(bool)

    def segment(self, image: np.ndarray) -> np.ndarray:
        """
        Segment a single frame.

        Parameters
        ----------
        image : np.ndarray
            2D grayscale frame (8- or 16-bit)

        Returns
        -------
        np.ndarray
            Boolean mask with the same shape as the frame
        """
        if image.ndim != 2:
            raise ValueError(f"Expected a 2D frame, got shape {image.shape}")

        cfg = self.config
        mask = self.detect_edges(image, cfg.edge_threshold_factor)
        logger.debug(f"Edge pixels: {int(mask.sum())}")

        mask = self.dilate_lines(mask, self._first_dilation)
        mask = self.fill_holes(mask)
        mask = self.erode_disk(mask, self._first_erosion)

        mask = self.suppress_halo(mask, image, cfg.halo_brightness_threshold)

        mask = self.dilate_lines(mask, self._second_dilation)
        mask = self.fill_holes(mask)
        mask = self.erode_disk(mask, self._second_erosion)

        mask = self.remove_small_regions(mask, cfg.min_region_area)
        logger.debug(f"Foreground pixels after segmentation: {int(mask.sum())}")
        return mask

    @staticmethod
    def detect_edges(image: np.ndarray, threshold_factor: float) -> np.ndarray:
        """
        Sobel edge mask thresholded at a scaled Otsu level.

        The image is normalised to [0, 1] and the Sobel response divided by 8,
        so the gradient magnitude lives on the same scale as the Otsu level.
        """
        normalized = normalize_intensity(image)
        if normalized.min() == normalized.max():
            # Uniform frame: no edges and no meaningful Otsu level
            return np.zeros(image.shape, dtype=bool)

        threshold = float(threshold_otsu(normalized)) * threshold_factor
        gx = ndimage.sobel(normalized, axis=1) / 8.0
        gy = ndimage.sobel(normalized, axis=0) / 8.0
        magnitude = np.hypot(gx, gy)
        logger.debug(f"Edge threshold: {threshold:.4f}, max gradient: {magnitude.max():.4f}")
        return magnitude > threshold

    @staticmethod
    def dilate_lines(mask: np.ndarray, footprint: np.ndarray) -> np.ndarray:
        return ndimage.binary_dilation(mask, structure=footprint)

    @staticmethod
    def fill_holes(mask: np.ndarray) -> np.ndarray:
        return ndimage.binary_fill_holes(mask)

    @staticmethod
    def erode_disk(mask: np.ndarray, footprint: np.ndarray) -> np.ndarray:
        # Outside of the image counts as foreground so border cells keep their edge
        return ndimage.binary_erosion(mask, structure=footprint, border_value=1)

    @staticmethod
    def suppress_halo(mask: np.ndarray, image: np.ndarray, threshold: float) -> np.ndarray:
        """Clear mask pixels whose raw intensity is brighter than the halo threshold."""
        halo = image > threshold
        if halo.any():
            logger.debug(f"Clearing {int((mask & halo).sum())} halo pixels")
        return mask & ~halo

    @staticmethod
    def remove_small_regions(mask: np.ndarray, min_area: int) -> np.ndarray:
        """Drop 8-connected components with fewer than ``min_area`` pixels."""
        labels, n_labels = ndimage.label(mask, structure=CONNECTIVITY)
        if n_labels == 0:
            return np.zeros(mask.shape, dtype=bool)
        areas = np.bincount(labels.ravel())
        keep = areas >= min_area
        keep[0] = False
        return keep[labels]
