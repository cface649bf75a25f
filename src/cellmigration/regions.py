"""
Connected-component extraction of cell regions from binary masks.
"""

from dataclasses import dataclass
from typing import List
import logging

import numpy as np
from scipy import ndimage

from .segmentation import CONNECTIVITY

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Region:
    """One connected foreground component of a mask; x is the column, y the row."""

    label: int
    area: int
    x: float
    y: float

    @property
    def centroid(self):
        return (self.x, self.y)


class RegionExtractor:
    """Label binary masks and measure their components."""

    @staticmethod
    def extract(mask: np.ndarray, min_area: int = 0) -> List[Region]:
        """
        Extract regions from a single binary mask.

        Parameters
        ----------
        mask : np.ndarray
            2D boolean mask
        min_area : int
            Components with fewer pixels are discarded

        Returns
        -------
        List[Region]
            Regions in raster-scan label order (may be empty)
        """
        labels, n_labels = ndimage.label(mask, structure=CONNECTIVITY)
        if n_labels == 0:
            return []

        areas = np.bincount(labels.ravel(), minlength=n_labels + 1)
        index = np.arange(1, n_labels + 1)
        centers = ndimage.center_of_mass(mask, labels, index)

        regions = []
        for label_id, (row, col) in zip(index, centers):
            area = int(areas[label_id])
            if area < min_area:
                continue
            regions.append(Region(label=int(label_id), area=area, x=float(col), y=float(row)))

        logger.debug(f"Extracted {len(regions)} regions from {n_labels} components")
        return regions

    @staticmethod
    def centroids(regions: List[Region]) -> np.ndarray:
        """(R, 2) array of (x, y) centroids, in region order."""
        if not regions:
            return np.empty((0, 2), dtype=np.float64)
        return np.array([(r.x, r.y) for r in regions], dtype=np.float64)
