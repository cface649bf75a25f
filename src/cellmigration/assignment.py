"""
Nearest-centroid track initialization and frame-to-frame extension.

Assignment is greedy and per track: every track picks its own nearest region,
and two tracks are allowed to pick the same one.
"""

from dataclasses import dataclass, field
from typing import List, Sequence, Tuple
import logging

import numpy as np

from .errors import InvalidSeedPoint, NoRegionsAvailable
from .regions import Region, RegionExtractor

logger = logging.getLogger(__name__)


@dataclass
class Track:
    """Position sequence of one seeded cell, one (x, y) entry per processed frame."""

    track_id: int
    positions: List[Tuple[float, float]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.positions)

    @property
    def last_position(self) -> Tuple[float, float]:
        return self.positions[-1]

    def as_array(self) -> np.ndarray:
        return np.array(self.positions, dtype=np.float64).reshape(-1, 2)


def nearest_regions(points: np.ndarray, regions: List[Region]) -> np.ndarray:
    """
    Index of the nearest region centroid for every point.

    Each row of the distance matrix is independent; ``argmin`` returns the
    first minimum, so ties go to the earliest region in extraction order.
    """
    centroids = RegionExtractor.centroids(regions)
    diff = points[:, np.newaxis, :] - centroids[np.newaxis, :, :]
    distances = np.hypot(diff[..., 0], diff[..., 1])
    return np.argmin(distances, axis=1)


class TrackInitializer:
    """Bind user seed points to the regions detected in the first frame."""

    @staticmethod
    def validate_seeds(seeds: Sequence[Tuple[float, float]], frame_shape: Tuple[int, int]) -> np.ndarray:
        if len(seeds) == 0:
            raise InvalidSeedPoint("At least one seed point is required")

        height, width = frame_shape
        points = []
        for seed in seeds:
            x, y = float(seed[0]), float(seed[1])
            if not (0 <= x < width and 0 <= y < height):
                raise InvalidSeedPoint(
                    f"Seed point ({x}, {y}) lies outside the {width}x{height} frame",
                    seed=(x, y),
                )
            points.append((x, y))
        return np.array(points, dtype=np.float64)

    @staticmethod
    def initialize(
        regions: List[Region],
        seeds: Sequence[Tuple[float, float]],
        frame_shape: Tuple[int, int],
    ) -> List[Track]:
        """
        Create one track per seed, starting at the nearest frame-1 centroid.

        Parameters
        ----------
        regions : List[Region]
            Regions of frame 1
        seeds : Sequence[Tuple[float, float]]
            (x, y) seed points in frame-1 image space
        frame_shape : Tuple[int, int]
            (height, width) of the frames

        Returns
        -------
        List[Track]
            Tracks with ids 1..M, each holding exactly one position
        """
        points = TrackInitializer.validate_seeds(seeds, frame_shape)
        if not regions:
            raise NoRegionsAvailable(frame_index=1)

        chosen = nearest_regions(points, regions)
        tracks = []
        for i, region_idx in enumerate(chosen):
            region = regions[region_idx]
            tracks.append(Track(track_id=i + 1, positions=[(region.x, region.y)]))
            logger.debug(
                f"Track {i + 1}: seed ({points[i][0]:.1f}, {points[i][1]:.1f}) -> "
                f"region {region.label} at ({region.x:.2f}, {region.y:.2f})"
            )

        shared = len(chosen) - len(set(chosen.tolist()))
        if shared:
            logger.warning(f"{shared} seed point(s) share a region with another seed")
        return tracks


class SequentialTracker:
    """
    Extends a fixed set of tracks frame by frame.

    The tracker owns its tracks during the walk. Every track stays alive for the
    whole sequence; there is no termination or re-acquisition.
    """

    def __init__(self, tracks: List[Track]):
        if not tracks:
            raise ValueError("SequentialTracker needs at least one track")
        self.tracks = tracks
        self.frame_index = len(tracks[0])

    @classmethod
    def from_seeds(
        cls,
        regions: List[Region],
        seeds: Sequence[Tuple[float, float]],
        frame_shape: Tuple[int, int],
    ) -> "SequentialTracker":
        return cls(TrackInitializer.initialize(regions, seeds, frame_shape))

    def step(self, regions: List[Region]) -> None:
        """
        Advance every track to the next frame.

        Raises
        ------
        NoRegionsAvailable
            If the next frame has no regions; tracks are left untouched
        """
        frame_index = self.frame_index + 1
        if not regions:
            raise NoRegionsAvailable(frame_index=frame_index)

        previous = np.array([t.last_position for t in self.tracks], dtype=np.float64)
        chosen = nearest_regions(previous, regions)
        for track, region_idx in zip(self.tracks, chosen):
            region = regions[region_idx]
            track.positions.append((region.x, region.y))

        self.frame_index = frame_index
        logger.debug(f"Frame {frame_index}: assigned {len(self.tracks)} tracks among {len(regions)} regions")

    def run(self, regions_per_frame: Sequence[List[Region]]) -> List[Track]:
        """Step through the regions of frames 2..N and return the tracks."""
        for regions in regions_per_frame:
            self.step(regions)
        return self.tracks
