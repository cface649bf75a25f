"""
Core cell migration tracking pipeline.
"""

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple
import numpy as np
import logging
import typer

from .annotate import save_overlay
from .assignment import SequentialTracker, Track
from .config import PipelineConfig
from .errors import CellMigrationError
from .io import FrameStack, save_masks
from .regions import Region, RegionExtractor
from .segmentation import FrameSegmenter
from .tracks import KinematicRecord, KinematicsCalculator, TrackExporter

# Setup logger
logger = logging.getLogger(__name__)


class CellTracker:
    """
    Seeded cell tracking for phase-contrast timelapse stacks.

    This class handles the complete workflow:
    1. Segment every frame into a binary cell mask
    2. Extract region centroids per frame
    3. Bind seed points to frame-1 regions and follow them by nearest centroid
    4. Derive kinematics from the finished tracks
    """

    def __init__(self, config: PipelineConfig):
        """
        Initialize the CellTracker.

        Parameters
        ----------
        config : PipelineConfig
            Segmentation and kinematics parameters
        """
        self.config = config
        self.segmenter = FrameSegmenter(config.segmentation)

    def segment_frame(self, image: np.ndarray) -> Tuple[np.ndarray, List[Region]]:
        """
        Segment a single frame and extract its regions.

        Parameters
        ----------
        image : np.ndarray
            2D grayscale frame

        Returns
        -------
        Tuple[np.ndarray, List[Region]]
            Binary mask and the regions found in it
        """
        mask = self.segmenter.segment(image)
        # Small components were already removed by the segmenter
        regions = RegionExtractor.extract(mask)
        logger.debug(f"Found {len(regions)} regions")
        return mask, regions

    def segment_timelapse(self, stack: FrameStack) -> Tuple[np.ndarray, List[List[Region]]]:
        """
        Segment every frame of a stack, in frame order.

        Returns
        -------
        Tuple[np.ndarray, List[List[Region]]]
            Masks with shape (T, H, W) and regions per frame
        """
        n_frames = stack.frame_count()
        logger.info(f"Starting segmentation of {n_frames} frames, frame shape {stack.frame_shape}")

        masks = np.zeros((n_frames,) + tuple(stack.frame_shape), dtype=bool)
        regions_per_frame = []
        for frame in stack:
            logger.info(f"Processing frame {frame.index}/{n_frames}")
            mask, regions = self.segment_frame(frame.image)
            masks[frame.index - 1] = mask
            regions_per_frame.append(regions)

        counts = [len(r) for r in regions_per_frame]
        logger.info(f"Segmentation complete. Regions per frame: min={min(counts)}, max={max(counts)}")
        return masks, regions_per_frame

    def track(
        self,
        regions_per_frame: Sequence[List[Region]],
        seeds: Sequence[Tuple[float, float]],
        frame_shape: Tuple[int, int],
    ) -> List[Track]:
        """
        Follow the seeded cells through all frames.

        Parameters
        ----------
        regions_per_frame : Sequence[List[Region]]
            Regions of frames 1..N
        seeds : Sequence[Tuple[float, float]]
            (x, y) seed points in frame 1
        frame_shape : Tuple[int, int]
            (height, width) of the frames

        Returns
        -------
        List[Track]
            One track per seed, each with N positions
        """
        logger.info(f"Initializing {len(seeds)} tracks from seed points")
        try:
            tracker = SequentialTracker.from_seeds(regions_per_frame[0], seeds, frame_shape)
            tracks = tracker.run(regions_per_frame[1:])
        except CellMigrationError as e:
            logger.error(f"Tracking aborted: {e}")
            raise

        logger.info(f"Tracking complete: {len(tracks)} tracks over {tracker.frame_index} frames")
        return tracks

    def process_timelapse(
        self,
        stack: FrameStack,
        seeds: Sequence[Tuple[float, float]],
    ) -> Tuple[np.ndarray, List[Track]]:
        """
        Complete pipeline: segment frames and track seeded cells.

        Returns
        -------
        Tuple[np.ndarray, List[Track]]
            Segmentation masks and finished tracks
        """
        typer.echo("Segmenting cells...")
        masks, regions_per_frame = self.segment_timelapse(stack)

        typer.echo("Tracking cells...")
        tracks = self.track(regions_per_frame, seeds, stack.frame_shape)

        return masks, tracks

    def compute_kinematics(self, tracks: List[Track]) -> Dict[int, List[KinematicRecord]]:
        return KinematicsCalculator.compute_all(tracks, self.config.kinematics)

    def save_intermediate_results(
        self,
        output_dir: Path,
        masks: np.ndarray,
        stack: Optional[FrameStack] = None,
        tracks: Optional[List[Track]] = None,
    ) -> None:
        """
        Save segmentation masks and, if given, the track overlay.

        Parameters
        ----------
        output_dir : Path
            Directory to save results
        masks : np.ndarray
            Segmentation masks
        stack : Optional[FrameStack]
            Source frames for the overlay
        tracks : Optional[List[Track]]
            Tracks to draw on the overlay
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        typer.echo("Saving intermediate segmentation masks...")
        save_masks(output_dir / "masks.tiff", masks)

        if stack is not None and tracks:
            typer.echo("Saving track overlay...")
            save_overlay(output_dir / "tracks_overlay.tiff", stack.images, tracks)

        typer.echo(f"Intermediate results saved to {output_dir}")

    def export_tracks(
        self,
        tracks: List[Track],
        output_dir: Path,
        formats: List[str] = ["csv", "json"],
    ) -> Dict[int, List[KinematicRecord]]:
        """
        Compute kinematics and export them in multiple formats.

        Parameters
        ----------
        tracks : List[Track]
            Finished tracks
        output_dir : Path
            Directory to save track exports
        formats : List[str]
            Output formats: "csv", "json", "summary"

        Returns
        -------
        Dict[int, List[KinematicRecord]]
            Per-frame records keyed by track id
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        typer.echo("Computing track kinematics...")
        results = self.compute_kinematics(tracks)

        # Export in requested formats
        if "csv" in formats:
            TrackExporter.to_csv(results, output_dir / "tracks.csv")

        if "json" in formats:
            TrackExporter.to_json(
                results,
                output_dir / "tracks.json",
                include_statistics=True,
            )

        if "summary" in formats:
            TrackExporter.to_summary_csv(
                results,
                output_dir / "tracks_summary.csv",
            )

        return results
