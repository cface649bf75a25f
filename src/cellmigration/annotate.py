"""
Per-frame track overlays for visual inspection.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Tuple
import logging

import numpy as np
import tifffile
from skimage.draw import disk, line

from .assignment import Track
from .segmentation import normalize_intensity

logger = logging.getLogger(__name__)

# Cycled per track id
TRACK_COLORS = np.array(
    [
        (230, 25, 75),
        (60, 180, 75),
        (255, 225, 25),
        (0, 130, 200),
        (245, 130, 48),
        (145, 30, 180),
        (70, 240, 240),
        (240, 50, 230),
    ],
    dtype=np.uint8,
)


@dataclass(frozen=True)
class FrameAnnotation:
    """Current positions and paths so far of every track at one frame."""

    frame: int
    positions: Dict[int, Tuple[float, float]]
    paths: Dict[int, List[Tuple[float, float]]]


def annotation_frames(tracks: List[Track]) -> Iterator[FrameAnnotation]:
    """Yield one annotation per frame, from frame 1 to the length of the tracks."""
    if not tracks:
        return
    n_frames = len(tracks[0])
    for k in range(1, n_frames + 1):
        yield FrameAnnotation(
            frame=k,
            positions={t.track_id: t.positions[k - 1] for t in tracks},
            paths={t.track_id: list(t.positions[:k]) for t in tracks},
        )


def render_overlay(images: np.ndarray, tracks: List[Track], marker_radius: int = 3) -> np.ndarray:
    """
    Draw track paths and current positions over the frames.

    Parameters
    ----------
    images : np.ndarray
        Grayscale stack of shape (T, H, W)
    tracks : List[Track]
        Completed tracks, each with T positions
    marker_radius : int
        Radius of the dot drawn at the current position

    Returns
    -------
    np.ndarray
        RGB uint8 stack of shape (T, H, W, 3)
    """
    gray = normalize_intensity(np.asarray(images))
    lo, hi = gray.min(), gray.max()
    if hi > lo:
        gray = (gray - lo) / (hi - lo)
    rgb = np.repeat((gray * 255).astype(np.uint8)[..., np.newaxis], 3, axis=-1)
    shape = rgb.shape[1:3]

    for annotation in annotation_frames(tracks):
        canvas = rgb[annotation.frame - 1]
        for track_id, path in annotation.paths.items():
            color = TRACK_COLORS[(track_id - 1) % len(TRACK_COLORS)]
            for (x0, y0), (x1, y1) in zip(path[:-1], path[1:]):
                rr, cc = line(int(round(y0)), int(round(x0)), int(round(y1)), int(round(x1)))
                inside = (rr >= 0) & (rr < shape[0]) & (cc >= 0) & (cc < shape[1])
                canvas[rr[inside], cc[inside]] = color
            x, y = annotation.positions[track_id]
            rr, cc = disk((y, x), marker_radius, shape=shape)
            canvas[rr, cc] = color

    return rgb


def save_overlay(output_path: Path, images: np.ndarray, tracks: List[Track]) -> None:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    tifffile.imwrite(output_path, render_overlay(images, tracks), photometric="rgb")
    logger.info(f"Saved track overlay to {output_path}")
