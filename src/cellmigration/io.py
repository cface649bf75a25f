"""
Image stack and seed point input.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence, Tuple
import csv
import logging

import numpy as np
import tifffile
from PIL import Image

from .errors import CellMigrationError, EmptyFrameSource, InconsistentFrameDimensions, InvalidSeedPoint

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("*.jpg", "*.jpeg", "*.png", "*.tiff", "*.tif")


@dataclass(frozen=True)
class Frame:
    """One read-only grayscale frame with its 1-based position in the stack."""

    index: int
    image: np.ndarray

    @property
    def shape(self) -> Tuple[int, int]:
        return self.image.shape


class FrameStack:
    """
    Read-only multi-frame image stack.

    Parameters
    ----------
    images : np.ndarray or sequence of np.ndarray
        Frames of shape (T, H, W), a list of (H, W) arrays, or a single (H, W) frame
    """

    def __init__(self, images):
        if isinstance(images, np.ndarray):
            frames = [images] if images.ndim == 2 else list(images)
        else:
            frames = list(images)

        if len(frames) == 0:
            raise EmptyFrameSource("Image stack contains no frames")

        shape = frames[0].shape
        for i, frame in enumerate(frames, start=1):
            if frame.ndim != 2:
                raise InconsistentFrameDimensions(
                    f"Frame {i} has shape {frame.shape}; expected 2D grayscale frames"
                )
            if frame.shape != shape:
                raise InconsistentFrameDimensions(
                    f"Frame {i} has shape {frame.shape}, frame 1 has {shape}"
                )

        self._images = np.stack(frames)
        self._images.setflags(write=False)

    @property
    def images(self) -> np.ndarray:
        return self._images

    @property
    def frame_shape(self) -> Tuple[int, int]:
        return self._images.shape[1:]

    def frame_count(self) -> int:
        return self._images.shape[0]

    def get_frame(self, index: int) -> Frame:
        """Frame with 1-based ``index``."""
        if not 1 <= index <= self.frame_count():
            raise IndexError(f"Frame index {index} outside 1..{self.frame_count()}")
        return Frame(index=index, image=self._images[index - 1])

    def __len__(self) -> int:
        return self.frame_count()

    def __iter__(self):
        for index in range(1, self.frame_count() + 1):
            yield self.get_frame(index)

    @classmethod
    def from_path(cls, input_path: Path) -> "FrameStack":
        """
        Load a multi-page TIFF, or a directory of image files sorted by name.
        """
        input_path = Path(input_path)
        if input_path.is_dir():
            return cls(load_image_sequence(input_path))

        logger.info(f"Loading image stack from {input_path}")
        images = tifffile.imread(input_path)
        if images.ndim >= 3 and images.shape[-1] in (3, 4):
            # RGB(A) pages
            images = _to_grayscale(images)
        return cls(images)


def _to_grayscale(image: np.ndarray) -> np.ndarray:
    if image.ndim >= 3 and image.shape[-1] in (3, 4):
        return image[..., :3].mean(axis=-1).astype(image.dtype)
    return image


def load_image_sequence(input_dir: Path) -> List[np.ndarray]:
    """Read every supported image file in a directory, sorted by file name."""
    image_files = []
    for fmt in SUPPORTED_FORMATS:
        image_files.extend(input_dir.glob(fmt))
        image_files.extend(input_dir.glob(fmt.upper()))
    image_files = sorted(set(image_files))

    if not image_files:
        raise EmptyFrameSource(f"No image files found in {input_dir}")

    logger.info(f"Loading {len(image_files)} images from {input_dir}")
    images = []
    for img_path in image_files:
        with Image.open(img_path) as img:
            images.append(_to_grayscale(np.array(img)))
    return images


def parse_seed(text: str) -> Tuple[float, float]:
    """Parse an ``"x,y"`` string into a seed point."""
    parts = [p.strip() for p in text.split(",")]
    if len(parts) != 2:
        raise InvalidSeedPoint(f"Seed point must look like 'x,y', got {text!r}")
    try:
        return float(parts[0]), float(parts[1])
    except ValueError as e:
        raise InvalidSeedPoint(f"Seed point must look like 'x,y', got {text!r}") from e


def load_seeds(seeds_path: Path) -> List[Tuple[float, float]]:
    """
    Read seed points from a CSV file with ``x`` and ``y`` columns.
    """
    seeds_path = Path(seeds_path)
    seeds = []
    with open(seeds_path, newline="") as f:
        reader = csv.DictReader(f)
        if reader.fieldnames is None or not {"x", "y"} <= set(reader.fieldnames):
            raise CellMigrationError(f"{seeds_path} must have 'x' and 'y' columns")
        for line_no, row in enumerate(reader, start=2):
            try:
                seeds.append((float(row["x"]), float(row["y"])))
            except (TypeError, ValueError) as e:
                raise InvalidSeedPoint(f"{seeds_path}:{line_no}: invalid seed point {row}") from e

    logger.info(f"Loaded {len(seeds)} seed points from {seeds_path}")
    return seeds


def save_masks(output_path: Path, masks: Sequence[np.ndarray]) -> None:
    """Write binary masks as an 8-bit TIFF stack (255 = foreground)."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    tifffile.imwrite(output_path, (np.asarray(masks, dtype=bool) * 255).astype(np.uint8))
