"""
Kinematic analysis and export of cell tracks.

Turns per-frame track positions into step lengths, path length, displacement,
velocity and turning angles, and writes them out as CSV or JSON.
"""

from dataclasses import dataclass, asdict
from typing import Dict, Iterator, List, Tuple
from pathlib import Path
import json
import csv
import logging
import math

import numpy as np

from .assignment import Track
from .config import KinematicsConfig

logger = logging.getLogger(__name__)

# Column order of the per-frame result table
RESULT_COLUMNS = [
    "track_id",
    "frame",
    "time",
    "x",
    "y",
    "step",
    "length",
    "displacement_to_start",
    "velocity",
    "heading",
    "turning_angle",
    "cos_turning_angle",
]


@dataclass(frozen=True)
class KinematicRecord:
    """Derived quantities of one track at one frame. NaN marks undefined values."""

    track_id: int
    frame: int
    time: float
    x: float
    y: float
    step: float
    length: float
    displacement_to_start: float
    velocity: float
    heading: float
    turning_angle: float
    cos_turning_angle: float

    def as_row(self) -> Tuple:
        return tuple(getattr(self, name) for name in RESULT_COLUMNS)


class KinematicsCalculator:
    """Pure derivations of motion descriptors from track positions."""

    @staticmethod
    def compute_arrays(positions: np.ndarray, config: KinematicsConfig) -> Dict[str, np.ndarray]:
        """
        Per-frame kinematic series for one track.

        Parameters
        ----------
        positions : np.ndarray
            (N, 2) array of (x, y) positions, one per frame
        config : KinematicsConfig
            Frame interval and pixel size

        Returns
        -------
        Dict[str, np.ndarray]
            Arrays of length N keyed by quantity name
        """
        positions = np.asarray(positions, dtype=np.float64).reshape(-1, 2)
        n = positions.shape[0]
        nan = np.full(n, np.nan)

        deltas = np.diff(positions, axis=0)
        dx, dy = deltas[:, 0], deltas[:, 1]

        step = nan.copy()
        step[1:] = config.pixel_size * np.hypot(dx, dy)

        # Sequential accumulation keeps length[k] identical to sum(step[2..k])
        length = np.zeros(n)
        length[1:] = np.cumsum(step[1:])

        offsets = positions - positions[0]
        displacement = config.pixel_size * np.hypot(offsets[:, 0], offsets[:, 1])

        velocity = step / config.frame_interval

        # Two-quadrant heading: dx == 0 maps to +-90, no movement stays NaN
        heading = nan.copy()
        with np.errstate(divide="ignore", invalid="ignore"):
            heading[1:] = np.degrees(np.arctan(dy / dx))

        turning = nan.copy()
        turning[2:] = heading[2:] - heading[1:-1]
        cos_turning = np.cos(np.radians(turning))

        return {
            "time": np.arange(n) * config.frame_interval,
            "step": step,
            "length": length,
            "displacement_to_start": displacement,
            "velocity": velocity,
            "heading": heading,
            "turning_angle": turning,
            "cos_turning_angle": cos_turning,
        }

    @staticmethod
    def compute(track: Track, config: KinematicsConfig) -> List[KinematicRecord]:
        positions = track.as_array()
        series = KinematicsCalculator.compute_arrays(positions, config)

        records = []
        for k in range(positions.shape[0]):
            records.append(
                KinematicRecord(
                    track_id=track.track_id,
                    frame=k + 1,
                    time=float(series["time"][k]),
                    x=float(positions[k, 0]),
                    y=float(positions[k, 1]),
                    step=float(series["step"][k]),
                    length=float(series["length"][k]),
                    displacement_to_start=float(series["displacement_to_start"][k]),
                    velocity=float(series["velocity"][k]),
                    heading=float(series["heading"][k]),
                    turning_angle=float(series["turning_angle"][k]),
                    cos_turning_angle=float(series["cos_turning_angle"][k]),
                )
            )
        return records

    @staticmethod
    def compute_all(tracks: List[Track], config: KinematicsConfig) -> Dict[int, List[KinematicRecord]]:
        return {track.track_id: KinematicsCalculator.compute(track, config) for track in tracks}

    @staticmethod
    def compute_track_statistics(records: List[KinematicRecord]) -> Dict:
        """
        Summary statistics for a single track.

        Parameters
        ----------
        records : List[KinematicRecord]
            Per-frame records of one track, in frame order

        Returns
        -------
        Dict
            Totals, mean and max velocity, straightness and directional persistence
        """
        if not records:
            return {}

        first, last = records[0], records[-1]
        velocities = np.array([r.velocity for r in records[1:]], dtype=np.float64)
        cosines = np.array([r.cos_turning_angle for r in records], dtype=np.float64)
        cosines = cosines[np.isfinite(cosines)]
        velocities = velocities[np.isfinite(velocities)]

        if last.length > 0:
            straightness = last.displacement_to_start / last.length
        else:
            straightness = math.nan

        return {
            "n_frames": len(records),
            "start_position": (first.x, first.y),
            "end_position": (last.x, last.y),
            "total_length": last.length,
            "net_displacement": last.displacement_to_start,
            "mean_velocity": float(velocities.mean()) if velocities.size else math.nan,
            "max_velocity": float(velocities.max()) if velocities.size else math.nan,
            "straightness": straightness,
            "mean_cos_turning_angle": float(cosines.mean()) if cosines.size else math.nan,
        }


def _format(value) -> str:
    if isinstance(value, float):
        return "NaN" if math.isnan(value) else f"{value:.4f}"
    return str(value)


def _json_safe(value):
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, tuple):
        return [_json_safe(v) for v in value]
    return value


class TrackExporter:
    """Export kinematic tables in various formats."""

    @staticmethod
    def iter_rows(results: Dict[int, List[KinematicRecord]]) -> Iterator[Tuple]:
        for track_id in sorted(results.keys()):
            for record in results[track_id]:
                yield record.as_row()

    @staticmethod
    def to_csv(
        results: Dict[int, List[KinematicRecord]],
        output_path: Path,
    ) -> None:
        """
        Export per-frame kinematics to CSV.

        Columns follow ``RESULT_COLUMNS``. Undefined values are written as NaN.

        Parameters
        ----------
        results : Dict
            Mapping of track_id -> per-frame records
        output_path : Path
            Output file path
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, "w", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(RESULT_COLUMNS)
            for row in TrackExporter.iter_rows(results):
                writer.writerow([_format(v) for v in row])

        logger.info(f"Exported {len(results)} tracks to {output_path}")

    @staticmethod
    def to_json(
        results: Dict[int, List[KinematicRecord]],
        output_path: Path,
        include_statistics: bool = True,
    ) -> None:
        """
        Export kinematics to JSON, with optional per-track statistics.

        NaN values become null.
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "tracks": {},
            "statistics": {},
        }

        for track_id in sorted(results.keys()):
            records = results[track_id]
            data["tracks"][str(track_id)] = [
                {key: _json_safe(value) for key, value in asdict(record).items() if key != "track_id"}
                for record in records
            ]

            if include_statistics:
                stats = KinematicsCalculator.compute_track_statistics(records)
                data["statistics"][str(track_id)] = {k: _json_safe(v) for k, v in stats.items()}

        with open(output_path, "w") as f:
            json.dump(data, f, indent=2)

        logger.info(f"Exported {len(results)} tracks to {output_path}")

    @staticmethod
    def to_summary_csv(
        results: Dict[int, List[KinematicRecord]],
        output_path: Path,
    ) -> None:
        """One row of summary statistics per track."""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        rows = []
        for track_id in sorted(results.keys()):
            stats = KinematicsCalculator.compute_track_statistics(results[track_id])
            if not stats:
                continue
            start_x, start_y = stats.pop("start_position")
            end_x, end_y = stats.pop("end_position")
            row = {"track_id": track_id, "start_x": start_x, "start_y": start_y, "end_x": end_x, "end_y": end_y}
            row.update(stats)
            rows.append({k: _format(v) for k, v in row.items()})

        if not rows:
            logger.warning("No tracks to export")
            return

        with open(output_path, "w", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=list(rows[0].keys()))
            writer.writeheader()
            writer.writerows(rows)

        logger.info(f"Exported statistics for {len(rows)} tracks to {output_path}")
