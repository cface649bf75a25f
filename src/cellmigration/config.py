"""
Pipeline configuration.

Morphology and kinematics parameters depend on image resolution and cell size,
so none of them has a default: every value must be given explicitly.
"""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict
import json
import logging

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SegmentationConfig:
    """
    Parameters of the frame segmentation pipeline.

    Parameters
    ----------
    edge_threshold_factor : float
        Multiplier applied to the Otsu level before Sobel edge detection
    first_dilation_radius : int
        Length in pixels of the linear structuring elements of the first dilation
    first_erosion_radius : int
        Radius of the disk used by the first erosion
    halo_brightness_threshold : float
        Raw intensity above which pixels are treated as halo and cleared
    second_dilation_radius : int
        Length of the linear structuring elements of the second dilation
    second_erosion_radius : int
        Radius of the disk used by the second erosion
    min_region_area : int
        Connected components smaller than this (in pixels) are discarded
    """

    edge_threshold_factor: float
    first_dilation_radius: int
    first_erosion_radius: int
    halo_brightness_threshold: float
    second_dilation_radius: int
    second_erosion_radius: int
    min_region_area: int

    def __post_init__(self):
        if not self.edge_threshold_factor > 0:
            raise ConfigurationError("edge_threshold_factor must be positive")
        for name in ("first_dilation_radius", "second_dilation_radius"):
            _check_int(name, getattr(self, name), minimum=1)
        for name in ("first_erosion_radius", "second_erosion_radius", "min_region_area"):
            _check_int(name, getattr(self, name), minimum=0)


@dataclass(frozen=True)
class KinematicsConfig:
    """Time between frames and physical size of one pixel."""

    frame_interval: float
    pixel_size: float

    def __post_init__(self):
        if not self.frame_interval > 0:
            raise ConfigurationError("frame_interval must be positive")
        if not self.pixel_size > 0:
            raise ConfigurationError("pixel_size must be positive")


@dataclass(frozen=True)
class PipelineConfig:
    segmentation: SegmentationConfig
    kinematics: KinematicsConfig

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PipelineConfig":
        """
        Build a configuration from a flat mapping of parameter names to values.

        Raises
        ------
        ConfigurationError
            If a parameter is missing, unknown or invalid
        """
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration must be a mapping of parameter names to values")

        seg_names = [f.name for f in fields(SegmentationConfig)]
        kin_names = [f.name for f in fields(KinematicsConfig)]

        unknown = sorted(set(data) - set(seg_names) - set(kin_names))
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")

        missing = [name for name in seg_names + kin_names if name not in data]
        if missing:
            raise ConfigurationError(f"Missing configuration keys: {', '.join(missing)}")

        try:
            segmentation = SegmentationConfig(
                edge_threshold_factor=float(data["edge_threshold_factor"]),
                first_dilation_radius=data["first_dilation_radius"],
                first_erosion_radius=data["first_erosion_radius"],
                halo_brightness_threshold=float(data["halo_brightness_threshold"]),
                second_dilation_radius=data["second_dilation_radius"],
                second_erosion_radius=data["second_erosion_radius"],
                min_region_area=data["min_region_area"],
            )
            kinematics = KinematicsConfig(
                frame_interval=float(data["frame_interval"]),
                pixel_size=float(data["pixel_size"]),
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration value: {e}") from e

        return cls(segmentation=segmentation, kinematics=kinematics)

    def to_dict(self) -> Dict[str, Any]:
        data = {f.name: getattr(self.segmentation, f.name) for f in fields(SegmentationConfig)}
        data.update({f.name: getattr(self.kinematics, f.name) for f in fields(KinematicsConfig)})
        return data


def _check_int(name: str, value: Any, minimum: int) -> None:
    # bool is an int subclass but never a meaningful radius
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}")


def load_config(config_path: Path) -> PipelineConfig:
    """
    Load the pipeline configuration from a JSON file.

    Parameters
    ----------
    config_path : Path
        JSON file holding one flat object with every parameter

    Returns
    -------
    PipelineConfig
        Validated configuration
    """
    config_path = Path(config_path)
    try:
        with open(config_path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Could not parse {config_path}: {e}") from e

    config = PipelineConfig.from_dict(data)
    logger.info(f"Loaded configuration from {config_path}: {config.to_dict()}")
    return config
