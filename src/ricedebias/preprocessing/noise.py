"""
Noise Specification

The ``--rician`` option resolves to exactly one of three noise modes:

- NoNoise: no correction, signals pass through
- ScalarNoise: one noise level for every voxel
- NoiseMap: one noise level per voxel, shared by the whole series

A value that parses as a finite number is always a scalar noise level, even if a
file of that name exists. Anything else that is not ``none`` is a path.
"""

import math
from dataclasses import dataclass
from typing import Callable, Optional, Union

from ..data.volume import NONE_SENTINEL, Volume, check_compatible, load_spatial_volume
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class NoNoise:
    """No noise level given; the correction is skipped."""

    @property
    def mode(self) -> str:
        return "none"


@dataclass(frozen=True)
class ScalarNoise:
    """Single noise level applied uniformly."""
    sigma: float

    @property
    def mode(self) -> str:
        return "scalar"

    @property
    def is_active(self) -> bool:
        """Non-positive levels leave signals uncorrected"""
        return self.sigma > 0


@dataclass(frozen=True)
class NoiseMap:
    """Per-voxel noise level."""
    volume: Volume

    @property
    def mode(self) -> str:
        return "map"


NoiseSpecification = Union[NoNoise, ScalarNoise, NoiseMap]


def parse_float(raw: str) -> Optional[float]:
    """Full-string float parse, None when ``raw`` is not a finite number"""
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    # inf and nan spellings are treated as file names
    return value if math.isfinite(value) else None


def resolve_noise(
    raw: Optional[str],
    loader: Callable[[str], Volume] = load_spatial_volume,
) -> NoiseSpecification:
    """
    Resolve the raw ``--rician`` value to a noise specification

    Parameters
    ----------
    raw : str or None
        Option value: ``none``, a number, or a path to a NIfTI noise map
    loader : callable
        Loads the noise map when ``raw`` is a path

    Returns
    -------
    NoiseSpecification
    """
    if raw is None or raw == NONE_SENTINEL:
        logger.info("Rician noise: none, signals are passed through")
        return NoNoise()

    value = parse_float(raw)
    if value is not None:
        if value > 0:
            logger.info(f"Rician noise: scalar sigma={value:g}")
        else:
            logger.warning(f"Rician noise level {value:g} is not positive, signals are passed through")
        return ScalarNoise(value)

    logger.info(f"Rician noise: map {raw}")
    return NoiseMap(loader(raw))


def validate_noise(noise: NoiseSpecification, reference: Volume):
    """Check that a noise map lies on the voxel grid of ``reference``"""
    if isinstance(noise, NoiseMap):
        check_compatible(reference, noise.volume)
