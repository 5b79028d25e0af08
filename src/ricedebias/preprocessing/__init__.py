"""
Preprocessing Module

Rician bias correction of diffusion MRI magnitude data.

Main Components:
- RicianDebiasPipeline: Validation, correction and output for one run
- RicianBiasCorrector: Thread-parallel voxel-wise correction
- resolve_noise: Noise specification from the --rician option
- ricedebias: Scalar Rician bias correction
"""

from .rician import ricedebias, ricedebias_array, rician_mean, RICIAN_FLOOR
from .noise import (
    NoNoise,
    ScalarNoise,
    NoiseMap,
    NoiseSpecification,
    resolve_noise,
    validate_noise,
)
from .rician_correction import (
    RicianBiasCorrector,
    RicianCorrectionMetrics,
    RicianCorrectionError,
    series_chunks,
)
from .pipeline import RicianDebiasPipeline, PipelineError

__all__ = [
    # Correction function
    "ricedebias",
    "ricedebias_array",
    "rician_mean",
    "RICIAN_FLOOR",
    # Noise specification
    "NoNoise",
    "ScalarNoise",
    "NoiseMap",
    "NoiseSpecification",
    "resolve_noise",
    "validate_noise",
    # Correction engine
    "RicianBiasCorrector",
    "RicianCorrectionMetrics",
    "RicianCorrectionError",
    "series_chunks",
    # Pipeline
    "RicianDebiasPipeline",
    "PipelineError",
]
