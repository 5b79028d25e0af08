"""
ricedebias Data Module

Volume containers, geometry checks, and NIfTI input/output.
"""

from .volume import (
    Volume,
    VolumeLoadError,
    GeometryMismatchError,
    compatible,
    check_compatible,
    geometry_mismatch,
    load_volume,
    load_input_volume,
    load_spatial_volume,
    load_optional_volume,
)

from .output import OutputVolume

__all__ = [
    # Volume
    'Volume',
    'VolumeLoadError',
    'GeometryMismatchError',
    'compatible',
    'check_compatible',
    'geometry_mismatch',
    'load_volume',
    'load_input_volume',
    'load_spatial_volume',
    'load_optional_volume',

    # Output
    'OutputVolume',
]
