#!/usr/bin/env python
"""
Volume Module for ricedebias

Container for NIfTI scalar volumes together with the geometry needed to
compare them: spatial extent, voxel spacing and the affine coordinate
transform. Masks and noise maps are only usable when their geometry matches
the input volume exactly.
"""

from pathlib import Path
from typing import Optional, Tuple, Union

import nibabel as nib
import numpy as np

from ..utils.logger import get_logger

logger = get_logger(__name__)

NONE_SENTINEL = "none"

MISMATCH_EXTENT = "extent"
MISMATCH_SPACING = "spacing"
MISMATCH_COORDINATES = "coordinate frame"


class VolumeLoadError(Exception):
    """Exception raised for errors during NIfTI loading"""
    pass


class GeometryMismatchError(Exception):
    """Exception raised when two volumes do not share a voxel grid"""

    def __init__(self, message: str, kind: str, reference: str, other: str):
        super().__init__(message)
        self.kind = kind
        self.reference = reference
        self.other = other


class Volume:
    """
    Scalar volume with up to four axes ``(i, j, k, t)``

    A volume built without data is *empty*; empty volumes stand in for
    optional inputs that were not supplied.
    """

    def __init__(
        self,
        data: Optional[np.ndarray] = None,
        affine: Optional[np.ndarray] = None,
        header: Optional[nib.nifti1.Nifti1Header] = None,
        file_path: Optional[Path] = None,
        voxel_size: Optional[Tuple[float, float, float]] = None,
        name: Optional[str] = None,
    ):
        self.data = data
        self.header = header
        self.file_path = Path(file_path) if file_path is not None else None
        self.name = name or (str(file_path) if file_path is not None else "<memory>")

        if data is None:
            self.affine = None
            self._voxel_size: Tuple[float, ...] = ()
            return

        if data.ndim not in (3, 4):
            raise VolumeLoadError(
                f"Expected 3D or 4D data in {self.name}, got {data.ndim}D: {data.shape}"
            )

        self.affine = np.eye(4) if affine is None else np.asarray(affine, dtype=np.float64)

        if voxel_size is not None:
            zooms = voxel_size
        elif header is not None:
            zooms = header.get_zooms()[:3]
        else:
            zooms = np.sqrt(np.sum(self.affine[:3, :3] ** 2, axis=0))
        self._voxel_size = tuple(float(z) for z in zooms)

    @classmethod
    def empty(cls, name: str = NONE_SENTINEL) -> "Volume":
        """Volume representing an optional input that was not supplied"""
        return cls(name=name)

    @property
    def is_empty(self) -> bool:
        """True when the volume carries no data"""
        return self.data is None

    def __bool__(self) -> bool:
        return not self.is_empty

    @property
    def shape(self) -> Tuple[int, ...]:
        """Get data shape"""
        return () if self.data is None else tuple(self.data.shape)

    @property
    def spatial_shape(self) -> Tuple[int, ...]:
        """Extent along i, j, k"""
        return self.shape[:3]

    @property
    def num_series(self) -> int:
        """Length of the series axis (1 for 3D volumes)"""
        if self.data is None:
            return 0
        return self.data.shape[3] if self.data.ndim == 4 else 1

    @property
    def voxel_size(self) -> Tuple[float, ...]:
        """Get voxel dimensions in mm"""
        return self._voxel_size

    def __repr__(self) -> str:
        if self.is_empty:
            return f"Volume(empty, name={self.name!r})"
        return f"Volume(shape={self.shape}, voxel_size={self.voxel_size}, name={self.name!r})"


def geometry_mismatch(a: Volume, b: Volume) -> Optional[str]:
    """
    Classify how two volumes differ in geometry

    Returns
    -------
    str or None
        ``'extent'``, ``'spacing'`` or ``'coordinate frame'`` for the first
        difference found, None when both share the same voxel grid.
    """
    if a.is_empty or b.is_empty:
        return None if (a.is_empty and b.is_empty) else MISMATCH_EXTENT

    if a.spatial_shape != b.spatial_shape:
        return MISMATCH_EXTENT

    # Exact comparison, no tolerance
    if a.voxel_size != b.voxel_size:
        return MISMATCH_SPACING

    if not np.array_equal(a.affine, b.affine):
        return MISMATCH_COORDINATES

    return None


def compatible(a: Volume, b: Volume) -> bool:
    """True iff both volumes have equal extent, voxel spacing and affine"""
    return geometry_mismatch(a, b) is None


def check_compatible(reference: Volume, other: Volume):
    """
    Raise GeometryMismatchError unless ``other`` lies on the grid of ``reference``

    Raises
    ------
    GeometryMismatchError
        Carrying the mismatch class and the names of both volumes
    """
    kind = geometry_mismatch(reference, other)
    if kind is None:
        return

    if kind == MISMATCH_EXTENT:
        message = f"'{reference.name}' and '{other.name}' do not match."
    elif kind == MISMATCH_SPACING:
        message = f"The pixel sizes of '{reference.name}' and '{other.name}' do not match."
    else:
        message = f"The coordinate systems of '{reference.name}' and '{other.name}' do not match."

    logger.debug(
        f"Geometry mismatch ({kind}): {reference.shape}/{reference.voxel_size} "
        f"vs {other.shape}/{other.voxel_size}"
    )
    raise GeometryMismatchError(message, kind, reference.name, other.name)


def load_volume(nifti_path: Union[str, Path], name: Optional[str] = None) -> Volume:
    """
    Load a NIfTI file as a float64 Volume

    Parameters
    ----------
    nifti_path : str or Path
        Path to NIfTI file (.nii or .nii.gz)
    name : str, optional
        Label used in diagnostics (defaults to the path as given)

    Raises
    ------
    VolumeLoadError
        If the file is missing or cannot be read
    """
    label = name or str(nifti_path)
    nifti_path = Path(nifti_path)

    if not nifti_path.exists():
        raise VolumeLoadError(f"NIfTI file not found: {label}")

    try:
        img = nib.load(nifti_path)
        data = img.get_fdata()
    except Exception as e:
        raise VolumeLoadError(f"Failed to load NIfTI file {label}: {e}")

    volume = Volume(
        data=data,
        affine=img.affine,
        header=img.header.copy(),
        file_path=nifti_path,
        name=label,
    )
    logger.info(f"Loaded {label}: shape={volume.shape}, voxel_size={volume.voxel_size}")
    return volume


def load_input_volume(nifti_path: Union[str, Path]) -> Volume:
    """Load the DWI series, promoting a single 3D image to one series entry"""
    volume = load_volume(nifti_path)
    if volume.data.ndim == 3:
        logger.warning(f"{volume.name} is 3D, treating it as a series of one")
        volume.data = volume.data[..., np.newaxis]
    return volume


def load_spatial_volume(nifti_path: Union[str, Path]) -> Volume:
    """Load a mask or noise map, which must hold one value per voxel"""
    volume = load_volume(nifti_path)
    if volume.data.ndim == 4:
        if volume.data.shape[3] != 1:
            raise VolumeLoadError(
                f"{volume.name} must be a 3D volume, got shape {volume.shape}"
            )
        volume.data = volume.data[..., 0]
    return volume


def load_optional_volume(raw: Optional[str]) -> Volume:
    """Load an optional spatial input; None or 'none' yields an empty Volume"""
    if raw is None or raw == NONE_SENTINEL:
        return Volume.empty()
    return load_spatial_volume(raw)
