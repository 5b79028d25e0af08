"""
Output Volume Writer

Allocates the corrected series on the grid of the input volume and writes it
back to NIfTI with the input's spatial metadata.
"""

from pathlib import Path
from typing import Optional, Tuple, Union

import nibabel as nib
import numpy as np

from .volume import Volume
from ..utils.logger import get_logger

logger = get_logger(__name__)


class OutputVolume:
    """
    Zero-filled 4D volume sharing extent and header metadata with an input

    Cells that are never written keep the value 0.
    """

    dtype = np.float32

    def __init__(
        self,
        data: np.ndarray,
        affine: np.ndarray,
        header: Optional[nib.nifti1.Nifti1Header],
        voxel_size: Tuple[float, ...],
        name: str = "<output>",
    ):
        self.data = data
        self.affine = affine
        self.header = header
        self.voxel_size = tuple(voxel_size)
        self.name = name

    @classmethod
    def allocate_like(
        cls,
        reference: Volume,
        dtype: Optional[np.dtype] = None,
        name: str = "<output>",
    ) -> "OutputVolume":
        """
        Allocate an output with the extent and header of ``reference``

        Parameters
        ----------
        reference : Volume
            Non-empty 4D input volume
        dtype : np.dtype, optional
            Storage type of the output (default: float32)
        name : str
            Label used in log messages
        """
        if reference.is_empty:
            raise ValueError("Cannot allocate an output like an empty volume")
        if reference.data.ndim != 4:
            raise ValueError(f"Expected a 4D reference volume, got shape {reference.shape}")

        if dtype is None:
            dtype = cls.dtype
        header = None
        if reference.header is not None:
            header = reference.header.copy()
            header.set_data_dtype(dtype)
            header.set_slope_inter(None, None)

        data = np.zeros(reference.shape, dtype=dtype)
        logger.debug(f"Allocated output {name}: shape={data.shape}, dtype={data.dtype}")

        return cls(
            data=data,
            affine=reference.affine.copy(),
            header=header,
            voxel_size=reference.voxel_size,
            name=name,
        )

    @property
    def shape(self) -> Tuple[int, ...]:
        """Get data shape"""
        return tuple(self.data.shape)

    @property
    def spatial_shape(self) -> Tuple[int, ...]:
        """Extent along i, j, k"""
        return self.shape[:3]

    def set(self, i: int, j: int, k: int, t: int, value: float):
        """Write one cell"""
        self.data[i, j, k, t] = value

    def get(self, i: int, j: int, k: int, t: int) -> float:
        """Read one cell"""
        return float(self.data[i, j, k, t])

    def write_series(self, t: int, foreground: np.ndarray, values: np.ndarray):
        """
        Write the foreground cells of series index ``t``

        Parameters
        ----------
        t : int
            Series index
        foreground : np.ndarray
            Boolean array over the spatial grid
        values : np.ndarray
            One value per True entry of ``foreground``, in C order
        """
        self.data[..., t][foreground] = values

    def to_nifti(self) -> nib.Nifti1Image:
        """Build the NIfTI image holding the output data"""
        img = nib.Nifti1Image(self.data, self.affine, self.header)
        if self.header is None:
            img.header.set_zooms(self.voxel_size + (1.0,) * (self.data.ndim - 3))
        return img

    def save(self, output_path: Union[str, Path]) -> Path:
        """Write the volume to ``output_path`` (.nii or .nii.gz)"""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        nib.save(self.to_nifti(), output_path)
        logger.info(f"Saved corrected data to {output_path}")
        return output_path
