"""
Shared fixtures for ricedebias tests
"""

import pytest
import numpy as np
import nibabel as nib


def save_nifti(path, data, voxel_size=(2.0, 2.0, 2.0), offset=(0.0, 0.0, 0.0)):
    """Save ``data`` as float32 NIfTI with a diagonal affine"""
    affine = np.diag(list(voxel_size) + [1.0])
    affine[:3, 3] = offset
    img = nib.Nifti1Image(np.asarray(data, dtype=np.float32), affine)
    nib.save(img, str(path))
    return path


@pytest.fixture
def write_nifti():
    """Helper writing synthetic NIfTI files"""
    return save_nifti


@pytest.fixture
def dwi_data():
    """4x4x4 volume with 2 series entries, float32-representable values"""
    rng = np.random.default_rng(42)
    return rng.uniform(0.0, 100.0, size=(4, 4, 4, 2)).astype(np.float32).astype(np.float64)


@pytest.fixture
def corner_mask():
    """Mask with a 2x2x2 corner of ones"""
    mask = np.zeros((4, 4, 4))
    mask[:2, :2, :2] = 1
    return mask


@pytest.fixture
def dwi_file(tmp_path, dwi_data):
    """Input series on disk"""
    return save_nifti(tmp_path / "dwi.nii.gz", dwi_data)
