"""
Unit tests for volume geometry and loading
"""

import logging

import pytest
import numpy as np

from ricedebias.data.volume import (
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


def make_volume(shape=(4, 4, 4), voxel_size=(2.0, 2.0, 2.0), offset=(0.0, 0.0, 0.0), name=None):
    affine = np.diag(list(voxel_size) + [1.0])
    affine[:3, 3] = offset
    return Volume(np.zeros(shape), affine, voxel_size=voxel_size, name=name)


class TestVolume:
    """Test the volume container"""

    def test_empty_volume(self):
        """Empty volumes are queryable and falsy"""
        empty = Volume.empty()

        assert empty.is_empty
        assert not empty
        assert empty.shape == ()
        assert empty.num_series == 0

    def test_volume_properties(self):
        """Shape, spatial shape and series length"""
        volume = make_volume(shape=(4, 5, 6, 3))

        assert not volume.is_empty
        assert volume
        assert volume.spatial_shape == (4, 5, 6)
        assert volume.num_series == 3
        assert volume.voxel_size == (2.0, 2.0, 2.0)

    def test_voxel_size_from_affine(self):
        """Without header or explicit spacing, spacing comes from the affine"""
        volume = Volume(np.zeros((2, 2, 2)), np.diag([1.5, 2.0, 2.5, 1.0]))

        assert volume.voxel_size == pytest.approx((1.5, 2.0, 2.5))

    def test_rejects_2d_data(self):
        """Only 3D and 4D data are volumes"""
        with pytest.raises(VolumeLoadError):
            Volume(np.zeros((4, 4)))


class TestCompatibility:
    """Test geometry comparison"""

    @pytest.fixture
    def volume_pairs(self):
        """Pairs covering every mismatch class"""
        reference = make_volume()
        return [
            (reference, make_volume()),
            (reference, make_volume(shape=(4, 4, 5))),
            (reference, make_volume(voxel_size=(2.0, 2.0, 2.5))),
            (reference, make_volume(offset=(1.0, 0.0, 0.0))),
            (reference, Volume.empty()),
            (Volume.empty(), Volume.empty()),
        ]

    def test_symmetry(self, volume_pairs):
        """compatible(a, b) == compatible(b, a)"""
        for a, b in volume_pairs:
            assert compatible(a, b) == compatible(b, a)

    def test_identical_geometry(self):
        """Equal grids are compatible"""
        assert compatible(make_volume(), make_volume())

    def test_series_axis_ignored(self):
        """A 4D series is compatible with a 3D map on the same grid"""
        assert compatible(make_volume(shape=(4, 4, 4, 7)), make_volume())

    def test_mismatch_classes(self):
        """Each kind of difference is classified"""
        reference = make_volume()

        assert geometry_mismatch(reference, make_volume(shape=(3, 4, 4))) == "extent"
        assert geometry_mismatch(reference, make_volume(voxel_size=(2.0, 2.0, 2.000001))) == "spacing"
        assert geometry_mismatch(reference, make_volume(offset=(0.0, 0.0, 0.5))) == "coordinate frame"

    def test_exact_spacing_comparison(self):
        """No tolerance is applied to voxel spacing"""
        reference = make_volume()
        nearly = make_volume(voxel_size=(2.0, 2.0, 2.0 + 1e-12))

        assert not compatible(reference, nearly)

    def test_check_compatible_message(self):
        """Errors name both volumes and the mismatch class"""
        reference = make_volume(name="dwi.nii.gz")
        other = make_volume(voxel_size=(1.0, 1.0, 1.0), name="mask.nii.gz")

        with pytest.raises(GeometryMismatchError) as excinfo:
            check_compatible(reference, other)

        assert excinfo.value.kind == "spacing"
        assert "dwi.nii.gz" in str(excinfo.value)
        assert "mask.nii.gz" in str(excinfo.value)
        assert "pixel sizes" in str(excinfo.value)

    def test_check_compatible_passes(self):
        """Compatible volumes do not raise"""
        check_compatible(make_volume(), make_volume())


class TestLoading:
    """Test NIfTI loading"""

    def test_load_volume(self, tmp_path, write_nifti):
        """Header geometry is preserved"""
        path = write_nifti(tmp_path / "vol.nii.gz", np.ones((3, 4, 5)), voxel_size=(1.0, 2.0, 3.0))
        volume = load_volume(path)

        assert volume.shape == (3, 4, 5)
        assert volume.voxel_size == (1.0, 2.0, 3.0)
        assert volume.affine[1, 1] == 2.0
        assert volume.data.dtype == np.float64

    def test_missing_file(self, tmp_path):
        """Missing files raise VolumeLoadError"""
        with pytest.raises(VolumeLoadError, match="not found"):
            load_volume(tmp_path / "missing.nii.gz")

    def test_unreadable_file(self, tmp_path):
        """Files that are not NIfTI raise VolumeLoadError"""
        path = tmp_path / "junk.nii"
        path.write_text("not an image")

        with pytest.raises(VolumeLoadError):
            load_volume(path)

    def test_input_3d_promoted(self, tmp_path, write_nifti):
        """A single 3D image becomes a series of one"""
        path = write_nifti(tmp_path / "b0.nii.gz", np.ones((4, 4, 4)))
        volume = load_input_volume(path)

        assert volume.shape == (4, 4, 4, 1)

    def test_spatial_volume_squeezed(self, tmp_path, write_nifti):
        """A 4D map with one series entry becomes 3D"""
        path = write_nifti(tmp_path / "sigma.nii.gz", np.ones((4, 4, 4, 1)))
        volume = load_spatial_volume(path)

        assert volume.shape == (4, 4, 4)

    def test_spatial_volume_rejects_series(self, tmp_path, write_nifti):
        """Masks and noise maps cannot have several series entries"""
        path = write_nifti(tmp_path / "mask.nii.gz", np.ones((4, 4, 4, 2)))

        with pytest.raises(VolumeLoadError):
            load_spatial_volume(path)

    def test_optional_volume_none(self):
        """None and 'none' mean not supplied"""
        assert load_optional_volume(None).is_empty
        assert load_optional_volume("none").is_empty

    def test_loader_logs_under_package_logger(self, tmp_path, write_nifti, caplog):
        """Loader diagnostics go through the ricedebias logger hierarchy"""
        path = write_nifti(tmp_path / "b0.nii.gz", np.ones((4, 4, 4)))

        with caplog.at_level(logging.WARNING, logger="ricedebias"):
            load_input_volume(path)

        records = [r for r in caplog.records if "series of one" in r.getMessage()]
        assert records
        assert records[0].name == "ricedebias.data.volume"
