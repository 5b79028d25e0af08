"""
Tests for the command-line interface and run configuration
"""

import dataclasses
import logging

import pytest
import numpy as np
import nibabel as nib

from ricedebias import __version__
from ricedebias.utils.logger import get_debias_logger
from ricedebias.cli import build_parser, main
from ricedebias.config import (
    DEFAULT_MAXDIFF,
    ConfigurationError,
    DebiasConfig,
    parse_maxdiff,
)


class TestConfig:
    """Test option parsing into DebiasConfig"""

    def test_parse_maxdiff(self):
        assert parse_maxdiff("1e-3") == 1e-3
        assert parse_maxdiff(None) == DEFAULT_MAXDIFF

    def test_parse_maxdiff_error(self):
        """The raw string is quoted in the error"""
        with pytest.raises(ConfigurationError, match="Unable to parse 'fast'"):
            parse_maxdiff("fast")

    def test_from_args_defaults(self):
        args = build_parser().parse_args(["dwi.nii.gz", "out.nii.gz"])
        config = DebiasConfig.from_args(args)

        assert config.mask == "none"
        assert config.rician == "none"
        assert config.maxdiff == 3.05e-3
        assert config.chunk_size == 10
        assert config.n_threads is None
        assert config.qc_path is None

    def test_frozen(self):
        config = DebiasConfig(input_path="a", output_path="b")
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.rician = "5"

    def test_invalid_threads(self):
        with pytest.raises(ConfigurationError):
            DebiasConfig(input_path="a", output_path="b", n_threads=0)
        with pytest.raises(ConfigurationError):
            DebiasConfig(input_path="a", output_path="b", chunk_size=0)


class TestCLI:
    """Test the ricedebias command"""

    def test_license(self, capsys):
        """--license prints the license and exits successfully"""
        assert main(["--license"]) == 0
        assert "MIT License" in capsys.readouterr().out

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main(["--version"])

        assert excinfo.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_help(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main(["--help"])

        assert excinfo.value.code == 0
        assert "--rician" in capsys.readouterr().out

    def test_missing_positionals(self):
        with pytest.raises(SystemExit) as excinfo:
            main(["--rician", "5"])

        assert excinfo.value.code != 0

    def test_run(self, tmp_path, dwi_file):
        """A successful run exits 0 and writes the output"""
        out = tmp_path / "debiased.nii.gz"

        assert main(["--rician", "5.0", "--threads", "2", str(dwi_file), str(out)]) == 0
        assert nib.load(str(out)).shape == (4, 4, 4, 2)

    def test_geometry_mismatch_exit(self, tmp_path, write_nifti, dwi_file, caplog):
        """A mismatched mask exits non-zero and leaves no output"""
        mask = write_nifti(tmp_path / "mask.nii.gz", np.ones((4, 4, 4)), voxel_size=(1.0, 1.0, 1.0))
        out = tmp_path / "debiased.nii.gz"

        with caplog.at_level(logging.ERROR):
            code = main(["--mask", str(mask), str(dwi_file), str(out)])

        assert code == 1
        assert not out.exists()
        assert "pixel sizes" in caplog.text

    def test_bad_maxdiff_exit(self, tmp_path, dwi_file, caplog):
        """An unparsable --maxdiff exits non-zero before processing"""
        out = tmp_path / "debiased.nii.gz"

        with caplog.at_level(logging.ERROR):
            code = main(["--maxdiff", "abc", str(dwi_file), str(out)])

        assert code == 1
        assert not out.exists()
        assert "Unable to parse 'abc'" in caplog.text

    def test_log_dir(self, tmp_path, dwi_file):
        """--log-dir writes a log file"""
        logs = tmp_path / "logs"
        out = tmp_path / "debiased.nii.gz"

        debias_logger = get_debias_logger()
        handlers = list(debias_logger.get_logger().handlers)
        try:
            assert main(["--verbose", "--log-dir", str(logs), str(dwi_file), str(out)]) == 0
        finally:
            for handler in list(debias_logger.get_logger().handlers):
                if handler not in handlers:
                    debias_logger.get_logger().removeHandler(handler)
                    handler.close()
            debias_logger.set_level(logging.WARNING)

        assert debias_logger.log_file.parent == logs
        assert any(logs.glob("ricedebias_*.log"))
