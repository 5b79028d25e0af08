"""
ricedebias Command-Line Interface

Corrects the Rician bias of a 4D diffusion MRI series.
"""

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .config import DEFAULT_CHUNK_SIZE, DebiasConfig
from .preprocessing.pipeline import RicianDebiasPipeline
from .utils.logger import get_debias_logger

LICENSE_TEXT = """
MIT License

Copyright (c) 2026 ricedebias contributors

Permission is hereby granted, free of charge, to any person obtaining a copy
of this software and associated documentation files (the "Software"), to deal
in the Software without restriction, including without limitation the rights
to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
copies of the Software, and to permit persons to whom the Software is
furnished to do so, subject to the following conditions:

The above copyright notice and this permission notice shall be included in all
copies or substantial portions of the Software.

THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
SOFTWARE.
"""


def build_parser() -> argparse.ArgumentParser:
    """Argument parser for the ricedebias command"""
    parser = argparse.ArgumentParser(
        prog="ricedebias",
        description="ricedebias: Rician bias correction for diffusion MRI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Uniform noise level
  ricedebias --rician 12.5 dwi.nii.gz dwi_debiased.nii.gz

  # Voxel-wise noise map, restricted to a brain mask
  ricedebias --mask mask.nii.gz --rician sigma.nii.gz dwi.nii.gz dwi_debiased.nii.gz
        """
    )

    parser.add_argument('input', nargs='?', help='Input 4D DWI series (NIfTI)')
    parser.add_argument('output', nargs='?', help='Output corrected series (NIfTI)')

    parser.add_argument('--mask', default='none',
                        help='Foreground mask (default: none)')
    parser.add_argument('--rician', default='none',
                        help='Rician noise: a number, a noise map (NIfTI) or none (default: none)')
    parser.add_argument('--maxdiff', default='3.05e-3',
                        help='Maximum diffusivity in mm^2/s (default: 3.05e-3)')

    parser.add_argument('--threads', type=int, default=None,
                        help='Worker threads (default: number of logical CPUs)')
    parser.add_argument('--chunk-size', type=int, default=DEFAULT_CHUNK_SIZE,
                        help=f'Series indices per task (default: {DEFAULT_CHUNK_SIZE})')
    parser.add_argument('--progress', action='store_true', help='Show a progress bar')
    parser.add_argument('--qc', help='Write correction metrics to this text file')

    parser.add_argument('--license', action='store_true', help='License information')
    parser.add_argument('--version', action='version', version=f'ricedebias {__version__}')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')
    parser.add_argument('--debug', action='store_true', help='Debug mode')
    parser.add_argument('--log-dir', help='Also write a detailed log file to this directory')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point, returns the process exit code"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.license:
        print(LICENSE_TEXT)
        return 0

    if args.input is None or args.output is None:
        parser.error("the following arguments are required: input, output")

    # Setup logging
    log_level = logging.DEBUG if args.debug else (logging.INFO if args.verbose else logging.WARNING)
    debias_logger = get_debias_logger()
    debias_logger.set_level(log_level)
    if args.log_dir:
        debias_logger.add_file_handler(args.log_dir)
    logger = debias_logger.get_logger()

    try:
        config = DebiasConfig.from_args(args)
        outputs = RicianDebiasPipeline(config).run()
        logger.info(f"Wrote {outputs['output']}")

    except Exception as e:
        logger.error(f"Error: {e}", exc_info=args.debug)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
