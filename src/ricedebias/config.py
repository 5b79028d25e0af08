"""
Run configuration for ricedebias

Options are parsed once into a frozen DebiasConfig that is handed to the
pipeline; nothing downstream reads the command line.
"""

import argparse
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEFAULT_MAXDIFF = 3.05e-3  # mm^2/s
DEFAULT_CHUNK_SIZE = 10


class ConfigurationError(Exception):
    """Exception raised for invalid option values"""
    pass


def parse_maxdiff(raw: Optional[str]) -> float:
    """
    Parse the maximum diffusivity option

    Raises
    ------
    ConfigurationError
        If ``raw`` is not a number; the message quotes the raw string
    """
    if raw is None:
        return DEFAULT_MAXDIFF
    try:
        return float(raw)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Unable to parse '{raw}'.")


@dataclass(frozen=True)
class DebiasConfig:
    """Immutable settings for one correction run."""
    input_path: Path
    output_path: Path
    mask: str = "none"
    rician: str = "none"
    # Validated and kept for compatibility; the correction does not use it
    maxdiff: float = DEFAULT_MAXDIFF
    n_threads: Optional[int] = None
    chunk_size: int = DEFAULT_CHUNK_SIZE
    show_progress: bool = False
    qc_path: Optional[Path] = None

    def __post_init__(self):
        if self.n_threads is not None and self.n_threads < 1:
            raise ConfigurationError(f"--threads must be a positive integer, got {self.n_threads}")
        if self.chunk_size < 1:
            raise ConfigurationError(f"--chunk-size must be a positive integer, got {self.chunk_size}")

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "DebiasConfig":
        """Build the configuration from parsed command-line arguments"""
        return cls(
            input_path=Path(args.input),
            output_path=Path(args.output),
            mask=args.mask,
            rician=args.rician,
            maxdiff=parse_maxdiff(args.maxdiff),
            n_threads=args.threads,
            chunk_size=args.chunk_size,
            show_progress=args.progress,
            qc_path=Path(args.qc) if args.qc else None,
        )
