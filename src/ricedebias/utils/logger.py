"""
Logging utilities for ricedebias

Provides console logging and optional timestamped log files.
"""

import logging
import sys
from pathlib import Path
from datetime import datetime
from typing import Optional, Union


class DebiasLogger:
    """Centralized logger for ricedebias operations"""

    def __init__(
        self,
        name: str = "ricedebias",
        log_dir: Optional[Union[str, Path]] = None,
        level: int = logging.WARNING,
        console: bool = True,
    ):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)
        self.logger.handlers = []  # Clear existing handlers
        self.log_file: Optional[Path] = None

        # Create formatters
        self.detailed_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        self.simple_formatter = logging.Formatter(
            '%(levelname)s: %(message)s'
        )

        # Console handler
        if console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(logging.DEBUG)
            console_handler.setFormatter(self.simple_formatter)
            self.logger.addHandler(console_handler)

        if log_dir is not None:
            self.add_file_handler(log_dir)

    def add_file_handler(self, log_dir: Union[str, Path]) -> Path:
        """Also write DEBUG-level records to a timestamped file in log_dir"""
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        log_file = log_path / f"ricedebias_{timestamp}.log"

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(self.detailed_formatter)
        self.logger.addHandler(file_handler)
        self.log_file = log_file

        self.logger.info(f"Logging to: {log_file}")
        return log_file

    def set_level(self, level: int):
        """Change the threshold of the package logger"""
        self.logger.setLevel(level)

    def get_logger(self) -> logging.Logger:
        """Get the configured logger instance"""
        return self.logger


# Global logger instance
_global_logger: Optional[DebiasLogger] = None


def get_debias_logger() -> DebiasLogger:
    """Get or create the global DebiasLogger"""
    global _global_logger
    if _global_logger is None:
        _global_logger = DebiasLogger()
    return _global_logger


def get_logger(name: str = "ricedebias") -> logging.Logger:
    """
    Get a logger that reports through the package handlers

    Module names inside the package (``ricedebias.*``) become children of
    the package logger so they share its handlers and level.
    """
    root = get_debias_logger().get_logger()
    if name == root.name or not name.startswith(root.name + "."):
        return root
    return logging.getLogger(name)
