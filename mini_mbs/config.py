# mini_mbs/config.py
"""
Library configuration and defaults.
"""

from dataclasses import dataclass
import logging
from typing import Tuple


@dataclass
class MbsConfig:
    """Global library configuration."""

    # Definition files
    element_file_extension: str = ".edf"
    joint_file_extension: str = ".jdf"
    system_file_extension: str = ".xml"

    # Physics defaults
    default_gravity: Tuple[float, float, float] = (0.0, 0.0, -9.81)  # m/s^2

    # Frame rotations read from files must be orthonormal within this tolerance
    orthogonality_tolerance: float = 1e-6

    # Logging
    log_level: int = logging.INFO
    log_format: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    log_datefmt: str = '%H:%M:%S'


# Global config instance
CONFIG = MbsConfig()
