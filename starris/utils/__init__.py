"""
Utility modules for the STAR-RIS channel simulator.
"""

from .env import configure_env, setup_gpu
from .files import load_matrix_file

__all__ = [
    'configure_env',
    'setup_gpu',
    'load_matrix_file',
]
