"""
STAR-RIS channel impairment and dynamics simulator.

Acquires an ideal BS-RIS channel from a ranked chain of providers, applies
element-level hardware impairments with mutual coupling and evolves the
result over time with Doppler rotation and random blockage.
"""

from .components import (
    SystemParameters,
    StarRisError,
    ConfigurationError,
    ShapeMismatchError,
    ChannelAcquisitionError,
    ProviderUnavailable,
)
from .models import Orchestrator, ResultBundle, run_pipeline

__version__ = "0.1.0"

__all__ = [
    'SystemParameters',
    'StarRisError',
    'ConfigurationError',
    'ShapeMismatchError',
    'ChannelAcquisitionError',
    'ProviderUnavailable',
    'Orchestrator',
    'ResultBundle',
    'run_pipeline',
]
