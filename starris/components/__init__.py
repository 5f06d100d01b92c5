"""
Pipeline components for STAR-RIS channel impairment and dynamics modelling
"""

from .config import SystemParameters, SPEED_OF_LIGHT
from .errors import (
    StarRisError,
    ConfigurationError,
    ShapeMismatchError,
    ChannelAcquisitionError,
    ProviderUnavailable,
)
from .channel import (
    ChannelProvider,
    ChannelSource,
    RayTracingProvider,
    StochasticGeometryProvider,
    StatisticalModelProvider,
    default_providers,
    reshape_to_channel,
)
from .coupling import (
    CouplingSource,
    ArrayCouplingSource,
    FileCouplingSource,
    ZeroCouplingSource,
    ToeplitzCouplingSource,
    as_coupling_source,
)
from .impairments import ImpairmentModel, apply_impairments
from .dynamics import (
    ChannelEvolution,
    DopplerProvider,
    DynamicsEngine,
    SionnaDopplerProvider,
    closed_form_phase,
    doppler_phase,
)

__all__ = [
    'SystemParameters',
    'SPEED_OF_LIGHT',
    'StarRisError',
    'ConfigurationError',
    'ShapeMismatchError',
    'ChannelAcquisitionError',
    'ProviderUnavailable',
    'ChannelProvider',
    'ChannelSource',
    'RayTracingProvider',
    'StochasticGeometryProvider',
    'StatisticalModelProvider',
    'default_providers',
    'reshape_to_channel',
    'CouplingSource',
    'ArrayCouplingSource',
    'FileCouplingSource',
    'ZeroCouplingSource',
    'ToeplitzCouplingSource',
    'as_coupling_source',
    'ImpairmentModel',
    'apply_impairments',
    'ChannelEvolution',
    'DopplerProvider',
    'DynamicsEngine',
    'SionnaDopplerProvider',
    'closed_form_phase',
    'doppler_phase',
]
