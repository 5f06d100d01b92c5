"""
End-to-end STAR-RIS channel pipeline.

This module composes the pipeline components (channel source, impairment
model, dynamics engine) into a single all-or-nothing run that produces the
result bundle consumed by persistence and plotting.

Theory:
    Pipeline:

    1. Channel source:
       providers (ray tracing → stochastic geometry → TDL) → H      [M × N]

    2. Impairment model:
       D = diag(a_k · exp(j·φ_k)),  Θ = D + Γ[:N, :N]                [N × N]
       H_imp = H · Θ                                                [M × N]

    3. Dynamics engine:
       H(t_k) = H_imp · ρ_k · (1 - n_k),  k = 0 … T-1               [M × N × T]

    Shapes are validated at every stage boundary. The first failure aborts
    the run; a partially filled bundle is never returned.

    Randomness:
    A single numpy Generator is threaded through stages 2 and 3, in that
    order. Channel providers never draw from it, so a provider failing
    earlier in the chain cannot shift the random stream of later stages.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Optional

import numpy as np

from ..components.config import SystemParameters
from ..components.errors import ConfigurationError, ShapeMismatchError
from ..components.channel import ChannelProvider, ChannelSource
from ..components.coupling import as_coupling_source
from ..components.impairments import ImpairmentModel
from ..components.dynamics import DopplerProvider, DynamicsEngine, SionnaDopplerProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResultBundle:
    """
    Immutable result of one pipeline run.

    Iterating (or unpacking) yields the four primary artifacts
    ``(ideal, impaired, dynamic, operator)``; the remaining fields are
    auxiliary data for persistence, plotting and metrics.

    Attributes:
        ideal: Ideal channel H, complex [M, N].
        impaired: Impaired channel H · Θ, complex [M, N].
        dynamic: Time-evolving channel, complex [M, N, T].
        operator: Impairment operator Θ = D + Γ, complex [N, N].
        diagonal: Per-element response D, complex [N, N].
        coupling: Coupling block Γ actually used, complex [N, N].
        time_axis: Sample times, [T].
        doppler: Doppler term per sample, complex [T].
        blockage_mask: Blockage event counts per sample, [T].
        provider: Name of the channel provider that delivered H.
    """

    ideal: np.ndarray
    impaired: np.ndarray
    dynamic: np.ndarray
    operator: np.ndarray
    diagonal: Optional[np.ndarray] = None
    coupling: Optional[np.ndarray] = None
    time_axis: Optional[np.ndarray] = None
    doppler: Optional[np.ndarray] = None
    blockage_mask: Optional[np.ndarray] = None
    provider: Optional[str] = None
    metadata: dict = field(default_factory=dict)

    def __post_init__(self):
        for name in ("ideal", "impaired", "dynamic", "operator", "diagonal",
                     "coupling", "time_axis", "doppler", "blockage_mask"):
            value = getattr(self, name)
            if isinstance(value, np.ndarray):
                # Freeze a private copy; the caller keeps a writable array
                frozen = value.copy()
                frozen.setflags(write=False)
                object.__setattr__(self, name, frozen)

    def __iter__(self) -> Iterator[np.ndarray]:
        return iter(self.as_tuple())

    def as_tuple(self) -> tuple:
        """The primary artifacts (ideal, impaired, dynamic, operator)."""
        return (self.ideal, self.impaired, self.dynamic, self.operator)

    @property
    def num_time_samples(self) -> int:
        """Number of time samples T."""
        return int(self.dynamic.shape[-1])


def _expect_shape(name: str, array: np.ndarray, shape: tuple) -> None:
    """Stage boundary check."""
    if array.shape != shape:
        raise ShapeMismatchError(f"{name} has shape {array.shape}, expected {shape}")


class Orchestrator:
    """
    Sequences channel acquisition, impairment and time evolution.

    Theory:
        The orchestrator is a linear pipeline, not a state machine: it never
        retries a stage. Retries only happen inside the fallback chains of
        the channel source and the Doppler generator.
    """

    def __init__(
        self,
        channel_source: Optional[ChannelSource] = None,
        providers: Optional[Iterable[ChannelProvider]] = None,
        doppler_provider: Optional[DopplerProvider] = None,
        closed_form_doppler: bool = False,
        workers: int = 1,
        progress: bool = False,
    ):
        """
        Initialize the pipeline.

        Args:
            channel_source: Channel source to use. Built from ``providers``
                (or the default chain) if None.
            providers: Channel providers in priority order, used when no
                ``channel_source`` is given.
            doppler_provider: External Doppler generator. If None, a Sionna
                TDL generator matching the run parameters is used unless
                ``closed_form_doppler`` is set.
            closed_form_doppler: Skip the external generator and use the
                closed-form rotation exp(j·2π·f_d·t) for every sample.
            workers: Thread pool size for the per-sample Doppler map.
            progress: Show a progress bar over time samples.
        """
        if channel_source is not None and providers is not None:
            raise ConfigurationError("Pass either channel_source or providers, not both")
        self.channel_source = channel_source or ChannelSource(providers)
        self.doppler_provider = doppler_provider
        self.closed_form_doppler = closed_form_doppler
        self.workers = workers
        self.progress = progress

    def _doppler_provider_for(self, params: SystemParameters) -> Optional[DopplerProvider]:
        if self.closed_form_doppler:
            return None
        if self.doppler_provider is not None:
            return self.doppler_provider
        return SionnaDopplerProvider.from_parameters(params)

    def run(
        self,
        params: SystemParameters,
        coupling_source: Any = None,
        rng: Optional[np.random.Generator] = None,
    ) -> ResultBundle:
        """
        Run the full pipeline.

        Args:
            params: Validated system parameters.
            coupling_source: CouplingSource, array-like or file path of the
                coupling matrix. None means no coupling.
            rng: Random generator. Defaults to
                ``numpy.random.default_rng(params.seed)``.

        Returns:
            ResultBundle with ideal, impaired, dynamic channel and operator.

        Raises:
            ConfigurationError: Invalid parameters or coupling input.
            ChannelAcquisitionError: Every channel provider failed.
            ShapeMismatchError: A stage produced or received a wrong shape.
        """
        if not isinstance(params, SystemParameters):
            raise ConfigurationError(
                f"params must be SystemParameters, got {type(params).__name__}"
            )
        if rng is None:
            rng = np.random.default_rng(params.seed)
        m, n, t = params.num_bs_ant, params.num_ris_elements, params.num_time_samples

        logger.info("Acquiring ideal %d×%d channel", m, n)
        ideal = self.channel_source.acquire(params)
        _expect_shape("Ideal channel", ideal, (m, n))

        coupling = as_coupling_source(coupling_source).load(params)
        impairment_model = ImpairmentModel(params)
        gamma = impairment_model.select_coupling(coupling)
        logger.info("Applying impairments (σ²_φ=%g, ε=%g)",
                    params.phase_noise_variance, params.amplitude_error_range)
        impaired, operator, diagonal = impairment_model.apply_with_diagonal(ideal, gamma, rng)
        _expect_shape("Impairment operator", operator, (n, n))
        _expect_shape("Impaired channel", impaired, (m, n))

        logger.info("Evolving channel over %d samples (f_d=%.3f Hz)", t, params.doppler_frequency)
        engine = DynamicsEngine(
            params,
            doppler_provider=self._doppler_provider_for(params),
            workers=self.workers,
            progress=self.progress,
        )
        evolution = engine.evolve_detailed(impaired, rng)
        _expect_shape("Dynamic channel tensor", evolution.tensor, (m, n, t))

        return ResultBundle(
            ideal=ideal,
            impaired=impaired,
            dynamic=evolution.tensor,
            operator=operator,
            diagonal=diagonal,
            coupling=gamma,
            time_axis=evolution.time_axis,
            doppler=evolution.doppler,
            blockage_mask=evolution.blockage_mask,
            provider=self.channel_source.last_provider,
            metadata={"parameters": params.to_dict()},
        )


def run_pipeline(
    params: SystemParameters,
    coupling_source: Any = None,
    providers: Optional[Iterable[ChannelProvider]] = None,
    doppler_provider: Optional[DopplerProvider] = None,
    closed_form_doppler: bool = False,
    rng: Optional[np.random.Generator] = None,
    workers: int = 1,
) -> ResultBundle:
    """Convenience wrapper: build an Orchestrator and run it once."""
    orchestrator = Orchestrator(
        providers=providers,
        doppler_provider=doppler_provider,
        closed_form_doppler=closed_form_doppler,
        workers=workers,
    )
    return orchestrator.run(params, coupling_source, rng=rng)
