"""
Time evolution of the impaired STAR-RIS channel: Doppler and blockage.

This module turns the static impaired channel H_imp (M × N) into a
time-evolving tensor H(t) (M × N × T) by applying, per time sample, a
Doppler phase rotation and a blockage attenuation.

Theory:
    1. Doppler rotation:
       A terminal moving with speed v sees the maximum Doppler shift

           f_d = v · f_c / c

       For a dominant path the channel rotates as exp(j·2π·f_d·t). When a
       dedicated dynamic channel generator is available its per-sample
       term is used instead; otherwise the closed-form rotation is the
       fallback.

    2. Blockage:
       Obstruction events arrive as a Poisson process with rate λ_b. The
       number of events within one sampling interval Δt is

           n_k ~ Poisson(λ_b · Δt)

       and the channel at t_k is scaled by (1 - n_k). Several events in one
       interval (n_k > 1) give a negative factor; this is kept as is and
       not clamped.

    3. Tensor assembly:
       Doppler and blockage are scalars per sample, broadcast over the full
       spatial matrix:

           H[:, :, k] = H_imp · ρ_k · (1 - n_k)

       Samples are independent of each other, so the per-sample Doppler
       computation can be mapped over a thread pool.

References:
    - Jakes, "Microwave Mobile Communications", 1974
    - 3GPP TR 38.901, Section 7.6.3: Blockage
"""

import logging
import math
import threading
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, NamedTuple, Optional, Tuple

import numpy as np
from tqdm import tqdm

from .channel import sionna_errors
from .config import SPEED_OF_LIGHT, SystemParameters
from .errors import ProviderUnavailable, ShapeMismatchError

logger = logging.getLogger(__name__)


class DopplerProvider(ABC):
    """External dynamic channel generator producing per-sample Doppler terms."""

    name = "doppler"

    @abstractmethod
    def phase(self, t: float, fd: float, interval: float) -> complex:
        """
        Doppler term at time ``t``.

        Args:
            t: Sample time in seconds (a multiple of ``interval``).
            fd: Doppler frequency in Hz.
            interval: Sampling interval in seconds.

        Raises:
            ProviderUnavailable: If the generator cannot deliver.
        """

    def prepare(self, num_samples: int, fd: float, interval: float) -> None:
        """
        Called once per run, before the per-sample map, with the grid size.

        Generators that produce a whole time series at once do their work
        here; ``phase`` then only reads the result.

        Raises:
            ProviderUnavailable: If the generator cannot deliver.
        """


class SionnaDopplerProvider(DopplerProvider):
    """
    Doppler term from a Sionna 3GPP TDL channel realization.

    One seeded realization covering the whole time grid is generated per
    (Doppler frequency, sampling interval) and cached; the term at sample k
    is the normalized coherent sum of its path coefficients at that sample.
    Generation holds a lock because Sionna seeds a process-wide generator,
    so concurrent ``phase`` calls only read the cached series.
    Profile "D" has a dominant line-of-sight tap, which makes the term a
    Doppler-rotated phasor with small diffuse perturbations.
    """

    name = "sionna_tdl"

    def __init__(
        self,
        carrier_frequency: float,
        model: str = "D",
        delay_spread: float = 30e-9,
        seed: int = 42,
    ):
        self.carrier_frequency = carrier_frequency
        self.model = model
        self.delay_spread = delay_spread
        self.seed = seed
        self._lock = threading.Lock()
        self._series = {}

    @classmethod
    def from_parameters(cls, params: SystemParameters, model: str = "D") -> "SionnaDopplerProvider":
        """Build a provider matching the carrier, delay spread and seed of ``params``."""
        return cls(
            carrier_frequency=params.carrier_frequency,
            model=model,
            delay_spread=params.delay_spread,
            seed=params.seed,
        )

    def prepare(self, num_samples: int, fd: float, interval: float) -> None:
        self._realization(num_samples, fd, interval)

    def phase(self, t: float, fd: float, interval: float) -> complex:
        k = int(round(t / interval))
        term = complex(self._realization(k + 1, fd, interval)[k])
        return term.conjugate() if fd < 0 else term

    def _realization(self, num_samples: int, fd: float, interval: float) -> np.ndarray:
        """Cached unit-modulus series of at least ``num_samples`` terms."""
        key = (abs(fd), interval)
        with self._lock:
            series = self._series.get(key)
            if series is None or len(series) < num_samples:
                try:
                    series = self._generate(num_samples, abs(fd), interval)
                except sionna_errors() as exc:
                    logger.debug("Sionna TDL generator failed", exc_info=True)
                    raise ProviderUnavailable(f"Sionna TDL generator failed: {exc}") from exc
                self._series[key] = series
            return series

    def _generate(self, num_samples: int, fd: float, interval: float) -> np.ndarray:
        from sionna.phy import config as sionna_config
        from sionna.phy.channel.tr38901 import TDL

        speed = fd * SPEED_OF_LIGHT / self.carrier_frequency
        sionna_config.seed = self.seed
        tdl = TDL(
            model=self.model,
            delay_spread=self.delay_spread,
            carrier_frequency=self.carrier_frequency,
            min_speed=speed,
            max_speed=speed,
        )
        a, _ = tdl(1, num_samples, 1.0 / interval)
        coeffs = np.asarray(a.numpy() if hasattr(a, "numpy") else a)
        gain = coeffs[0, 0, 0, 0, 0, :, :].sum(axis=0).astype(np.complex128)
        magnitude = np.abs(gain)
        if np.any(magnitude == 0.0):
            raise ProviderUnavailable("TDL realization has zero gain at some samples")
        return gain / magnitude


def closed_form_phase(t: float, fd: float) -> complex:
    """Closed-form Doppler rotation exp(j·2π·f_d·t)."""
    return complex(np.exp(1j * 2.0 * math.pi * fd * t))


def doppler_phase(
    t: float,
    params: SystemParameters,
    provider: Optional[DopplerProvider] = None,
    on_fallback: Optional[Callable[[], None]] = None,
) -> complex:
    """
    Doppler term for one time sample.

    Pure per-sample function: nothing is memoized between calls. The
    external provider is tried first; if it is missing or unavailable the
    closed-form rotation is returned.

    Args:
        t: Sample time in seconds.
        params: System parameters (Doppler frequency, sampling interval).
        provider: Optional external generator.
        on_fallback: Called when ``provider`` was given but unavailable.

    Returns:
        Complex scalar of (near-)unit modulus.
    """
    fd = params.doppler_frequency
    if provider is not None:
        try:
            return complex(provider.phase(t, fd, params.sampling_interval))
        except ProviderUnavailable as exc:
            logger.info(
                "Doppler provider '%s' unavailable at t=%.6g s, using closed form: %s",
                provider.name, t, exc,
            )
            if on_fallback is not None:
                on_fallback()
    return closed_form_phase(t, fd)


def time_axis(params: SystemParameters) -> np.ndarray:
    """Uniform sample times t_k = k · Δt, k = 0 … T-1."""
    return np.arange(params.num_time_samples, dtype=np.float64) * params.sampling_interval


def draw_blockage_mask(params: SystemParameters, rng: np.random.Generator) -> np.ndarray:
    """
    Draw the per-sample blockage event counts.

    Returns:
        Float array of length T with n_k ~ Poisson(λ_b · Δt). Identically
        zero when the blockage rate is zero.
    """
    return rng.poisson(params.blockage_mean, size=params.num_time_samples).astype(np.float64)


class ChannelEvolution(NamedTuple):
    """Output of one DynamicsEngine run."""

    time_axis: np.ndarray
    tensor: np.ndarray
    blockage_mask: np.ndarray
    doppler: np.ndarray


class DynamicsEngine:
    """
    Generates the time-evolving channel tensor.

    Theory:
        Blockage counts are drawn once, vectorized, before any fan-out, so
        the random stream does not depend on the number of workers. The
        Doppler provider is prepared once for the whole grid, and the
        Doppler terms are then mapped over the time axis either
        sequentially or on a thread pool; the ordering of the result never
        depends on completion order.
    """

    def __init__(
        self,
        params: SystemParameters,
        doppler_provider: Optional[DopplerProvider] = None,
        workers: int = 1,
        cache_provider_failure: bool = True,
        progress: bool = False,
    ):
        """
        Args:
            params: System parameters.
            doppler_provider: External Doppler generator; None forces the
                closed-form rotation.
            workers: Thread pool size for the per-sample Doppler map.
            cache_provider_failure: Stop calling the provider for the rest of
                a run once it has been unavailable.
            progress: Show a tqdm progress bar over samples.
        """
        self.params = params
        self.doppler_provider = doppler_provider
        self.workers = max(1, int(workers))
        self.cache_provider_failure = cache_provider_failure
        self.progress = progress

    def doppler_series(self, times: np.ndarray) -> np.ndarray:
        """Doppler term for every sample time, in time order."""
        failed = threading.Event()
        on_fallback = failed.set if self.cache_provider_failure else None

        provider = self.doppler_provider
        if provider is not None:
            try:
                provider.prepare(len(times), self.params.doppler_frequency,
                                 self.params.sampling_interval)
            except ProviderUnavailable as exc:
                logger.info("Doppler provider '%s' unavailable, using closed form: %s",
                            provider.name, exc)
                if self.cache_provider_failure:
                    failed.set()

        def sample(t: float) -> complex:
            provider = None if failed.is_set() else self.doppler_provider
            return doppler_phase(float(t), self.params, provider, on_fallback)

        bar = dict(total=len(times), desc="Doppler", unit="sample",
                   disable=not self.progress, leave=False)
        if self.workers == 1:
            values = [sample(t) for t in tqdm(times, **bar)]
        else:
            with ThreadPoolExecutor(max_workers=self.workers) as executor:
                values = list(tqdm(executor.map(sample, times), **bar))
        return np.asarray(values, dtype=np.complex128)

    def evolve_detailed(self, impaired: Any, rng: np.random.Generator) -> ChannelEvolution:
        """
        Evolve the impaired channel over the time grid.

        Args:
            impaired: Impaired channel, complex [M, N].
            rng: Explicit random generator (blockage draws).

        Returns:
            ChannelEvolution with the time axis [T], tensor [M, N, T],
            blockage mask [T] and Doppler terms [T].
        """
        m, n = self.params.num_bs_ant, self.params.num_ris_elements
        h = np.asarray(impaired, dtype=np.complex128)
        if h.shape != (m, n):
            raise ShapeMismatchError(f"Impaired channel has shape {h.shape}, expected ({m}, {n})")

        times = time_axis(self.params)
        mask = draw_blockage_mask(self.params, rng)
        doppler = self.doppler_series(times)

        attenuation = 1.0 - mask
        if np.any(attenuation < 0):
            logger.debug("%d samples with multiple blockage events (negative attenuation)",
                         int(np.sum(attenuation < 0)))
        tensor = h[:, :, np.newaxis] * (doppler * attenuation)[np.newaxis, np.newaxis, :]
        return ChannelEvolution(times, tensor, mask, doppler)

    def evolve(self, impaired: Any, rng: np.random.Generator) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Evolve the impaired channel over the time grid.

        Returns:
            Tuple of (time axis [T], tensor [M, N, T], blockage mask [T]).
        """
        times, tensor, mask, _ = self.evolve_detailed(impaired, rng)
        return times, tensor, mask
