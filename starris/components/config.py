"""
System parameters for the STAR-RIS channel impairment and dynamics pipeline.

This module defines the SystemParameters dataclass that encapsulates every
quantity shared by the pipeline components: RF and array dimensions, the
simulation time grid, hardware impairment magnitudes, mobility and the
blockage process.

Theory:
    The pipeline turns a static BS-to-RIS channel H (M × N) into an
    impaired, time-evolving channel tensor. The parameters below control
    each stage:

    - Carrier frequency f_c: sets the wavelength λ = c / f_c and, together
      with the user velocity v, the maximum Doppler shift
      f_d = v · f_c / c.

    - Array sizes: M base-station antennas and N reconfigurable surface
      elements. The channel is M × N, the impairment operator N × N.

    - Time grid: T = floor(duration / sampling_interval) samples at
      t_k = k · sampling_interval. The coherence time of the channel is
      roughly T_c ≈ 0.423 / f_d; sampling faster than T_c resolves the
      Doppler rotation.

    - Hardware impairments: each surface element has a phase error
      φ_k ~ N(0, σ²_φ) and an amplitude error a_k ~ U[1 - ε, 1 + ε].

    - Blockage: the number of blockage events within one sampling
      interval is Poisson distributed with mean λ_b · Δt, where λ_b is the
      event rate in events per second.

References:
    - 3GPP TR 38.901: Study on channel model for frequencies from 0.5 to 100 GHz
    - Liu et al., "STAR: Simultaneous Transmission and Reflection for 360°
      Coverage by Intelligent Surfaces", IEEE Wireless Commun., 2021
    - Björnson et al., "Massive MIMO Networks: Spectral, Energy, and
      Hardware Efficiency", 2017
"""

import math
import sys
from dataclasses import dataclass, replace as dc_replace

from .errors import ConfigurationError

SPEED_OF_LIGHT = 299_792_458.0  # m/s

SUPPORTED_SCENARIOS = ("umi", "uma", "rma")
SUPPORTED_TDL_MODELS = ("A", "B", "C", "D", "E")

# A ratio within a few ulps of an integer is that integer, so that
# 0.002 / 0.001 yields 2 and not 1.9999999999999998 -> 1. Anything further
# away is a genuine fraction and is floored.
_TIME_GRID_RTOL = 8 * sys.float_info.epsilon


@dataclass(frozen=True)
class SystemParameters:
    """
    Immutable configuration of one pipeline run.

    Attributes:
        carrier_frequency: Carrier frequency in Hz. Must be positive.
            Determines the wavelength used by the channel providers and the
            Doppler shift f_d = v · f_c / c.

        num_ris_elements: Number of STAR-RIS elements N. The impairment
            operator is N × N and the channel has N columns.

        num_bs_ant: Number of base station antennas M. The channel has M
            rows.

        duration: Total simulated time in seconds. Must be positive.

        sampling_interval: Spacing of the time grid in seconds. Must be
            positive and not exceed ``duration``, otherwise the grid would
            be empty.

        phase_noise_variance: Variance σ²_φ (rad²) of the zero-mean Gaussian
            per-element phase error. Zero disables phase errors.

        amplitude_error_range: Half range ε of the uniform per-element
            amplitude error, a_k ~ U[1 - ε, 1 + ε]. Must lie in [0, 1) so
            amplitudes stay positive.

        user_velocity: Relative velocity in m/s. Negative values model an
            approaching/receding sign convention and flip the Doppler sign.

        blockage_rate: Blockage event rate λ_b in events per second.
            Zero disables blockage.

        seed: Seed of the numpy Generator threaded through the pipeline.

        scenario: 3GPP TR 38.901 system-level scenario used by the
            stochastic geometry provider ("umi", "uma", "rma").

        tdl_model: 3GPP TDL profile used by the statistical provider
            ("A" to "E").

        delay_spread: RMS delay spread in seconds for the TDL profile.
    """

    carrier_frequency: float = 28e9
    num_ris_elements: int = 16
    num_bs_ant: int = 4
    duration: float = 0.1
    sampling_interval: float = 1e-3
    phase_noise_variance: float = 0.01
    amplitude_error_range: float = 0.05
    user_velocity: float = 3.0
    blockage_rate: float = 2.0
    seed: int = 42
    scenario: str = "umi"
    tdl_model: str = "A"
    delay_spread: float = 100e-9

    def __post_init__(self):
        """Validate every field; raises ConfigurationError on the first violation."""
        if not _is_positive(self.carrier_frequency):
            raise ConfigurationError(
                f"carrier_frequency must be > 0 Hz, got {self.carrier_frequency!r}"
            )
        for name in ("num_ris_elements", "num_bs_ant"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")
        if not _is_positive(self.duration):
            raise ConfigurationError(f"duration must be > 0 s, got {self.duration!r}")
        if not _is_positive(self.sampling_interval):
            raise ConfigurationError(
                f"sampling_interval must be > 0 s, got {self.sampling_interval!r}"
            )
        if _sample_count(self.duration, self.sampling_interval) < 1:
            raise ConfigurationError(
                f"sampling_interval ({self.sampling_interval} s) exceeds duration "
                f"({self.duration} s); the time grid would be empty"
            )
        if not _is_non_negative(self.phase_noise_variance):
            raise ConfigurationError(
                f"phase_noise_variance must be >= 0, got {self.phase_noise_variance!r}"
            )
        if not (_is_non_negative(self.amplitude_error_range) and self.amplitude_error_range < 1.0):
            raise ConfigurationError(
                f"amplitude_error_range must lie in [0, 1), got {self.amplitude_error_range!r}"
            )
        if not _is_finite(self.user_velocity):
            raise ConfigurationError(f"user_velocity must be finite, got {self.user_velocity!r}")
        if not _is_non_negative(self.blockage_rate):
            raise ConfigurationError(f"blockage_rate must be >= 0, got {self.blockage_rate!r}")
        if isinstance(self.seed, bool) or not isinstance(self.seed, int) or self.seed < 0:
            raise ConfigurationError(f"seed must be a non-negative integer, got {self.seed!r}")
        if str(self.scenario).lower() not in SUPPORTED_SCENARIOS:
            raise ConfigurationError(
                f"Unknown scenario: {self.scenario}. Supported: {', '.join(SUPPORTED_SCENARIOS)}"
            )
        if str(self.tdl_model).upper() not in SUPPORTED_TDL_MODELS:
            raise ConfigurationError(
                f"Unknown TDL model: {self.tdl_model}. "
                f"Supported: {', '.join(SUPPORTED_TDL_MODELS)}"
            )
        if not _is_positive(self.delay_spread):
            raise ConfigurationError(f"delay_spread must be > 0 s, got {self.delay_spread!r}")

    @property
    def num_time_samples(self) -> int:
        """
        Number of samples T on the time grid.

        T = floor(duration / sampling_interval). A ratio that is an integer
        up to floating point round-off counts as that integer.

        Returns:
            T >= 1 (guaranteed by validation)
        """
        return _sample_count(self.duration, self.sampling_interval)

    @property
    def wavelength(self) -> float:
        """Carrier wavelength λ = c / f_c in metres."""
        return SPEED_OF_LIGHT / self.carrier_frequency

    @property
    def doppler_frequency(self) -> float:
        """
        Maximum Doppler shift f_d = v · f_c / c in Hz.

        Theory:
            A terminal moving with speed v relative to the surface sees the
            carrier shifted by at most f_d = v / λ. The channel then rotates
            by exp(j·2π·f_d·t), completing one revolution every 1/f_d s.
        """
        return self.user_velocity * self.carrier_frequency / SPEED_OF_LIGHT

    @property
    def coherence_time(self) -> float:
        """Approximate channel coherence time T_c ≈ 0.423 / f_d (inf when static)."""
        fd = abs(self.doppler_frequency)
        return math.inf if fd == 0.0 else 0.423 / fd

    @property
    def blockage_mean(self) -> float:
        """Expected number of blockage events per sampling interval, λ_b · Δt."""
        return self.blockage_rate * self.sampling_interval

    def replace(self, **changes) -> "SystemParameters":
        """Return a new, re-validated instance with the given fields replaced."""
        return dc_replace(self, **changes)

    def to_dict(self) -> dict:
        """Plain dictionary of all fields plus derived quantities (JSON friendly)."""
        data = {name: getattr(self, name) for name in self.__dataclass_fields__}
        data["num_time_samples"] = self.num_time_samples
        data["doppler_frequency"] = self.doppler_frequency
        return data


def _sample_count(duration: float, interval: float) -> int:
    ratio = duration / interval
    nearest = round(ratio)
    if math.isclose(ratio, nearest, rel_tol=_TIME_GRID_RTOL):
        return int(nearest)
    return int(math.floor(ratio))


def _is_finite(value) -> bool:
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


def _is_positive(value) -> bool:
    return _is_finite(value) and float(value) > 0.0


def _is_non_negative(value) -> bool:
    return _is_finite(value) and float(value) >= 0.0
