"""
Ideal BS-to-RIS channel acquisition for the STAR-RIS pipeline.

This module supplies the static, impairment-free channel matrix H (M × N)
through a prioritized chain of channel providers. The first provider that
delivers wins; a provider that cannot deliver raises ProviderUnavailable and
the next one is tried.

Theory:
    Three families of channel models are used, from most to least site
    specific:

    1. Ray tracing:
       - Deterministic multipath from a geometric scene description
         (e.g. DeepMIMO scenarios). Each path carries a complex gain
         α_l, delay τ_l and angles of departure/arrival.
       - Narrowband channel: H = Σ_l α_l · a_BS(θ_l) · a_RIS(φ_l)^H

    2. Stochastic geometry (3GPP TR 38.901 system level, UMi/UMa/RMa):
       - Random drop of terminals in a sector, large-scale parameters from
         scenario-specific statistics, clusters with intra-cluster rays.
       - Captures spatial correlation across both arrays.

    3. Tapped delay line (3GPP TR 38.901 TDL-A…E):
       - Statistical power delay profile scaled by the delay spread,
         Rayleigh (A-C) or Rician first tap (D, E).
       - No geometry; spatial structure only through optional correlation.

    For a flat (narrowband) model the frequency response at the carrier is
    the coherent sum of the path coefficients:

        H[m, n] = Σ_l a_l[n, m]

    which is what every Sionna-backed provider returns.

    Whatever the provider delivers is reshaped exactly once to M × N. The
    element count must match; nothing is truncated or padded.

References:
    - 3GPP TR 38.901: Study on channel model for frequencies from 0.5 to 100 GHz
    - Alkhateeb, "DeepMIMO: A Generic Deep Learning Dataset for Millimeter
      Wave and Massive MIMO Applications", ITA 2019
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterable, List, Optional

import numpy as np

from ..utils.files import load_matrix_file
from .config import SystemParameters
from .errors import ChannelAcquisitionError, ProviderUnavailable, ShapeMismatchError

logger = logging.getLogger(__name__)


def reshape_to_channel(data: Any, params: SystemParameters) -> np.ndarray:
    """
    Coerce provider output to a complex M × N channel matrix.

    This is the single explicit reshape of the pipeline. Any element count
    other than M·N is a ShapeMismatchError.

    Args:
        data: Array-like provider output.
        params: System parameters providing M and N.

    Returns:
        New complex128 array of shape [num_bs_ant, num_ris_elements].
    """
    m, n = params.num_bs_ant, params.num_ris_elements
    try:
        array = np.array(data, dtype=np.complex128)
    except (TypeError, ValueError) as exc:
        raise ShapeMismatchError(f"Channel data is not coercible to a complex array: {exc}") from exc
    if array.size != m * n:
        raise ShapeMismatchError(
            f"Channel data has {array.size} elements (shape {array.shape}); "
            f"expected {m * n} for an {m}×{n} channel"
        )
    return array.reshape(m, n)


class ChannelProvider(ABC):
    """One entry of the channel acquisition fallback chain."""

    name = "provider"

    @abstractmethod
    def acquire(self, params: SystemParameters) -> Any:
        """
        Produce channel data with M·N complex entries.

        Raises:
            ProviderUnavailable: If this provider cannot deliver.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class RayTracingProvider(ChannelProvider):
    """
    Channel from a ray-tracing dataset.

    Accepts an in-memory dataset or a file. Supported layouts:

    - DeepMIMO style: ``{"user": {"channel": [...]}}`` or a list of such
      dictionaries (one per base station, the first is used).
    - Plain arrays of shape [M, N], [M, N, subcarriers] or
      [users, M, N, subcarriers].
    - Files: ``.npy``, ``.npz`` and MATLAB ``.mat`` (via SciPy).
    """

    name = "ray_tracing"

    def __init__(
        self,
        dataset: Any = None,
        path: Optional[str] = None,
        key: Optional[str] = None,
        user_index: int = 0,
        subcarrier: int = 0,
        transpose: bool = False,
    ):
        """
        Args:
            dataset: In-memory dataset, takes precedence over ``path``.
            path: Dataset file.
            key: Variable name inside ``.npz``/``.mat`` files.
            user_index: User to select when the dataset holds several.
            subcarrier: Subcarrier to select for per-subcarrier responses.
            transpose: Swap the last two axes, for datasets stored as
                RIS × BS instead of BS × RIS.
        """
        self.dataset = dataset
        self.path = path
        self.key = key
        self.user_index = user_index
        self.subcarrier = subcarrier
        self.transpose = transpose

    def acquire(self, params: SystemParameters) -> np.ndarray:
        data = self._load()
        try:
            channel = self._select(data)
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise ProviderUnavailable(f"Unsupported ray-tracing dataset layout: {exc}") from exc
        if self.transpose:
            channel = np.swapaxes(channel, -1, -2)
        return channel

    def _load(self) -> Any:
        if self.dataset is not None:
            return self.dataset
        if self.path is None:
            raise ProviderUnavailable("No ray-tracing dataset configured")

        path = Path(self.path)
        if not path.exists():
            raise ProviderUnavailable(f"Ray-tracing dataset not found: {path}")
        try:
            return load_matrix_file(path, self.key)
        except (OSError, ValueError, KeyError, NotImplementedError) as exc:
            raise ProviderUnavailable(f"Cannot read ray-tracing dataset {path}: {exc}") from exc

    def _select(self, data: Any) -> np.ndarray:
        if isinstance(data, (list, tuple)) and data and isinstance(data[0], dict):
            data = data[0]
        if isinstance(data, dict):
            data = data["user"]["channel"][self.user_index]
        array = np.asarray(data, dtype=np.complex128)
        if array.ndim == 4:
            array = array[self.user_index]
        if array.ndim == 3:
            array = array[..., self.subcarrier]
        return array


def sionna_errors() -> tuple:
    """
    Exception types meaning that the Sionna/TensorFlow backend cannot deliver.

    Missing packages, device and memory failures and invalid model
    arguments qualify; anything else is a programming error and propagates.
    """
    errors = (ImportError, RuntimeError, ValueError, TypeError, MemoryError)
    try:
        import tensorflow as tf
    except ImportError:
        return errors
    return errors + (tf.errors.OpError,)


class _SionnaProvider(ChannelProvider):
    """
    Shared plumbing for providers backed by Sionna channel models.

    A backend failure (see ``sionna_errors``) while importing or running
    Sionna/TensorFlow makes the provider unavailable so the chain can move
    on. Errors in reducing the path coefficients propagate.
    """

    def acquire(self, params: SystemParameters) -> np.ndarray:
        try:
            a = self._generate(params)
        except sionna_errors() as exc:
            logger.debug("%s generator failed", self.name, exc_info=True)
            raise ProviderUnavailable(f"{self.name} generator failed: {exc}") from exc
        return self._narrowband(a)

    @abstractmethod
    def _generate(self, params: SystemParameters):
        """Return path coefficients [batch, rx, rx_ant, tx, tx_ant, paths, time]."""

    @staticmethod
    def _seed(params: SystemParameters) -> None:
        from sionna.phy import config as sionna_config

        sionna_config.seed = params.seed

    @staticmethod
    def _narrowband(a) -> np.ndarray:
        """
        Sum path coefficients of the first link and time sample.

        Returns:
            [M, N] matrix (BS antennas × RIS elements).
        """
        coeffs = np.asarray(a.numpy() if hasattr(a, "numpy") else a)
        h_ris_bs = coeffs[0, 0, :, 0, :, :, 0].sum(axis=-1)  # [N, M]
        return h_ris_bs.T


class StochasticGeometryProvider(_SionnaProvider):
    """
    3GPP TR 38.901 system-level channel (UMi, UMa, RMa) via Sionna.

    The BS transmits (downlink) with M ports, the surface receives as a
    single terminal with N ports. A fresh single-sector topology is dropped
    for every acquisition.
    """

    name = "stochastic_geometry"

    def __init__(self, o2i_model: str = "low"):
        self.o2i_model = o2i_model

    def _generate(self, params: SystemParameters):
        from sionna.phy.channel import gen_single_sector_topology as gen_topology
        from sionna.phy.channel.tr38901 import RMa, UMa, UMi

        from .antenna import AntennaConfig

        self._seed(params)
        antenna_config = AntennaConfig(params)
        scenario = params.scenario.lower()
        channel_params = {
            "carrier_frequency": params.carrier_frequency,
            "ut_array": antenna_config.get_ris_array(),
            "bs_array": antenna_config.get_bs_array(),
            "direction": "downlink",
            "enable_pathloss": False,
            "enable_shadow_fading": False,
        }
        if scenario == "umi":
            channel_model = UMi(o2i_model=self.o2i_model, **channel_params)
        elif scenario == "uma":
            channel_model = UMa(o2i_model=self.o2i_model, **channel_params)
        else:
            channel_model = RMa(**channel_params)

        speed = abs(params.user_velocity)
        topology = gen_topology(
            1,
            1,
            scenario,
            min_ut_velocity=speed,
            max_ut_velocity=speed,
        )
        channel_model.set_topology(*topology)
        a, _ = channel_model(1, 1.0 / params.sampling_interval)
        return a


class StatisticalModelProvider(_SionnaProvider):
    """3GPP TR 38.901 tapped delay line channel (TDL-A…E) via Sionna."""

    name = "statistical_model"

    def _generate(self, params: SystemParameters):
        from sionna.phy.channel.tr38901 import TDL

        self._seed(params)
        speed = abs(params.user_velocity)
        tdl = TDL(
            model=params.tdl_model.upper(),
            delay_spread=params.delay_spread,
            carrier_frequency=params.carrier_frequency,
            min_speed=speed,
            max_speed=speed,
            num_rx_ant=params.num_ris_elements,
            num_tx_ant=params.num_bs_ant,
        )
        a, _ = tdl(1, 1, 1.0 / params.sampling_interval)
        return a


def default_providers(
    dataset: Any = None,
    dataset_path: Optional[str] = None,
    dataset_key: Optional[str] = None,
) -> List[ChannelProvider]:
    """Default fallback chain: ray tracing, stochastic geometry, TDL."""
    return [
        RayTracingProvider(dataset=dataset, path=dataset_path, key=dataset_key),
        StochasticGeometryProvider(),
        StatisticalModelProvider(),
    ]


class ChannelSource:
    """
    Ideal channel supplier over a prioritized provider chain.

    Each attempt is isolated: a failing provider leaves no state behind that
    could influence later providers or later pipeline stages.
    """

    def __init__(self, providers: Optional[Iterable[ChannelProvider]] = None):
        """
        Args:
            providers: Providers in priority order. Defaults to
                ``default_providers()``.
        """
        self.providers = list(providers) if providers is not None else default_providers()
        if not self.providers:
            raise ChannelAcquisitionError("No channel providers configured")
        self.last_provider: Optional[str] = None

    def acquire(self, params: SystemParameters) -> np.ndarray:
        """
        Return the ideal channel matrix from the first provider that delivers.

        Returns:
            Complex [M, N] matrix.

        Raises:
            ChannelAcquisitionError: Every provider was unavailable.
            ShapeMismatchError: The winning provider's output cannot be
                reshaped to M × N.
        """
        self.last_provider = None
        reasons = {}
        for provider in self.providers:
            try:
                raw = provider.acquire(params)
            except ProviderUnavailable as exc:
                logger.info("Channel provider '%s' unavailable: %s", provider.name, exc)
                reasons[provider.name] = str(exc)
                continue

            channel = reshape_to_channel(raw, params)
            self.last_provider = provider.name
            logger.info("Ideal channel acquired from '%s' (%d×%d)", provider.name, *channel.shape)
            return channel

        summary = "; ".join(f"{name}: {reason}" for name, reason in reasons.items())
        raise ChannelAcquisitionError(f"All channel providers failed ({summary})", reasons)

