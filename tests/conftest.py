"""
Shared fixtures for the STAR-RIS pipeline tests.

Channel and Doppler generators are replaced by in-memory stubs so the
pipeline runs without TensorFlow/Sionna; tests that exercise the Sionna
generators skip themselves when it is not installed.
"""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from starris.components.channel import ChannelProvider
from starris.components.config import SystemParameters
from starris.components.dynamics import DopplerProvider
from starris.components.errors import ProviderUnavailable


class FixedProvider(ChannelProvider):
    """Returns a fixed channel and counts calls."""

    def __init__(self, channel, name="fixed"):
        self.channel = np.asarray(channel)
        self.name = name
        self.calls = 0

    def acquire(self, params):
        self.calls += 1
        return self.channel


class FailingProvider(ChannelProvider):
    """Always unavailable."""

    def __init__(self, name="failing", reason="offline"):
        self.name = name
        self.reason = reason
        self.calls = 0

    def acquire(self, params):
        self.calls += 1
        raise ProviderUnavailable(self.reason)


class ConstantDoppler(DopplerProvider):
    """Doppler term depending only on the sample index."""

    name = "constant"

    def __init__(self):
        self.calls = 0

    def phase(self, t, fd, interval):
        self.calls += 1
        k = int(round(t / interval))
        return complex(np.exp(0.25j * np.pi * k))


class BrokenDoppler(DopplerProvider):
    """Doppler generator that is never available."""

    name = "broken"

    def __init__(self):
        self.calls = 0

    def phase(self, t, fd, interval):
        self.calls += 1
        raise ProviderUnavailable("no GPU")


def random_channel(m, n, seed=0):
    rng = np.random.default_rng(seed)
    return (rng.standard_normal((m, n)) + 1j * rng.standard_normal((m, n))) / np.sqrt(2)


@pytest.fixture
def small_params():
    """3 BS antennas, 4 elements, 10 samples."""
    return SystemParameters(
        carrier_frequency=28e9,
        num_ris_elements=4,
        num_bs_ant=3,
        duration=0.01,
        sampling_interval=1e-3,
        phase_noise_variance=0.05,
        amplitude_error_range=0.1,
        user_velocity=3.0,
        blockage_rate=50.0,
        seed=7,
    )


@pytest.fixture
def ideal_channel(small_params):
    return random_channel(small_params.num_bs_ant, small_params.num_ris_elements)


@pytest.fixture
def fixed_provider(ideal_channel):
    return FixedProvider(ideal_channel)
