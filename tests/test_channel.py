"""
Unit tests for channel acquisition: provider fallback chain, ray-tracing
datasets and the M × N reshape.

Run with:
  pytest tests/test_channel.py -v
"""

import logging

import numpy as np
import pytest

from starris.components.channel import (
    ChannelSource,
    _SionnaProvider,
    RayTracingProvider,
    StatisticalModelProvider,
    StochasticGeometryProvider,
    default_providers,
    reshape_to_channel,
)
from starris.components.config import SystemParameters
from starris.components.errors import (
    ChannelAcquisitionError,
    ProviderUnavailable,
    ShapeMismatchError,
)

from conftest import FailingProvider, FixedProvider, random_channel


class TestReshape:
    """Single explicit reshape to M × N."""

    def test_flat_data_reshaped(self, small_params):
        flat = np.arange(12) + 1j
        channel = reshape_to_channel(flat, small_params)
        assert channel.shape == (3, 4)
        assert channel.dtype == np.complex128
        assert channel[1, 0] == 4 + 1j

    def test_wrong_element_count(self, small_params):
        with pytest.raises(ShapeMismatchError, match="11 elements"):
            reshape_to_channel(np.ones(11), small_params)

    def test_returns_new_array(self, small_params, ideal_channel):
        channel = reshape_to_channel(ideal_channel, small_params)
        channel[0, 0] = 0
        assert ideal_channel[0, 0] != 0


class TestChannelSource:
    """Fallback chain over providers."""

    def test_first_available_provider_wins(self, small_params, ideal_channel):
        first = FixedProvider(ideal_channel, name="first")
        second = FixedProvider(np.zeros((3, 4)), name="second")
        source = ChannelSource([first, second])

        channel = source.acquire(small_params)

        np.testing.assert_array_equal(channel, ideal_channel)
        assert source.last_provider == "first"
        assert second.calls == 0

    def test_falls_back_in_order(self, small_params, ideal_channel, caplog):
        primary = FailingProvider(name="ray_tracing")
        secondary = FixedProvider(ideal_channel, name="stochastic")
        source = ChannelSource([primary, secondary])

        with caplog.at_level(logging.INFO, logger="starris.components.channel"):
            channel = source.acquire(small_params)

        np.testing.assert_array_equal(channel, ideal_channel)
        assert primary.calls == 1
        assert source.last_provider == "stochastic"
        assert "ray_tracing" in caplog.text

    def test_exhausted_chain(self, small_params):
        source = ChannelSource([FailingProvider("a", "no data"), FailingProvider("b", "no GPU")])
        with pytest.raises(ChannelAcquisitionError) as excinfo:
            source.acquire(small_params)
        assert excinfo.value.reasons == {"a": "no data", "b": "no GPU"}
        assert source.last_provider is None

    def test_empty_chain(self):
        with pytest.raises(ChannelAcquisitionError):
            ChannelSource([])

    def test_wrong_size_from_winning_provider_is_fatal(self, small_params, ideal_channel):
        # A shape error is not a fallback condition
        fallback = FixedProvider(ideal_channel, name="fallback")
        source = ChannelSource([FixedProvider(np.ones(5), name="bad"), fallback])
        with pytest.raises(ShapeMismatchError):
            source.acquire(small_params)
        assert fallback.calls == 0

    def test_default_chain_order(self):
        providers = default_providers()
        assert [p.name for p in providers] == ["ray_tracing", "stochastic_geometry", "statistical_model"]


class TestRayTracingProvider:
    """Dataset layouts and file formats."""

    def test_no_dataset_is_unavailable(self, small_params):
        with pytest.raises(ProviderUnavailable):
            RayTracingProvider().acquire(small_params)

    def test_missing_file_is_unavailable(self, small_params, tmp_path):
        provider = RayTracingProvider(path=str(tmp_path / "missing.npy"))
        with pytest.raises(ProviderUnavailable, match="not found"):
            provider.acquire(small_params)

    def test_plain_matrix(self, small_params, ideal_channel):
        channel = RayTracingProvider(dataset=ideal_channel).acquire(small_params)
        np.testing.assert_array_equal(channel, ideal_channel)

    def test_deepmimo_dictionary(self, small_params):
        # [users, M, N, subcarriers]
        users = np.stack([random_channel(3, 4 * 2, seed=s).reshape(3, 4, 2) for s in range(3)])
        dataset = [{"user": {"channel": users}}]
        provider = RayTracingProvider(dataset=dataset, user_index=2, subcarrier=1)

        channel = provider.acquire(small_params)

        np.testing.assert_array_equal(channel, users[2, :, :, 1])

    def test_four_dimensional_array(self, small_params):
        users = random_channel(2 * 3, 4 * 2).reshape(2, 3, 4, 2)
        channel = RayTracingProvider(dataset=users, user_index=1).acquire(small_params)
        np.testing.assert_array_equal(channel, users[1, :, :, 0])

    def test_transposed_dataset(self, small_params, ideal_channel):
        provider = RayTracingProvider(dataset=ideal_channel.T, transpose=True)
        np.testing.assert_array_equal(provider.acquire(small_params), ideal_channel)

    def test_bad_layout_is_unavailable(self, small_params):
        provider = RayTracingProvider(dataset={"bs": {}})
        with pytest.raises(ProviderUnavailable, match="layout"):
            provider.acquire(small_params)

    def test_npy_file(self, small_params, ideal_channel, tmp_path):
        path = tmp_path / "channel.npy"
        np.save(path, ideal_channel)
        channel = RayTracingProvider(path=str(path)).acquire(small_params)
        np.testing.assert_array_equal(channel, ideal_channel)

    def test_npz_file_with_key(self, small_params, ideal_channel, tmp_path):
        path = tmp_path / "channels.npz"
        np.savez(path, other=np.zeros(3), H=ideal_channel)
        channel = RayTracingProvider(path=str(path), key="H").acquire(small_params)
        np.testing.assert_array_equal(channel, ideal_channel)

    def test_mat_file(self, small_params, ideal_channel, tmp_path):
        from scipy.io import savemat

        path = tmp_path / "channel.mat"
        savemat(str(path), {"H": ideal_channel})
        channel = RayTracingProvider(path=str(path)).acquire(small_params)
        np.testing.assert_allclose(channel, ideal_channel)

    def test_unreadable_file_is_unavailable(self, small_params, tmp_path):
        path = tmp_path / "broken.npy"
        path.write_bytes(b"not an array")
        with pytest.raises(ProviderUnavailable):
            RayTracingProvider(path=str(path)).acquire(small_params)

    def test_in_chain_with_file(self, small_params, ideal_channel, tmp_path):
        path = tmp_path / "channel.npy"
        np.save(path, ideal_channel)
        source = ChannelSource([RayTracingProvider(path=str(path)), FailingProvider()])
        np.testing.assert_array_equal(source.acquire(small_params), ideal_channel)
        assert source.last_provider == "ray_tracing"


class _ScriptedSionna(_SionnaProvider):
    """Sionna-style provider whose generator is scripted by the test."""

    name = "scripted"

    def __init__(self, generate):
        self.generate = generate

    def _generate(self, params):
        return self.generate(params)


def _raise(exc):
    def generate(params):
        raise exc
    return generate


class TestSionnaBackendErrors:
    """Which generator errors make a Sionna provider unavailable."""

    @pytest.mark.parametrize("exc", [
        ImportError("No module named 'sionna'"),
        RuntimeError("CUDA_ERROR_OUT_OF_MEMORY"),
        ValueError("invalid delay spread"),
        MemoryError(),
    ])
    def test_backend_failure_is_unavailable(self, small_params, exc):
        with pytest.raises(ProviderUnavailable, match="scripted generator failed"):
            _ScriptedSionna(_raise(exc)).acquire(small_params)

    def test_backend_failure_logged_with_traceback(self, small_params, caplog):
        with caplog.at_level(logging.DEBUG, logger="starris.components.channel"):
            with pytest.raises(ProviderUnavailable):
                _ScriptedSionna(_raise(RuntimeError("device lost"))).acquire(small_params)
        assert any(record.exc_info for record in caplog.records)

    def test_programming_error_propagates(self, small_params):
        with pytest.raises(KeyError):
            _ScriptedSionna(_raise(KeyError("paths"))).acquire(small_params)

    def test_bad_coefficient_layout_propagates(self, small_params):
        provider = _ScriptedSionna(lambda params: np.zeros((2, 2)))
        with pytest.raises(IndexError):
            provider.acquire(small_params)

    def test_programming_error_stops_the_chain(self, small_params, ideal_channel):
        source = ChannelSource([_ScriptedSionna(_raise(AttributeError("numpy"))),
                                FixedProvider(ideal_channel)])
        with pytest.raises(AttributeError):
            source.acquire(small_params)


class TestSionnaProviders:
    """Sionna-backed generators (skipped without Sionna)."""

    @pytest.fixture
    def params(self):
        return SystemParameters(num_bs_ant=2, num_ris_elements=4, duration=0.002)

    def test_statistical_tdl(self, params):
        pytest.importorskip("sionna")
        data = StatisticalModelProvider().acquire(params)
        channel = reshape_to_channel(data, params)
        assert channel.shape == (2, 4)
        assert np.all(np.isfinite(channel))

    def test_stochastic_geometry(self, params):
        pytest.importorskip("sionna")
        data = StochasticGeometryProvider().acquire(params)
        channel = reshape_to_channel(data, params)
        assert channel.shape == (2, 4)
        assert np.any(channel != 0)

    def test_same_seed_same_channel(self, params):
        pytest.importorskip("sionna")
        first = StatisticalModelProvider().acquire(params)
        second = StatisticalModelProvider().acquire(params)
        np.testing.assert_allclose(first, second)
