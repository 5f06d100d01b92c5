"""
Unit tests for the dynamics engine: Doppler rotation, blockage and the
M × N × T channel tensor.

Run with:
  pytest tests/test_dynamics.py -v
"""

import logging
import math

import numpy as np
import pytest

from starris.components.config import SystemParameters
from starris.components.dynamics import (
    DynamicsEngine,
    SionnaDopplerProvider,
    closed_form_phase,
    doppler_phase,
    draw_blockage_mask,
    time_axis,
)
from starris.components.errors import ProviderUnavailable, ShapeMismatchError

from conftest import BrokenDoppler, ConstantDoppler, random_channel


class TestDopplerPhase:
    """Per-sample Doppler term."""

    def test_closed_form(self):
        assert closed_form_phase(0.0, 100.0) == pytest.approx(1.0)
        assert closed_form_phase(1e-3, 250.0) == pytest.approx(np.exp(0.5j * math.pi))

    def test_no_provider_uses_closed_form(self, small_params):
        t = 3e-3
        expected = np.exp(2j * math.pi * small_params.doppler_frequency * t)
        assert doppler_phase(t, small_params) == pytest.approx(expected)

    def test_provider_value_used(self, small_params):
        provider = ConstantDoppler()
        value = doppler_phase(2e-3, small_params, provider)
        assert value == pytest.approx(np.exp(0.5j * math.pi))
        assert provider.calls == 1

    def test_unavailable_provider_falls_back(self, small_params, caplog):
        with caplog.at_level(logging.INFO, logger="starris.components.dynamics"):
            value = doppler_phase(1e-3, small_params, BrokenDoppler())
        assert value == pytest.approx(closed_form_phase(1e-3, small_params.doppler_frequency))
        assert "closed form" in caplog.text

    def test_fallback_callback(self, small_params):
        fallbacks = []
        doppler_phase(0.0, small_params, BrokenDoppler(), lambda: fallbacks.append(True))
        assert fallbacks == [True]


class TestBlockage:
    """Poisson blockage counts."""

    def test_zero_rate_never_blocks(self):
        params = SystemParameters(blockage_rate=0.0, duration=1.0)
        mask = draw_blockage_mask(params, np.random.default_rng(0))
        assert mask.shape == (1000,)
        np.testing.assert_array_equal(mask, 0.0)

    def test_mean_matches_rate(self):
        params = SystemParameters(blockage_rate=200.0, duration=10.0, sampling_interval=1e-3)
        mask = draw_blockage_mask(params, np.random.default_rng(1))
        assert mask.mean() == pytest.approx(0.2, abs=0.02)

    def test_single_vectorized_draw(self, small_params):
        mask = draw_blockage_mask(small_params, np.random.default_rng(4))
        expected = np.random.default_rng(4).poisson(small_params.blockage_mean, 10)
        np.testing.assert_array_equal(mask, expected)


class TestDynamicsEngine:
    """Tensor assembly H[:, :, k] = H_imp · ρ_k · (1 - n_k)."""

    def test_shapes(self, small_params, ideal_channel):
        times, tensor, mask = DynamicsEngine(small_params).evolve(ideal_channel, np.random.default_rng(0))
        assert times.shape == (10,)
        assert tensor.shape == (3, 4, 10)
        assert mask.shape == (10,)
        np.testing.assert_allclose(times, np.arange(10) * 1e-3)

    def test_two_sample_doppler_scenario(self):
        params = SystemParameters(num_bs_ant=2, num_ris_elements=2, duration=0.002,
                                  sampling_interval=0.001, user_velocity=10.0,
                                  carrier_frequency=3e9, blockage_rate=0.0)
        h = np.array([[1, 1j], [2, -1]], dtype=complex)
        fd = 10.0 * 3e9 / 299_792_458.0

        _, tensor, mask = DynamicsEngine(params).evolve(h, np.random.default_rng(0))

        assert tensor.shape == (2, 2, 2)
        np.testing.assert_array_equal(mask, [0.0, 0.0])
        np.testing.assert_allclose(tensor[:, :, 0], h)
        np.testing.assert_allclose(tensor[:, :, 1], h * np.exp(2j * np.pi * fd * 1e-3))

    def test_no_blockage_preserves_power(self, ideal_channel):
        params = SystemParameters(num_bs_ant=3, num_ris_elements=4, blockage_rate=0.0)
        _, tensor, _ = DynamicsEngine(params).evolve(ideal_channel, np.random.default_rng(0))
        power = np.sum(np.abs(tensor) ** 2, axis=(0, 1))
        np.testing.assert_allclose(power, np.sum(np.abs(ideal_channel) ** 2))

    def test_blocked_samples_vanish(self, small_params, ideal_channel):
        evolution = DynamicsEngine(small_params).evolve_detailed(
            ideal_channel, np.random.default_rng(0))
        for k, n_k in enumerate(evolution.blockage_mask):
            expected = ideal_channel * evolution.doppler[k] * (1.0 - n_k)
            np.testing.assert_allclose(evolution.tensor[:, :, k], expected)

    def test_multiple_events_keep_negative_attenuation(self, ideal_channel):
        params = SystemParameters(num_bs_ant=3, num_ris_elements=4, blockage_rate=5000.0,
                                  duration=0.1, sampling_interval=1e-3, user_velocity=0.0)
        evolution = DynamicsEngine(params).evolve_detailed(ideal_channel, np.random.default_rng(0))

        heavy = np.flatnonzero(evolution.blockage_mask > 1)
        assert heavy.size > 0
        k = heavy[0]
        np.testing.assert_allclose(
            evolution.tensor[:, :, k], ideal_channel * (1.0 - evolution.blockage_mask[k]))
        assert np.real(evolution.tensor[0, 0, k] / ideal_channel[0, 0]) < 0

    def test_blockage_drawn_before_doppler(self, small_params, ideal_channel):
        rng = np.random.default_rng(6)
        evolution = DynamicsEngine(small_params).evolve_detailed(ideal_channel, rng)
        expected = np.random.default_rng(6).poisson(small_params.blockage_mean, 10)
        np.testing.assert_array_equal(evolution.blockage_mask, expected)

    def test_threaded_matches_sequential(self, small_params, ideal_channel):
        sequential = DynamicsEngine(small_params, ConstantDoppler(), workers=1).evolve_detailed(
            ideal_channel, np.random.default_rng(3))
        threaded = DynamicsEngine(small_params, ConstantDoppler(), workers=4).evolve_detailed(
            ideal_channel, np.random.default_rng(3))
        np.testing.assert_array_equal(sequential.tensor, threaded.tensor)
        np.testing.assert_array_equal(sequential.doppler, threaded.doppler)

    def test_provider_failure_cached_for_run(self, small_params, ideal_channel):
        provider = BrokenDoppler()
        engine = DynamicsEngine(small_params, provider)
        evolution = engine.evolve_detailed(ideal_channel, np.random.default_rng(0))
        assert provider.calls == 1
        np.testing.assert_allclose(
            evolution.doppler,
            np.exp(2j * np.pi * small_params.doppler_frequency * time_axis(small_params)))

    def test_provider_retried_without_cache(self, small_params, ideal_channel):
        provider = BrokenDoppler()
        engine = DynamicsEngine(small_params, provider, cache_provider_failure=False)
        engine.evolve(ideal_channel, np.random.default_rng(0))
        assert provider.calls == 10

    def test_wrong_shape(self, small_params):
        with pytest.raises(ShapeMismatchError):
            DynamicsEngine(small_params).evolve(np.ones((4, 3)), np.random.default_rng(0))

    def test_same_seed_same_tensor(self, small_params, ideal_channel):
        first = DynamicsEngine(small_params).evolve(ideal_channel, np.random.default_rng(12))
        second = DynamicsEngine(small_params).evolve(ideal_channel, np.random.default_rng(12))
        np.testing.assert_array_equal(first[1], second[1])


class TestSionnaDoppler:
    """Sionna TDL Doppler generator (skipped without Sionna)."""

    def test_unit_modulus_term(self):
        pytest.importorskip("sionna")
        provider = SionnaDopplerProvider(carrier_frequency=3.5e9)
        term = provider.phase(2e-3, 100.0, 1e-3)
        assert abs(term) == pytest.approx(1.0)

    def test_used_by_engine(self):
        pytest.importorskip("sionna")
        params = SystemParameters(num_bs_ant=2, num_ris_elements=2, duration=0.003)
        engine = DynamicsEngine(params, SionnaDopplerProvider.from_parameters(params))
        _, tensor, _ = engine.evolve(random_channel(2, 2), np.random.default_rng(0))
        assert tensor.shape == (2, 2, 3)

    def test_threaded_matches_sequential(self):
        pytest.importorskip("sionna")
        params = SystemParameters(num_bs_ant=2, num_ris_elements=2, duration=0.008)
        h = random_channel(2, 2)
        sequential = DynamicsEngine(
            params, SionnaDopplerProvider.from_parameters(params), workers=1,
        ).evolve_detailed(h, np.random.default_rng(5))
        threaded = DynamicsEngine(
            params, SionnaDopplerProvider.from_parameters(params), workers=4,
        ).evolve_detailed(h, np.random.default_rng(5))
        np.testing.assert_allclose(sequential.doppler, threaded.doppler, rtol=1e-6)
        np.testing.assert_allclose(sequential.tensor, threaded.tensor, rtol=1e-6)

    def test_terms_agree_with_engine_series(self):
        pytest.importorskip("sionna")
        params = SystemParameters(num_bs_ant=2, num_ris_elements=2, duration=0.004)
        evolution = DynamicsEngine(
            params, SionnaDopplerProvider.from_parameters(params),
        ).evolve_detailed(random_channel(2, 2), np.random.default_rng(0))
        provider = SionnaDopplerProvider.from_parameters(params)
        provider.prepare(params.num_time_samples, params.doppler_frequency,
                         params.sampling_interval)
        term = provider.phase(2e-3, params.doppler_frequency, params.sampling_interval)
        assert term == pytest.approx(evolution.doppler[2])


class _ScriptedTdl(SionnaDopplerProvider):
    """TDL provider with the Sionna call replaced by a closed-form series."""

    def __init__(self, error=None):
        super().__init__(carrier_frequency=28e9)
        self.error = error
        self.generated = []

    def _generate(self, num_samples, fd, interval):
        self.generated.append(num_samples)
        if self.error is not None:
            raise self.error
        return np.exp(2j * np.pi * fd * interval * np.arange(num_samples))


class TestTdlRealization:
    """One cached TDL realization per run."""

    def test_generated_once_per_run(self, small_params, ideal_channel):
        provider = _ScriptedTdl()
        evolution = DynamicsEngine(small_params, provider, workers=4).evolve_detailed(
            ideal_channel, np.random.default_rng(0))
        assert provider.generated == [10]
        np.testing.assert_allclose(
            evolution.doppler,
            np.exp(2j * np.pi * small_params.doppler_frequency * time_axis(small_params)))

    def test_threaded_matches_sequential(self, small_params, ideal_channel):
        sequential = DynamicsEngine(small_params, _ScriptedTdl(), workers=1).evolve_detailed(
            ideal_channel, np.random.default_rng(3))
        threaded = DynamicsEngine(small_params, _ScriptedTdl(), workers=4).evolve_detailed(
            ideal_channel, np.random.default_rng(3))
        np.testing.assert_array_equal(sequential.doppler, threaded.doppler)

    def test_shorter_request_reuses_series(self):
        provider = _ScriptedTdl()
        provider.phase(5e-3, 100.0, 1e-3)
        provider.phase(2e-3, 100.0, 1e-3)
        provider.phase(0.0, 100.0, 1e-3)
        assert provider.generated == [6]

    def test_longer_request_regenerates(self):
        provider = _ScriptedTdl()
        provider.phase(2e-3, 100.0, 1e-3)
        provider.phase(4e-3, 100.0, 1e-3)
        assert provider.generated == [3, 5]

    def test_negative_doppler_conjugates_same_realization(self):
        provider = _ScriptedTdl()
        forward = provider.phase(3e-3, 100.0, 1e-3)
        backward = provider.phase(3e-3, -100.0, 1e-3)
        assert backward == pytest.approx(forward.conjugate())
        assert provider.generated == [4]

    def test_backend_failure_falls_back_once(self, small_params, ideal_channel):
        provider = _ScriptedTdl(error=RuntimeError("no GPU"))
        evolution = DynamicsEngine(small_params, provider, workers=4).evolve_detailed(
            ideal_channel, np.random.default_rng(0))
        assert provider.generated == [10]
        np.testing.assert_allclose(
            evolution.doppler,
            np.exp(2j * np.pi * small_params.doppler_frequency * time_axis(small_params)))

    def test_backend_failure_is_unavailable(self):
        provider = _ScriptedTdl(error=ImportError("No module named 'sionna'"))
        with pytest.raises(ProviderUnavailable, match="Sionna TDL generator failed"):
            provider.prepare(4, 100.0, 1e-3)

    def test_programming_error_propagates(self, small_params, ideal_channel):
        provider = _ScriptedTdl(error=KeyError("coeffs"))
        with pytest.raises(KeyError):
            DynamicsEngine(small_params, provider).evolve(ideal_channel, np.random.default_rng(0))
