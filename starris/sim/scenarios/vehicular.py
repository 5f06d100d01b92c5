"""Vehicular user: fast Doppler rotation, macro-cell geometry."""

from ..scenario_spec import ScenarioSpec

SCENARIO = ScenarioSpec(
    name="vehicular",
    description="60 km/h vehicle, 3.5 GHz, 32-element surface, UMa geometry",
    parameters=dict(
        carrier_frequency=3.5e9,
        num_ris_elements=32,
        num_bs_ant=8,
        duration=0.1,
        sampling_interval=2.5e-4,
        phase_noise_variance=0.02,
        amplitude_error_range=0.05,
        user_velocity=16.7,
        blockage_rate=5.0,
        scenario="uma",
        tdl_model="C",
        delay_spread=300e-9,
    ),
    coupling_strength=0.05,
    notes="f_d ≈ 195 Hz, coherence time ≈ 2.2 ms, about 9 samples per coherence time.",
)
