"""Pedestrian user at mmWave with moderate hardware impairments."""

from ..scenario_spec import ScenarioSpec

SCENARIO = ScenarioSpec(
    name="pedestrian",
    description="3 km/h pedestrian, 28 GHz, 16-element surface, light blockage",
    parameters=dict(
        carrier_frequency=28e9,
        num_ris_elements=16,
        num_bs_ant=4,
        duration=0.2,
        sampling_interval=1e-3,
        phase_noise_variance=0.01,
        amplitude_error_range=0.05,
        user_velocity=0.83,
        blockage_rate=1.0,
        scenario="umi",
        tdl_model="A",
    ),
    coupling_strength=0.05,
)
