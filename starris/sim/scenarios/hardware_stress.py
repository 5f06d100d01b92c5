"""Hardware stress: large phase/amplitude errors and strong coupling."""

from ..scenario_spec import ScenarioSpec

SCENARIO = ScenarioSpec(
    name="hardware_stress",
    description="Low-cost surface: σ²_φ = 0.2 rad², ε = 0.3, strong coupling",
    parameters=dict(
        carrier_frequency=28e9,
        num_ris_elements=64,
        num_bs_ant=4,
        duration=0.05,
        sampling_interval=1e-3,
        phase_noise_variance=0.2,
        amplitude_error_range=0.3,
        user_velocity=0.83,
        blockage_rate=0.0,
        scenario="umi",
    ),
    coupling_strength=0.2,
)
