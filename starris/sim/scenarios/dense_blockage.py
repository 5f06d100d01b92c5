"""Dense blockage: frequent obstruction events, several per interval."""

from ..scenario_spec import ScenarioSpec

SCENARIO = ScenarioSpec(
    name="dense_blockage",
    description="Crowded indoor-like link with frequent blockage events",
    parameters=dict(
        carrier_frequency=28e9,
        num_ris_elements=16,
        num_bs_ant=4,
        duration=0.1,
        sampling_interval=1e-3,
        phase_noise_variance=0.01,
        amplitude_error_range=0.05,
        user_velocity=1.5,
        blockage_rate=400.0,
        scenario="umi",
        tdl_model="B",
    ),
    coupling_strength=0.05,
    notes="λ_b·Δt = 0.4; about 6% of the samples see two or more events and a negative attenuation factor.",
)
