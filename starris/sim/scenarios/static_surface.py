"""Static surface: no mobility, no blockage, ideal hardware."""

from ..scenario_spec import ScenarioSpec

SCENARIO = ScenarioSpec(
    name="static_surface",
    description="Static link with ideal elements - reference for the impairment study",
    parameters=dict(
        carrier_frequency=28e9,
        num_ris_elements=16,
        num_bs_ant=4,
        duration=0.05,
        sampling_interval=1e-3,
        phase_noise_variance=0.0,
        amplitude_error_range=0.0,
        user_velocity=0.0,
        blockage_rate=0.0,
        scenario="umi",
    ),
    coupling_strength=0.0,
    notes="Dynamic tensor equals the ideal channel at every sample when coupling is zero.",
)
