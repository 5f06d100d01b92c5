#!/usr/bin/env python3
"""
Main simulation script for the STAR-RIS channel impairment & dynamics pipeline.

This script generates the ideal BS-RIS channel, applies element-level
hardware impairments with mutual coupling and evolves the impaired channel
over time. It provides a command-line interface for single runs with
explicit parameters and for predefined scenario profiles.

Theory:
    Pipeline:

    1. Ideal channel H ∈ C^(M×N) from the first working provider:
       ray-tracing dataset → 3GPP TR 38.901 stochastic geometry → TDL
    2. Impairment operator Θ = D + Γ, D = diag(a_k·exp(j·φ_k)) with
       φ_k ~ N(0, σ²_φ), a_k ~ U(1-ε, 1+ε), Γ = leading N×N coupling block
    3. Impaired channel H_imp = H · Θ
    4. Dynamic channel H[:, :, k] = H_imp · exp(j·2π·f_d·t_k) · (1 - n_k)
       with f_d = v·f_c/c and n_k ~ Poisson(λ_b·Δt)

    Time Grid:
    - T = floor(duration / Δt) samples at t_k = k·Δt
    - Coherence time T_c ≈ 0.423 / f_d

Usage:
    python main.py [options]

Examples:
    # Run with default parameters (28 GHz, 16 elements, 4 BS antennas)
    python main.py

    # Run a predefined profile
    python main.py --scenario-profile vehicular

    # Use a ray-tracing dataset and an EM coupling matrix
    python main.py --dataset channels.npy --coupling s_params.mat

    # Faster run without the external Doppler generator
    python main.py --closed-form-doppler --no-plot
"""

import sys
import logging
import argparse
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))
from starris.components.config import SUPPORTED_SCENARIOS, SUPPORTED_TDL_MODELS, SystemParameters
from starris.components.errors import StarRisError
from starris.sim.scenarios import SCENARIO_PRESETS
from starris.utils.env import configure_env, setup_gpu

# SystemParameters fields exposed as CLI overrides
PARAMETER_OPTIONS = (
    "carrier_frequency",
    "num_ris_elements",
    "num_bs_ant",
    "duration",
    "sampling_interval",
    "phase_noise_variance",
    "amplitude_error_range",
    "user_velocity",
    "blockage_rate",
    "scenario",
    "tdl_model",
    "delay_spread",
    "seed",
)


def parameter_overrides(args: argparse.Namespace) -> dict:
    """Collect the SystemParameters fields set explicitly on the command line."""
    return {
        field: getattr(args, field)
        for field in PARAMETER_OPTIONS
        if getattr(args, field) is not None
    }


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI without importing TensorFlow yet."""
    parser = argparse.ArgumentParser(
        description="STAR-RIS Channel Impairment & Dynamics Simulation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument(
        '--scenario-profile',
        nargs='+',
        default=None,
        help=f"Run one or more predefined scenario presets ({', '.join(SCENARIO_PRESETS.keys())})."
    )

    parser.add_argument(
        '--list-scenarios',
        action='store_true',
        help='List available scenario presets and exit.'
    )

    params = parser.add_argument_group('system parameters (override profile values)')
    params.add_argument('--carrier-frequency', type=float, default=None,
                        help='Carrier frequency in Hz (default: 28e9)')
    params.add_argument('--num-ris-elements', type=int, default=None,
                        help='Number of RIS elements N (default: 16)')
    params.add_argument('--num-bs-ant', type=int, default=None,
                        help='Number of BS antennas M (default: 4)')
    params.add_argument('--duration', type=float, default=None,
                        help='Observation window in seconds (default: 0.1)')
    params.add_argument('--sampling-interval', type=float, default=None,
                        help='Sampling interval in seconds (default: 1e-3)')
    params.add_argument('--phase-noise-variance', type=float, default=None,
                        help='Element phase error variance in rad² (default: 0.01)')
    params.add_argument('--amplitude-error-range', type=float, default=None,
                        help='Half-width ε of the amplitude error interval (default: 0.05)')
    params.add_argument('--user-velocity', type=float, default=None,
                        help='User velocity in m/s (default: 3.0)')
    params.add_argument('--blockage-rate', type=float, default=None,
                        help='Blockage event rate in events/s (default: 2.0)')
    params.add_argument('--scenario', type=str, default=None, choices=list(SUPPORTED_SCENARIOS),
                        help='TR 38.901 scenario for the stochastic provider (default: umi)')
    params.add_argument('--tdl-model', type=str, default=None, choices=list(SUPPORTED_TDL_MODELS),
                        help='TDL model for the statistical provider (default: A)')
    params.add_argument('--delay-spread', type=float, default=None,
                        help='RMS delay spread in seconds for the TDL model (default: 100e-9)')
    params.add_argument('--seed', type=int, default=None,
                        help='Random seed for reproducibility (default: 42)')

    parser.add_argument(
        '--dataset',
        type=str,
        default=None,
        help='Ray-tracing channel file (.npy, .npz or .mat) tried before the stochastic models'
    )
    parser.add_argument(
        '--dataset-key',
        type=str,
        default=None,
        help='Variable name inside a .npz/.mat dataset'
    )
    parser.add_argument(
        '--coupling',
        type=str,
        default=None,
        help='Mutual coupling matrix file (.npy, .npz or .mat); overrides the profile coupling'
    )
    parser.add_argument(
        '--closed-form-doppler',
        action='store_true',
        help='Use exp(j·2π·f_d·t) instead of the Sionna TDL Doppler generator'
    )
    parser.add_argument(
        '--workers',
        type=int,
        default=1,
        help='Threads for the per-sample Doppler map (default: 1)'
    )

    parser.add_argument(
        '--gpu',
        type=int,
        default=0,
        help='GPU device number (default: 0)'
    )
    parser.add_argument(
        '--cpu',
        action='store_true',
        help='Force CPU execution and silence CUDA library errors'
    )

    parser.add_argument(
        '--no-plot',
        action='store_true',
        help='Skip generating plots'
    )

    parser.add_argument(
        '--no-save',
        action='store_true',
        help='Skip saving results'
    )

    parser.add_argument(
        '--output-dir',
        type=str,
        default='results',
        help='Output directory for results (default: results)'
    )

    parser.add_argument(
        '--log-level',
        type=str,
        default='WARNING',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: WARNING)'
    )
    return parser


def main(argv: list[str] | None = None):
    """Main entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.list_scenarios:
        print("Available scenario profiles:")
        for key, spec in SCENARIO_PRESETS.items():
            print(f"  - {key}: {spec.description}")
        return None

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Configure environment BEFORE importing TensorFlow/Sionna
    configure_env(force_cpu=args.cpu, gpu_num=args.gpu)
    setup_gpu()

    from starris.components.channel import default_providers
    from starris.components.coupling import ToeplitzCouplingSource
    from starris.sim.runner import print_results_summary, run_simulation

    providers = default_providers(dataset_path=args.dataset, dataset_key=args.dataset_key)
    overrides = parameter_overrides(args)
    results_all = []

    try:
        if args.scenario_profile:
            profile_names = [name.lower() for name in args.scenario_profile]
            for profile_name in profile_names:
                if profile_name not in SCENARIO_PRESETS:
                    print(f"⚠ Unknown scenario profile '{profile_name}'. Available: {', '.join(SCENARIO_PRESETS.keys())}")
                    continue
                spec = SCENARIO_PRESETS[profile_name]
                params = spec.to_parameters(**overrides)
                coupling = args.coupling
                if coupling is None and spec.coupling_strength > 0:
                    coupling = ToeplitzCouplingSource(spec.coupling_strength)

                results = run_simulation(
                    params,
                    coupling_source=coupling,
                    providers=providers,
                    save_results=not args.no_save,
                    plot_results=not args.no_plot,
                    output_dir=str(Path(args.output_dir) / spec.name),
                    profile_name=spec.name,
                    closed_form_doppler=args.closed_form_doppler or spec.closed_form_doppler,
                    workers=args.workers,
                )
                print(f"\nDescription: {spec.description}")
                if spec.notes:
                    print(f"Notes: {spec.notes}")
                print_results_summary(results)
                results_all.append(results)
        else:
            params = SystemParameters(**overrides)
            results = run_simulation(
                params,
                coupling_source=args.coupling,
                providers=providers,
                save_results=not args.no_save,
                plot_results=not args.no_plot,
                output_dir=args.output_dir,
                closed_form_doppler=args.closed_form_doppler,
                workers=args.workers,
            )
            print_results_summary(results)
            results_all.append(results)
    except StarRisError as e:
        print(f"✗ {type(e).__name__}: {e}", file=sys.stderr)
        sys.exit(1)

    if not results_all:
        return None

    return results_all if len(results_all) > 1 else results_all[0]


if __name__ == "__main__":
    main()
