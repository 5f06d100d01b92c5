"""
Simulation modules for the STAR-RIS channel pipeline.
"""

from .metrics import summarize_bundle
from .results import save_result_bundle, load_result_bundle
from .plotting import plot_result_bundle
from .runner import run_simulation, print_results_summary
from .scenario_spec import ScenarioSpec
from .scenarios import SCENARIO_PRESETS

__all__ = [
    'summarize_bundle',
    'save_result_bundle',
    'load_result_bundle',
    'plot_result_bundle',
    'run_simulation',
    'print_results_summary',
    'ScenarioSpec',
    'SCENARIO_PRESETS',
]
