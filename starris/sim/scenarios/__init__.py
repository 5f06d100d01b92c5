"""
Scenario presets for STAR-RIS channel generation.

Each module in this package defines a module-level ``SCENARIO`` of type
ScenarioSpec; the presets are collected by name at import time.
"""

from __future__ import annotations

from typing import Dict
import importlib
import pkgutil
from pathlib import Path

from ..scenario_spec import ScenarioSpec

__all__ = ["ScenarioSpec", "SCENARIO_PRESETS"]


def _load_scenarios() -> Dict[str, ScenarioSpec]:
    """
    Import every scenario module of this package and collect its SCENARIO.

    Returns:
        Dictionary mapping scenario names to ScenarioSpec objects, sorted by
        name.
    """
    scenarios = {}
    scenarios_dir = Path(__file__).parent

    for _, modname, ispkg in pkgutil.iter_modules([str(scenarios_dir)]):
        if ispkg:
            continue
        module = importlib.import_module(f"{__name__}.{modname}")
        scenario = getattr(module, "SCENARIO", None)
        if isinstance(scenario, ScenarioSpec):
            scenarios[scenario.name] = scenario

    return dict(sorted(scenarios.items()))


SCENARIO_PRESETS: Dict[str, ScenarioSpec] = _load_scenarios()
