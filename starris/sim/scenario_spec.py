"""Scenario specification dataclass definition."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..components.config import SystemParameters


@dataclass
class ScenarioSpec:
    """Predefined pipeline scenario: system parameters plus runtime options."""

    name: str
    description: str
    parameters: Dict[str, Any] = field(default_factory=dict)
    coupling_strength: float = 0.0
    closed_form_doppler: bool = False
    notes: Optional[str] = None

    def to_parameters(self, **overrides) -> SystemParameters:
        """Build validated SystemParameters from the preset and ``overrides``."""
        values = dict(self.parameters)
        values.update({k: v for k, v in overrides.items() if v is not None})
        return SystemParameters(**values)
