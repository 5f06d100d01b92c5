"""
Summary metrics for STAR-RIS pipeline results.

This module condenses a ResultBundle into scalar diagnostics used by the
runner summary and stored next to the saved archive.
"""

import math
from typing import Optional

import numpy as np

from ..components.config import SystemParameters


def _db(value: float) -> Optional[float]:
    """10·log10 of a power ratio, None for non-positive input."""
    if value is None or not np.isfinite(value) or value <= 0:
        return None
    return float(10.0 * np.log10(value))


def summarize_bundle(bundle, params: Optional[SystemParameters] = None) -> dict:
    """
    Compute summary metrics of one pipeline run.

    Theory:
        - Channel power: ||H||²_F = Σ |H[m, n]|²
        - Impairment NMSE: ||H_imp - H||²_F / ||H||²_F, the relative
          distortion introduced by Θ.
        - Operator split: diagonal power Σ|d_k|² against off-diagonal
          (coupling leakage) power Σ_{i≠j} |Θ_ij|².
        - Per-sample power: P(t_k) = ||H(t_k)||²_F; with unit-modulus
          Doppler terms P(t_k) = (1 - n_k)² · ||H_imp||²_F.
        - Blocked fraction: share of samples with at least one event.

    Args:
        bundle: ResultBundle.
        params: Optional parameters for Doppler/coherence diagnostics.

    Returns:
        Dictionary of plain Python floats/ints (JSON serializable).
    """
    ideal_power = float(np.sum(np.abs(bundle.ideal) ** 2))
    impaired_power = float(np.sum(np.abs(bundle.impaired) ** 2))
    error_power = float(np.sum(np.abs(bundle.impaired - bundle.ideal) ** 2))
    nmse = error_power / ideal_power if ideal_power > 0 else None

    operator = bundle.operator
    diag_power = float(np.sum(np.abs(np.diag(operator)) ** 2))
    off_diag_power = float(np.sum(np.abs(operator) ** 2) - diag_power)

    sample_power = np.sum(np.abs(bundle.dynamic) ** 2, axis=(0, 1))
    summary = {
        "provider": bundle.provider,
        "num_time_samples": int(bundle.dynamic.shape[-1]),
        "ideal_power": ideal_power,
        "impaired_power": impaired_power,
        "impairment_gain_db": _db(impaired_power / ideal_power) if ideal_power > 0 else None,
        "impairment_nmse": nmse,
        "impairment_nmse_db": _db(nmse),
        "operator_diag_power": diag_power,
        "operator_offdiag_power": max(off_diag_power, 0.0),
        "mean_sample_power": float(np.mean(sample_power)),
        "min_sample_power": float(np.min(sample_power)),
        "max_sample_power": float(np.max(sample_power)),
    }

    mask = bundle.blockage_mask
    if mask is not None:
        summary["blocked_fraction"] = float(np.mean(mask > 0))
        summary["blockage_events"] = int(np.sum(mask))
        summary["negative_attenuation_samples"] = int(np.sum(mask > 1))

    if params is not None:
        summary["doppler_frequency"] = params.doppler_frequency
        coherence = params.coherence_time
        summary["coherence_time"] = None if math.isinf(coherence) else coherence
        summary["samples_per_coherence_time"] = (
            None if math.isinf(coherence) else coherence / params.sampling_interval
        )
    return summary
