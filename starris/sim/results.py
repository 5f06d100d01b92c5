"""
Result saving and loading utilities for STAR-RIS pipeline runs.

A run is stored as a compressed numpy archive holding every array of the
ResultBundle plus a JSON sidecar with the parameters and summary metrics.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Optional

import numpy as np

from ..components.config import SystemParameters
from ..models.model import ResultBundle
from .metrics import summarize_bundle

_ARRAY_FIELDS = (
    "ideal", "impaired", "dynamic", "operator", "diagonal",
    "coupling", "time_axis", "doppler", "blockage_mask",
)


def save_result_bundle(
    bundle: ResultBundle,
    output_dir: str,
    params: Optional[SystemParameters] = None,
    name: Optional[str] = None,
) -> Path:
    """
    Persist a result bundle to disk and return the archive path.

    Args:
        bundle: Pipeline result.
        output_dir: Output directory (created if missing).
        params: Parameters of the run, stored in the JSON sidecar.
        name: Archive base name; defaults to a timestamped name.

    Returns:
        Path to the ``.npz`` archive. The sidecar has the same stem and a
        ``.json`` suffix.
    """
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    if name is None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        name = f"star_ris_channel_{timestamp}"

    arrays = {
        key: getattr(bundle, key)
        for key in _ARRAY_FIELDS
        if getattr(bundle, key) is not None
    }
    archive_path = out / f"{name}.npz"
    np.savez_compressed(archive_path, **arrays)

    sidecar = {
        "provider": bundle.provider,
        "parameters": params.to_dict() if params is not None else bundle.metadata.get("parameters"),
        "summary": summarize_bundle(bundle, params),
        "arrays": {key: list(value.shape) for key, value in arrays.items()},
        "created": datetime.now().isoformat(timespec="seconds"),
    }
    with open(archive_path.with_suffix(".json"), "w") as f:
        json.dump(sidecar, f, indent=2)

    print(f"✓ Results saved to: {archive_path}")
    return archive_path


def load_result_bundle(path: str) -> ResultBundle:
    """
    Load a result bundle written by ``save_result_bundle``.

    Args:
        path: Path to the ``.npz`` archive.

    Returns:
        ResultBundle with every stored array; provider and parameters are
        restored from the JSON sidecar when present.
    """
    archive_path = Path(path)
    with np.load(archive_path) as archive:
        arrays = {key: archive[key] for key in archive.files if key in _ARRAY_FIELDS}

    provider = None
    metadata = {}
    sidecar_path = archive_path.with_suffix(".json")
    if sidecar_path.exists():
        with open(sidecar_path, "r") as f:
            sidecar = json.load(f)
        provider = sidecar.get("provider")
        if sidecar.get("parameters") is not None:
            metadata["parameters"] = sidecar["parameters"]
    return ResultBundle(provider=provider, metadata=metadata, **arrays)
