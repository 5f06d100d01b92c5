"""
Plotting utilities for STAR-RIS pipeline results.

Renders magnitude heat maps of the ideal channel, the impaired channel and
the coupling matrix, plus one trace of the time-evolving channel.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402


def _heatmap(ax, matrix: np.ndarray, title: str, xlabel: str, ylabel: str):
    image = ax.imshow(np.abs(matrix), aspect="auto", cmap="viridis", interpolation="nearest")
    ax.set_title(title)
    ax.set_xlabel(xlabel)
    ax.set_ylabel(ylabel)
    return image


def plot_result_bundle(
    bundle,
    output_dir: str,
    trace: Tuple[int, int] = (0, 0),
    title: Optional[str] = None,
) -> Path:
    """
    Generate and save the four-panel overview of a pipeline run.

    Panels:
        1. |H|      ideal channel (BS antenna × RIS element)
        2. |H·Θ|    impaired channel
        3. |Γ|      coupling block (or |Θ| if no coupling is stored)
        4. |H[m, n, t]| over time for the element pair ``trace``, with
           blocked samples marked

    Args:
        bundle: ResultBundle.
        output_dir: Output directory for the PNG and PDF files.
        trace: (BS antenna, RIS element) pair of the dynamic trace.
        title: Optional figure title.

    Returns:
        Path of the PNG file.
    """
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

    fig, axes = plt.subplots(2, 2, figsize=(12, 9))
    (ax1, ax2), (ax3, ax4) = axes

    im1 = _heatmap(ax1, bundle.ideal, "Ideal channel |H|", "RIS element", "BS antenna")
    fig.colorbar(im1, ax=ax1)
    im2 = _heatmap(ax2, bundle.impaired, "Impaired channel |H·Θ|", "RIS element", "BS antenna")
    fig.colorbar(im2, ax=ax2)
    if bundle.coupling is not None:
        im3 = _heatmap(ax3, bundle.coupling, "Mutual coupling |Γ|", "RIS element", "RIS element")
    else:
        im3 = _heatmap(ax3, bundle.operator, "Impairment operator |Θ|", "RIS element", "RIS element")
    fig.colorbar(im3, ax=ax3)

    m, n = trace
    samples = np.arange(bundle.dynamic.shape[-1])
    times = bundle.time_axis if bundle.time_axis is not None else samples
    scale, unit = (1e3, "ms") if bundle.time_axis is not None else (1.0, "sample")
    magnitude = np.abs(bundle.dynamic[m, n, :])
    ax4.plot(times * scale, magnitude, color='b', linewidth=2, label=f"|H[{m},{n}](t)|")
    ax4.axhline(y=np.abs(bundle.impaired[m, n]), color='r', linestyle='--',
                linewidth=1.5, label="|H·Θ| (unblocked)")
    if bundle.blockage_mask is not None and np.any(bundle.blockage_mask > 0):
        blocked = bundle.blockage_mask > 0
        ax4.scatter(times[blocked] * scale, magnitude[blocked], color='k', marker='x',
                    zorder=3, label="Blockage")
    ax4.set_xlabel(f"Time ({unit})")
    ax4.set_ylabel("Magnitude")
    ax4.set_title("Dynamic channel trace")
    ax4.grid(which="both", alpha=0.3)
    ax4.legend(loc='upper right', fontsize=9)

    if title:
        fig.suptitle(title)
    plt.tight_layout()

    plot_filename = out / f"channel_overview_{timestamp}.png"
    plt.savefig(plot_filename, dpi=300, bbox_inches='tight')
    print(f"✓ Plot saved to: {plot_filename}")

    pdf_filename = out / f"channel_overview_{timestamp}.pdf"
    plt.savefig(pdf_filename, bbox_inches='tight')
    plt.close(fig)
    return plot_filename
