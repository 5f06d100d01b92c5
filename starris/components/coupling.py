"""
Mutual coupling matrices for the STAR-RIS impairment model.

Mutual coupling is obtained from electromagnetic full-wave simulation of
the surface (HFSS, CST, openEMS, …) and exported as a scattering-parameter
style square matrix. This module only loads such matrices; the impairment
model selects the leading N × N block.

Theory:
    For an N-port surface the S-parameter matrix S relates incident and
    reflected waves, b = S·a. Its diagonal holds the self response of each
    element, the off-diagonal entries S_ij (i ≠ j) the leakage from element
    j into element i. Coupling grows as the element spacing shrinks and is
    usually significant below λ/4 spacing.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

import numpy as np

from ..utils.files import load_matrix_file
from .config import SystemParameters
from .errors import ConfigurationError


class CouplingSource(ABC):
    """Supplier of the coupling matrix consumed by the impairment model."""

    @abstractmethod
    def load(self, params: SystemParameters) -> np.ndarray:
        """Return a complex matrix with at least N × N entries."""


class ArrayCouplingSource(CouplingSource):
    """Coupling matrix held in memory."""

    def __init__(self, matrix: Any):
        self.matrix = np.array(matrix, dtype=np.complex128)

    def load(self, params: SystemParameters) -> np.ndarray:
        return self.matrix.copy()


class ZeroCouplingSource(CouplingSource):
    """No coupling: an N × N zero matrix."""

    def load(self, params: SystemParameters) -> np.ndarray:
        n = params.num_ris_elements
        return np.zeros((n, n), dtype=np.complex128)


class ToeplitzCouplingSource(CouplingSource):
    """
    Synthetic nearest-neighbour coupling for runs without EM simulation data.

    Theory:
        Coupling between elements i and j of a uniform array depends only on
        their separation |i - j|. Its magnitude decays geometrically and its
        phase advances by a quarter cycle per element spacing (λ/2 spacing),
        giving the Toeplitz matrix

            Γ_ij = c · q^(|i-j|-1) · exp(-j·π/2·|i-j|),   i ≠ j
            Γ_ii = 0

        The diagonal is zero because the self response is carried by D.
    """

    def __init__(self, strength: float, decay: float = 0.5):
        if strength < 0 or not 0 <= decay < 1:
            raise ConfigurationError(
                f"Toeplitz coupling needs strength >= 0 and decay in [0, 1), "
                f"got {strength}, {decay}"
            )
        self.strength = strength
        self.decay = decay

    def load(self, params: SystemParameters) -> np.ndarray:
        n = params.num_ris_elements
        distance = np.abs(np.subtract.outer(np.arange(n), np.arange(n)))
        magnitude = self.strength * self.decay ** np.maximum(distance - 1, 0)
        gamma = magnitude * np.exp(-0.5j * np.pi * distance)
        np.fill_diagonal(gamma, 0.0)
        return gamma.astype(np.complex128)


class FileCouplingSource(CouplingSource):
    """
    Coupling matrix exported to disk.

    Supports ``.npy``, ``.npz`` and MATLAB ``.mat`` files. For archives
    holding several variables, ``key`` names the one to use; otherwise the
    first variable is taken.
    """

    def __init__(self, path: str, key: Optional[str] = None):
        self.path = Path(path)
        self.key = key

    def load(self, params: SystemParameters) -> np.ndarray:
        if not self.path.exists():
            raise ConfigurationError(f"Coupling file not found: {self.path}")
        try:
            data = load_matrix_file(self.path, self.key)
        except (OSError, ValueError, KeyError, NotImplementedError) as exc:
            raise ConfigurationError(f"Cannot read coupling file {self.path}: {exc}") from exc
        return np.array(data, dtype=np.complex128)


def as_coupling_source(source: Any) -> CouplingSource:
    """
    Normalize what callers pass as coupling input.

    ``None`` means no coupling, a CouplingSource is used as is, a path-like
    string is loaded from disk and anything else is treated as an array.
    """
    if source is None:
        return ZeroCouplingSource()
    if isinstance(source, CouplingSource):
        return source
    if isinstance(source, (str, Path)):
        return FileCouplingSource(str(source))
    return ArrayCouplingSource(source)
