"""
Hardware impairment model for STAR-RIS elements.

This module draws the per-element phase and amplitude errors of the surface,
combines them with the mutual coupling matrix into a single impairment
operator and applies it to the ideal channel.

Theory:
    1. Per-element response:
       An ideal element k realises a unit-modulus coefficient. Hardware
       imperfections perturb it as

           d_k = a_k · exp(j·φ_k)
           φ_k ~ N(0, σ²_φ)          (phase error, rad)
           a_k ~ U[1 - ε, 1 + ε]     (amplitude error)

       with independent draws for every element, collected in
       D = diag(d_1, …, d_N).

    2. Mutual coupling:
       Near-field interaction between neighbouring elements leaks part of
       the signal of element j into element i. It is modelled as a parasitic
       term Γ superimposed on the intended response:

           Θ = D + Γ[:N, :N]

       Γ comes from electromagnetic simulation; only its leading N × N
       block is used.

    3. Impaired channel:
       The surface response right-multiplies the BS-to-RIS channel

           H_imp = H · Θ        (M × N) · (N × N) -> (M × N)

       This is a matrix product, not an element-wise one: coupling mixes
       the columns of H.

References:
    - Badheka et al., "Accurate Modeling of Intelligent Reflecting Surface
      with Mutual Coupling", 2023
    - Björnson et al., "Massive MIMO Networks: Spectral, Energy, and
      Hardware Efficiency", 2017
"""

import logging
from typing import Any, Tuple

import numpy as np

from .config import SystemParameters
from .errors import ShapeMismatchError

logger = logging.getLogger(__name__)


class ImpairmentModel:
    """
    Draws per-element impairments and applies the impairment operator.

    The model holds no randomness of its own: every draw comes from the
    numpy Generator passed to ``draw_diagonal``/``apply`` so that identical
    seeds give bit-identical operators.
    """

    def __init__(self, params: SystemParameters):
        """
        Args:
            params: System parameters providing N, σ²_φ and ε.
        """
        self.params = params

    def draw_diagonal(self, rng: np.random.Generator) -> np.ndarray:
        """
        Draw the diagonal per-element response D.

        Phase errors are drawn first, amplitude errors second; the order is
        part of the reproducibility contract.

        Args:
            rng: Explicit random generator.

        Returns:
            Complex [N, N] diagonal matrix diag(a_k · exp(j·φ_k)).
        """
        n = self.params.num_ris_elements
        phase = rng.normal(0.0, np.sqrt(self.params.phase_noise_variance), size=n)
        eps = self.params.amplitude_error_range
        amplitude = rng.uniform(1.0 - eps, 1.0 + eps, size=n)
        return np.diag(amplitude * np.exp(1j * phase))

    def select_coupling(self, coupling: Any) -> np.ndarray:
        """
        Restrict the coupling matrix to its leading N × N block.

        Raises:
            ShapeMismatchError: If the matrix is not 2-D or smaller than
                N × N in either dimension. It is never padded.
        """
        n = self.params.num_ris_elements
        gamma = np.array(coupling, dtype=np.complex128)
        if gamma.ndim != 2:
            raise ShapeMismatchError(
                f"Coupling matrix must be 2-D, got shape {gamma.shape}"
            )
        if gamma.shape[0] < n or gamma.shape[1] < n:
            raise ShapeMismatchError(
                f"Coupling matrix {gamma.shape[0]}×{gamma.shape[1]} is smaller than "
                f"the required {n}×{n}"
            )
        return gamma[:n, :n].copy()

    def build_operator(self, coupling: Any, rng: np.random.Generator) -> Tuple[np.ndarray, np.ndarray]:
        """
        Build Θ = D + Γ.

        The coupling shape is checked before any random draw, so a rejected
        coupling matrix leaves the generator untouched.

        Returns:
            Tuple of (Θ [N, N], D [N, N]).
        """
        gamma = self.select_coupling(coupling)
        diagonal = self.draw_diagonal(rng)
        return diagonal + gamma, diagonal

    def apply(
        self,
        ideal: Any,
        coupling: Any,
        rng: np.random.Generator,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Apply hardware impairments and mutual coupling to the ideal channel.

        Args:
            ideal: Ideal channel, complex [M, N].
            coupling: Coupling matrix with at least N × N entries.
            rng: Explicit random generator.

        Returns:
            Tuple of:
            - impaired: H · Θ, complex [M, N] (new array)
            - operator: Θ, complex [N, N]

        Raises:
            ShapeMismatchError: Ideal channel not M × N or coupling too small.
        """
        impaired, operator, _ = self.apply_with_diagonal(ideal, coupling, rng)
        return impaired, operator

    def apply_with_diagonal(
        self,
        ideal: Any,
        coupling: Any,
        rng: np.random.Generator,
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Same as ``apply`` but also returns the diagonal D."""
        m, n = self.params.num_bs_ant, self.params.num_ris_elements
        h = np.asarray(ideal, dtype=np.complex128)
        if h.shape != (m, n):
            raise ShapeMismatchError(f"Ideal channel has shape {h.shape}, expected ({m}, {n})")

        operator, diagonal = self.build_operator(coupling, rng)
        impaired = h @ operator
        logger.debug(
            "Impairment operator built: diag power %.4f, coupling power %.4f",
            float(np.sum(np.abs(np.diag(diagonal)) ** 2)),
            float(np.sum(np.abs(operator - diagonal) ** 2)),
        )
        return impaired, operator, diagonal


def apply_impairments(
    ideal: Any,
    coupling: Any,
    params: SystemParameters,
    rng: np.random.Generator,
) -> Tuple[np.ndarray, np.ndarray]:
    """Functional form of ``ImpairmentModel(params).apply(ideal, coupling, rng)``."""
    return ImpairmentModel(params).apply(ideal, coupling, rng)
