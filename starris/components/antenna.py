"""
Antenna array configuration for the base station and the STAR-RIS.

This module builds the 3GPP TR 38.901 antenna arrays consumed by the
stochastic geometry channel provider. The base station is modelled as a
uniform linear array with M ports and the surface as a terminal-side array
with N ports, so the system-level channel has one coefficient per
(RIS element, BS antenna) pair.

Theory:
    1. Array geometry:
       - Both arrays are single-row uniform linear arrays (1 × M, 1 × N).
       - Element spacing of λ/2 avoids grating lobes for the BS array.
       - RIS unit cells are typically spaced between λ/8 and λ/2; smaller
         spacing increases mutual coupling, which the impairment model
         represents separately as an additive N × N matrix.

    2. Polarization:
       - Single vertical polarization keeps one port per physical element,
         so the number of ports equals M (BS) and N (RIS).

    3. Antenna pattern:
       - The BS uses the directional 3GPP 38.901 pattern.
       - RIS elements are treated as omni-directional scatterers; their
         angular response is folded into the ideal channel.

References:
    - 3GPP TR 38.901, Section 7.3: Antenna modelling
    - Balanis, "Antenna Theory: Analysis and Design", 4th Edition
"""

from sionna.phy.channel.tr38901 import AntennaArray

from .config import SystemParameters


class AntennaConfig:
    """
    Manages the BS and RIS antenna arrays for one set of system parameters.

    Theory:
        The system-level channel models compute, for every propagation
        cluster, the array response of transmitter and receiver. With the BS
        as transmitter (downlink) and the RIS as receiver, the resulting
        coefficients have shape [..., N, ..., M, paths, time].
    """

    def __init__(self, params: SystemParameters, ris_spacing: float = 0.5):
        """
        Initialize antenna arrays for base station and surface.

        Args:
            params: System parameters providing M, N and the carrier frequency.
            ris_spacing: RIS element spacing in wavelengths (default λ/2).
        """
        self.params = params
        self.ris_spacing = ris_spacing
        self.bs_array = self._create_bs_array()
        self.ris_array = self._create_ris_array()

    def _create_bs_array(self) -> AntennaArray:
        """Create the 1 × M base station ULA with the 3GPP 38.901 pattern."""
        return AntennaArray(
            num_rows=1,
            num_cols=int(self.params.num_bs_ant),
            polarization="single",
            polarization_type="V",
            antenna_pattern="38.901",
            carrier_frequency=self.params.carrier_frequency,
            vertical_spacing=0.5,
            horizontal_spacing=0.5,
        )

    def _create_ris_array(self) -> AntennaArray:
        """Create the 1 × N surface array with omni-directional elements."""
        return AntennaArray(
            num_rows=1,
            num_cols=int(self.params.num_ris_elements),
            polarization="single",
            polarization_type="V",
            antenna_pattern="omni",
            carrier_frequency=self.params.carrier_frequency,
            vertical_spacing=self.ris_spacing,
            horizontal_spacing=self.ris_spacing,
        )

    def get_bs_array(self) -> AntennaArray:
        """Return the base station antenna array."""
        return self.bs_array

    def get_ris_array(self) -> AntennaArray:
        """Return the STAR-RIS antenna array."""
        return self.ris_array
