#!/usr/bin/env python

# ------------------------------------------------------------------------------
"""spectrum_generator.py: Polychromatic X-ray source spectrum model for a
                         tungsten anode tube with aluminum-equivalent
                         filtration."""
# ------------------------------------------------------------------------------

__author__    = "RayCTSim Developers"
__copyright__ = "Copyright (C) 2026, RayCTSim Project"
__license__   = "Public Domain"
__version__   = "1.0.0"
__status__    = "Prototype"
# ------------------------------------------------------------------------------

"""
--------------------------------------------------------------------------------
Module Description:

The source spectrum is discretized into NUM_ENERGY_BINS = 151 bins of 1 keV
from 0 to 150 keV. Bin e holds the relative photon fluence at e keV. The
bremsstrahlung continuum follows Kramers' law, N(E) ~ (kVp - E)/E, with the
tungsten K-lines added for tube potentials above the K-edge. The continuum
is hardened by the inherent tube filtration plus any added filtration using
the attenuation data of the filter material, and the spectrum is normalized
to unit sum so that multiplying by a photon count gives the photon fluence
per detector element.

> --------------------------------------------------------------------------- >
generator = SpectrumGenerator()
spectrum = generator.generate(120, filtration_mm=1.0)
print(spectrum.size, spectrum.sum(), mean_energy(spectrum))
> --------------------------------------------------------------------------- >
--------------------------------------------------------------------------------
"""

from raysim import *
from raysim.forward_model.mu_database_handler import MuDatabaseHandler


def mean_energy(spectrum):
    """
    ----------------------------------------------------------------------------
    Fluence-weighted mean energy of a spectrum defined on the standard energy
    bins.

    :param spectrum:    1D array of NUM_ENERGY_BINS relative fluences
    :return: mean energy in MeV
    ----------------------------------------------------------------------------
    """

    spectrum = asarray(spectrum, dtype=float64)
    return float(dot(ENERGY_BINS_MEV[:spectrum.size], spectrum)/spectrum.sum())
# ------------------------------------------------------------------------------


class SpectrumGenerator(object):
    """
    ----------------------------------------------------------------------------
    Generates X-ray source spectra for the CT simulation.

    Methods:
    generate()          - spectrum for a tube potential and added filtration
    ----------------------------------------------------------------------------
    """

    # Tungsten characteristic lines (keV) and their relative strengths
    # w.r.t. the bremsstrahlung continuum at the same energy
    w_k_lines = {59: 0.5, 58: 0.3, 67: 0.15}
    w_k_edge  = 69.5

    def __init__(self, mu_handler=None, inherent_filtration_mm=2.5,
                 add_characteristic=True):
        """
        -----------------------------------------------------------------------
        :param mu_handler:              MuDatabaseHandler for the filter
                                        materials (optional)
        :param inherent_filtration_mm:  inherent tube filtration in mm Al
        :param add_characteristic:      set to add tungsten K-lines
        -----------------------------------------------------------------------
        """

        self.mu = MuDatabaseHandler() if mu_handler is None else mu_handler
        self.inherent_filtration_mm = inherent_filtration_mm
        self.add_characteristic = add_characteristic
    # -------------------------------------------------------------------------

    def generate(self, kvp, filtration_mm=0.0, filter_material='aluminum'):
        """
        -----------------------------------------------------------------------
        Generate a normalized X-ray spectrum.

        :param kvp:             peak tube potential in kV (<= 150)
        :param filtration_mm:   added filtration thickness in mm
        :param filter_material: material of the added filter
        :return: 1D array of NUM_ENERGY_BINS relative fluences
        -----------------------------------------------------------------------
        """

        if not 1 < kvp < NUM_ENERGY_BINS:
            raise ValueError("Tube potential must be within (1, %i) kV, got %s"
                             % (NUM_ENERGY_BINS, kvp))

        energies = arange(NUM_ENERGY_BINS, dtype=float64)
        spectrum = zeros(NUM_ENERGY_BINS)

        # Kramers' law continuum
        valid = (energies > 0) & (energies < kvp)
        spectrum[valid] = (kvp - energies[valid])/energies[valid]

        if self.add_characteristic and kvp > self.w_k_edge:
            for line, strength in self.w_k_lines.items():
                spectrum[line] *= (1.0 + strength)

        spectrum = self.apply_filtration(spectrum, 'aluminum',
                                         self.inherent_filtration_mm)
        spectrum = self.apply_filtration(spectrum, filter_material,
                                         filtration_mm)

        return spectrum/spectrum.sum()
    # -------------------------------------------------------------------------

    def apply_filtration(self, spectrum, material, thickness_mm):
        """
        -----------------------------------------------------------------------
        Attenuate a spectrum by a filter (Beer-Lambert law).

        :param spectrum:        1D spectrum array
        :param material:        filter material
        :param thickness_mm:    filter thickness in mm
        :return: filtered spectrum
        -----------------------------------------------------------------------
        """

        if thickness_mm <= 0:
            return spectrum

        mu = self.mu.linear_attenuation(material, ENERGY_BINS_MEV)

        return spectrum*exp(-mu*thickness_mm*0.1)
    # -------------------------------------------------------------------------

# =============================================================================
# Class Ends
# =============================================================================
