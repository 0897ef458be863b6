#!/usr/bin/env python

# ------------------------------------------------------------------------------
"""ctlib: Module containing functions useful for handling, processing and
          analyzing fan-beam ct projection/image data."""

__author__    = "RayCTSim Developers"
__copyright__ = "Copyright (C) 2026, RayCTSim Project"
__license__   = "Public Domain"
__version__   = "1.0.0"
__status__    = "Prototype"
# ------------------------------------------------------------------------------

from numpy import *


HU_AIR = -1000


def fan_beam_ramp_kernel(n_channels, d_gamma):
    """
    ----------------------------------------------------------------------------
    Spatial ramp filter kernel for equiangular fan-beam projections (Kak and
    Slaney, Principles of Computerized Tomographic Imaging, Ch. 3.4.2).

    :param n_channels:  number of detector channels
    :param d_gamma:     angular spacing between channels (rad)
    :return: (2*n_channels - 1) array, zero offset at index n_channels - 1
    ----------------------------------------------------------------------------
    """

    n = arange(-(n_channels - 1), n_channels)
    kernel = zeros(n.size)

    odd = (n % 2) != 0
    kernel[odd] = -0.5/(pi*sin(n[odd]*d_gamma))**2
    kernel[n_channels - 1] = 1.0/(8.0*d_gamma**2)

    return kernel
# ------------------------------------------------------------------------------


def ramp_filter_response(kernel, n_channels):
    """
    ----------------------------------------------------------------------------
    Frequency response of a ramp kernel zero-padded to the next power of two
    that holds the linear convolution of n_channels samples.

    :param kernel:      spatial kernel from fan_beam_ramp_kernel()
    :param n_channels:  number of detector channels
    :return: real, non-negative 1D response of power-of-two length
    ----------------------------------------------------------------------------
    """

    n_pad = int(2**ceil(log2(2*n_channels - 1)))

    padded = zeros(n_pad)
    padded[:kernel.size] = kernel

    return abs(fft.fft(padded))
# ------------------------------------------------------------------------------


def normalize_projection(air_data, obj_data):
    """
    ----------------------------------------------------------------------------
    Line integrals from detector signals, log(air/object). The air scan is
    broadcast over any leading dimensions of the object data.

    :param air_data:    air scan signal
    :param obj_data:    object signal
    :return: normalized projection data with the shape of obj_data
    ----------------------------------------------------------------------------
    """

    return log(asarray(air_data, dtype=float64)/asarray(obj_data,
                                                        dtype=float64))
# ------------------------------------------------------------------------------


def mu_to_hounsfield(mu, mu_water, mu_air):
    """
    ----------------------------------------------------------------------------
    Convert linear attenuation coefficients to integer Hounsfield Units.

    :param mu:          linear attenuation values (1/cm)
    :param mu_water:    linear attenuation of water (1/cm)
    :param mu_air:      linear attenuation of air (1/cm)
    :return: integer array (or int for a scalar) of HU values
    ----------------------------------------------------------------------------
    """

    hu = rint(1000.0*(asarray(mu, dtype=float64) - mu_water)
              /(mu_water - mu_air)).astype(int64)

    if hu.ndim == 0:
        return int(hu)
    return hu
# ------------------------------------------------------------------------------
