#!/usr/bin/env python

# ------------------------------------------------------------------------------
"""
fan_beam_fbp.py: Module for filtered back-projection reconstruction of 2D
                 images from axial and helical equiangular fan-beam
                 projection data.
"""
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

This module reconstructs Hounsfield Unit images from the normalized
projection data produced by the RayCT acquisition simulator. The axial
reconstruction follows the equiangular fan-beam FBP of Kak and Slaney [1]:

1. the detector rows of each view are averaged into a single fan,
2. the line integrals are linearized with a single-material (soft tissue)
   beam-hardening correction and rescaled to the linear attenuation at the
   mean energy of the source spectrum,
3. each sample is weighted by R*cos(gamma),
4. each view is convolved with the fan-beam ramp kernel in the frequency
   domain,
5. the filtered views are back-projected with a 1/L^2 weight, L being the
   source-to-pixel distance, and scaled to Hounsfield Units.

The helical reconstruction (HelicalFI-FBP) replaces step 1 with a
longitudinal interpolation: for every view and channel of one rotation, the
direct samples and the 180-degree complementary samples within the filter
width of the slice position are resampled on a fixed z-grid and averaged.
Detector elements that receive no sample are collected in
missing_elements; the strict mode raises HelicalDataError instead.

The image grid is a square of grid_size pixels over the reconstruction FOV;
image rows run from +y (top) to -y and columns from -x to +x. Pixels outside
the FOV are set to -1000 HU.

[1]. A. C. Kak and M. Slaney, Principles of Computerized Tomographic Imaging,
IEEE Press, 1988, Ch. 3.4.

Usage:

> --------------------------------------------------------------------------- >
recon = FanBeamReconstructor(geometry, ReconstructionSettings(30.0, 256),
                             tube_potential=120)
image = recon.recon_axial_fbp(dataset)
images = recon.helical_fi_fbp(helical_dataset, [-1.0, 0.0, 1.0],
                              filter_width=1.0)
> --------------------------------------------------------------------------- >
--------------------------------------------------------------------------------
"""

from scipy.interpolate import interp1d
from tqdm import tqdm

from raysim import *
from raysim.misc.util import get_logger
from raysim.misc.ctlib import fan_beam_ramp_kernel, ramp_filter_response, \
    mu_to_hounsfield, HU_AIR
from raysim.forward_model.mu_database_handler import MuDatabaseHandler
from raysim.forward_model.spectrum_generator import SpectrumGenerator, \
    mean_energy


# back-projection tables larger than this are computed per angle instead of
# being cached
TABLE_CACHE_LIMIT = 2**29

BH_REFERENCE_MATERIAL = 'soft_tissue'
BH_TABLE_POINTS = 256


class HelicalDataError(RuntimeError):
    pass


class FanBeamReconstructor(object):
    """
    ----------------------------------------------------------------------------
    Filtered back-projection for equiangular fan-beam data.

    Methods:
    average_rows()              - collapse the detector rows of each view
    beam_hardening_table()      - soft tissue thickness vs. line integral
    beam_hardening_correction() - linearize line integrals
    fan_beam_weighting()        - R*cos(gamma) weighting
    ramp_filter_projections()   - frequency-domain ramp filtering
    backprojection_tables()     - per-angle L^2 and gamma lookup tables
    backproject()               - weighted back-projection to HU
    check_calibration()         - check the source settings of a dataset
    recon_axial_fbp()           - axial FBP
    helical_interpolation()     - z-interpolated sinogram for one slice
    helical_fi_fbp()            - helical FBP for a list of slices

    Attributes:
    geometry                    - ScannerGeometry
    recon                       - ReconstructionSettings
    tube_potential              - tube potential of the calibration (kVp)
    filtration_mm               - added filtration of the calibration (mm)
    spectrum                    - source spectrum of the acquisition
    mu_water, mu_air            - attenuation at the mean energy (1/cm)
    filter_response             - ramp filter frequency response
    missing_elements            - (slice_z, view, channel) of unresolved
                                  helical samples
    ----------------------------------------------------------------------------
    """

    def __init__(self, geometry, recon_settings, tube_potential=120,
                 filtration_mm=0.0, mu_handler=None, spectrum_generator=None,
                 logfile=None):
        """
        -----------------------------------------------------------------------
        :param geometry:            ScannerGeometry of the acquisition
        :param recon_settings:      ReconstructionSettings (fov, grid_size)
        :param tube_potential:      tube potential of the acquisition (kVp)
        :param filtration_mm:       added filtration of the acquisition (mm)
        :param mu_handler:          MuDatabaseHandler (optional)
        :param spectrum_generator:  SpectrumGenerator (optional)
        :param logfile:             log file path
        -----------------------------------------------------------------------
        """

        self.logger = get_logger('FBP', logfile)

        self.geometry = geometry
        self.recon    = recon_settings

        self.tube_potential = int(tube_potential)
        self.filtration_mm  = float(filtration_mm)

        self.mu = MuDatabaseHandler(logfile=logfile) \
                  if mu_handler is None else mu_handler

        if spectrum_generator is None:
            spectrum_generator = SpectrumGenerator(self.mu)

        self.spectrum = spectrum_generator.generate(tube_potential,
                                                    filtration_mm)
        self.e_mean   = mean_energy(self.spectrum)

        self.mu_water = float(self.mu.linear_attenuation('water', self.e_mean))
        self.mu_air   = float(self.mu.linear_attenuation('air', self.e_mean))
        self.mu_ref   = float(self.mu.linear_attenuation(BH_REFERENCE_MATERIAL,
                                                         self.e_mean))

        n_ch = geometry.num_channels
        self.gamma = geometry.channel_angles()
        self.filter_response = ramp_filter_response(
            fan_beam_ramp_kernel(n_ch, geometry.d_fan_angle), n_ch)

        self._bh_inverse = None
        self._tables = {}

        self.missing_elements = []

        self._init_grid()
    # -------------------------------------------------------------------------

    def _init_grid(self):

        n  = self.recon.grid_size
        dx = self.recon.fov/n

        coords = -0.5*self.recon.fov + (arange(n) + 0.5)*dx

        xx, yy = meshgrid(coords, coords[::-1])

        self.fov_mask = xx**2 + yy**2 <= (0.5*self.recon.fov)**2
        self.pixel_x  = xx[self.fov_mask]
        self.pixel_y  = yy[self.fov_mask]
    # -------------------------------------------------------------------------

    def average_rows(self, data):
        """(views, rows, channels) -> (views, channels)"""
        return asarray(data, dtype=float64).mean(axis=1)
    # -------------------------------------------------------------------------

    def beam_hardening_table(self, max_thickness=None,
                             num_points=BH_TABLE_POINTS):
        """
        -----------------------------------------------------------------------
        Forward-simulate the line integral of the source spectrum through
        increasing thicknesses of the reference material.

        :param max_thickness:   largest thickness (cm), default: 2R
        :param num_points:      number of table entries
        :return: (thickness, line_integral) arrays
        -----------------------------------------------------------------------
        """

        if max_thickness is None:
            max_thickness = 2.0*self.geometry.radius

        thickness = linspace(0.0, max_thickness, num_points)

        nz = self.spectrum > 0
        mu = self.mu.linear_attenuation(BH_REFERENCE_MATERIAL,
                                        ENERGY_BINS_MEV[nz])
        s = self.spectrum[nz]

        transmitted = dot(exp(-outer(thickness, mu)), s)/s.sum()

        return thickness, -log(transmitted)
    # -------------------------------------------------------------------------

    def beam_hardening_correction(self, projections):
        """
        -----------------------------------------------------------------------
        Map each line integral to the equivalent thickness of the reference
        material and rescale it to the attenuation at the mean energy.

        :param projections: array of polychromatic line integrals
        :return: monochromatic line integrals of the same shape
        -----------------------------------------------------------------------
        """

        if self._bh_inverse is None:
            thickness, line_integral = self.beam_hardening_table()
            self._bh_inverse = interp1d(line_integral, thickness,
                                        kind='linear', bounds_error=False,
                                        fill_value='extrapolate')

        return self._bh_inverse(projections)*self.mu_ref
    # -------------------------------------------------------------------------

    def fan_beam_weighting(self, projections):
        return projections*self.geometry.radius*cos(self.gamma)
    # -------------------------------------------------------------------------

    def ramp_filter_projections(self, projections):
        """
        -----------------------------------------------------------------------
        Convolve each view with the fan-beam ramp kernel. The views are
        centered in the zero-padded buffer, filtered with the magnitude
        response and the center samples are extracted.

        :param projections: (views, channels) weighted projections
        :return: (views, channels) filtered projections
        -----------------------------------------------------------------------
        """

        projections = atleast_2d(projections)

        n_ch  = projections.shape[1]
        n_pad = self.filter_response.size
        start = (n_pad - n_ch)//2

        padded = zeros((projections.shape[0], n_pad))
        padded[:, start:start + n_ch] = projections

        filtered = real(fft.ifft(fft.fft(padded, axis=1)*self.filter_response,
                                 axis=1))

        return filtered[:, start:start + n_ch]*self.geometry.d_fan_angle
    # -------------------------------------------------------------------------

    def _angle_tables(self, beta):
        """Squared source distance and fan angle of each FOV pixel."""

        vx = self.pixel_x - self.geometry.radius*cos(beta)
        vy = self.pixel_y - self.geometry.radius*sin(beta)

        # rotate into the frame of the source at angle 0
        u =  cos(beta)*vx + sin(beta)*vy
        v = -sin(beta)*vx + cos(beta)*vy

        return vx**2 + vy**2, arctan2(v, -u)
    # -------------------------------------------------------------------------

    def backprojection_tables(self, num_angles):
        """
        -----------------------------------------------------------------------
        Lookup tables of L^2 and gamma for every FOV pixel and every angle
        2*pi*n/num_angles. Tables are cached per angle count unless they
        exceed TABLE_CACHE_LIMIT bytes, in which case None is returned.

        :param num_angles:  number of views per rotation
        :return: (L2, gamma) float32 arrays of shape (angles, pixels) or None
        -----------------------------------------------------------------------
        """

        if num_angles in self._tables:
            return self._tables[num_angles]

        n_bytes = 2*4*num_angles*self.pixel_x.size
        if n_bytes > TABLE_CACHE_LIMIT:
            self.logger.info("Back-projection tables (%.0f MB) computed per "
                             "angle" % (n_bytes/2.0**20))
            return None

        l2_table    = zeros((num_angles, self.pixel_x.size), dtype=float32)
        gamma_table = zeros((num_angles, self.pixel_x.size), dtype=float32)

        for n in range(num_angles):
            l2_table[n], gamma_table[n] = \
                self._angle_tables(2*pi*n/num_angles)

        self._tables[num_angles] = (l2_table, gamma_table)
        return self._tables[num_angles]
    # -------------------------------------------------------------------------

    def backproject(self, filtered):
        """
        -----------------------------------------------------------------------
        Back-project filtered views over one full rotation.

        :param filtered:    (views, channels) filtered projections; view n
                            is taken at angle 2*pi*n/views
        :return: (grid_size, grid_size) int image in HU
        -----------------------------------------------------------------------
        """

        num_angles, n_ch = filtered.shape
        tables = self.backprojection_tables(num_angles)

        d_gamma = self.geometry.d_fan_angle
        half_fan = 0.5*self.geometry.fan_angle

        accum = zeros(self.pixel_x.size)

        for n in range(num_angles):
            if tables is None:
                l2, gamma = self._angle_tables(2*pi*n/num_angles)
            else:
                l2, gamma = tables[0][n], tables[1][n]

            u  = (gamma + half_fan)/d_gamma - 0.5
            c0 = clip(floor(u).astype(int64), 0, n_ch - 2)
            w  = clip(u - c0, 0.0, 1.0)

            q = filtered[n]
            accum += ((1.0 - w)*q[c0] + w*q[c0 + 1])/l2

        accum *= 2*pi/num_angles

        image = full(self.fov_mask.shape, HU_AIR, dtype=int64)
        image[self.fov_mask] = mu_to_hounsfield(accum, self.mu_water,
                                                self.mu_air)
        return image
    # -------------------------------------------------------------------------

    def _reconstruct_sinogram(self, sinogram):

        p = self.beam_hardening_correction(sinogram)
        p = self.fan_beam_weighting(p)
        q = self.ramp_filter_projections(p)

        return self.backproject(q)
    # -------------------------------------------------------------------------

    def check_calibration(self, dataset):
        """Warn if the dataset was acquired with other source settings."""

        if (dataset.tube_potential != self.tube_potential or
                dataset.filtration_mm != self.filtration_mm):
            self.logger.warning("Projections acquired at %i kVp / %g mm Al, "
                                "reconstructor calibrated for %i kVp / %g mm "
                                "Al - HU values will be biased"
                                % (dataset.tube_potential,
                                   dataset.filtration_mm, self.tube_potential,
                                   self.filtration_mm))
            return False

        return True
    # -------------------------------------------------------------------------

    def recon_axial_fbp(self, dataset):
        """
        -----------------------------------------------------------------------
        Reconstruct one slice from an axial acquisition.

        :param dataset: ProjectionDataset with one rotation of views
        :return: (grid_size, grid_size) int image in HU
        -----------------------------------------------------------------------
        """

        if dataset.data.shape[2] != self.geometry.num_channels:
            raise ValueError("Projection data has %i channels, scanner has %i"
                             % (dataset.data.shape[2],
                                self.geometry.num_channels))

        self.check_calibration(dataset)

        return self._reconstruct_sinogram(self.average_rows(dataset.data))
    # -------------------------------------------------------------------------

    def _view_samples(self, dataset, view):
        """
        z-positions, values and validity of the direct and complementary
        samples of one view of the rotation, each of shape (samples,
        channels).
        """

        data = dataset.data
        n_views, n_rows, n_ch = data.shape
        m = dataset.views_per_rotation
        offsets = self.geometry.row_offsets()

        # direct samples: same view in every rotation, every row
        direct = arange(view, n_views, m)

        z_dir = (dataset.z_at_view(direct)[:, None] + offsets[None, :]).ravel()
        z_dir = repeat(z_dir[:, None], n_ch, axis=1)
        v_dir = data[direct].reshape(-1, n_ch)
        ok_dir = ones(z_dir.shape, dtype=bool)

        # complementary samples: (beta + pi - 2*gamma, -gamma)
        d_beta = 2*pi/m
        shift = (pi - 2*self.gamma)/d_beta

        frac = view + arange(-1, dataset.rotations)[:, None]*m + shift[None, :]
        f0 = floor(frac).astype(int64)
        w  = frac - f0
        ok = (f0 >= 0) & (f0 + 1 <= n_views - 1)

        f0c = clip(f0, 0, n_views - 2)
        mirror = arange(n_ch)[::-1]

        # (rotations + 1, rows, channels)
        lo = data[f0c[:, None, :], arange(n_rows)[None, :, None],
                  mirror[None, None, :]]
        hi = data[f0c[:, None, :] + 1, arange(n_rows)[None, :, None],
                  mirror[None, None, :]]
        v_cmp = (1.0 - w[:, None, :])*lo + w[:, None, :]*hi

        z_cmp = dataset.z_at_view(frac)[:, None, :] + offsets[None, :, None]
        ok_cmp = repeat(ok[:, None, :], n_rows, axis=1)

        z_all  = vstack((z_dir, z_cmp.reshape(-1, n_ch)))
        v_all  = vstack((v_dir, v_cmp.reshape(-1, n_ch)))
        ok_all = vstack((ok_dir, ok_cmp.reshape(-1, n_ch)))

        return z_all, v_all, ok_all
    # -------------------------------------------------------------------------

    def helical_interpolation(self, dataset, slice_z, filter_width,
                              n_interp_points=10, on_missing='skip'):
        """
        -----------------------------------------------------------------------
        Estimate the in-plane sinogram of one rotation at slice_z from
        helical data. Samples with |z - slice_z| <= filter_width/2 + 1 are
        sorted by z, linearly resampled at n_interp_points positions over
        the filter width and averaged.

        Elements without samples are left at 0, logged and appended to
        missing_elements as (slice_z, view, channel); with
        on_missing='raise' a HelicalDataError is raised instead.

        :param dataset:         helical ProjectionDataset
        :param slice_z:         z-position of the slice (cm)
        :param filter_width:    width of the z-filter (cm)
        :param n_interp_points: number of resampling points
        :param on_missing:      'skip' or 'raise'
        :return: (views_per_rotation, channels) sinogram
        -----------------------------------------------------------------------
        """

        if on_missing not in ('skip', 'raise'):
            raise ValueError("on_missing must be 'skip' or 'raise', got %s"
                             % on_missing)

        m    = dataset.views_per_rotation
        n_ch = dataset.data.shape[2]

        half_width = 0.5*filter_width
        window = half_width + 1.0
        z_query = linspace(slice_z - half_width, slice_z + half_width,
                           n_interp_points)

        sinogram = zeros((m, n_ch))

        for view in range(m):
            z_all, v_all, ok_all = self._view_samples(dataset, view)
            ok_all &= abs(z_all - slice_z) <= window

            missing = []

            for c in range(n_ch):
                sel = ok_all[:, c]

                if not sel.any():
                    missing.append(c)
                    continue

                z_s = z_all[sel, c]
                order = argsort(z_s, kind='stable')
                sinogram[view, c] = interp(z_query, z_s[order],
                                           v_all[sel, c][order]).mean()

            if missing:
                msg = "Slice z=%.3f, view %i: no helical samples for " \
                      "channels %s" % (slice_z, view, missing)

                if on_missing == 'raise':
                    self.logger.error(msg)
                    raise HelicalDataError(msg)

                self.logger.warning(msg)
                self.missing_elements += [(slice_z, view, c) for c in missing]

        return sinogram
    # -------------------------------------------------------------------------

    def _check_slice_range(self, dataset, slice_positions):
        """Warn for slices outside the z-range sampled by the detector rows."""

        offsets = self.geometry.row_offsets()
        z_min = dataset.z_positions.min() + offsets[0]
        z_max = dataset.z_positions.max() + offsets[-1]

        outside = [z for z in slice_positions if not z_min <= z <= z_max]

        if outside:
            self.logger.warning("Slices %s outside the scanned z-range "
                                "[%.4f, %.4f] cm - end samples are held"
                                % (outside, z_min, z_max))
        return outside
    # -------------------------------------------------------------------------

    def helical_fi_fbp(self, dataset, slice_positions, filter_width=None,
                       n_interp_points=10, on_missing='skip'):
        """
        -----------------------------------------------------------------------
        Reconstruct slices from a helical acquisition. missing_elements is
        reset at the start of each call.

        :param dataset:         helical ProjectionDataset
        :param slice_positions: list of slice z-positions (cm)
        :param filter_width:    z-filter width (cm), default: detector
                                coverage
        :param n_interp_points: number of resampling points
        :param on_missing:      'skip' or 'raise'
        :return: list of (grid_size, grid_size) int images in HU
        -----------------------------------------------------------------------
        """

        if filter_width is None:
            filter_width = self.geometry.detector_coverage()

        self.check_calibration(dataset)
        self._check_slice_range(dataset, slice_positions)

        self.missing_elements = []
        images = []

        for slice_z in tqdm(list(slice_positions), desc='HelicalFI-FBP'):
            sinogram = self.helical_interpolation(dataset, slice_z,
                                                  filter_width,
                                                  n_interp_points, on_missing)
            images.append(self._reconstruct_sinogram(sinogram))

        if self.missing_elements:
            self.logger.warning("%i detector elements without helical samples"
                                % len(self.missing_elements))

        return images
    # -------------------------------------------------------------------------

# =============================================================================
# Class Ends
# =============================================================================
