#!/usr/bin/env python

# ------------------------------------------------------------------------------
"""
ray_ct.py: Module for simulating axial and helical fan-beam CT acquisition
           by ray tracing through an X-ray object model, and for
           reconstructing the simulated projections.
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

RayCT simulates a third-generation fan-beam CT scanner. For every projection
angle, a ray is traced from the X-ray source to the center of each detector
element through an ObjectModelXray and the transmitted fraction of the
polychromatic source spectrum is computed. The detector signal is the
transmitted fraction times the photon fluence, with quantum noise (Gaussian
with the variance equal to the signal) and electronic noise (zero-mean
Gaussian) added. The projections are normalized with an air scan to the line
integrals log(air/object).

The geometry is described in scanner_template.py. The source at angle beta
and height z sits at (R cos(beta), R sin(beta), z); the detector element of
channel c and row r sits on the arc of radius 2R around the source at fan
angle gamma_c and height z + 2*row_offset(r), so that each ray crosses the
isocenter axis at z + row_offset(r).

The simulator goes through the states

    configured -> air scan acquired -> projections acquired

A new acquisition clears and rebuilds the projection dataset without a new
air scan. Reconstructed images are appended to the image list.

Usage:

> --------------------------------------------------------------------------- >
import raysim.forward_model.template_default_ray_ct as scanner

ct = RayCT()
ct.set_from_template(scanner)

model = ObjectModelXray()
...
model.make_tree()

ct.acquire_air_scan()
ct.acquire_axial_projections(model, z=0.0)
image = ct.recon_axial_fbp()

ct.acquire_helical_projections(model, pitch=1.0, z_start=-1.0, rotations=3)
images = ct.helical_fi_fbp([-0.5, 0.0, 0.5], filter_width=0.5)
> --------------------------------------------------------------------------- >
--------------------------------------------------------------------------------
"""

import os
from tqdm import tqdm

from raysim import *
from raysim.misc.util import get_logger, save_flat_data
from raysim.misc.ctlib import normalize_projection
from raysim.forward_model.mu_database_handler import MuDatabaseHandler
from raysim.forward_model.spectrum_generator import SpectrumGenerator
from raysim.forward_model.scanner_template import ScannerGeometry, \
    AcquisitionSettings, ReconstructionSettings, ProjectionDataset, \
    log_scanner_specs
from raysim.reconstructor.fan_beam_fbp import FanBeamReconstructor


NOISE_FLOOR = 0.1


class RayCT(object):
    """
    ----------------------------------------------------------------------------
    Fan-beam CT acquisition simulator.

    Methods:
    set_geometry()                  - scanner radius and detector layout
    set_acquisition()               - source and sampling settings
    set_reconstruction()            - reconstruction FOV and grid size
    set_from_template()             - all settings from a scanner template
    add_noise()                     - quantum and electronic noise
    acquire_air_scan()              - unattenuated reference scan
    object_projection()             - transmitted fractions for one view
    acquire_axial_projections()     - one rotation at fixed z
    acquire_helical_projections()   - helical acquisition
    reconstructor_for()             - reconstructor calibrated for a dataset
    recon_axial_fbp()               - reconstruct the axial data
    helical_fi_fbp()                - reconstruct slices of helical data
    save_data()                     - write flat text dumps of the results

    Attributes:
    geometry                        - ScannerGeometry
    acquisition                     - AcquisitionSettings
    recon                           - ReconstructionSettings
    spectrum                        - normalized source spectrum
    air_scan                        - (rows, channels) air scan signal
    projection_data                 - ProjectionDataset of the last scan
    image_data                      - list of reconstructed images
    ----------------------------------------------------------------------------
    """

    def __init__(self, mu_handler=None, spectrum_generator=None, logfile=None):

        self.logfile = logfile
        self.logger = get_logger('RAY_CT', logfile)

        self.mu = MuDatabaseHandler(logfile=logfile) \
                  if mu_handler is None else mu_handler
        self.spectrum_generator = SpectrumGenerator(self.mu) \
                  if spectrum_generator is None else spectrum_generator

        self.geometry    = None
        self.acquisition = None
        self.recon       = None
        self.spectrum    = None
        self.rng         = None

        self.air_scan        = None
        self.projection_data = None
        self.image_data      = []

        self._reconstructor = None

        self.set_acquisition()
    # -------------------------------------------------------------------------

    def set_geometry(self, radius, num_channels, channel_width, num_rows=1,
                     row_width=0.0625):
        """
        -----------------------------------------------------------------------
        Set the scanner geometry. Clears the air scan since its detector
        layout no longer matches.

        :param radius:          source-to-isocenter distance (cm)
        :param num_channels:    number of detector channels
        :param channel_width:   channel width at the isocenter (cm)
        :param num_rows:        number of detector rows
        :param row_width:       row width at the isocenter (cm)
        :return:
        -----------------------------------------------------------------------
        """

        self.geometry = ScannerGeometry(radius, num_channels, channel_width,
                                        num_rows, row_width)
        self.air_scan = None
        self._reconstructor = None

        if self.recon is not None:
            self.set_reconstruction(*self.recon)
    # -------------------------------------------------------------------------

    def set_acquisition(self, tube_potential=120, num_photons=5.0e5,
                        num_projections=500, **kwargs):
        """
        -----------------------------------------------------------------------
        Set the acquisition settings and generate the source spectrum. See
        AcquisitionSettings for the keyword arguments.

        :param tube_potential:  peak tube potential (kVp)
        :param num_photons:     photon fluence per detector element
        :param num_projections: projections per rotation
        :return:
        -----------------------------------------------------------------------
        """

        self.acquisition = AcquisitionSettings(tube_potential, num_photons,
                                               num_projections, **kwargs)
        self.spectrum = self.spectrum_generator.generate(
                            self.acquisition.tube_potential,
                            self.acquisition.filtration_mm)
        self.rng = random.default_rng(self.acquisition.seed)
        self._reconstructor = None

        if self.air_scan is not None:
            self.logger.warning("Acquisition settings changed after the air "
                                "scan - acquire a new air scan before the "
                                "next acquisition")
    # -------------------------------------------------------------------------

    def set_reconstruction(self, fov, grid_size):
        """
        -----------------------------------------------------------------------
        Set the reconstruction FOV and grid size. A FOV larger than the scan
        FOV is clamped with a warning.

        :param fov:         reconstruction FOV diameter (cm)
        :param grid_size:   image size in pixels
        :return:
        -----------------------------------------------------------------------
        """

        if self.geometry is None:
            raise RuntimeError("Scanner geometry must be set before the "
                               "reconstruction settings")

        if fov > self.geometry.fov:
            self.logger.warning("Reconstruction FOV %.3f cm exceeds the scan "
                                "FOV - clamped to %.3f cm"
                                % (fov, self.geometry.fov))
            fov = self.geometry.fov

        self.recon = ReconstructionSettings(float(fov), int(grid_size))
        self._reconstructor = None
    # -------------------------------------------------------------------------

    def set_from_template(self, template):
        """
        -----------------------------------------------------------------------
        Configure the scanner from a template module (or any object) with the
        dictionaries machine_geometry, acquisition_params and recon_params.

        :param template:    scanner template, e.g. template_default_ray_ct
        :return:
        -----------------------------------------------------------------------
        """

        g = dict(template.machine_geometry)
        g.pop('scanner_name', None)

        self.recon = None
        self.set_geometry(**g)
        self.set_acquisition(**template.acquisition_params)
        self.set_reconstruction(**template.recon_params)

        log_scanner_specs(self.logger, self.geometry, self.acquisition,
                          self.recon)
    # -------------------------------------------------------------------------

    def _check_ready(self):

        if self.geometry is None:
            raise RuntimeError("Scanner geometry is not set")
    # -------------------------------------------------------------------------

    def add_noise(self, signal):
        """
        -----------------------------------------------------------------------
        Add quantum noise N(s, sqrt(s)) and electronic noise N(0, sigma_e) to
        a detector signal. Values <= 0 are set to NOISE_FLOOR.

        :param signal:  array of detector signals (photon counts)
        :return: noisy signal array
        -----------------------------------------------------------------------
        """

        signal = asarray(signal, dtype=float64)
        noisy = signal.copy()

        if self.acquisition.add_poisson_noise:
            noisy = self.rng.normal(signal, sqrt(maximum(signal, 0.0)))

        if self.acquisition.add_system_noise:
            noisy = noisy + self.rng.normal(
                0.0, sqrt(self.acquisition.electronic_noise_variance),
                size=signal.shape)

        noisy[noisy <= 0] = NOISE_FLOOR
        return noisy
    # -------------------------------------------------------------------------

    def source_position(self, angle, z):
        r = self.geometry.radius
        return array([r*cos(angle), r*sin(angle), z])
    # -------------------------------------------------------------------------

    def detector_positions(self, angle, z):
        """(rows, channels, 3) centers of the detector elements."""

        r = self.geometry.radius
        gamma = self.geometry.channel_angles()

        x1 = -(2*r*cos(gamma) - r)
        y1 = 2*r*sin(gamma)

        x = x1*cos(angle) - y1*sin(angle)
        y = x1*sin(angle) + y1*cos(angle)
        z_det = z + 2*self.geometry.row_offsets()

        n_rows, n_ch = self.geometry.num_rows, self.geometry.num_channels

        positions = empty((n_rows, n_ch, 3))
        positions[:, :, 0] = x[None, :]
        positions[:, :, 1] = y[None, :]
        positions[:, :, 2] = z_det[:, None]

        return positions
    # -------------------------------------------------------------------------

    def _rays(self, angle, z):

        src = self.source_position(angle, z)
        directions = self.detector_positions(angle, z).reshape(-1, 3) - src
        origins = repeat(src[None, :], directions.shape[0], axis=0)

        return origins, directions
    # -------------------------------------------------------------------------

    def acquire_air_scan(self):
        """
        -----------------------------------------------------------------------
        Acquire the air scan for the source at angle 0 and z = 0: the
        spectrum attenuated by air along each source-to-detector ray, scaled
        by the photon fluence and noised.

        :return: (rows, channels) air scan signal
        -----------------------------------------------------------------------
        """

        self._check_ready()

        _, directions = self._rays(0.0, 0.0)
        lengths = sqrt(einsum('ij,ij->i', directions, directions))

        nz = self.spectrum > 0
        mu_air = self.mu.linear_attenuation('air', ENERGY_BINS_MEV[nz])
        transmitted = dot(exp(-outer(lengths, mu_air)), self.spectrum[nz])

        signal = self.acquisition.num_photons*transmitted
        self.air_scan = self.add_noise(signal).reshape(
                            self.geometry.num_rows, self.geometry.num_channels)

        self.logger.info("Air scan acquired (%i x %i)" % self.air_scan.shape)
        return self.air_scan
    # -------------------------------------------------------------------------

    def object_projection(self, model, angle, z, spectrum=None):
        """
        -----------------------------------------------------------------------
        Transmitted fractions of all detector elements for one source
        position.

        :param model:       ObjectModelXray with the tree built
        :param angle:       source angle (rad)
        :param z:           source z-position (cm)
        :param spectrum:    source spectrum (default: the acquisition's)
        :return: (rows, channels) array of transmitted fractions
        -----------------------------------------------------------------------
        """

        self._check_ready()

        if spectrum is None:
            spectrum = self.spectrum

        origins, directions = self._rays(angle, z)
        transmitted = model.get_rays_attenuation(origins, directions, spectrum)

        return transmitted.reshape(self.geometry.num_rows,
                                   self.geometry.num_channels)
    # -------------------------------------------------------------------------

    def _acquire(self, model, angles, z_positions, desc):

        if self.air_scan is None:
            raise RuntimeError("An air scan must be acquired before the "
                               "object projections")

        if model.covers_spectrum(self.spectrum):
            self.logger.info("Using the tabulated attenuation lists of the "
                             "model")
        else:
            if model.is_list_tabulated():
                self.logger.warning("Tabulated attenuation lists do not "
                                    "match the %i kVp spectrum - "
                                    "re-tabulating"
                                    % self.acquisition.tube_potential)
                model.clear_attenuation_lists()

            model.tabulate_attenuation_lists(ENERGY_BINS_MEV, self.spectrum)

        self.projection_data = None

        data = zeros((angles.size, self.geometry.num_rows,
                      self.geometry.num_channels))

        for n in tqdm(range(angles.size), desc=desc):
            transmitted = self.object_projection(model, angles[n],
                                                 z_positions[n])
            signal = self.add_noise(self.acquisition.num_photons*transmitted)
            data[n] = normalize_projection(self.air_scan, signal)

        return data
    # -------------------------------------------------------------------------

    def acquire_axial_projections(self, model, z=0.0):
        """
        -----------------------------------------------------------------------
        Acquire one rotation of projections at a fixed z-position.

        :param model:   ObjectModelXray with the tree built
        :param z:       source z-position (cm)
        :return: ProjectionDataset
        -----------------------------------------------------------------------
        """

        self._check_ready()

        m = self.acquisition.num_projections
        angles = 2*pi*arange(m)/m
        z_positions = full(m, float(z))

        data = self._acquire(model, angles, z_positions, 'Axial Scan')

        self.projection_data = ProjectionDataset(
                                    data, angles, z_positions, 'axial', m,
                                    0.0, float(z), 1,
                                    self.acquisition.tube_potential,
                                    self.acquisition.filtration_mm)
        return self.projection_data
    # -------------------------------------------------------------------------

    def acquire_helical_projections(self, model, pitch=1.0, z_start=0.0,
                                    rotations=1):
        """
        -----------------------------------------------------------------------
        Acquire a helical scan: the source advances by
        pitch*num_rows*row_width per rotation.

        :param model:       ObjectModelXray with the tree built
        :param pitch:       helical pitch
        :param z_start:     source z of the first view (cm)
        :param rotations:   number of full rotations
        :return: ProjectionDataset
        -----------------------------------------------------------------------
        """

        self._check_ready()

        if rotations < 1:
            raise ValueError("Number of rotations must be >= 1")

        m = self.acquisition.num_projections
        n = arange(m*rotations)

        angles = 2*pi*n/m
        z_positions = z_start + pitch*self.geometry.detector_coverage()*n/m

        data = self._acquire(model, angles, z_positions, 'Helical Scan')

        self.projection_data = ProjectionDataset(
                                    data, angles, z_positions, 'helical', m,
                                    float(pitch), float(z_start),
                                    int(rotations),
                                    self.acquisition.tube_potential,
                                    self.acquisition.filtration_mm)
        return self.projection_data
    # -------------------------------------------------------------------------

    def reconstructor_for(self, dataset):
        """
        -----------------------------------------------------------------------
        Reconstructor calibrated for the source settings of a dataset. The
        cached reconstructor is rebuilt if it was made for other settings.

        :param dataset: ProjectionDataset
        :return: FanBeamReconstructor
        -----------------------------------------------------------------------
        """

        if self.recon is None:
            raise RuntimeError("Reconstruction settings are not set")

        r = self._reconstructor

        if r is None or r.tube_potential != dataset.tube_potential \
                or r.filtration_mm != dataset.filtration_mm:
            self._reconstructor = FanBeamReconstructor(
                self.geometry, self.recon, dataset.tube_potential,
                dataset.filtration_mm, self.mu, self.spectrum_generator,
                self.logfile)

        return self._reconstructor
    # -------------------------------------------------------------------------

    def _check_projections(self):

        if self.projection_data is None:
            raise RuntimeError("No projection data acquired")
    # -------------------------------------------------------------------------

    def recon_axial_fbp(self):
        """Reconstruct the axial projection data and append the image."""

        self._check_projections()

        image = self.reconstructor_for(self.projection_data).recon_axial_fbp(
                    self.projection_data)
        self.image_data.append(image)
        return image
    # -------------------------------------------------------------------------

    def helical_fi_fbp(self, slice_positions, filter_width=None,
                       n_interp_points=10, on_missing='skip'):
        """
        -----------------------------------------------------------------------
        Reconstruct slices of the helical projection data and append the
        images. See FanBeamReconstructor.helical_fi_fbp().

        :return: list of images
        -----------------------------------------------------------------------
        """

        self._check_projections()

        images = self.reconstructor_for(self.projection_data).helical_fi_fbp(
                    self.projection_data, slice_positions, filter_width,
                    n_interp_points, on_missing)
        self.image_data += images
        return images
    # -------------------------------------------------------------------------

    def get_air_scan_data(self):
        return self.air_scan

    def get_projection_data(self):
        return self.projection_data

    def get_image_data(self):
        return self.image_data
    # -------------------------------------------------------------------------

    def save_data(self, out_dir):
        """
        -----------------------------------------------------------------------
        Write the air scan, projection data and images as flat text files
        with one value per line in row-major order.

        :param out_dir: output directory
        :return: list of written file paths
        -----------------------------------------------------------------------
        """

        written = []

        if self.air_scan is not None:
            written.append(save_flat_data(os.path.join(out_dir,
                                                       'air_scan.txt'),
                                          self.air_scan))

        if self.projection_data is not None:
            written.append(save_flat_data(os.path.join(out_dir,
                                                       'projections.txt'),
                                          self.projection_data.data))

        for n, image in enumerate(self.image_data):
            written.append(save_flat_data(os.path.join(out_dir,
                                                       'image_%03i.txt' % n),
                                          image, fmt='%i'))

        self.logger.info("Saved %i data files to %s" % (len(written), out_dir))
        return written
    # -------------------------------------------------------------------------

# =============================================================================
# Class Ends
# =============================================================================
