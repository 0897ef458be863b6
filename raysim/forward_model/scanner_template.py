#!/usr/bin/env python

# ------------------------------------------------------------------------------
"""scanner_template.py: Module for the geometric, acquisition and
                       reconstruction specifications of a ray-tracing fan-beam
                       CT scanner.
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
Module description:

The scanner is a third-generation fan-beam CT scanner with an equiangular
(arc) detector. The X-ray source rotates on a circle of radius R (the
scanner radius) around the isocenter; the detector arc has radius 2R and is
centered on the source, so that every source-to-detector ray has length 2R.
The detector is specified by:

- num_channels  - number of detector channels along the fan
- channel_width - channel width projected to the isocenter (cm)
- num_rows      - number of detector rows along z
- row_width     - row width projected to the isocenter (cm)

from which the following values are derived once:

- fan_angle     - full fan angle, num_channels*channel_width/R (rad)
- d_fan_angle   - angular increment per channel, channel_width/R (rad)
- fov           - scan field-of-view diameter, 2R*sin(fan_angle/2) (cm)

The specifications are kept in three immutable records, ScannerGeometry,
AcquisitionSettings and ReconstructionSettings, which are created from the
dictionaries of a scanner template module (see template_default_ray_ct.py):

> ---------------------------------------------------------------------------->
import raysim.forward_model.template_default_ray_ct as default_scanner

geometry = ScannerGeometry(**default_scanner.machine_geometry)
acquisition = AcquisitionSettings(**default_scanner.acquisition_params)
recon = ReconstructionSettings(**default_scanner.recon_params)
> ---------------------------------------------------------------------------->
--------------------------------------------------------------------------------
"""

from collections import namedtuple
from tabulate import tabulate

from raysim import *


class ScannerGeometry(namedtuple('ScannerGeometry',
                                 ['radius', 'num_channels', 'channel_width',
                                  'num_rows', 'row_width'])):
    """
    ----------------------------------------------------------------------------
    Geometry of the fan-beam scanner. Lengths in cm, angles in radians.
    ----------------------------------------------------------------------------
    """

    __slots__ = ()

    def __new__(cls, radius, num_channels, channel_width, num_rows=1,
                row_width=0.0625, scanner_name=None):

        if radius <= 0 or channel_width <= 0 or row_width <= 0:
            raise ValueError("Scanner radius and detector widths must be > 0")
        if num_channels < 2 or num_rows < 1:
            raise ValueError("Scanner needs at least 2 channels and 1 row")

        return super(ScannerGeometry, cls).__new__(cls, float(radius),
                                                   int(num_channels),
                                                   float(channel_width),
                                                   int(num_rows),
                                                   float(row_width))

    @property
    def fan_angle(self):
        return self.channel_width*self.num_channels/self.radius

    @property
    def d_fan_angle(self):
        return self.channel_width/self.radius

    @property
    def fov(self):
        return 2.0*self.radius*sin(0.5*self.fan_angle)

    def channel_angles(self):
        """Fan angle of the center of each detector channel."""
        c = arange(self.num_channels)
        return -0.5*self.fan_angle + (2.0*c + 1.0)*self.d_fan_angle/2.0

    def row_offsets(self):
        """z-offset of each detector row projected to the isocenter."""
        r = arange(self.num_rows)
        return self.row_width*(r - self.num_rows/2.0 + 0.5)

    def detector_coverage(self):
        """Total z-coverage of the detector at the isocenter."""
        return self.num_rows*self.row_width

    def spec_table(self):
        return [['Scanner Radius (cm)', self.radius],
                ['Channels x Rows', '%i x %i' % (self.num_channels,
                                                 self.num_rows)],
                ['Channel / Row Width (cm)', '%g / %g' % (self.channel_width,
                                                         self.row_width)],
                ['Fan Angle (deg)', '%.3f' % rad2deg(self.fan_angle)],
                ['Scan FOV (cm)', '%.3f' % self.fov]]
# =============================================================================
# Class Ends
# =============================================================================


class AcquisitionSettings(namedtuple('AcquisitionSettings',
                                     ['tube_potential', 'num_photons',
                                      'num_projections', 'filtration_mm',
                                      'add_poisson_noise', 'add_system_noise',
                                      'electronic_noise_variance', 'seed'])):
    """
    ----------------------------------------------------------------------------
    X-ray source and sampling settings of an acquisition.

    tube_potential              - peak tube voltage (kVp)
    num_photons                 - photon fluence per detector element
    num_projections             - projections per rotation
    filtration_mm               - added aluminum filtration (mm)
    add_poisson_noise           - add quantum noise
    add_system_noise            - add electronic noise
    electronic_noise_variance   - variance of the electronic noise
    seed                        - seed of the noise generator
    ----------------------------------------------------------------------------
    """

    __slots__ = ()

    def __new__(cls, tube_potential=120, num_photons=5.0e5,
                num_projections=500, filtration_mm=0.0,
                add_poisson_noise=True, add_system_noise=True,
                electronic_noise_variance=10.0, seed=None):

        if num_projections < 1 or num_photons <= 0:
            raise ValueError("Number of projections and photons must be > 0")

        return super(AcquisitionSettings, cls).__new__(
            cls, int(tube_potential), float(num_photons), int(num_projections),
            float(filtration_mm), bool(add_poisson_noise),
            bool(add_system_noise), float(electronic_noise_variance), seed)

    def spec_table(self):
        return [['Tube Potential (kVp)', self.tube_potential],
                ['Photons / Element', '%.3g' % self.num_photons],
                ['Projections / Rotation', self.num_projections],
                ['Added Filtration (mm Al)', self.filtration_mm],
                ['Quantum / Electronic Noise', '%s / %s' % (
                    self.add_poisson_noise, self.add_system_noise)]]
# =============================================================================
# Class Ends
# =============================================================================


ReconstructionSettings = namedtuple('ReconstructionSettings',
                                    ['fov', 'grid_size'])
ReconstructionSettings.__doc__ = \
    """Reconstruction field-of-view diameter (cm) and image grid size."""


class ProjectionDataset(namedtuple('ProjectionDataset',
                                   ['data', 'angles', 'z_positions', 'mode',
                                    'views_per_rotation', 'pitch', 'z_start',
                                    'rotations', 'tube_potential',
                                    'filtration_mm'])):
    """
    ----------------------------------------------------------------------------
    Normalized projection data of an acquisition.

    data                - (views, rows, channels) array of log(air/object)
    angles              - (views,) source angles (rad), unwrapped for helical
    z_positions         - (views,) source z positions (cm)
    mode                - 'axial' or 'helical'
    views_per_rotation  - projections per rotation
    pitch               - helical pitch (0 for axial)
    z_start             - source z of the first view (cm)
    rotations           - number of rotations
    tube_potential      - peak tube voltage of the acquisition (kVp)
    filtration_mm       - added aluminum filtration of the acquisition (mm)

    The source settings are kept with the data so that the reconstruction
    calibrates against the spectrum the projections were acquired with.
    ----------------------------------------------------------------------------
    """

    __slots__ = ()

    @property
    def num_views(self):
        return self.data.shape[0]

    def z_at_view(self, view):
        """Source z for a (possibly fractional) view index."""

        if self.num_views < 2:
            return self.z_start + 0.0*asarray(view, dtype=float64)

        # source z advances linearly with the view index
        dz = (self.z_positions[-1] - self.z_positions[0])/(self.num_views - 1)
        return self.z_start + dz*asarray(view, dtype=float64)
# =============================================================================
# Class Ends
# =============================================================================


def log_scanner_specs(logger, geometry, acquisition=None, recon=None):
    """
    ----------------------------------------------------------------------------
    Log the scanner specifications as a table.

    :param logger:      logger object
    :param geometry:    ScannerGeometry
    :param acquisition: AcquisitionSettings (optional)
    :param recon:       ReconstructionSettings (optional)
    :return:
    ----------------------------------------------------------------------------
    """

    print_table = list(geometry.spec_table())

    if acquisition is not None:
        print_table += acquisition.spec_table()

    if recon is not None:
        print_table += [['Recon FOV (cm)', '%.3f' % recon.fov],
                        ['Image Grid', '%i x %i' % (recon.grid_size,
                                                    recon.grid_size)]]

    logger.info('\n' + tabulate(print_table, ['CT Specifications', ''],
                                tablefmt='psql'))
# ------------------------------------------------------------------------------
