#!/usr/bin/env python

# ------------------------------------------------------------------------------
"""
mu_database_handler.py: Module to handle the NIST photon attenuation tables
                        used to obtain mass/linear attenuation and absorption
                        coefficients of the phantom materials.
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

This module is responsible for handling the NIST X-ray attenuation tables
(XCOM / X-ray Mass Attenuation Coefficients [1]) for the materials used in
RayCTSim phantoms. Each material is stored in the directory include/mu/ as
a text file mass_atten_<material>.txt with three columns:

- photon energy in MeV
- mass attenuation coefficient mu/rho in cm^2/g
- mass energy-absorption coefficient mu_en/rho in cm^2/g

Absorption edges are written as two rows with the same energy. Material
densities are listed in include/mu/materials_density.txt. Coefficients at
energies between the tabulated rows are obtained by logarithmic (log-log)
interpolation.

[1] J. H. Hubbell and S. M. Seltzer, Tables of X-Ray Mass Attenuation
    Coefficients and Mass Energy-Absorption Coefficients, NIST Standard
    Reference Database 126.

* Usage:

> --------------------------------------------------------------------------- >
from raysim.forward_model.mu_database_handler import *

mu_handle = MuDatabaseHandler()
print('Water:', mu_handle.material('water', 'density'))
print('Water LAC at 60 keV:', mu_handle.linear_attenuation('water', 0.060))

# a denser copy of water
mu_handle.add_material('water', 'dense_water', density=1.1)
> --------------------------------------------------------------------------- >

Once loaded, the data for a material is stored as a dictionary with the
following keys:

- 'name'     - material name
- 'density'  - material density in g/cc
- 'energies' - tabulated photon energies in MeV
- 'mu'       - mass attenuation coefficients in cm^2/g
- 'mu_en'    - mass energy-absorption coefficients in cm^2/g

* Methods:

__init__()                  - Constructor
material()                  - Get data for a specified material
add_material()              - Copy a material under a new name and density
mass_attenuation()          - mu/rho at the given energies
linear_attenuation()        - mu at the given energies
mass_absorption()           - mu_en/rho at the given energies
linear_absorption()         - mu_en at the given energies
--------------------------------------------------------------------------------
"""

import os

from raysim import *
from raysim.misc.util import get_logger


class UnknownMaterialError(KeyError):
    pass


def log_interpolation(x, xp, fp):
    """
    ----------------------------------------------------------------------------
    Logarithmic interpolation of the table (xp, fp) at x. Values outside the
    table are clamped to the end points; x <= 0 returns 0.

    :param x:   query points
    :param xp:  tabulated abscissae (non-decreasing, > 0)
    :param fp:  tabulated values (> 0)
    :return: interpolated values with the shape of x
    ----------------------------------------------------------------------------
    """

    x = asarray(x, dtype=float64)
    valid = x > 0
    safe_x = where(valid, x, xp[0])

    y = exp(interp(log(safe_x), log(xp), log(fp)))

    return where(valid, y, 0.0)
# ------------------------------------------------------------------------------


class MuDatabaseHandler(object):
    """
    ----------------------------------------------------------------------------
    Handle for the photon attenuation data of the phantom materials. The
    handler loads every material table found in the data directory when
    initialized.

    Attributes:

    f_loc               - dictionary of dbase file locations
    materials_list      - list of names of all available materials
    ----------------------------------------------------------------------------
    """

    f_loc = {
        'mu_dir': MU_DIR,
        'mu_file': MU_FILE_NAME,
        'density': MU_DENSITY_FILE
    }

    def __init__(self, mu_dir=None, debug=False, logfile=None):
        """
        -----------------------------------------------------------------------
        Constructor for MuDatabaseHandler().

        :param mu_dir:      directory containing the attenuation tables
                            (default: raysim/include/mu/)
        :param debug:       set to log the database contents
        :param logfile:     log file path
        -----------------------------------------------------------------------
        """

        self.debug = debug
        self.logger = get_logger('MU_HANDLER', logfile)

        self.f_loc = self.f_loc.copy()

        if mu_dir is not None:
            self.f_loc['mu_dir'] = mu_dir
            self.f_loc['density'] = os.path.join(mu_dir,
                                                 'materials_density.txt')

        density_data = atleast_2d(loadtxt(self.f_loc['density'],
                                          dtype=str, comments='#'))
        self.densities = {row[0]: float(row[1]) for row in density_data}

        self.materials = dict()

        prefix, suffix = self.f_loc['mu_file'].split('%s')

        for fname in sorted(os.listdir(self.f_loc['mu_dir'])):
            if not (fname.startswith(prefix) and fname.endswith(suffix)):
                continue

            mat = fname[len(prefix):-len(suffix)]

            if mat not in self.densities:
                self.logger.warning("No density listed for %s - skipped" % mat)
                continue

            self.materials[mat] = self._load_table(
                os.path.join(self.f_loc['mu_dir'], fname), mat)

        if self.debug:
            self.logger.info("Database Contents:")
            self.logger.info('-'*40)
            self.logger.info(f"Number of Materials: {len(self.materials)}")
            self.logger.info(f"Materials: {', '.join(self.materials_list)}")
            self.logger.info("="*80)
    # -------------------------------------------------------------------------

    def _load_table(self, fpath, mat):

        table = loadtxt(fpath, comments='#')

        return dict(name=mat,
                    density=self.densities[mat],
                    energies=table[:, 0],
                    mu=table[:, 1],
                    mu_en=table[:, 2])
    # -------------------------------------------------------------------------

    @property
    def materials_list(self):
        return list(self.materials.keys())
    # -------------------------------------------------------------------------

    def material(self, mat, prop=None):
        """
        -----------------------------------------------------------------------
        Function to read material / material properties.

        :param mat:     material name
        :param prop:    material property: {'name', 'density', 'energies',
                        'mu', 'mu_en'}
        :return:   material dictionary or property value
        -----------------------------------------------------------------------
        """

        if mat not in self.materials:
            self.logger.error("Unknown Material: %s! Select from the current "
                              "material list: %s" % (mat, self.materials_list))
            raise UnknownMaterialError(mat)

        if prop is None: return self.materials[mat]
        else:            return self.materials[mat][prop]
    # -------------------------------------------------------------------------

    def add_material(self, mat, new_name=None, density=None):
        """
        -----------------------------------------------------------------------
        Add a copy of an existing material under a new name and/or with a
        forced density.

        :param mat:         name of the source material
        :param new_name:    name of the new material (default: same name)
        :param density:     forced density in g/cc (default: unchanged)
        :return: name of the added material
        -----------------------------------------------------------------------
        """

        src = self.material(mat)

        new_mat = dict(src)
        new_mat['name'] = mat if new_name is None else new_name

        if density is not None:
            new_mat['density'] = float(density)

        self.materials[new_mat['name']] = new_mat

        if self.debug:
            self.logger.info("Material %s added from %s (density: %.4g g/cc)"
                             % (new_mat['name'], mat, new_mat['density']))

        return new_mat['name']
    # -------------------------------------------------------------------------

    def mass_attenuation(self, mat, energy):
        """Mass attenuation coefficient (cm^2/g) at energy (MeV)."""

        m = self.material(mat)
        return log_interpolation(energy, m['energies'], m['mu'])

    def linear_attenuation(self, mat, energy):
        """Linear attenuation coefficient (1/cm) at energy (MeV)."""

        return self.material(mat, 'density')*self.mass_attenuation(mat, energy)

    def mass_absorption(self, mat, energy):
        """Mass energy-absorption coefficient (cm^2/g) at energy (MeV)."""

        m = self.material(mat)
        return log_interpolation(energy, m['energies'], m['mu_en'])

    def linear_absorption(self, mat, energy):
        """Linear energy-absorption coefficient (1/cm) at energy (MeV)."""

        return self.material(mat, 'density')*self.mass_absorption(mat, energy)
    # -------------------------------------------------------------------------

# =============================================================================
# Class Ends
# =============================================================================
