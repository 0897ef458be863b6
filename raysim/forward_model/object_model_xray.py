#!/usr/bin/env python

# ------------------------------------------------------------------------------
"""object_model_xray.py: Geometric object model with material assignments and
                        polychromatic X-ray attenuation along rays."""
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

ObjectModelXray extends the GeometricObjectModel with a material for every
object. Materials are taken from a MuDatabaseHandler and may be shared by
several objects. The model computes the fraction of a polychromatic
spectrum transmitted along a ray:

    I/I0 = sum_e  S(e) * exp( - sum_n mu_n(e) * l_n )

where S(e) is the spectral weight of energy bin e, l_n the path length of
the ray through object n (after removing the length of its children) and
mu_n(e) the linear attenuation coefficient of its material.

Since the transmission is evaluated for every detector element of every
projection, the attenuation coefficients are tabulated once per energy bin
with tabulate_attenuation_lists() before an acquisition.

Usage:

> --------------------------------------------------------------------------- >
model = ObjectModelXray()
model.add_material('air')
model.add_material('water')
model.add_object('World',   Cylinder(Vec3(), 40.0, 20.0), 'None',  'air')
model.add_object('Phantom', Cylinder(Vec3(), 10.0, 10.0), 'World', 'water')
model.make_tree()

model.tabulate_attenuation_lists(ENERGY_BINS_MEV, spectrum)
transmission = model.get_ray_attenuation(ray, spectrum)
> --------------------------------------------------------------------------- >
--------------------------------------------------------------------------------
"""

from tabulate import tabulate

from raysim import *
from raysim.geometry.vec3 import Vec3
from raysim.geometry.geometric_object import Cylinder, Sphere
from raysim.geometry.geometric_object_model import GeometricObjectModel
from raysim.forward_model.mu_database_handler import MuDatabaseHandler


RAY_EPSILON = 1.0e-6


class ObjectModelXray(GeometricObjectModel):
    """
    ----------------------------------------------------------------------------
    X-ray imaging object model.

    Methods:
    add_material()                  - add a material from the mu database
    assign_material()               - look up the material index for a name
    add_object()                    - add a shape with parent and material
    tabulate_attenuation_lists()    - pre-compute mu per material and energy
    is_list_tabulated()             - check if lists are tabulated
    covers_spectrum()               - check the lists against a spectrum
    clear_attenuation_lists()       - drop the tabulated lists
    get_ray_attenuation()           - transmitted fraction for one ray
    get_rays_attenuation()          - transmitted fractions for many rays
    print_model()                   - log the model summary

    Attributes:
    mu_data                         - list of material names in the model
    object_material_id              - material index per object
    tabulated_energies              - energies of the tabulated lists (MeV)
    tabulated_mu_lists              - (materials, energies) array of mu
    tabulated_bins                  - bins with non-zero weight at tabulation
    ----------------------------------------------------------------------------
    """

    def __init__(self, mu_handler=None, logfile=None):

        super(ObjectModelXray, self).__init__(logfile)

        self.mu = MuDatabaseHandler(logfile=logfile) \
                  if mu_handler is None else mu_handler

        self.mu_data              = []
        self.object_material_id   = []
        self.tabulated_energies   = None
        self.tabulated_mu_lists   = None
        self.tabulated_bins       = None
    # --------------------------------------------------------------------------

    def add_material(self, name, new_name=None, density=None):
        """
        ------------------------------------------------------------------------
        Add a material to the model.

        :param name:        material name in the mu database
        :param new_name:    name used in the model (default: name)
        :param density:     forced density in g/cc (default: tabulated)
        :return:
        ------------------------------------------------------------------------
        """

        if new_name is not None or density is not None:
            name = self.mu.add_material(name, new_name, density)
        else:
            self.mu.material(name)

        if name in self.mu_data:
            self.logger.warning("Material %s already in the model" % name)
            return

        self.mu_data.append(name)

        if self.is_list_tabulated():
            self.logger.warning("Material %s added after tabulation - "
                                "attenuation lists are out of date" % name)
    # --------------------------------------------------------------------------

    def assign_material(self, material):
        """Index of the material in the model, None if not found."""

        if material in self.mu_data:
            return self.mu_data.index(material)

        self.logger.error("Could not find element/material '%s'!" % material)
        return None
    # --------------------------------------------------------------------------

    def add_object(self, name, shape, parent_name, material_name):
        """
        ------------------------------------------------------------------------
        Add an object to the model. Objects with an unknown parent or
        material are reported and skipped.

        :param name:            object name
        :param shape:           GeometricObject instance
        :param parent_name:     name of the containing object or 'None'
        :param material_name:   name of a material added to the model
        :return: True if the object was added
        ------------------------------------------------------------------------
        """

        found, parent_id = self._check_parent(parent_name)
        material_id = self.assign_material(material_name)

        if not found or material_id is None:
            self.logger.error("Object '%s' skipped." % name)
            return False

        self._append_object(name, shape, parent_id)
        self.object_material_id.append(material_id)
        return True
    # --------------------------------------------------------------------------

    def tabulate_attenuation_lists(self, energies, spectrum):
        """
        ------------------------------------------------------------------------
        Tabulate the linear attenuation coefficient of each material for
        each energy bin. Bins with zero spectral weight are set to 0. A
        repeated call keeps the existing lists.

        :param energies:    energies of the spectrum bins in MeV
        :param spectrum:    spectral weights of the bins
        :return:
        ------------------------------------------------------------------------
        """

        if self.is_list_tabulated():
            self.logger.warning("Attenuation list already tabulated!")
            return

        energies = asarray(energies, dtype=float64)
        spectrum = asarray(spectrum, dtype=float64)

        self.tabulated_energies = energies.copy()
        self.tabulated_mu_lists = zeros((len(self.mu_data), energies.size))

        nz = spectrum != 0.0
        self.tabulated_bins = nz.copy()

        for n, mat in enumerate(self.mu_data):
            self.tabulated_mu_lists[n, nz] = \
                self.mu.linear_attenuation(mat, energies[nz])
    # --------------------------------------------------------------------------

    def is_list_tabulated(self):
        return self.tabulated_mu_lists is not None
    # --------------------------------------------------------------------------

    def covers_spectrum(self, spectrum):
        """
        ------------------------------------------------------------------------
        Check that the tabulated lists hold mu for every material of the
        model and for every bin where the spectrum is non-zero. Bins skipped
        at tabulation hold mu = 0 and would pass photons unattenuated.

        :param spectrum:    spectral weights of the bins
        :return: True if the lists can be used with the spectrum
        ------------------------------------------------------------------------
        """

        if not self.is_list_tabulated():
            return False

        if self.tabulated_mu_lists.shape[0] != len(self.mu_data):
            return False

        spectrum = asarray(spectrum, dtype=float64)

        if spectrum.shape != self.tabulated_bins.shape:
            return False

        return not any((spectrum != 0.0) & ~self.tabulated_bins)
    # --------------------------------------------------------------------------

    def clear_attenuation_lists(self):
        self.tabulated_energies = None
        self.tabulated_mu_lists = None
        self.tabulated_bins = None
    # --------------------------------------------------------------------------

    def _object_mu(self, spectrum):
        """(objects, energies) array of mu for the bins of the spectrum."""

        if self.is_list_tabulated():
            mat_mu = self.tabulated_mu_lists
        else:
            mat_mu = array([self.mu.linear_attenuation(mat, ENERGY_BINS_MEV)
                            for mat in self.mu_data])

        return mat_mu[self.object_material_id][:, :spectrum.size]
    # --------------------------------------------------------------------------

    def get_rays_attenuation(self, origins, directions, spectrum):
        """
        ------------------------------------------------------------------------
        Fractional transmitted intensity of a polychromatic spectrum along a
        set of rays through the object model.

        :param origins:     (n, 3) array of ray origins
        :param directions:  (n, 3) array of ray directions (scaled by length)
        :param spectrum:    1D array of spectral weights per energy bin
        :return: (n,) array of transmitted fractions
        ------------------------------------------------------------------------
        """

        origins    = atleast_2d(asarray(origins, dtype=float64))
        directions = atleast_2d(asarray(directions, dtype=float64))
        spectrum   = asarray(spectrum, dtype=float64)

        path_lengths, _ = self._trace_levels(origins, directions, RAY_EPSILON)

        nz = spectrum != 0.0
        obj_mu = self._object_mu(spectrum)[:, nz]

        # (rays, energies) line integrals
        line_integrals = dot(path_lengths.T, obj_mu)

        return dot(exp(-line_integrals), spectrum[nz])
    # --------------------------------------------------------------------------

    def get_ray_attenuation(self, ray, spectrum):
        """
        ------------------------------------------------------------------------
        Fractional transmitted intensity of a polychromatic spectrum along a
        ray through the object model.

        :param ray:         Ray3 object
        :param spectrum:    1D array of spectral weights per energy bin
        :return: transmitted fraction in [0, sum(spectrum)]
        ------------------------------------------------------------------------
        """

        return float(self.get_rays_attenuation(ray.origin.to_array(),
                                               ray.direction.to_array(),
                                               spectrum)[0])
    # --------------------------------------------------------------------------

    def model_table(self):

        rows = super(ObjectModelXray, self).model_table()
        for row, mat_id in zip(rows, self.object_material_id):
            row.append(self.mu_data[mat_id])
        return rows
    # --------------------------------------------------------------------------

    def print_model(self):
        """
        ------------------------------------------------------------------------
        Log the materials, objects and the level partition of the model.
        ------------------------------------------------------------------------
        """

        materials = [[n + 1, mat, self.mu.material(mat, 'density')]
                     for n, mat in enumerate(self.mu_data)]
        self.logger.info('\n' + tabulate(materials,
                                         ['#', 'Material', 'Density (g/cc)'],
                                         tablefmt='psql'))

        header = ['ID', 'Object', 'Type', 'Parent', 'Material']
        self.logger.info('\n' + tabulate(self.model_table(), header,
                                         tablefmt='psql'))

        levels = [[m, ', '.join(self.object_name[n] for n in level)]
                  for m, level in enumerate(self.object_levels)]
        self.logger.info('\n' + tabulate(levels, ['Level', 'Objects'],
                                         tablefmt='psql'))
    # --------------------------------------------------------------------------

# =============================================================================
# Class Ends
# =============================================================================


def create_shape(obj):
    """
    ----------------------------------------------------------------------------
    Create a geometric shape from an object dictionary of a phantom list.

    :param obj: dictionary with 'shape' ('cylinder' or 'sphere'), 'centroid',
                'radius' and, for cylinders, 'height'
    :return: GeometricObject
    ----------------------------------------------------------------------------
    """

    centroid = Vec3(*obj.get('centroid', (0.0, 0.0, 0.0)))
    shape = obj['shape'].lower()

    if shape == 'cylinder':
        return Cylinder(centroid, obj['radius'], obj.get('height', 0.0))
    elif shape == 'sphere':
        return Sphere(centroid, obj['radius'])
    else:
        raise NotImplementedError("Shape '%s' is not supported" % obj['shape'])
# ------------------------------------------------------------------------------


def create_object_model(object_list, mu_handler=None, logfile=None):
    """
    ----------------------------------------------------------------------------
    Build an ObjectModelXray from a phantom list, i.e., a list of object
    dictionaries with the keys name, shape, centroid, radius, height, parent,
    material and optionally density (see configs/config_default_ray_ct.py).
    Materials with a forced density are added as '<material>_<density>'.

    :param object_list: list of object dictionaries, parents before children
    :param mu_handler:  MuDatabaseHandler (optional)
    :param logfile:     log file path
    :return: ObjectModelXray with the tree built
    ----------------------------------------------------------------------------
    """

    model = ObjectModelXray(mu_handler, logfile)

    for obj in object_list:
        material = obj['material']

        if obj.get('density') is not None:
            new_name = '%s_%g' % (material, obj['density'])
            if new_name not in model.mu_data:
                model.add_material(material, new_name, obj['density'])
            material = new_name
        elif material not in model.mu_data:
            model.add_material(material)

        model.add_object(obj['name'], create_shape(obj), obj['parent'],
                         material)

    model.make_tree()
    return model
# ------------------------------------------------------------------------------
