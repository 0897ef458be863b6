#!/usr/bin/env python

# ------------------------------------------------------------------------------
"""geometric_object_model.py: Hierarchical collection of geometric objects
                             with parent-child containment relations."""
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

A GeometricObjectModel is a list of named shapes where each shape (except the
outermost 'world' object) is contained in a parent shape. Parent relations
are stored as indices into the object list. Once all objects are added,
make_tree() partitions the object indices into levels by their depth from the
world object - level 0 contains only the world. The level partition is
what the ray tracer walks: a child is only tested against a ray if its
parent was intersected, and the path length through a child is removed from
its parent so that every segment of a ray is attributed to the innermost
object containing it.

Usage:

> --------------------------------------------------------------------------- >
model = GeometricObjectModel()
model.add_geometric_object('World',   Cylinder(Vec3(), 40.0, 20.0), 'None')
model.add_geometric_object('Phantom', Cylinder(Vec3(), 10.0, 10.0), 'World')
model.make_tree()
model.calc_ray_path_lengths(ray)    # [(0, 60.0), (1, 20.0)]
> --------------------------------------------------------------------------- >

Siblings at the same level are assumed not to overlap.
--------------------------------------------------------------------------------
"""

from tabulate import tabulate
from numpy import *

from raysim.misc.util import get_logger


WORLD_PARENT = 'None'
PATH_EPSILON = 1.0e-10


class GeometricObjectModel(object):
    """
    ----------------------------------------------------------------------------
    Collection of geometric objects with parent-child relations.

    Methods:
    add_geometric_object()  - add a named shape with its parent
    make_tree()             - partition the objects into depth levels
    calc_ray_path_lengths() - path lengths of a ray through every object
    print_model()           - log a summary of objects and levels

    Attributes:
    object_name             - list of object names
    object_type             - list of shape types
    object_parent           - list of parent indices (-1 for the world)
    object_pointers         - list of shapes
    object_levels           - list of lists of object indices per depth
    world_id                - index of the world object
    ----------------------------------------------------------------------------
    """

    def __init__(self, logfile=None):

        self.logger = get_logger('OBJECT_MODEL', logfile)

        self.object_name     = []
        self.object_type     = []
        self.object_parent   = []
        self.object_pointers = []
        self.object_levels   = []
        self.world_id        = None
    # --------------------------------------------------------------------------

    def find_object(self, name):
        """Index of the object with the given name, None if not present."""

        if name in self.object_name:
            return self.object_name.index(name)
        return None
    # --------------------------------------------------------------------------

    def _check_parent(self, parent_name):
        """
        Returns (True, parent_index) for a valid parent and (False, None)
        otherwise. The world marker returns the index -1 while no world is
        defined.
        """

        if parent_name == WORLD_PARENT:
            if self.world_id is not None:
                self.logger.error("World object '%s' already defined!"
                                  % self.object_name[self.world_id])
                return False, None
            return True, -1

        parent_id = self.find_object(parent_name)

        if parent_id is None:
            self.logger.error("Could not find parent '%s'!" % parent_name)
            return False, None

        return True, parent_id
    # --------------------------------------------------------------------------

    def _append_object(self, name, shape, parent_id):

        if parent_id == -1:
            self.world_id = len(self.object_name)

        self.object_name.append(name)
        self.object_type.append(shape.shape_type)
        self.object_parent.append(parent_id)
        self.object_pointers.append(shape)
    # --------------------------------------------------------------------------

    def add_geometric_object(self, name, shape, parent_name):
        """
        ------------------------------------------------------------------------
        Add a geometric object to the model. A parent name of 'None' makes
        the object the world. An unknown parent or a second world is reported
        and the object is not added.

        :param name:        object name
        :param shape:       GeometricObject instance
        :param parent_name: name of the containing object or 'None'
        :return: True if the object was added
        ------------------------------------------------------------------------
        """

        found, parent_id = self._check_parent(parent_name)

        if not found:
            self.logger.error("Object '%s' skipped." % name)
            return False

        self._append_object(name, shape, parent_id)
        return True
    # --------------------------------------------------------------------------

    def object_depth(self, n):
        """Number of parent hops from object n to the world."""

        depth = 0
        current = n

        while current != self.world_id:
            current = self.object_parent[current]
            depth += 1

            if current == -1 or depth > len(self.object_name):
                raise ValueError("Parent chain of object '%s' does not reach "
                                 "the world object" % self.object_name[n])
        return depth
    # --------------------------------------------------------------------------

    def make_tree(self):
        """
        ------------------------------------------------------------------------
        Create the level partition of the object model from the parent-child
        relations. Must be called after all objects are added and before any
        ray query; call again after adding objects.

        :return: list of lists of object indices, level 0 holds the world
        ------------------------------------------------------------------------
        """

        if self.world_id is None:
            raise ValueError("Object model has no world object "
                             "(parent '%s')" % WORLD_PARENT)

        depths = [self.object_depth(n) for n in range(len(self.object_name))]

        self.object_levels = [[] for _ in range(int(amax(depths)) + 1)]

        for n, d in enumerate(depths):
            self.object_levels[d].append(n)

        return self.object_levels
    # --------------------------------------------------------------------------

    def _trace_levels(self, origins, directions, epsilon):
        """
        ------------------------------------------------------------------------
        Walk the level partition for a set of rays.

        :param origins:     (n, 3) ray origins
        :param directions:  (n, 3) ray directions
        :param epsilon:     minimum path length counted as an intersection
        :return: (num_objects, n) path lengths and intersection mask
        ------------------------------------------------------------------------
        """

        if not self.object_levels:
            raise RuntimeError("make_tree() must be called before ray queries")

        n_rays = origins.shape[0]
        n_obj  = len(self.object_name)

        path_lengths = zeros((n_obj, n_rays))
        intersect    = zeros((n_obj, n_rays), dtype=bool)

        # Start at outermost level (the "world")
        path_lengths[self.world_id] = sqrt(sum(directions**2, axis=1))
        intersect[self.world_id] = True

        for level in self.object_levels[1:]:
            for n in level:
                parent = self.object_parent[n]
                mask = intersect[parent]

                if not mask.any():
                    continue

                length = zeros(n_rays)
                length[mask] = self.object_pointers[n].ray_path_lengths(
                                    origins[mask], directions[mask])

                hit = length > epsilon
                path_lengths[n] = where(hit, length, 0.0)
                intersect[n] = hit
                path_lengths[parent] -= path_lengths[n]

        return path_lengths, intersect
    # --------------------------------------------------------------------------

    def calc_ray_path_lengths(self, ray):
        """
        ------------------------------------------------------------------------
        Path lengths of a ray through every object it intersects.

        :param ray:     Ray3 object
        :return: list of (object index, path length) pairs, [(-1, 0.0)] if
                 the ray misses the world object
        ------------------------------------------------------------------------
        """

        origins = ray.origin.to_array()[None, :]
        directions = ray.direction.to_array()[None, :]

        world = self.object_pointers[self.world_id]
        if world.ray_path_lengths(origins, directions)[0] < PATH_EPSILON:
            return [(-1, 0.0)]

        path_lengths, intersect = self._trace_levels(origins, directions,
                                                     PATH_EPSILON)

        return [(n, float(path_lengths[n, 0]))
                for level in self.object_levels for n in level
                if intersect[n, 0]]
    # --------------------------------------------------------------------------

    def model_table(self):
        """Rows describing each object for tabulated output."""

        return [[n, self.object_name[n], self.object_type[n],
                 self.object_name[self.object_parent[n]]
                 if self.object_parent[n] >= 0 else WORLD_PARENT]
                for n in range(len(self.object_name))]
    # --------------------------------------------------------------------------

    def print_model(self):
        """
        ------------------------------------------------------------------------
        Log the objects of the model and the level partition.
        ------------------------------------------------------------------------
        """

        header = ['ID', 'Object', 'Type', 'Parent']
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
