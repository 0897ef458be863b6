#!/usr/bin/env python

# ------------------------------------------------------------------------------
"""geometric_object.py: Primitive geometric shapes for the ray-traced object
                       model. Each shape answers a single question: the path
                       length of a ray through its interior."""
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

Shapes used to build a phantom are subclasses of GeometricObject. A subclass
implements _quadratic_terms() for its intersection equation, while the
path length rule (exit distance for an interior origin, chord length for an
exterior origin) is shared by all quadric shapes. Shapes are evaluated either
for a single Ray3 or, vectorized, for a whole detector fan:

> --------------------------------------------------------------------------- >
from raysim.geometry.geometric_object import *

phantom = Cylinder(Vec3(0.0, 0.0, 0.0), 10.0, 20.0)
ray = Ray3(Vec3(-40.0, 0.0, 0.0), Vec3(80.0, 0.0, 0.0))
print(phantom.ray_path_length(ray))            # 20.0
> --------------------------------------------------------------------------- >

Currently supported shapes:

Cylinder    - solid cylinder with its axis along z, treated as infinitely
              long for ray intersection (the height is only used for the
              volume)
Sphere      - solid sphere
--------------------------------------------------------------------------------
"""

from numpy import *

from raysim.geometry.vec3 import Vec3
from raysim.geometry.ray3 import Ray3


class GeometricObject(object):
    """
    ----------------------------------------------------------------------------
    Base class for shapes in the geometric object model.

    Methods:
    ray_path_length()       - path length of a single Ray3 through the shape
    ray_path_lengths()      - path lengths for arrays of ray origins and
                              directions
    calc_volume()           - shape volume
    ----------------------------------------------------------------------------
    """

    shape_type = 'NA'

    def __init__(self, centroid):
        self.centroid = centroid
        self.volume = None

    def calc_volume(self):
        raise NotImplementedError

    def _quadratic_terms(self, o, d):
        """
        Coefficients (a, b, c) of the intersection quadratic in the ray
        parameter t and the mask of origins inside the shape. o holds the
        origins relative to the centroid.
        """
        raise NotImplementedError

    def ray_path_lengths(self, origins, directions):
        """
        ------------------------------------------------------------------------
        Vectorized path length calculation for a set of rays.

        :param origins:     (n, 3) array of ray origins
        :param directions:  (n, 3) array of ray directions (scaled by the
                            ray length)
        :return: (n,) array of path lengths, 0 for rays that miss the shape
        ------------------------------------------------------------------------
        """

        origins    = atleast_2d(asarray(origins, dtype=float64))
        directions = atleast_2d(asarray(directions, dtype=float64))

        o = origins - self.centroid.to_array()
        q_a, q_b, q_c, inside = self._quadratic_terms(o, directions)

        q_check = q_b**2 - 4*q_a*q_c
        valid = (q_check >= 0) & (q_a > 0)

        # invalid rays are evaluated with safe dummy values and masked out
        safe_a = where(valid, q_a, 1.0)
        sq = sqrt(where(valid, q_check, 0.0))

        root0 = (-q_b + sq)/(2*safe_a)
        root1 = (-q_b - sq)/(2*safe_a)

        length = sqrt(sum(directions**2, axis=1))

        path = where(inside,
                     length*maximum(root0, root1),
                     length*abs(root0 - root1))

        return where(valid, path, 0.0)
    # --------------------------------------------------------------------------

    def ray_path_length(self, ray):
        """
        ------------------------------------------------------------------------
        Path length of a ray through the interior of the shape.

        :param ray:     Ray3 object
        :return: path length (>= 0)
        ------------------------------------------------------------------------
        """

        return float(self.ray_path_lengths(ray.origin.to_array(),
                                           ray.direction.to_array())[0])
    # --------------------------------------------------------------------------
# =============================================================================
# Class Ends
# =============================================================================


class Cylinder(GeometricObject):
    """
    ----------------------------------------------------------------------------
    Solid cylinder aligned to the z-axis, defined by its centroid, radius
    and height. Ray intersection is solved in the x-y plane only, i.e., the
    cylinder is infinitely long for ray tracing and callers bound the
    detector rows in z themselves.
    ----------------------------------------------------------------------------
    """

    shape_type = 'Cylinder'

    def __init__(self, centroid, radius, height):
        super(Cylinder, self).__init__(centroid)
        self.radius = float(radius)
        self.height = float(height)

    def calc_volume(self):
        self.volume = pi*self.radius**2*self.height
        return self.volume

    def _quadratic_terms(self, o, d):
        q_a = d[:, 0]**2 + d[:, 1]**2
        q_b = 2*(d[:, 0]*o[:, 0] + d[:, 1]*o[:, 1])
        r2  = o[:, 0]**2 + o[:, 1]**2
        q_c = r2 - self.radius**2
        return q_a, q_b, q_c, r2 < self.radius**2

    def __repr__(self):
        return "Cylinder(centroid=%r, radius=%g, height=%g)" % (
            self.centroid, self.radius, self.height)
# =============================================================================
# Class Ends
# =============================================================================


class Sphere(GeometricObject):
    """
    ----------------------------------------------------------------------------
    Solid sphere defined by its centroid and radius.
    ----------------------------------------------------------------------------
    """

    shape_type = 'Sphere'

    def __init__(self, centroid, radius):
        super(Sphere, self).__init__(centroid)
        self.radius = float(radius)

    def calc_volume(self):
        self.volume = 4.0/3.0*pi*self.radius**3
        return self.volume

    def _quadratic_terms(self, o, d):
        q_a = sum(d**2, axis=1)
        q_b = 2*sum(d*o, axis=1)
        r2  = sum(o**2, axis=1)
        q_c = r2 - self.radius**2
        return q_a, q_b, q_c, r2 < self.radius**2

    def __repr__(self):
        return "Sphere(centroid=%r, radius=%g)" % (self.centroid, self.radius)
# =============================================================================
# Class Ends
# =============================================================================
