#!/usr/bin/env python

# ------------------------------------------------------------------------------
"""vec3.py: Three-dimensional point/vector value type used by the ray tracer."""
# ------------------------------------------------------------------------------

__author__    = "RayCTSim Developers"
__copyright__ = "Copyright (C) 2026, RayCTSim Project"
__license__   = "Public Domain"
__version__   = "1.0.0"
__status__    = "Prototype"
# ------------------------------------------------------------------------------

from numpy import *


class Vec3(object):
    """
    ----------------------------------------------------------------------------
    Double precision 3D vector. Arithmetic operators always return new
    instances so that a Vec3 can be shared freely between rays and shapes.
    ----------------------------------------------------------------------------
    """

    __slots__ = ('x', 'y', 'z')

    def __init__(self, x=0.0, y=0.0, z=0.0):
        self.x = float(x)
        self.y = float(y)
        self.z = float(z)

    def set(self, x, y, z):
        self.x, self.y, self.z = float(x), float(y), float(z)

    def __add__(self, other):
        return Vec3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other):
        return Vec3(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, s):
        return Vec3(self.x * s, self.y * s, self.z * s)

    __rmul__ = __mul__

    def __truediv__(self, s):
        return Vec3(self.x / s, self.y / s, self.z / s)

    def __neg__(self):
        return Vec3(-self.x, -self.y, -self.z)

    def __eq__(self, other):
        if not isinstance(other, Vec3):
            return NotImplemented
        return (self.x, self.y, self.z) == (other.x, other.y, other.z)

    def __hash__(self):
        return hash((self.x, self.y, self.z))

    def __iter__(self):
        return iter((self.x, self.y, self.z))

    def __repr__(self):
        return "Vec3(%g, %g, %g)" % (self.x, self.y, self.z)

    def dot(self, other):
        return self.x * other.x + self.y * other.y + self.z * other.z

    def cross(self, other):
        return Vec3(self.y * other.z - self.z * other.y,
                    self.z * other.x - self.x * other.z,
                    self.x * other.y - self.y * other.x)

    def magnitude(self):
        return float(sqrt(self.dot(self)))

    def normalize(self):
        """Unit vector along self; the zero vector is returned unchanged."""
        m = self.magnitude()
        if m == 0.0:
            return Vec3(self.x, self.y, self.z)
        return self / m

    def to_array(self):
        return array([self.x, self.y, self.z], dtype=float64)
# =============================================================================
# Class Ends
# =============================================================================
