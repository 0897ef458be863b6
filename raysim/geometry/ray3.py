#!/usr/bin/env python

# ------------------------------------------------------------------------------
"""ray3.py: Parametric 3D ray used for source-to-detector ray tracing."""
# ------------------------------------------------------------------------------

__author__    = "RayCTSim Developers"
__copyright__ = "Copyright (C) 2026, RayCTSim Project"
__license__   = "Public Domain"
__version__   = "1.0.0"
__status__    = "Prototype"
# ------------------------------------------------------------------------------

from raysim.geometry.vec3 import Vec3


class Ray3(object):
    """
    ----------------------------------------------------------------------------
    Ray with an origin and a direction. The magnitude of the direction is the
    parametric length of the ray, so that t in [0, 1] spans the segment from
    origin to origin + direction (e.g., X-ray source to detector element).
    ----------------------------------------------------------------------------
    """

    def __init__(self, origin=None, direction=None):
        self.set_ray(Vec3() if origin is None else origin,
                     Vec3() if direction is None else direction)

    def set_ray(self, origin, direction):
        self.origin = origin
        self.direction = direction

    def get_point(self, t):
        return self.origin + self.direction * t

    def get_length(self):
        return self.direction.magnitude()

    def __repr__(self):
        return "Ray3(origin=%r, direction=%r)" % (self.origin, self.direction)
# =============================================================================
# Class Ends
# =============================================================================
