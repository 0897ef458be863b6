#!/usr/bin/env python

# ------------------------------------------------------------------------------
"""template_default_ray_ct.py:
        Template for the default single-row fan-beam scanner.
"""
# ------------------------------------------------------------------------------

__author__    = "RayCTSim Developers"
__copyright__ = "Copyright (C) 2026, RayCTSim Project"
__license__   = "Public Domain"
__version__   = "1.0.0"
__status__    = "Prototype"
# ------------------------------------------------------------------------------

# ==============================================================================
# Dictionary for Machine Geometry

# Initialize dictionary for Machine Geometry
g = {}

# Annotate a name for the scanner - log files generated during operation will
# be saved under this name
g['scanner_name']   = 'default_ray_ct'

# Source-to-isocenter distance (cm) - the detector arc has twice this radius
g['radius']         = 40.0

# Detector dimensions projected to the isocenter (cm)
g['num_channels'],  g['channel_width'] = 672, 0.0625
g['num_rows'],      g['row_width']     = 1, 0.0625

machine_geometry = g.copy()
# =============================================================================

# =============================================================================
# Dictionary for Acquisition Parameters

acquisition_params = {}

acquisition_params['tube_potential']    = 120        # kVp
acquisition_params['num_photons']       = 5.0e5      # per detector element
acquisition_params['num_projections']   = 500        # per rotation
acquisition_params['filtration_mm']     = 0.0        # added Al filtration

acquisition_params['add_poisson_noise'] = True
acquisition_params['add_system_noise']  = True
acquisition_params['electronic_noise_variance'] = 10.0
acquisition_params['seed']              = None
# =============================================================================

# =============================================================================
# Dictionary for Reconstruction Parameters

recon_params = {}

# The FOV is clamped to the scan FOV of the machine geometry if larger
recon_params['fov']         = 40.0
recon_params['grid_size']   = 512
# =============================================================================
