#!/usr/bin/env python

# ------------------------------------------------------------------------------
"""template_demo_ray_ct.py:
        Template for a coarse multi-row scanner for quick helical demos.
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

g = {}

g['scanner_name']   = 'demo_ray_ct'
g['radius']         = 40.0

g['num_channels'],  g['channel_width'] = 256, 0.125
g['num_rows'],      g['row_width']     = 4, 0.25

machine_geometry = g.copy()
# =============================================================================

# =============================================================================
# Dictionary for Acquisition Parameters

acquisition_params = {}

acquisition_params['tube_potential']    = 100
acquisition_params['num_photons']       = 1.0e5
acquisition_params['num_projections']   = 180
acquisition_params['filtration_mm']     = 1.0

acquisition_params['add_poisson_noise'] = True
acquisition_params['add_system_noise']  = True
acquisition_params['electronic_noise_variance'] = 10.0
acquisition_params['seed']              = 0
# =============================================================================

# =============================================================================
# Dictionary for Reconstruction Parameters

recon_params = {}

recon_params['fov']         = 30.0
recon_params['grid_size']   = 128
# =============================================================================
