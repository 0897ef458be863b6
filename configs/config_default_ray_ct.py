# -----------------------------------------------------------------------------
"""
Default configuration file for:
    - the default single-row fan-beam scanner
    - a water phantom with bone and soft tissue inserts
    - axial and helical acquisition + reconstruction
"""
# -----------------------------------------------------------------------------

__author__    = "RayCTSim Developers"
__copyright__ = "Copyright (C) 2026, RayCTSim Project"
__license__   = "Public Domain"
__version__   = "1.0.0"
__status__    = "Prototype"

# -----------------------------------------------------------------------------

from raysim import *
import raysim.forward_model.template_default_ray_ct as default_scanner

# -----------------------------------------------------------------------------
# Step 1: Specify the simulation directory

sim_dir = os.path.join(RESULTS_DIR, 'default_ray_ct')
# -----------------------------------------------------------------------------

# -----------------------------------------------------------------------------
# Step 2: Specify the scanner template - any module with the dictionaries
# machine_geometry, acquisition_params and recon_params

scanner = default_scanner
# -----------------------------------------------------------------------------

# -----------------------------------------------------------------------------
# Step 3: Specify the phantom

# Each object is a dictionary with the following key-value pairs:
# name      - unique object name
# shape     - 'cylinder' or 'sphere'
# centroid  - (x, y, z) in cm
# radius    - radius in cm
# height    - height in cm (cylinders only)
# parent    - name of the containing object, 'None' for the world
# material  - material in the mu database (see include/mu/)
# density   - optional forced density in g/cc

phantom = [
    dict(name='World',    shape='cylinder', centroid=(0., 0., 0.),
         radius=40.0, height=40.0, parent='None',    material='air'),
    dict(name='Body',     shape='cylinder', centroid=(0., 0., 0.),
         radius=12.0, height=30.0, parent='World',   material='water'),
    dict(name='Bone',     shape='cylinder', centroid=(5., 0., 0.),
         radius=2.0,  height=30.0, parent='Body',    material='bone'),
    dict(name='Tissue',   shape='cylinder', centroid=(-5., 2., 0.),
         radius=2.5,  height=30.0, parent='Body',    material='soft_tissue'),
    dict(name='Marrow',   shape='cylinder', centroid=(5., 0., 0.),
         radius=0.8,  height=30.0, parent='Bone',    material='water'),
]
# -----------------------------------------------------------------------------

# -----------------------------------------------------------------------------
# Step 4: Specify the acquisition

scan_args = dict(mode='axial',          # 'axial' or 'helical'
                 z=0.0,                 # axial: source z-position
                 pitch=1.0,             # helical: pitch
                 z_start=-0.125,        # helical: source z of the first view
                 rotations=4)           # helical: number of rotations

# helical reconstruction - slice positions and z-filter
helical_recon_args = dict(slice_positions=[-0.05, 0.0, 0.05],
                          filter_width=0.0625,
                          n_interp_points=10,
                          on_missing='skip')
# -----------------------------------------------------------------------------

# -----------------------------------------------------------------------------
# params to feed to the simulation runner
params = dict()

params['sim_dir']            = sim_dir
params['scanner']            = scanner
params['phantom']            = phantom
params['scan_args']          = scan_args
params['helical_recon_args'] = helical_recon_args
params['save_data']          = True
# -----------------------------------------------------------------------------
