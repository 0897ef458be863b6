from numpy import *
import os

__version__ = "1.0.0"

# directory specifications

ROOT_DIR                    = os.path.dirname(__file__)

# module directories
INC_DIR                     = os.path.join(ROOT_DIR, 'include')
GEOMETRY_DIR                = os.path.join(ROOT_DIR, 'geometry')
FWD_MDL_DIR                 = os.path.join(ROOT_DIR, 'forward_model')
RECON_DIR                   = os.path.join(ROOT_DIR, 'reconstructor')
MISC_DIR                    = os.path.join(ROOT_DIR, 'misc')

# configuration files (source checkout)
CONFIG_DIR                  = os.path.join(os.path.dirname(ROOT_DIR), 'configs')

# material simulation data
MU_DIR                      = os.path.join(INC_DIR, 'mu')
MU_FILE_NAME                = 'mass_atten_%s.txt'
MU_DENSITY_FILE             = os.path.join(MU_DIR, 'materials_density.txt')

# results directories
RESULTS_DIR                 = os.path.join(os.getcwd(), 'results')
DEFAULT_SIM_DIR             = os.path.join(RESULTS_DIR, 'default_sim_dir')

# energy grid shared by the spectrum generator and the attenuation tables:
# 0 - 150 keV in 1 keV bins, stored in MeV
NUM_ENERGY_BINS             = 151
ENERGY_BINS_MEV             = arange(NUM_ENERGY_BINS, dtype=float64)/1000.0
