# -----------------------------------------------------------------------------
"""run_ray_ct_simulation.py: Run a ray-tracing CT simulation of a phantom with
                            axial or helical acquisition followed by FBP
                            reconstruction.
"""

__author__    = "RayCTSim Developers"
__copyright__ = "Copyright (C) 2026, RayCTSim Project"
__license__   = "Public Domain"
__version__   = "1.0.0"
__status__    = "Prototype"
# -----------------------------------------------------------------------------

import argparse
import importlib.util as config_loader

from raysim import *
from raysim.misc.util import get_logger, quick_imshow
from raysim.forward_model.ray_ct import RayCT
from raysim.forward_model.object_model_xray import create_object_model


parser = argparse.ArgumentParser(
                description='Run a ray-tracing CT simulation: \n'
                            '-----------\n'
                            'The simulation parameters are specified using '
                            'a config.py file - these include the scanner '
                            'template, the phantom description and the '
                            'acquisition + reconstruction parameters. '
                            'An example config.py file is provided in '
                            'the configs/ directory.')

parser.add_argument('--config',
                    default=os.path.join(CONFIG_DIR,
                                         'config_default_ray_ct.py'),
                    help='config file location',
                    dest='config'
                    )

parser.add_argument('--sim_dir',
                    default=None,
                    help='simulation directory for saving output '
                         '(default: sim_dir of the config file)'
                    )

parser.add_argument('--mode',
                    default=None,
                    choices=['axial', 'helical'],
                    help='acquisition mode (default: mode of the config file)'
                    )

parser.add_argument('--show',
                    action='store_true',
                    help='display the reconstructed images'
                    )

args = parser.parse_args()

spec = config_loader.spec_from_file_location("config.params", args.config)
config = config_loader.module_from_spec(spec)
spec.loader.exec_module(config)

params = config.params

if args.sim_dir is not None:
    params['sim_dir'] = args.sim_dir
if args.mode is not None:
    params['scan_args']['mode'] = args.mode

os.makedirs(params['sim_dir'], exist_ok=True)
logfile = os.path.join(params['sim_dir'], 'ray_ct.log')
logger = get_logger('RAY_CT_SIM', logfile)

# =============================================================================
# Scanner and phantom

ct = RayCT(logfile=logfile)
ct.set_from_template(params['scanner'])

phantom = create_object_model(params['phantom'], ct.mu, logfile)
phantom.print_model()
# =============================================================================

# =============================================================================
# Acquisition + Reconstruction

scan_args = params['scan_args']

ct.acquire_air_scan()

if scan_args['mode'] == 'axial':
    ct.acquire_axial_projections(phantom, z=scan_args['z'])
    ct.recon_axial_fbp()

elif scan_args['mode'] == 'helical':
    ct.acquire_helical_projections(phantom,
                                   pitch=scan_args['pitch'],
                                   z_start=scan_args['z_start'],
                                   rotations=scan_args['rotations'])
    ct.helical_fi_fbp(**params['helical_recon_args'])

else:
    raise ValueError("Unknown scan mode: %s" % scan_args['mode'])
# =============================================================================

if params['save_data']:
    ct.save_data(params['sim_dir'])

logger.info("Simulation complete - %i image(s) reconstructed"
            % len(ct.get_image_data()))

if args.show:
    import matplotlib.pyplot as plt

    images = ct.get_image_data()
    quick_imshow(1, len(images), images=images,
                 titles=['Slice %i' % n for n in range(len(images))],
                 vmin=-200, vmax=200, figtitle='RayCT Reconstruction',
                 saveas=os.path.join(params['sim_dir'], 'images.png'))
    plt.show()
# -----------------------------------------------------------------------------
