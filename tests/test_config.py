import importlib.util as config_loader

from raysim import *
from raysim.forward_model.scanner_template import ScannerGeometry


def load_config(name):
    spec = config_loader.spec_from_file_location(
                "config.params", os.path.join(CONFIG_DIR, name))
    config = config_loader.module_from_spec(spec)
    spec.loader.exec_module(config)
    return config.params


def test_default_helical_slices_lie_in_scanned_range():
    params = load_config('config_default_ray_ct.py')
    scanner = params['scanner']
    scan = params['scan_args']

    g = dict(scanner.machine_geometry)
    g.pop('scanner_name', None)
    geometry = ScannerGeometry(**g)

    m = scanner.acquisition_params['num_projections']
    n_views = m*scan['rotations']
    z_end = scan['z_start'] + \
        scan['pitch']*geometry.detector_coverage()*(n_views - 1)/m

    offsets = geometry.row_offsets()
    z_min, z_max = scan['z_start'] + offsets[0], z_end + offsets[-1]

    for z in params['helical_recon_args']['slice_positions']:
        assert z_min <= z <= z_max


def test_default_phantom_has_one_world():
    params = load_config('config_default_ray_ct.py')

    worlds = [obj for obj in params['phantom'] if obj['parent'] == 'None']
    assert len(worlds) == 1
