# -----------------------------------------------------------------------------
"""Shared fixtures: a small noise-free scanner and a water phantom."""
# -----------------------------------------------------------------------------

import pytest

from raysim import *
from raysim.geometry.vec3 import Vec3
from raysim.geometry.geometric_object import Cylinder
from raysim.forward_model.mu_database_handler import MuDatabaseHandler
from raysim.forward_model.object_model_xray import ObjectModelXray
from raysim.forward_model.ray_ct import RayCT


# views per rotation that resolve the 28 cm water-air edge without aliasing
AXIAL_VIEWS = 400


@pytest.fixture(scope='session')
def mu_handler():
    return MuDatabaseHandler()


def make_water_phantom(mu_handler, radius=10.0):

    model = ObjectModelXray(mu_handler)
    model.add_material('air')
    model.add_material('water')
    model.add_object('World', Cylinder(Vec3(), 40.0, 40.0), 'None', 'air')
    model.add_object('Water', Cylinder(Vec3(), radius, 20.0), 'World',
                     'water')
    model.make_tree()
    return model


def make_scanner(mu_handler, num_channels=128, channel_width=0.25,
                 num_rows=1, row_width=0.5, num_projections=180,
                 fov=30.0, grid_size=64):

    ct = RayCT(mu_handler=mu_handler)
    ct.set_geometry(40.0, num_channels, channel_width, num_rows, row_width)
    ct.set_acquisition(120, 1.0e5, num_projections,
                       add_poisson_noise=False, add_system_noise=False)
    ct.set_reconstruction(fov, grid_size)
    return ct


@pytest.fixture
def water_phantom(mu_handler):
    return make_water_phantom(mu_handler)


@pytest.fixture
def small_scanner(mu_handler):
    return make_scanner(mu_handler)


@pytest.fixture(scope='module')
def axial_scan(mu_handler):
    """Noise-free axial scan and reconstruction of the water phantom."""

    ct = make_scanner(mu_handler, num_projections=AXIAL_VIEWS)
    ct.acquire_air_scan()
    ct.acquire_axial_projections(make_water_phantom(mu_handler), z=0.0)
    image = ct.recon_axial_fbp()
    return ct, image


def pixel_radius(grid_size, fov):
    """Distance of every pixel center from the isocenter."""

    dx = fov/grid_size
    coords = -0.5*fov + (arange(grid_size) + 0.5)*dx
    xx, yy = meshgrid(coords, coords[::-1])
    return sqrt(xx**2 + yy**2)
