import pytest
from unittest import mock

from raysim import *
from raysim.forward_model.ray_ct import RayCT, NOISE_FLOOR
from raysim.forward_model.object_model_xray import ObjectModelXray
from raysim.forward_model.scanner_template import ScannerGeometry
from raysim.geometry.vec3 import Vec3
from raysim.geometry.geometric_object import Cylinder
import raysim.forward_model.template_default_ray_ct as default_scanner

from conftest import AXIAL_VIEWS, make_scanner, make_water_phantom, \
    pixel_radius


def test_scanner_geometry_derived_values():
    g = ScannerGeometry(40.0, 672, 0.0625, 2, 0.5)

    assert g.fan_angle == pytest.approx(672*0.0625/40.0)
    assert g.d_fan_angle == pytest.approx(0.0625/40.0)
    assert g.fov == pytest.approx(80.0*sin(0.5*g.fan_angle))

    gamma = g.channel_angles()
    assert gamma.size == 672
    assert allclose(gamma, -gamma[::-1])
    assert allclose(g.row_offsets(), [-0.25, 0.25])


def test_invalid_geometry_raises():
    with pytest.raises(ValueError):
        ScannerGeometry(40.0, 1, 0.0625)


def test_set_from_template(mu_handler):
    ct = RayCT(mu_handler=mu_handler)
    ct.set_from_template(default_scanner)

    assert ct.geometry.num_channels == 672
    assert ct.acquisition.num_projections == 500
    assert ct.recon.grid_size == 512
    assert ct.recon.fov == pytest.approx(40.0)


def test_reconstruction_fov_is_clamped(small_scanner):
    with mock.patch.object(small_scanner.logger, 'warning') as warning:
        small_scanner.set_reconstruction(100.0, 64)

    warning.assert_called_once()
    assert small_scanner.recon.fov == pytest.approx(small_scanner.geometry.fov)


def test_noise_free_signal_is_unchanged(small_scanner):
    signal = array([[0.0, 5.0, 1.0e4]])
    noisy = small_scanner.add_noise(signal)

    assert allclose(noisy, [[NOISE_FLOOR, 5.0, 1.0e4]])


def test_seeded_noise_is_reproducible(mu_handler):
    signals = []
    for _ in range(2):
        ct = RayCT(mu_handler=mu_handler)
        ct.set_geometry(40.0, 64, 0.25)
        ct.set_acquisition(120, 1.0e5, 90, seed=7)
        signals.append(ct.add_noise(full(1000, 1.0e4)))

    assert array_equal(signals[0], signals[1])
    assert 50 < std(signals[0]) < 150
    assert all(signals[0] > 0)


def test_detector_arc_geometry(small_scanner):
    g = small_scanner.geometry

    for angle in [0.0, 1.0, 4.0]:
        src = small_scanner.source_position(angle, 2.0)
        det = small_scanner.detector_positions(angle, 2.0)

        assert det.shape == (1, g.num_channels, 3)
        lengths = sqrt(((det[0, :, :2] - src[:2])**2).sum(axis=1))
        assert allclose(lengths, 2*g.radius)

    # the central channel pair straddles the ray through the isocenter
    det = small_scanner.detector_positions(0.0, 0.0)
    mid = g.num_channels//2
    assert allclose(0.5*(det[0, mid - 1] + det[0, mid]), [-40.0, 0.0, 0.0],
                    atol=1e-3)


def test_air_scan_shape_and_level(mu_handler):
    ct = make_scanner(mu_handler, num_rows=2)
    air = ct.acquire_air_scan()

    assert air.shape == (2, 128)
    assert all(air < 1.0e5)
    assert all(air > 0.9e5)


def test_projections_require_air_scan(small_scanner, water_phantom):
    with pytest.raises(RuntimeError):
        small_scanner.acquire_axial_projections(water_phantom)


def test_air_only_projection_normalizes_to_zero(mu_handler, small_scanner):
    model = ObjectModelXray(mu_handler)
    model.add_material('air')
    model.add_object('World', Cylinder(Vec3(), 40.0, 40.0), 'None', 'air')
    model.make_tree()

    small_scanner.set_acquisition(120, 1.0e5, 12, add_poisson_noise=False,
                                  add_system_noise=False)
    small_scanner.acquire_air_scan()
    dataset = small_scanner.acquire_axial_projections(model)

    assert dataset.data.shape == (12, 1, 128)
    assert allclose(dataset.data, 0.0, atol=1e-9)


def test_axial_dataset_metadata(axial_scan):
    ct, _ = axial_scan
    dataset = ct.get_projection_data()

    assert dataset.mode == 'axial'
    assert dataset.data.shape == (AXIAL_VIEWS, 1, 128)
    assert allclose(dataset.angles, 2*pi*arange(AXIAL_VIEWS)/AXIAL_VIEWS)
    assert allclose(dataset.z_positions, 0.0)

    # the central rays cross 20 cm of water
    center = dataset.data[0, 0, 63:65].mean()
    assert 3.0 < center < 5.0


def test_axial_round_trip_water_cylinder(axial_scan):
    ct, image = axial_scan
    r = pixel_radius(ct.recon.grid_size, ct.recon.fov)

    assert image.shape == (64, 64)
    assert abs(image[r < 7.0]).max() <= 50
    assert abs(image[(r > 12.0) & (r < 14.0)] + 1000).max() <= 50


def test_pixels_outside_fov_are_air(axial_scan):
    ct, image = axial_scan
    r = pixel_radius(ct.recon.grid_size, ct.recon.fov)

    outside = r > 0.5*ct.recon.fov
    assert outside.any()
    assert all(image[outside] == -1000)


def test_images_accumulate(axial_scan):
    ct, image = axial_scan

    assert ct.get_image_data()[-1] is image


def test_helical_z_positions(mu_handler, water_phantom):
    ct = make_scanner(mu_handler, num_channels=32, channel_width=1.0,
                      num_rows=2, row_width=0.5, num_projections=12)
    ct.acquire_air_scan()
    dataset = ct.acquire_helical_projections(water_phantom, pitch=1.5,
                                             z_start=-1.0, rotations=2)

    assert dataset.mode == 'helical'
    assert dataset.data.shape == (24, 2, 32)
    assert dataset.z_positions[0] == pytest.approx(-1.0)
    assert dataset.z_positions[12] == pytest.approx(-1.0 + 1.5*2*0.5)
    assert dataset.z_at_view(6.5) == pytest.approx(-1.0 + 1.5*6.5/12)


def test_new_spectrum_retabulates_attenuation(mu_handler):
    ct = make_scanner(mu_handler, num_projections=4)
    model = make_water_phantom(mu_handler)

    ct.set_acquisition(60, 1.0e5, 4, add_poisson_noise=False,
                       add_system_noise=False)
    ct.acquire_air_scan()
    ct.acquire_axial_projections(model)

    ct.set_acquisition(120, 1.0e5, 4, add_poisson_noise=False,
                       add_system_noise=False)
    ct.acquire_air_scan()

    with mock.patch.object(ct.logger, 'warning') as warning:
        reused = ct.acquire_axial_projections(model).data[0, 0, 63:65].mean()

    assert any('re-tabulating' in str(c) for c in warning.call_args_list)
    assert model.covers_spectrum(ct.spectrum)

    fresh = ct.acquire_axial_projections(make_water_phantom(mu_handler))
    assert abs(reused - fresh.data[0, 0, 63:65].mean()) < 0.01


def test_matching_spectrum_reuses_attenuation(mu_handler, water_phantom):
    ct = make_scanner(mu_handler, num_projections=4)
    ct.acquire_air_scan()
    ct.acquire_axial_projections(water_phantom)
    table = water_phantom.tabulated_mu_lists

    with mock.patch.object(ct.logger, 'warning') as warning:
        ct.acquire_axial_projections(water_phantom)

    warning.assert_not_called()
    assert water_phantom.tabulated_mu_lists is table


def test_recon_uses_settings_of_the_dataset(mu_handler):
    ct = make_scanner(mu_handler, num_projections=AXIAL_VIEWS)
    ct.set_acquisition(80, 1.0e5, AXIAL_VIEWS, add_poisson_noise=False,
                       add_system_noise=False)
    ct.acquire_air_scan()
    dataset = ct.acquire_axial_projections(make_water_phantom(mu_handler))

    assert dataset.tube_potential == 80
    assert dataset.filtration_mm == 0.0

    ct.set_acquisition(140, 1.0e5, AXIAL_VIEWS, add_poisson_noise=False,
                       add_system_noise=False)
    image = ct.recon_axial_fbp()
    r = pixel_radius(ct.recon.grid_size, ct.recon.fov)

    assert ct.reconstructor_for(dataset).tube_potential == 80
    assert abs(image[r < 7.0]).max() <= 50


def test_save_data(tmp_path, axial_scan):
    ct, _ = axial_scan
    written = ct.save_data(str(tmp_path))

    names = sorted(os.path.basename(p) for p in written)
    assert names[:2] == ['air_scan.txt', 'image_000.txt']
    assert 'projections.txt' in names


def test_demo_template_is_multi_row(mu_handler):
    import raysim.forward_model.template_demo_ray_ct as demo_scanner

    ct = RayCT(mu_handler=mu_handler)
    ct.set_from_template(demo_scanner)

    assert ct.geometry.num_rows == 4
    assert ct.geometry.detector_coverage() == pytest.approx(1.0)
    assert ct.acquisition.seed == 0
    assert ct.recon.fov <= ct.geometry.fov
