import pytest
from unittest import mock

from raysim import *
from raysim.reconstructor.fan_beam_fbp import FanBeamReconstructor, \
    HelicalDataError
from raysim.forward_model.scanner_template import ScannerGeometry, \
    ReconstructionSettings

from conftest import make_scanner, make_water_phantom, pixel_radius


@pytest.fixture(scope='module')
def helical_scan(mu_handler):
    """Noise-free two-rotation helical scan of the water phantom."""

    ct = make_scanner(mu_handler, num_channels=64, channel_width=0.5,
                      num_rows=2, row_width=0.5, num_projections=90,
                      fov=30.0, grid_size=32)
    ct.acquire_air_scan()
    ct.acquire_helical_projections(make_water_phantom(mu_handler), pitch=1.0,
                                   z_start=0.0, rotations=2)
    return ct


@pytest.fixture
def reconstructor(mu_handler):
    geometry = ScannerGeometry(40.0, 64, 0.5, 2, 0.5)
    return FanBeamReconstructor(geometry, ReconstructionSettings(30.0, 32),
                                120, 0.0, mu_handler)


def test_average_rows(reconstructor):
    data = arange(2*3*4, dtype=float64).reshape(2, 3, 4)

    assert allclose(reconstructor.average_rows(data), data.mean(axis=1))


def test_beam_hardening_table_is_monotonic(reconstructor):
    thickness, line_integral = reconstructor.beam_hardening_table()

    assert thickness[0] == 0.0 and line_integral[0] == pytest.approx(0.0)
    assert all(diff(line_integral) > 0)
    # polychromatic line integrals grow slower than linearly
    assert line_integral[-1] < thickness[-1]*line_integral[1]/thickness[1]


def test_beam_hardening_correction_is_monotonic(reconstructor):
    corrected = reconstructor.beam_hardening_correction(
                    array([0.0, 0.5, 1.0, 2.0, 4.0]))

    assert corrected[0] == pytest.approx(0.0, abs=1e-9)
    assert all(diff(corrected) > 0)


def test_fan_beam_weighting(reconstructor):
    weighted = reconstructor.fan_beam_weighting(ones((3, 64)))

    assert weighted.shape == (3, 64)
    assert allclose(weighted[0], 40.0*cos(reconstructor.gamma))


def test_ramp_filtering_of_constant_view_is_flat_inside(reconstructor):
    filtered = reconstructor.ramp_filter_projections(ones((1, 64)))

    assert filtered.shape == (1, 64)
    # a flat view is only changed near its edges
    assert abs(filtered[0, 24:40]).max() < 0.05*abs(filtered[0]).max()


def test_backprojection_tables_are_cached(reconstructor):
    first = reconstructor.backprojection_tables(30)
    second = reconstructor.backprojection_tables(30)

    assert first is second
    assert first[0].dtype == float32
    assert first[0].shape == (30, reconstructor.pixel_x.size)


def test_backprojection_of_zero_data_is_air_outside_fov(reconstructor):
    image = reconstructor.backproject(zeros((30, 64)))
    r = pixel_radius(32, 30.0)

    assert image.dtype.kind == 'i'
    assert all(image[r > 15.0] == -1000)
    # zero attenuation maps to (about) air inside the FOV as well
    assert all(abs(image[r <= 15.0] + 1000) <= 1)


def test_helical_interpolation_matches_axial_data(helical_scan):
    dataset = helical_scan.get_projection_data()
    recon = helical_scan.reconstructor_for(dataset)

    sinogram = recon.helical_interpolation(dataset, 1.0, 1.0)

    assert sinogram.shape == (90, 64)
    assert recon.missing_elements == []

    # the phantom is uniform in z, so every view of a rotation carries the
    # same (direct) line integrals up to the complementary interpolation
    direct = dataset.data[:90].mean(axis=1)
    assert allclose(sinogram, direct, atol=0.05)


def test_helical_round_trip_water_cylinder(helical_scan):
    images = helical_scan.helical_fi_fbp([0.75, 1.25], filter_width=1.0)
    r = pixel_radius(32, 30.0)

    assert len(images) == 2
    for image in images:
        assert abs(image[r < 6.0]).max() <= 100
        assert abs(image[(r > 12.5) & (r < 14.0)] + 1000).max() <= 100
        assert all(image[r > 15.0] == -1000)


def test_slice_beyond_scanned_range_is_warned(helical_scan):
    dataset = helical_scan.get_projection_data()
    recon = helical_scan.reconstructor_for(dataset)

    # rows cover z in [-0.25, 2.24]; 2.8 still has samples in the window
    with mock.patch.object(recon.logger, 'warning') as warning:
        images = recon.helical_fi_fbp(dataset, [2.8], filter_width=1.0)

    assert len(images) == 1
    assert recon.missing_elements == []
    assert 'outside the scanned z-range' in warning.call_args[0][0]


def test_mismatched_source_settings_are_warned(helical_scan, mu_handler):
    dataset = helical_scan.get_projection_data()
    recon = FanBeamReconstructor(helical_scan.geometry, helical_scan.recon,
                                 80, 0.0, mu_handler)

    with mock.patch.object(recon.logger, 'warning') as warning:
        assert not recon.check_calibration(dataset)

    warning.assert_called_once()
    assert helical_scan.reconstructor_for(dataset).check_calibration(dataset)


def test_slice_outside_helix_is_reported(helical_scan):
    dataset = helical_scan.get_projection_data()
    recon = helical_scan.reconstructor_for(dataset)
    recon.missing_elements = []

    sinogram = recon.helical_interpolation(dataset, 50.0, 1.0)

    assert all(sinogram == 0.0)
    assert len(recon.missing_elements) == 90*64
    assert recon.missing_elements[0] == (50.0, 0, 0)


def test_slice_outside_helix_raises_in_strict_mode(helical_scan):
    dataset = helical_scan.get_projection_data()

    with pytest.raises(HelicalDataError):
        helical_scan.reconstructor_for(dataset).helical_interpolation(
            dataset, 50.0, 1.0, on_missing='raise')


def test_invalid_missing_policy_raises(helical_scan):
    dataset = helical_scan.get_projection_data()

    with pytest.raises(ValueError):
        helical_scan.reconstructor_for(dataset).helical_interpolation(
            dataset, 1.0, 1.0, on_missing='fill')
