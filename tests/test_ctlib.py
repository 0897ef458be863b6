import pytest

from raysim import *
from raysim.misc.ctlib import fan_beam_ramp_kernel, ramp_filter_response, \
    normalize_projection, mu_to_hounsfield
from raysim.misc.util import save_flat_data, load_flat_data


def test_ramp_kernel_is_symmetric_about_center():
    n, d_gamma = 64, 0.005
    kernel = fan_beam_ramp_kernel(n, d_gamma)

    assert kernel.size == 2*n - 1
    assert kernel[n - 1] == pytest.approx(1.0/(8*d_gamma**2))
    assert allclose(kernel, kernel[::-1])

    offsets = arange(-(n - 1), n)
    assert all(kernel[(offsets % 2 == 0) & (offsets != 0)] == 0.0)
    assert all(kernel[offsets % 2 != 0] < 0.0)


def test_ramp_response_is_real_and_non_negative():
    n = 100
    response = ramp_filter_response(fan_beam_ramp_kernel(n, 0.004), n)

    assert response.size == 256
    assert isrealobj(response)
    assert all(response >= 0.0)
    # high-pass: the response grows away from zero frequency
    assert response[response.size//2] > response[1]


def test_normalization_of_air_is_zero():
    air = full((2, 16), 1.0e5)
    obj = tile(air, (5, 1, 1))

    assert allclose(normalize_projection(air, obj), 0.0)


def test_normalization_recovers_line_integral():
    air = full((1, 4), 1.0e5)
    obj = air*exp(-array([0.0, 0.5, 1.0, 2.0]))

    assert allclose(normalize_projection(air, obj), [[0.0, 0.5, 1.0, 2.0]])


def test_hounsfield_scale():
    mu_w, mu_a = 0.2, 0.0002

    assert mu_to_hounsfield(mu_w, mu_w, mu_a) == 0
    assert mu_to_hounsfield(mu_a, mu_w, mu_a) == -1000
    assert list(mu_to_hounsfield(array([mu_w, 2*mu_w - mu_a]), mu_w, mu_a)) \
           == [0, 1000]


def test_flat_data_round_trip(tmp_path):
    data = arange(24, dtype=float64).reshape(2, 3, 4)/7.0
    path = save_flat_data(str(tmp_path / 'out' / 'proj.txt'), data)

    with open(path) as f:
        lines = f.read().split()
    assert len(lines) == 24

    restored = load_flat_data(path, shape=(2, 3, 4))
    assert allclose(restored, data)
