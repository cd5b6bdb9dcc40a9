import pytest

from julia_kernel import escape_iterations, intensity, pixel_value, plane_coordinate


@pytest.mark.parametrize("width,height", [(4, 4), (1024, 768), (8192, 8192), (7, 5)])
def test_corners_independent_of_resolution(width, height):
    real, imag = plane_coordinate(0, 0, width, height)
    assert real == pytest.approx(-2.0)
    assert imag == pytest.approx(-2.0)

    real, imag = plane_coordinate(width, height, width, height)
    assert real == pytest.approx(2.0)
    assert imag == pytest.approx(2.0)


@pytest.mark.parametrize("width,height", [(4, 4), (1024, 1024), (640, 480)])
def test_centre_maps_to_origin(width, height):
    real, imag = plane_coordinate(width // 2, height // 2, width, height)
    assert real == pytest.approx(0.0, abs=1e-12)
    assert imag == pytest.approx(0.0, abs=1e-12)


def test_immediate_escape():
    assert escape_iterations(3.0, 0.0, 100, 0.0, 0.0) == 0


def test_origin_never_escapes():
    assert escape_iterations(0.0, 0.0, 50, 0.0, 0.0) == 50
    assert intensity(50, 50) == 0


def test_escape_after_a_few_steps():
    # 1.5 -> 2.25, |z|^2 = 5.06 >= 4
    assert escape_iterations(1.5, 0.0, 100, 0.0, 0.0) == 1


def test_iterations_bounded_and_deterministic():
    width, height, max_iter = 32, 24, 40
    for y in range(height):
        for x in range(width):
            zr, zi = plane_coordinate(x, y, width, height)
            n = escape_iterations(zr, zi, max_iter, -0.7, 0.27015)
            assert 0 <= n <= max_iter
            assert n == escape_iterations(zr, zi, max_iter, -0.7, 0.27015)


@pytest.mark.parametrize("iterations,max_iter,expected", [
    (0, 5, 0),
    (1, 5, 51),
    (4, 5, 204),
    (5, 5, 0),
    (999, 1000, 254),
    (1, 1000, 0),
])
def test_intensity_scaling(iterations, max_iter, expected):
    assert intensity(iterations, max_iter) == expected


def test_pixel_value_matches_pieces():
    zr, zi = plane_coordinate(10, 3, 16, 16)
    n = escape_iterations(zr, zi, 30, 0.285, 0.01)
    assert pixel_value(10, 3, 16, 16, 30, 0.285, 0.01) == intensity(n, 30)
