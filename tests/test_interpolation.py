from unittest.mock import patch

import numpy as np
import pytest

from nsidc.sidecar.errors import AllocationError, GeometryInconsistencyError
from nsidc.sidecar.interpolation import axis_deltas, correct_meridian_delta, interpolate, signed_longitude_delta
from nsidc.sidecar.models import ResolutionSet

# Unit tests for the 'interpolation' module functions.
#
# The test boundary is the ResolutionSet model; grids are small synthetic
# lat/lon arrays whose expected interpolated values can be written down.


@pytest.fixture
def linear_grid():
    i, j = np.mgrid[0:3, 0:4]
    return ResolutionSet('coarse', 10.0 + 0.1 * i + 0.01 * j, 20.0 + 0.2 * j + 0.02 * i, ['a', 'b'])


def one_row(name, lats, lons):
    return ResolutionSet(name, np.array([lats], dtype=float), np.array([lons], dtype=float))


@pytest.mark.parametrize('factor', [1, 2, 3, 4])
def test_output_size(linear_grid, factor):
    fine = interpolate(linear_grid, factor, 'fine')
    assert fine.latitude.shape == (3 * factor, 4 * factor)
    assert fine.longitude.shape == (3 * factor, 4 * factor)


def test_aligned_pixels_reproduce_coarse_values(linear_grid):
    fine = interpolate(linear_grid, 4, 'fine')
    assert np.array_equal(fine.latitude[::4, ::4], linear_grid.latitude)
    assert np.array_equal(fine.longitude[::4, ::4], linear_grid.longitude)


def test_linear_grid_is_reproduced(linear_grid):
    k = 2
    fine = interpolate(linear_grid, k, 'fine')
    i, j = np.mgrid[0:6, 0:8]
    assert np.allclose(fine.latitude, 10.0 + 0.1 * i / k + 0.01 * j / k)
    assert np.allclose(fine.longitude, 20.0 + 0.2 * j / k + 0.02 * i / k)


def test_derived_set_provenance(linear_grid):
    fine = interpolate(linear_grid, 2, '500m', ['band 1'])
    assert fine.name == '500m'
    assert fine.derived_from == 'coarse'
    assert fine.factor == 2
    assert fine.variable_names == ['band 1']
    assert not fine.is_indexed


def test_single_cell_grid_has_zero_deltas():
    fine = interpolate(ResolutionSet('one', [[45.0]], [[-100.0]]), 3, 'fine')
    assert np.all(fine.latitude == 45.0)
    assert np.all(fine.longitude == -100.0)


def test_axis_deltas_use_forward_step_on_first_cell():
    values = np.array([[1.0, 2.0, 4.0]])
    assert np.array_equal(axis_deltas(values, 1), [[1.0, 1.0, 2.0]])
    assert np.array_equal(axis_deltas(values, 0), [[0.0, 0.0, 0.0]])


@pytest.mark.parametrize('delta,expected', [
    (359.5, 0.5),
    (-359.5, 0.5),
    (0.6, 359.4),
    (0.1, 0.1),
    (-0.2, -0.2),
])
def test_correct_meridian_delta(delta, expected):
    assert float(correct_meridian_delta(delta, 0.4)) == pytest.approx(expected)


@pytest.mark.parametrize('delta,expected', [
    (-359.7, 0.3),
    (359.5, -0.5),
    (0.1, 0.1),
])
def test_signed_longitude_delta_keeps_direction(delta, expected):
    assert float(signed_longitude_delta(delta, 0.4)) == pytest.approx(expected)


def test_interpolation_across_antimeridian():
    fine = interpolate(one_row('swath', [0.0, 0.0], [179.8, -179.9]), 2, 'fine')
    assert fine.longitude[0] == pytest.approx([179.8, 179.95, -179.9, -179.75])


def test_longitudes_past_antimeridian_are_wrapped():
    fine = interpolate(one_row('swath', [0.0, 0.0], [179.6, 179.9]), 2, 'fine')
    assert fine.longitude[0, 3] == pytest.approx(-179.95)
    assert np.all(np.abs(fine.longitude) <= 180.0)


def test_latitudes_are_clipped():
    fine = interpolate(one_row('swath', [89.6, 89.9], [0.0, 0.1]), 2, 'fine')
    assert fine.latitude[0, 3] == 90.0


def test_longitude_step_above_threshold_fails():
    with pytest.raises(GeometryInconsistencyError) as exc_info:
        interpolate(one_row('swath', [0.0, 0.0], [10.0, 10.6]), 2, '500m')

    assert exc_info.value.name == '500m'
    assert exc_info.value.position == (0, 1)
    assert 'coarse cell (0, 0)' in str(exc_info.value)


def test_latitude_step_above_threshold_fails():
    coarse = ResolutionSet('swath', [[0.0], [1.0]], [[0.0], [0.0]])
    with pytest.raises(GeometryInconsistencyError) as exc_info:
        interpolate(coarse, 2, 'fine')
    assert exc_info.value.position == (1, 0)


def test_along_track_longitude_step_is_not_held_to_threshold():
    i, j = np.mgrid[0:3, 0:3]
    coarse = ResolutionSet('1km', 70.0 + 0.05 * i, 20.0 + 0.1 * j + 0.5 * i)

    fine = interpolate(coarse, 2, '500m')

    assert np.array_equal(fine.longitude[::2, ::2], coarse.longitude)
    assert fine.longitude[1, 0] == pytest.approx(20.25)
    assert fine.longitude[1, 1] == pytest.approx(20.3)


def test_cross_track_latitude_step_is_not_held_to_threshold():
    fine = interpolate(one_row('swath', [0.0, 0.5], [10.0, 10.1]), 2, 'fine')
    assert fine.latitude[0] == pytest.approx([0.0, 0.25, 0.5, 0.75])


def test_along_track_antimeridian_crossing():
    coarse = ResolutionSet('swath', [[0.0], [0.1]], [[179.7], [-179.9]])

    fine = interpolate(coarse, 2, 'fine')

    assert fine.longitude[:, 0] == pytest.approx([179.7, 179.9, -179.9, -179.7])


def test_threshold_is_configurable():
    fine = interpolate(one_row('swath', [0.0, 0.0], [10.0, 10.6]), 2, 'fine', threshold=1.0)
    assert fine.longitude[0] == pytest.approx([10.0, 10.3, 10.6, 10.9])


def test_non_finite_values_fail():
    with pytest.raises(GeometryInconsistencyError):
        interpolate(one_row('swath', [0.0, np.nan], [10.0, 10.1]), 2, 'fine')


def test_worker_count_does_not_change_result(linear_grid):
    single = interpolate(linear_grid, 3, 'fine', workers=1)
    several = interpolate(linear_grid, 3, 'fine', workers=3)
    assert np.array_equal(single.latitude, several.latitude)
    assert np.array_equal(single.longitude, several.longitude)


@pytest.mark.parametrize('factor', [0, -2, 1.5])
def test_invalid_factor(linear_grid, factor):
    with pytest.raises(ValueError):
        interpolate(linear_grid, factor, 'fine')


def test_allocation_failure(linear_grid):
    with patch('nsidc.sidecar.interpolation.np.empty', side_effect=MemoryError):
        with pytest.raises(AllocationError) as exc_info:
            interpolate(linear_grid, 2, 'fine')
    assert exc_info.value.name == 'fine'
