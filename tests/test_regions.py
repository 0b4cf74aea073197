import numpy as np
import pytest

from equil.errors import ValidationError
from equil.grids import CartesianGrid, build_cartesian_grid
from equil.regions import RegionMapping, partition_uniform


def test_cells_of_each_region_in_index_order():
    mapping = RegionMapping([2, 0, 2, 1, 0])
    assert mapping.active_regions() == [0, 1, 2]
    assert mapping.number_of_regions == 3
    np.testing.assert_array_equal(mapping.cells(0), [1, 4])
    np.testing.assert_array_equal(mapping.cells(1), [3])
    np.testing.assert_array_equal(mapping.cells(2), [0, 2])
    assert mapping.region(3) == 1


def test_every_cell_in_exactly_one_region():
    mapping = RegionMapping([3, 1, 1, 3, 7, 1])
    cells = np.concatenate([cells for _, cells in mapping])
    np.testing.assert_array_equal(np.sort(cells), np.arange(6))


def test_unknown_region_raises_key_error():
    mapping = RegionMapping([0, 0, 2])
    with pytest.raises(KeyError):
        mapping.cells(1)


def test_region_ids_are_validated():
    with pytest.raises(ValidationError):
        RegionMapping([0, -1])
    with pytest.raises(ValidationError):
        RegionMapping([[0, 1], [1, 0]])
    with pytest.raises(ValidationError):
        RegionMapping([0.5, 1.0])


def test_uniform_partition_of_cartesian_grid():
    region_ids = partition_uniform((10, 1, 10), (2, 1, 2))
    assert region_ids.shape == (100,)
    assert region_ids[0] == 0
    assert region_ids[9] == 1
    assert region_ids[50] == 2
    assert region_ids[99] == 3
    counts = np.bincount(region_ids)
    np.testing.assert_array_equal(counts, [25, 25, 25, 25])


def test_uniform_partition_rejects_too_many_blocks():
    with pytest.raises(ValidationError):
        partition_uniform((2, 1, 2), (3, 1, 1))


def test_cartesian_grid_layer_depths():
    grid = build_cartesian_grid(2, 1, 3, dz=2.0, top=100.0)
    assert grid.number_of_cells == 6
    assert grid.cartesian_dimensions == (2, 1, 3)
    np.testing.assert_allclose(grid.cell_depths, [101.0, 101.0, 103.0, 103.0, 105.0, 105.0])


def test_grid_from_depths():
    grid = CartesianGrid.from_depths([1.0, 2.5, 7.0])
    assert grid.cartesian_dimensions == (1, 1, 3)
    assert grid.dimensions == 3
    with pytest.raises(ValidationError):
        CartesianGrid(cartesian_dimensions=(2, 1, 1), cell_depths=[1.0])
