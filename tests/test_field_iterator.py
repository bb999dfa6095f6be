"""
Tests for FieldIterator raster ordering and NODATA handling.
"""

import numpy as np
import pytest

from terrain_displacement.grid import NODATA, Component, FieldIterator, Grid, Order


@pytest.fixture
def grid_2x2():
    """Grid over cells (0..1, 0..1) with vectors at (0,0), (1,0) and (1,1)."""
    grid = Grid(1.0)
    grid.insert(np.array([
        [0.5, 0.5, 0.0],
        [1.5, 0.5, 0.0],
        [0.5, 1.5, 0.0],
        [1.5, 1.5, 0.0],
    ]), Order.BEFORE)
    grid.calc_limits()
    grid.cell_at(0, 0).vector = np.array([1.0, 2.0, 3.0])
    grid.cell_at(1, 0).vector = np.array([4.0, 5.0, 6.0])
    grid.cell_at(1, 1).vector = np.array([7.0, 8.0, 9.0])
    # (0, 1) is populated but has no vector
    return grid


@pytest.fixture
def sparse_grid():
    """Grid over cells (-2..5, -1..3) with a single vector at (5, -1)."""
    grid = Grid(100.0)
    grid.insert(np.array([
        [-150.0, 350.0, 0.0],
        [550.0, -50.0, 0.0],
        [50.0, 50.0, 0.0],
    ]), Order.AFTER)
    grid.calc_limits()
    grid.cell_at(5, -1).vector = np.array([0.1, 0.2, 0.3])
    return grid


class TestOrdering:

    def test_row_major_positions(self, grid_2x2):
        it = FieldIterator(grid_2x2, Component.X)
        assert [it.cell_coords(p) for p in range(4)] == [(0, 0), (1, 0), (0, 1), (1, 1)]

    def test_component_values(self, grid_2x2):
        assert list(FieldIterator(grid_2x2, Component.X)) == [1.0, 4.0, NODATA, 7.0]
        assert list(FieldIterator(grid_2x2, Component.Y)) == [2.0, 5.0, NODATA, 8.0]
        assert list(FieldIterator(grid_2x2, Component.Z)) == [3.0, 6.0, NODATA, 9.0]

    def test_length_matches_extent(self, sparse_grid):
        it = FieldIterator(sparse_grid, Component.Z)
        assert len(it) == 8 * 5

    def test_offset_origin(self, sparse_grid):
        it = FieldIterator(sparse_grid, Component.Z)
        assert it.cell_coords(0) == (-2, -1)
        assert it.cell_coords(7) == (5, -1)
        assert it.cell_coords(8) == (-2, 0)
        assert it.cell_coords(len(it) - 1) == (5, 3)

    def test_ineligible_cell_is_nodata_in_every_band(self):
        rng = np.random.default_rng(7)
        grid = Grid(10.0)
        grid.insert(rng.uniform(0.0, 10.0, size=(300, 3)), Order.BEFORE)
        grid.insert(rng.uniform(0.0, 10.0, size=(249, 3)), Order.AFTER)
        grid.calc_limits()
        grid.register_all(min_points=250, register=lambda fixed, moving: np.eye(4))

        for component in Component:
            assert list(FieldIterator(grid, component)) == [NODATA]

    def test_unpopulated_and_unregistered_cells_are_nodata(self, sparse_grid):
        values = list(FieldIterator(sparse_grid, Component.Z))
        assert values[7] == pytest.approx(0.3)
        assert values.count(NODATA) == len(values) - 1


class TestSequenceProtocol:

    def test_restartable(self, grid_2x2):
        it = FieldIterator(grid_2x2, Component.X)
        assert list(it) == list(it)

    def test_random_access(self, grid_2x2):
        it = FieldIterator(grid_2x2, Component.Y)
        assert it[3] == 8.0
        assert it[0] == 2.0
        assert it[2] == NODATA

    def test_negative_index(self, grid_2x2):
        it = FieldIterator(grid_2x2, Component.Z)
        assert it[-1] == 9.0
        assert it[-4] == 3.0

    @pytest.mark.parametrize("index", [1.7, 1.0, "1"])
    def test_non_integer_index_rejected(self, grid_2x2, index):
        with pytest.raises(TypeError):
            FieldIterator(grid_2x2, Component.X)[index]

    def test_numpy_integer_index(self, grid_2x2):
        assert FieldIterator(grid_2x2, Component.X)[np.int64(1)] == 4.0

    @pytest.mark.parametrize("index", [4, 100, -5])
    def test_out_of_range(self, grid_2x2, index):
        with pytest.raises(IndexError):
            FieldIterator(grid_2x2, Component.X)[index]

    def test_slice(self, grid_2x2):
        it = FieldIterator(grid_2x2, Component.X)
        assert it[1:3] == [4.0, NODATA]
        assert it[::-1] == [7.0, NODATA, 4.0, 1.0]

    def test_sequence_mixins(self, grid_2x2):
        it = FieldIterator(grid_2x2, Component.X)
        assert 4.0 in it
        assert it.index(7.0) == 3
        assert it.count(NODATA) == 1

    def test_does_not_modify_grid(self, grid_2x2):
        before = len(grid_2x2)
        list(FieldIterator(grid_2x2, Component.X))
        assert len(grid_2x2) == before
        assert grid_2x2.cell_at(0, 1).vector is None


class TestConstruction:

    @pytest.mark.parametrize("component", ["z", "Z", 2, Component.Z])
    def test_component_forms(self, grid_2x2, component):
        assert FieldIterator(grid_2x2, component).component is Component.Z

    @pytest.mark.parametrize("component", ["w", 3])
    def test_invalid_component(self, grid_2x2, component):
        with pytest.raises(ValueError):
            FieldIterator(grid_2x2, component)

    def test_requires_limits(self):
        grid = Grid(1.0)
        grid.insert(np.array([[0.5, 0.5, 0.0]]), Order.BEFORE)
        with pytest.raises(RuntimeError):
            FieldIterator(grid, Component.X)

    def test_empty_grid_is_empty_sequence(self):
        grid = Grid(1.0)
        grid.calc_limits()
        it = FieldIterator(grid, Component.X)
        assert len(it) == 0
        assert list(it) == []

    def test_to_array(self, sparse_grid):
        arr = FieldIterator(sparse_grid, Component.X).to_array(np.float32)
        assert arr.shape == (5, 8)
        assert arr.dtype == np.float32
        assert arr[0, 7] == pytest.approx(0.1)
        assert arr[0, 0] == NODATA

    def test_repr(self, grid_2x2):
        assert repr(FieldIterator(grid_2x2, "x")) == "FieldIterator(component=X, size=2x2, origin=(0, 0))"
