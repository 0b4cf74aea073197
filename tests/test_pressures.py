import math

import numpy as np
import pytest

from equil.config import Config
from equil.density import DensityCalculator
from equil.equilibration import EquilibrationRegion
from equil.errors import NonConvergedError, ValidationError
from equil.grids import build_cartesian_grid
from equil.initialize import phase_pressures_for_cells
from equil.miscibility import NoMixing
from equil.pressures import PressureProfile, RungeKutta4, integrate_hydrostatic, phase_pressures
from equil.records import EquilRecord
from equil.regions import RegionMapping, partition_uniform
from equil.types import FluidPhase

W, O, G = FluidPhase.WATER, FluidPhase.OIL, FluidPhase.GAS


def make_region(fluid, record, index=None) -> EquilibrationRegion:
    return EquilibrationRegion(
        record=record,
        density=DensityCalculator(fluid),
        rs=NoMixing(),
        rv=NoMixing(),
        index=index,
    )


def test_rk4_integrates_linear_right_hand_side_exactly():
    solution = RungeKutta4(lambda z, p: 7000.0, (0.0, 10.0), 1.0e5, steps=10)
    assert solution.final_value == pytest.approx(1.7e5)
    assert solution(2.5) == pytest.approx(1.0e5 + 7000.0 * 2.5)
    np.testing.assert_allclose(solution(np.array([0.0, 5.0])), [1.0e5, 1.35e5])


def test_rk4_exponential_growth():
    solution = RungeKutta4(lambda z, p: 0.1 * p, (0.0, 10.0), 1.0, steps=100)
    assert solution.final_value == pytest.approx(math.exp(1.0), rel=1e-8)
    assert solution(3.3) == pytest.approx(math.exp(0.33), rel=1e-7)


def test_rk4_upward_span():
    solution = RungeKutta4(lambda z, p: 1000.0, (10.0, 0.0), 2.0e5, steps=20)
    assert solution.final_value == pytest.approx(1.9e5)
    assert solution(5.0) == pytest.approx(1.95e5)


def test_rk4_zero_length_span_is_constant():
    solution = RungeKutta4(lambda z, p: 1000.0, (3.0, 3.0), 2.0e5, steps=1)
    assert solution(3.0) == 2.0e5
    np.testing.assert_array_equal(solution(np.array([1.0, 5.0])), [2.0e5, 2.0e5])


def test_rk4_needs_a_step():
    with pytest.raises(ValidationError):
        RungeKutta4(lambda z, p: 1.0, (0.0, 1.0), 0.0, steps=0)


def test_discontinuous_density_does_not_converge():
    def rhs(z, p):
        return 1.0e4 if z < 0.5 else 1.0e6

    config = Config(max_refinements=1)
    with pytest.raises(NonConvergedError) as info:
        integrate_hydrostatic(rhs, (0.0, 1.0), 1.0e5, config=config, region=3)
    assert info.value.region == 3
    assert info.value.depth == 1.0
    assert info.value.pressure > 1.0e5


def test_profile_integrates_both_ways_from_anchor():
    profile = PressureProfile.integrate(lambda z, p: 1.0e4, 5.0, 1.5e5, (0.0, 10.0))
    assert profile(0.0) == pytest.approx(1.0e5)
    assert profile(10.0) == pytest.approx(2.0e5)
    np.testing.assert_allclose(profile(np.array([2.0, 7.0])), [1.2e5, 1.7e5])


def test_single_region_hydrostatic_pressures(water_oil_fluid):
    """Datum in the oil zone, water anchored at the water-oil contact."""
    grid = build_cartesian_grid(1, 1, 10, dz=1.0)
    region = make_region(water_oil_fluid, EquilRecord(0.0, 1.0e5, 5.0, 0.0, 0.0, 0.0))
    cells = np.arange(grid.number_of_cells)

    pressures = phase_pressures_for_cells(grid, region, cells, gravity=10.0)

    assert pressures.shape == (3, 10)
    assert pressures[W, 0] == pytest.approx(90.0e3, rel=1e-8)
    assert pressures[W, -1] == pytest.approx(180.0e3, rel=1e-8)
    assert pressures[O, 0] == pytest.approx(103.5e3, rel=1e-8)
    assert pressures[O, -1] == pytest.approx(166.5e3, rel=1e-8)
    np.testing.assert_array_equal(pressures[G], 0.0)
    assert np.all(np.diff(pressures[W]) > 0.0)
    assert np.all(np.diff(pressures[O]) > 0.0)


def test_partitioned_regions_hydrostatic_pressures(water_oil_fluid):
    """Four block regions sharing two equilibration records."""
    grid = build_cartesian_grid(10, 1, 10, dz=1.0)
    mapping = RegionMapping(partition_uniform(grid.cartesian_dimensions, (2, 1, 2)))
    records = [
        EquilRecord(0.0, 1.0e5, 2.5, -0.075e5, 0.0, 0.0),
        EquilRecord(5.0, 1.35e5, 7.5, -0.225e5, 5.0, 0.0),
    ]
    record_of_region = {0: 0, 1: 0, 2: 1, 3: 1}

    assert mapping.active_regions() == [0, 1, 2, 3]
    pressures = np.zeros((3, grid.number_of_cells))
    for region_id, cells in mapping:
        region = make_region(water_oil_fluid, records[record_of_region[region_id]], region_id)
        pressures[:, cells] = phase_pressures_for_cells(grid, region, cells, gravity=10.0)

    assert pressures[W, 0] == pytest.approx(105.0e3, rel=1e-8)
    assert pressures[W, -1] == pytest.approx(195.0e3, rel=1e-8)
    assert pressures[O, 0] == pytest.approx(103.5e3, rel=1e-8)
    assert pressures[O, -1] == pytest.approx(166.5e3, rel=1e-8)


def test_datum_in_water_zone(water_oil_fluid):
    record = EquilRecord(datum_depth=8.0, datum_pressure=2.0e5, woc_depth=5.0, pc_owc=1.0e3)
    region = make_region(water_oil_fluid, record)
    depths = np.array([1.0, 5.0, 9.0])
    pressures = phase_pressures(region, depths, gravity=10.0)

    water_at_woc = 2.0e5 - 1.0e4 * 3.0
    assert pressures[W, 1] == pytest.approx(water_at_woc)
    assert pressures[O, 1] == pytest.approx(water_at_woc + 1.0e3)
    assert pressures[O, 0] == pytest.approx(water_at_woc + 1.0e3 - 7.0e3 * 4.0)
    assert pressures[W, 2] == pytest.approx(2.0e5 + 1.0e4)


def test_datum_in_gas_zone(three_phase_fluid):
    record = EquilRecord(
        datum_depth=1.0,
        datum_pressure=1.0e5,
        woc_depth=8.0,
        pc_owc=2.0e3,
        goc_depth=4.0,
        pc_goc=5.0e2,
    )
    region = make_region(three_phase_fluid, record)
    depths = np.array([0.5, 4.0, 8.0, 9.5])
    pressures = phase_pressures(region, depths, gravity=10.0)

    gas_at_goc = 1.0e5 + 1.0e3 * 3.0
    oil_at_goc = gas_at_goc - 5.0e2
    oil_at_woc = oil_at_goc + 7.0e3 * 4.0
    assert pressures[G, 0] == pytest.approx(1.0e5 - 1.0e3 * 0.5)
    assert pressures[G, 1] == pytest.approx(gas_at_goc)
    assert pressures[O, 1] == pytest.approx(oil_at_goc)
    assert pressures[O, 2] == pytest.approx(oil_at_woc)
    assert pressures[W, 2] == pytest.approx(oil_at_woc - 2.0e3)
    assert pressures[W, 3] == pytest.approx(oil_at_woc - 2.0e3 + 1.0e4 * 1.5)


def test_contact_jumps_in_oil_zone(three_phase_fluid):
    record = EquilRecord(
        datum_depth=5.0,
        datum_pressure=2.0e5,
        woc_depth=8.0,
        pc_owc=3.0e3,
        goc_depth=2.0,
        pc_goc=1.0e3,
    )
    region = make_region(three_phase_fluid, record)
    pressures = phase_pressures(region, np.array([2.0, 8.0]), gravity=9.80665)

    assert pressures[O, 1] - pressures[W, 1] == pytest.approx(3.0e3)
    assert pressures[G, 0] - pressures[O, 0] == pytest.approx(1.0e3)


def test_empty_cell_set(water_oil_fluid):
    region = make_region(water_oil_fluid, EquilRecord(0.0, 1.0e5, 5.0))
    assert phase_pressures(region, np.array([]), gravity=10.0).shape == (3, 0)


def test_live_oil_pressures_converge(live_oil_density):
    """Pressures with a pressure dependent oil density are independent of the step."""
    record = EquilRecord(datum_depth=100.0, datum_pressure=5.0e6, woc_depth=500.0, goc_depth=100.0)
    region = EquilibrationRegion(
        record=record,
        density=live_oil_density,
        rs=NoMixing(),
        rv=NoMixing(),
    )
    depths = np.linspace(50.0, 150.0, 5)
    coarse = phase_pressures(region, depths, gravity=9.80665, config=Config(max_depth_step=1.0))
    fine = phase_pressures(region, depths, gravity=9.80665, config=Config(max_depth_step=0.25))
    np.testing.assert_allclose(coarse[O], fine[O], rtol=1e-6)
    assert np.all(np.diff(coarse[O]) > 0.0)
