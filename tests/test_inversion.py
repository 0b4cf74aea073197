import numpy as np
import pytest

from equil.capillary_pressures import CapillaryPressureTable, SaturationFunctions
from equil.config import Config
from equil.errors import ComputationError, UnbracketedError
from equil.inversion import is_constant_pc, sat_from_depth, sat_from_pc, sat_from_sum_of_pcs
from equil.types import FluidPhase

W, O, G = FluidPhase.WATER, FluidPhase.OIL, FluidPhase.GAS


@pytest.mark.parametrize(
    "pc, expected",
    [
        (10.0e5, 0.2),
        (0.5e5, 0.2),
        (0.4e5, 0.2),
        (0.3e5, 0.2 + 0.8 / 3.0),
        (0.2e5, 0.2 + 1.6 / 3.0),
        (0.1e5, 1.0),
        (0.099e5, 1.0),
        (0.0, 1.0),
        (-10.0e5, 1.0),
    ],
)
def test_water_saturation_from_decreasing_curve(single_cell_props, pc, expected):
    sw = sat_from_pc(single_cell_props, W, 0, pc, increasing=False)
    assert sw == pytest.approx(expected, abs=1e-8)


@pytest.mark.parametrize(
    "pc, expected",
    [
        (10.0e5, 0.8),
        (0.6e5, 0.8),
        (0.5e5, 0.8),
        (0.4e5, 0.8 * 2.0 / 3.0),
        (0.3e5, 0.8 / 3.0),
        (0.2e5, 0.0),
        (0.1e5, 0.0),
        (0.0, 0.0),
        (-10.0e5, 0.0),
    ],
)
def test_gas_saturation_from_increasing_curve(single_cell_props, pc, expected):
    sg = sat_from_pc(single_cell_props, G, 0, pc, increasing=True)
    assert sg == pytest.approx(expected, abs=1e-8)


@pytest.mark.parametrize(
    "pc, expected",
    [
        (0.9e5, 0.2),
        (0.8e5, 0.2 + 0.4 / 3.0),
        (0.6e5, 0.6),
        (0.4e5, 0.2 + 2.0 / 3.0),
        (0.3e5, 1.0),
    ],
)
def test_water_saturation_from_sum_of_capillary_pressures(single_cell_props, pc, expected):
    sw = sat_from_sum_of_pcs(single_cell_props, 0, pc)
    assert sw == pytest.approx(expected, abs=1e-8)


def test_inversion_recovers_saturation(single_cell_props):
    for sw in np.linspace(0.25, 0.95, 8):
        pc = single_cell_props.capillary_pressure(W, 0, sw)
        assert sat_from_pc(single_cell_props, W, 0, pc) == pytest.approx(sw, abs=1e-8)
    for sg in np.linspace(0.05, 0.75, 8):
        pc = single_cell_props.capillary_pressure(G, 0, sg)
        assert sat_from_pc(single_cell_props, G, 0, pc, increasing=True) == pytest.approx(sg, abs=1e-8)


def test_unclamped_target_outside_curve_raises(single_cell_props):
    with pytest.raises(UnbracketedError):
        sat_from_pc(single_cell_props, W, 0, 1.0e6, clamp=False)
    with pytest.raises(UnbracketedError):
        sat_from_pc(single_cell_props, W, 0, -1.0e6, clamp=False)
    with pytest.raises(UnbracketedError):
        sat_from_sum_of_pcs(single_cell_props, 0, 1.0e6, clamp=False)
    # End point values are attainable
    assert sat_from_pc(single_cell_props, W, 0, 0.4e5, clamp=False) == pytest.approx(0.2)


def test_non_monotone_curve_takes_first_crossing():
    table = CapillaryPressureTable(
        W, saturation=[0.2, 0.5, 1.0], capillary_pressure=[1.0e5, 2.0e5, 0.0]
    )
    props = SaturationFunctions(1, water_tables=[table])
    assert sat_from_pc(props, W, 0, 0.5e5) == pytest.approx(0.875, abs=1e-8)


def test_sharp_contacts(zero_table):
    props = SaturationFunctions(
        1,
        water_tables=[zero_table(W, 0.2, 1.0)],
        gas_tables=[zero_table(G, 0.0, 0.8)],
    )
    assert sat_from_depth(props, W, 0, depth=12.0, contact_depth=10.0) == pytest.approx(1.0)
    assert sat_from_depth(props, W, 0, depth=8.0, contact_depth=10.0) == pytest.approx(0.2)
    assert sat_from_depth(props, G, 0, depth=3.0, contact_depth=5.0, increasing=True) == pytest.approx(0.8)
    assert sat_from_depth(props, G, 0, depth=7.0, contact_depth=5.0, increasing=True) == pytest.approx(0.0)


def test_constant_curve_detection(single_cell_props, zero_table):
    props = SaturationFunctions(1, water_tables=[zero_table(W, 0.2, 1.0)])
    assert is_constant_pc(props, W, 0)
    assert not is_constant_pc(single_cell_props, W, 0)
    assert not is_constant_pc(single_cell_props, G, 0)
    # Gas is absent from `props`, its capillary pressure is identically zero
    assert is_constant_pc(props, G, 0)


def test_bisection_resolves_bracket_to_saturation_tolerance(single_cell_props):
    config = Config(saturation_tolerance=1e-12)
    sw = sat_from_pc(single_cell_props, W, 0, 0.25e5, config=config)
    assert sw == pytest.approx(0.6, abs=1e-11)
    sg = sat_from_pc(single_cell_props, G, 0, 0.35e5, increasing=True, config=config)
    assert sg == pytest.approx(0.4, abs=1e-11)


def test_bisection_iteration_limit_raises(single_cell_props):
    config = Config(max_bisection_iterations=2)
    with pytest.raises(ComputationError):
        sat_from_pc(single_cell_props, W, 0, 0.26e5, config=config)
