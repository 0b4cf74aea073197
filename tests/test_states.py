import attrs
import numpy as np
import pytest

from equil.config import Config
from equil.constants import Constants, c
from equil.errors import InconsistentStateError, ValidationError
from equil.states import InitialState
from equil.types import FluidPhase, PhaseUsage


def make_state(saturations: np.ndarray) -> InitialState:
    n = saturations.shape[1]
    return InitialState(
        pressures=np.ones((3, n)),
        saturations=saturations,
        rs=np.zeros(n),
        rv=np.zeros(n),
    )


def test_accessors():
    state = make_state(np.array([[0.2, 1.0], [0.8, 0.0], [0.0, 0.0]]))
    np.testing.assert_array_equal(state.saturation(FluidPhase.WATER), [0.2, 1.0])
    np.testing.assert_array_equal(state.pressure(FluidPhase.OIL), [1.0, 1.0])
    assert state.number_of_cells == 2
    state.validate()


def test_saturation_sum_must_be_one():
    state = make_state(np.array([[0.2], [0.7], [0.0]]))
    with pytest.raises(InconsistentStateError):
        state.validate()


def test_saturations_must_lie_in_unit_interval():
    state = make_state(np.array([[1.1], [-0.1], [0.0]]))
    with pytest.raises(InconsistentStateError):
        state.validate()


def test_non_finite_saturations_are_rejected():
    state = make_state(np.array([[np.nan], [0.5], [0.5]]))
    with pytest.raises(InconsistentStateError):
        state.validate()


def test_shapes_are_checked():
    with pytest.raises(ValidationError):
        InitialState(
            pressures=np.zeros((2, 3)),
            saturations=np.zeros((3, 3)),
            rs=np.zeros(3),
            rv=np.zeros(3),
        )


def test_phase_usage_needs_a_phase():
    with pytest.raises(ValidationError):
        PhaseUsage(water=False, oil=False, gas=False)
    usage = PhaseUsage(gas=False)
    assert FluidPhase.GAS not in usage
    assert usage.num_phases == 2


def test_config_defaults_and_validation():
    config = Config()
    assert config.min_integration_steps == 100
    assert config.max_depth_step == pytest.approx(1.0)
    assert config.saturation_sum_tolerance == pytest.approx(1e-12)
    with pytest.raises(ValueError):
        Config(max_refinements=17)
    with pytest.raises(ValueError):
        Config(max_depth_step=0.0)
    assert attrs.evolve(config, bracket_samples=8).bracket_samples == 8


def test_constants_context_overrides_proxy():
    constants = Constants()
    constants.STANDARD_GRAVITY = 10.0
    assert c.STANDARD_GRAVITY == pytest.approx(9.80665)
    with constants():
        assert c.STANDARD_GRAVITY == 10.0
        assert c["STANDARD_GRAVITY"].value == 10.0
    assert c.STANDARD_GRAVITY == pytest.approx(9.80665)
