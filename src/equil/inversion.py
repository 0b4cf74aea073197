"""
Inversion of capillary pressure curves.

Given a target capillary pressure, find the saturation at which a cell's
capillary pressure curve attains it. Curves may be non-monotone: the search
starts at the end point of the saturation range that a hydrostatic sweep
reaches first and takes the first crossing found from there.
"""

import typing

import numpy as np
from scipy.optimize import root_scalar  # type: ignore[import-untyped]

from equil.config import Config
from equil.constants import c
from equil.errors import ComputationError, UnbracketedError
from equil.types import CapillaryPressureProvider, FluidPhase


__all__ = ["sat_from_pc", "sat_from_sum_of_pcs", "sat_from_depth", "is_constant_pc"]


def _phase_limits(
    props: CapillaryPressureProvider, phase: FluidPhase, cell: int
) -> typing.Tuple[float, float]:
    smin, smax = props.saturation_range([cell])
    return float(smin[0, phase]), float(smax[0, phase])


def _capillary_pressure(
    props: CapillaryPressureProvider, phase: FluidPhase, cell: int, saturation: float
) -> float:
    saturations = np.zeros((1, 3))
    saturations[0, phase] = saturation
    return float(props.capillary_pressures(saturations, [cell])[0, phase])


def _sum_of_capillary_pressures(
    props: CapillaryPressureProvider, cell: int, water_saturation: float
) -> float:
    saturations = np.array([[water_saturation, 0.0, 1.0 - water_saturation]])
    pc = props.capillary_pressures(saturations, [cell])
    return float(pc[0, FluidPhase.WATER] + pc[0, FluidPhase.GAS])


def _invert(
    f: typing.Callable[[float], float],
    start: float,
    end: float,
    clamp: bool,
    config: Config,
    description: str,
) -> float:
    """
    Find the first root of `f` walking from `start` towards `end`.

    `f(start) <= 0` returns `start` and `f(end) > 0` returns `end`; otherwise
    the first sign change on a uniform scan is bisected.
    """
    f_start = f(start)
    if f_start <= 0.0:
        if not clamp and f_start < -config.pc_tolerance:
            raise UnbracketedError(
                f"{description}: target lies beyond the curve at saturation {start:.6g} "
                f"(residual {f_start:.6g} Pa)."
            )
        return start
    f_end = f(end)
    if f_end > 0.0:
        if not clamp and f_end > config.pc_tolerance:
            raise UnbracketedError(
                f"{description}: target lies beyond the curve at saturation {end:.6g} "
                f"(residual {f_end:.6g} Pa)."
            )
        return end

    lower, upper = start, end
    samples = np.linspace(start, end, config.bracket_samples + 1)
    for previous, current in zip(samples[:-1], samples[1:]):
        if f(float(current)) <= 0.0:
            lower, upper = float(previous), float(current)
            break

    # f(lower) > 0 >= f(upper)
    if f(upper) == 0.0:
        return upper
    solver = root_scalar(
        f,
        bracket=sorted((lower, upper)),
        method="bisect",
        xtol=config.saturation_tolerance,
        maxiter=config.max_bisection_iterations,
    )
    if not solver.converged:
        raise ComputationError(
            f"{description}: bisection did not converge in {solver.iterations} iterations."
        )
    return float(solver.root)


def sat_from_pc(
    props: CapillaryPressureProvider,
    phase: FluidPhase,
    cell: int,
    target_pc: float,
    increasing: bool = False,
    clamp: bool = True,
    config: typing.Optional[Config] = None,
) -> float:
    """
    Saturation of `phase` at which the cell's capillary pressure equals `target_pc`.

    :param props: Saturation function layer.
    :param phase: `WATER` (curve `Pcow(Sw)`) or `GAS` (curve `Pcgo(Sg)`).
    :param cell: Cell index.
    :param target_pc: Capillary pressure to honour (Pa).
    :param increasing: Whether the curve increases with saturation (gas).
        The search starts at the maximum saturation for increasing curves
        and at the minimum saturation otherwise.
    :param clamp: Return the end point saturation when the target lies
        outside the curve; raise `UnbracketedError` otherwise.
    :param config: Numerical parameters.
    :return: The saturation.
    """
    config = config or Config()
    phase = FluidPhase(phase)
    smin, smax = _phase_limits(props, phase, cell)
    start, end = (smax, smin) if increasing else (smin, smax)
    return _invert(
        lambda s: _capillary_pressure(props, phase, cell, s) - target_pc,
        start,
        end,
        clamp=clamp,
        config=config,
        description=f"Cell {cell} {phase.name.lower()} capillary pressure {target_pc:.6g} Pa",
    )


def sat_from_sum_of_pcs(
    props: CapillaryPressureProvider,
    cell: int,
    target_pc: float,
    clamp: bool = True,
    config: typing.Optional[Config] = None,
) -> float:
    """
    Water saturation at which `Pcow(Sw) + Pcgo(1 - Sw)` equals `target_pc`.

    Used where the water and gas transition zones overlap and oil is absent,
    with `target_pc = Pg - Pw`.

    :return: The water saturation; the gas saturation is `1 - Sw`.
    """
    config = config or Config()
    swl, swu = _phase_limits(props, FluidPhase.WATER, cell)
    return _invert(
        lambda sw: _sum_of_capillary_pressures(props, cell, sw) - target_pc,
        swl,
        swu,
        clamp=clamp,
        config=config,
        description=f"Cell {cell} gas-water capillary pressure {target_pc:.6g} Pa",
    )


def sat_from_depth(
    props: CapillaryPressureProvider,
    phase: FluidPhase,
    cell: int,
    depth: float,
    contact_depth: float,
    increasing: bool = False,
) -> float:
    """
    Saturation of `phase` across a sharp contact.

    For an increasing (gas) curve cells above the contact get the maximum
    saturation; for a decreasing (water) curve cells below the contact do.
    All other cells get the minimum saturation.
    """
    smin, smax = _phase_limits(props, FluidPhase(phase), cell)
    if increasing:
        return smax if depth < contact_depth else smin
    return smax if depth > contact_depth else smin


def is_constant_pc(
    props: CapillaryPressureProvider, phase: FluidPhase, cell: int, samples: int = 11
) -> bool:
    """Whether the cell's capillary pressure curve of `phase` is flat over its saturation range."""
    phase = FluidPhase(phase)
    smin, smax = _phase_limits(props, phase, cell)
    values = np.array(
        [_capillary_pressure(props, phase, cell, s) for s in np.linspace(smin, smax, samples)]
    )
    return bool(np.all(np.abs(values - values[0]) < c.CONSTANT_PC_EPSILON))
