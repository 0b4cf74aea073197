"""
Hydrostatic phase pressures.

Each mobile phase satisfies `dp/dz = rho(p, z) g` with depth `z` positive
downward. The phase that contains the datum is integrated from the datum
pressure; the other phases are anchored at the fluid contacts through the
capillary pressure jumps of the equilibration record.
"""

import logging
import math
import typing

import attrs
import numpy as np
from scipy.interpolate import CubicHermiteSpline  # type: ignore[import-untyped]

from equil.config import Config
from equil.equilibration import EquilibrationRegion
from equil.errors import NonConvergedError, ValidationError
from equil.types import DensityFunction, FloatOrArray, FluidPhase, OneDimensionalGrid
from equil.utils import as_float_array


logger = logging.getLogger(__name__)

__all__ = [
    "RungeKutta4",
    "PressureProfile",
    "integrate_hydrostatic",
    "phase_pressures",
]


class RungeKutta4:
    """
    Classical fourth order Runge-Kutta solution of `dp/dz = f(z, p)` on a uniform grid.

    The span may run in either direction. The solution is available at any
    depth by cubic Hermite interpolation of the node values and slopes.
    """

    def __init__(
        self,
        f: DensityFunction,
        span: typing.Tuple[float, float],
        initial_value: float,
        steps: int,
    ) -> None:
        """
        :param f: Right-hand side `f(z, p)`.
        :param span: Start and end depth `(a, b)`; the initial value is given at `a`.
        :param initial_value: Solution value at `a`.
        :param steps: Number of uniform steps.
        """
        if steps < 1:
            raise ValidationError(f"At least one integration step required, got {steps}.")
        start, end = float(span[0]), float(span[1])
        self.span = (start, end)
        self.steps = int(steps)
        self.initial_value = float(initial_value)

        if start == end:
            self.nodes = np.array([start])
            self.values = np.array([self.initial_value])
            self.slopes = np.array([f(start, self.initial_value)])
            self._spline = None
            return

        h = (end - start) / self.steps
        nodes = start + h * np.arange(self.steps + 1)
        nodes[-1] = end
        values = np.empty(self.steps + 1)
        slopes = np.empty(self.steps + 1)
        values[0] = self.initial_value
        slopes[0] = f(start, self.initial_value)
        for i in range(self.steps):
            z, p, k1 = nodes[i], values[i], slopes[i]
            k2 = f(z + 0.5 * h, p + 0.5 * h * k1)
            k3 = f(z + 0.5 * h, p + 0.5 * h * k2)
            k4 = f(z + h, p + h * k3)
            values[i + 1] = p + h * (k1 + 2.0 * k2 + 2.0 * k3 + k4) / 6.0
            slopes[i + 1] = f(nodes[i + 1], values[i + 1])

        self.nodes = nodes
        self.values = values
        self.slopes = slopes
        if h > 0.0:
            self._spline = CubicHermiteSpline(nodes, values, slopes)
        else:
            self._spline = CubicHermiteSpline(nodes[::-1], values[::-1], slopes[::-1])

    @property
    def final_value(self) -> float:
        """Solution value at the end of the span."""
        return float(self.values[-1])

    def max_relative_slope_change(self) -> float:
        """
        Largest relative change of the right-hand side between consecutive nodes.

        For a hydrostatic system the right-hand side is `rho g`, so this is the
        largest relative density change over one step.
        """
        if len(self.slopes) < 2:
            return 0.0
        scale = np.maximum(np.abs(self.slopes[:-1]), np.finfo(np.float64).tiny)
        change = np.abs(np.diff(self.slopes))
        return float(np.max(np.where(change == 0.0, 0.0, change / scale)))

    def __call__(self, depth: FloatOrArray) -> FloatOrArray:
        if self._spline is None:
            result = np.full(np.shape(depth), self.initial_value)
        else:
            result = self._spline(depth)
        return float(result) if np.ndim(result) == 0 else result

    def __repr__(self) -> str:
        return f"{type(self).__name__}(span={self.span}, steps={self.steps})"


def integrate_hydrostatic(
    f: DensityFunction,
    span: typing.Tuple[float, float],
    initial_value: float,
    config: typing.Optional[Config] = None,
    region: typing.Optional[int] = None,
) -> RungeKutta4:
    """
    Integrate `dp/dz = f(z, p)` over `span`, refining the step until converged.

    The initial step count is `max(min_integration_steps, ceil(L / max_depth_step))`.
    The step is halved until the relative change of `f` between consecutive
    nodes is at most `config.max_density_change` and the end-point values of
    N and 2N steps agree to `config.ode_tolerance`.

    :param f: Right-hand side `f(z, p)`.
    :param span: Start and end depth; `initial_value` is the value at the start.
    :param initial_value: Pressure at the start of the span.
    :param config: Numerical parameters.
    :param region: Equilibration region id used in diagnostics.
    :return: The converged solution.
    :raises NonConvergedError: If the solution has not converged after
        `config.max_refinements` doublings.
    """
    config = config or Config()
    length = abs(span[1] - span[0])
    if length == 0.0:
        return RungeKutta4(f, span, initial_value, 1)

    steps = max(config.min_integration_steps, math.ceil(length / config.max_depth_step))
    coarse = RungeKutta4(f, span, initial_value, steps)
    for refinement in range(config.max_refinements + 1):
        fine = RungeKutta4(f, span, initial_value, 2 * steps)
        density_change = fine.max_relative_slope_change()
        difference = abs(fine.final_value - coarse.final_value)
        tolerance = config.ode_tolerance * max(abs(fine.final_value), 1.0)
        if density_change <= config.max_density_change and difference <= tolerance:
            logger.debug(
                f"Hydrostatic sweep over {span} converged with {fine.steps} steps "
                f"after {refinement} refinement(s)"
            )
            return fine
        logger.debug(
            f"Refining hydrostatic sweep over {span}: {fine.steps} steps, "
            f"density change {density_change:.3e}, end-point difference {difference:.3e} Pa"
        )
        coarse = fine
        steps *= 2

    raise NonConvergedError(
        "Hydrostatic pressure integration did not converge",
        pressure=coarse.final_value,
        depth=span[1],
        region=region,
    )


@attrs.frozen
class PressureProfile:
    """Pressure of one phase as a function of depth, integrated up and down from an anchor."""

    anchor_depth: float
    anchor_pressure: float
    upward: RungeKutta4
    downward: RungeKutta4

    def __call__(self, depth: FloatOrArray) -> FloatOrArray:
        depth_array = np.asarray(depth, dtype=np.float64)
        result = np.where(
            depth_array < self.anchor_depth,
            self.upward(depth_array),
            self.downward(depth_array),
        )
        return float(result) if result.ndim == 0 else result

    @classmethod
    def integrate(
        cls,
        f: DensityFunction,
        anchor_depth: float,
        anchor_pressure: float,
        span: typing.Tuple[float, float],
        config: typing.Optional[Config] = None,
        region: typing.Optional[int] = None,
    ) -> "PressureProfile":
        """
        Integrate from `(anchor_depth, anchor_pressure)` to both ends of `span`.

        :param span: `(top, bottom)` depths, containing the anchor.
        """
        top, bottom = span
        upward = integrate_hydrostatic(
            f, (anchor_depth, min(top, anchor_depth)), anchor_pressure, config, region
        )
        downward = integrate_hydrostatic(
            f, (anchor_depth, max(bottom, anchor_depth)), anchor_pressure, config, region
        )
        return cls(anchor_depth, anchor_pressure, upward, downward)


def _water_rhs(region: EquilibrationRegion, gravity: float) -> DensityFunction:
    density = region.density

    def rhs(depth: float, pressure: float) -> float:
        return float(density.water_density(pressure)) * gravity

    return rhs


def _oil_rhs(region: EquilibrationRegion, gravity: float) -> DensityFunction:
    density = region.density
    rs = region.rs

    def rhs(depth: float, pressure: float) -> float:
        return float(density.oil_density(pressure, rs(depth, pressure))) * gravity

    return rhs


def _gas_rhs(region: EquilibrationRegion, gravity: float) -> DensityFunction:
    density = region.density
    rv = region.rv

    def rhs(depth: float, pressure: float) -> float:
        return float(density.gas_density(pressure, rv(depth, pressure))) * gravity

    return rhs


def phase_pressures(
    region: EquilibrationRegion,
    depths: OneDimensionalGrid,
    gravity: float,
    config: typing.Optional[Config] = None,
) -> np.ndarray:
    """
    Hydrostatic phase pressures at the given cell depths.

    The span of integration covers the cell depths, the datum and the contacts
    that anchor a phase. The datum phase is chosen from the datum position:
    water below the water-oil contact, gas above the gas-oil contact and oil
    in between.

    :param region: Equilibration region.
    :param depths: Cell centroid depths (m).
    :param gravity: Gravitational acceleration (m/s²).
    :param config: Numerical parameters.
    :return: (3, n) array of phase pressures (Pa), rows ordered as `FluidPhase`.
        Rows of inactive phases are zero.
    """
    config = config or Config()
    depths = as_float_array(depths, "depths")
    pressures = np.zeros((3, len(depths)))
    if len(depths) == 0:
        return pressures

    usage = region.phase_usage
    datum, datum_pressure = region.datum, region.pressure
    zwoc, zgoc = region.zwoc, region.zgoc

    anchors = [datum, float(depths.min()), float(depths.max())]
    if usage.oil and usage.water:
        anchors.append(zwoc)
    if usage.oil and usage.gas:
        anchors.append(zgoc)
    span = (min(anchors), max(anchors))

    def profile(f: DensityFunction, depth: float, pressure: float) -> PressureProfile:
        return PressureProfile.integrate(f, depth, pressure, span, config, region.index)

    water = oil = gas = None
    if not usage.oil:
        if usage.water:
            water = profile(_water_rhs(region, gravity), datum, datum_pressure)
        if usage.gas:
            gas = profile(_gas_rhs(region, gravity), datum, datum_pressure)
    elif usage.water and datum > zwoc:
        water = profile(_water_rhs(region, gravity), datum, datum_pressure)
        oil = profile(_oil_rhs(region, gravity), zwoc, water(zwoc) + region.pcow_woc)
        if usage.gas:
            gas = profile(_gas_rhs(region, gravity), zgoc, oil(zgoc) + region.pcgo_goc)
    elif usage.gas and datum < zgoc:
        gas = profile(_gas_rhs(region, gravity), datum, datum_pressure)
        oil = profile(_oil_rhs(region, gravity), zgoc, gas(zgoc) - region.pcgo_goc)
        if usage.water:
            water = profile(_water_rhs(region, gravity), zwoc, oil(zwoc) - region.pcow_woc)
    else:
        oil = profile(_oil_rhs(region, gravity), datum, datum_pressure)
        if usage.water:
            water = profile(_water_rhs(region, gravity), zwoc, oil(zwoc) - region.pcow_woc)
        if usage.gas:
            gas = profile(_gas_rhs(region, gravity), zgoc, oil(zgoc) + region.pcgo_goc)

    for phase, solution in (
        (FluidPhase.WATER, water),
        (FluidPhase.OIL, oil),
        (FluidPhase.GAS, gas),
    ):
        if solution is not None:
            pressures[phase] = solution(depths)
    return pressures
