"""Phase densities at reservoir conditions."""

import typing

import attrs
import numpy as np

from equil.errors import ValidationError
from equil.pvt import PVTEvaluator
from equil.types import FloatOrArray, FluidPhase, PhaseUsage


__all__ = ["SurfaceDensities", "BlackOilFluid", "DensityCalculator"]


@attrs.frozen
class SurfaceDensities:
    """Phase densities at surface (standard) conditions in kg/m³."""

    water: float = attrs.field(default=1000.0, validator=attrs.validators.ge(0))
    oil: float = attrs.field(default=800.0, validator=attrs.validators.ge(0))
    gas: float = attrs.field(default=1.0, validator=attrs.validators.ge(0))

    def __getitem__(self, phase: FluidPhase) -> float:
        return (self.water, self.oil, self.gas)[FluidPhase(phase)]


def _check_phase(
    expected: FluidPhase,
) -> typing.Callable[[typing.Any, attrs.Attribute, typing.Optional[PVTEvaluator]], None]:
    def validator(
        instance: typing.Any,
        attribute: attrs.Attribute,
        value: typing.Optional[PVTEvaluator],
    ) -> None:
        if value is not None and value.phase != expected:
            raise ValidationError(
                f"`{attribute.name}` describes the {value.phase.name.lower()} phase, "
                f"expected {expected.name.lower()}."
            )

    return validator


@attrs.frozen
class BlackOilFluid:
    """
    Fluid system of one PVT region.

    A phase is active when its evaluator is given.
    """

    surface_densities: SurfaceDensities
    water_pvt: typing.Optional[PVTEvaluator] = attrs.field(
        default=None, validator=_check_phase(FluidPhase.WATER)
    )
    oil_pvt: typing.Optional[PVTEvaluator] = attrs.field(
        default=None, validator=_check_phase(FluidPhase.OIL)
    )
    gas_pvt: typing.Optional[PVTEvaluator] = attrs.field(
        default=None, validator=_check_phase(FluidPhase.GAS)
    )

    def __attrs_post_init__(self) -> None:
        if self.water_pvt is None and self.oil_pvt is None and self.gas_pvt is None:
            raise ValidationError("A fluid system needs at least one phase.")

    @property
    def phase_usage(self) -> PhaseUsage:
        return PhaseUsage(
            water=self.water_pvt is not None,
            oil=self.oil_pvt is not None,
            gas=self.gas_pvt is not None,
        )

    @property
    def has_dissolved_gas(self) -> bool:
        """Whether gas may dissolve in the oil phase."""
        return (
            self.oil_pvt is not None
            and self.gas_pvt is not None
            and self.oil_pvt.is_live
        )

    @property
    def has_vaporized_oil(self) -> bool:
        """Whether oil may vaporise into the gas phase."""
        return (
            self.oil_pvt is not None
            and self.gas_pvt is not None
            and self.gas_pvt.is_live
        )

    def pvt(self, phase: FluidPhase) -> PVTEvaluator:
        """
        PVT evaluator of an active phase.

        :raises ValidationError: If `phase` is not active.
        """
        evaluator = (self.water_pvt, self.oil_pvt, self.gas_pvt)[FluidPhase(phase)]
        if evaluator is None:
            raise ValidationError(f"The {FluidPhase(phase).name.lower()} phase is not active.")
        return evaluator


class DensityCalculator:
    """
    Reservoir-condition densities of the phases of a `BlackOilFluid`.

    Oil carries its dissolved gas and gas its vaporised oil:

        rho_o = (rho_o^s + Rs rho_g^s) / B_o(p, Rs)
        rho_g = (rho_g^s + Rv rho_o^s) / B_g(p, Rv)
    """

    def __init__(self, fluid: BlackOilFluid) -> None:
        self.fluid = fluid
        self.surface_densities = fluid.surface_densities

    @property
    def phase_usage(self) -> PhaseUsage:
        return self.fluid.phase_usage

    def water_density(self, pressure: FloatOrArray) -> FloatOrArray:
        pvt = self.fluid.pvt(FluidPhase.WATER)
        return self.surface_densities.water * pvt.inverse_formation_volume_factor(
            pressure
        )

    def oil_density(self, pressure: FloatOrArray, rs: FloatOrArray = 0.0) -> FloatOrArray:
        pvt = self.fluid.pvt(FluidPhase.OIL)
        mass = self.surface_densities.oil + np.multiply(rs, self.surface_densities.gas)
        return mass * pvt.inverse_formation_volume_factor(pressure, rs)

    def gas_density(self, pressure: FloatOrArray, rv: FloatOrArray = 0.0) -> FloatOrArray:
        pvt = self.fluid.pvt(FluidPhase.GAS)
        mass = self.surface_densities.gas + np.multiply(rv, self.surface_densities.oil)
        return mass * pvt.inverse_formation_volume_factor(pressure, rv)

    def density(
        self, phase: FluidPhase, pressure: FloatOrArray, ratio: FloatOrArray = 0.0
    ) -> FloatOrArray:
        """
        Density of `phase` in kg/m³.

        :param phase: Phase to evaluate.
        :param pressure: Phase pressure(s) in Pa.
        :param ratio: Rs for oil, Rv for gas, ignored for water.
        :raises ValidationError: If `phase` is not active.
        """
        phase = FluidPhase(phase)
        if phase is FluidPhase.WATER:
            return self.water_density(pressure)
        if phase is FluidPhase.OIL:
            return self.oil_density(pressure, ratio)
        return self.gas_density(pressure, ratio)

    def saturated_rs(self, pressure: FloatOrArray) -> FloatOrArray:
        """Saturated dissolved gas-oil ratio at oil pressure `pressure`."""
        return self.fluid.pvt(FluidPhase.OIL).saturated_ratio(pressure)

    def saturated_rv(self, pressure: FloatOrArray) -> FloatOrArray:
        """Saturated vaporised oil-gas ratio at gas pressure `pressure`."""
        return self.fluid.pvt(FluidPhase.GAS).saturated_ratio(pressure)
