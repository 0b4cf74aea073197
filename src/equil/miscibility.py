"""
Initial dissolved gas-oil (Rs) and vaporised oil-gas (Rv) ratios.

Each policy is a callable `policy(depth, pressure, saturation=0.0)`. The
`saturation` argument is the saturation of the phase that would carry the
component as a free phase (gas for Rs, oil for Rv): where it is positive the
phases coexist and the saturated ratio is returned.
"""

import logging
import typing

import attrs

from equil.density import DensityCalculator
from equil.errors import ValidationError
from equil.records import EquilRecord, RatioInitMethod
from equil.tables import DepthTable
from equil.types import MixingPolicy


logger = logging.getLogger(__name__)

__all__ = [
    "NoMixing",
    "RsSatAtContact",
    "RvSatAtContact",
    "RsVsDepth",
    "RvVsDepth",
    "build_mixing_policies",
]


@attrs.frozen
class NoMixing:
    """Immiscible phases, the ratio is always zero."""

    def __call__(self, depth: float, pressure: float, saturation: float = 0.0) -> float:
        return 0.0


@attrs.frozen
class RsSatAtContact:
    """Rs saturated at the gas-oil contact pressure and constant above the local bubble point."""

    density: DensityCalculator
    contact_pressure: float
    """Oil pressure at the gas-oil contact (Pa)."""
    contact_rs: float = attrs.field(init=False)

    @contact_rs.default
    def _contact_rs(self) -> float:
        return float(self.density.saturated_rs(self.contact_pressure))

    def __call__(self, depth: float, pressure: float, saturation: float = 0.0) -> float:
        saturated = float(self.density.saturated_rs(pressure))
        if saturation > 0.0:
            return saturated
        return min(saturated, self.contact_rs)


@attrs.frozen
class RvSatAtContact:
    """Rv saturated at the gas-oil contact pressure and constant above the local dew point."""

    density: DensityCalculator
    contact_pressure: float
    """Gas pressure at the gas-oil contact (Pa)."""
    contact_rv: float = attrs.field(init=False)

    @contact_rv.default
    def _contact_rv(self) -> float:
        return float(self.density.saturated_rv(self.contact_pressure))

    def __call__(self, depth: float, pressure: float, saturation: float = 0.0) -> float:
        saturated = float(self.density.saturated_rv(pressure))
        if saturation > 0.0:
            return saturated
        return min(saturated, self.contact_rv)


@attrs.frozen
class RsVsDepth:
    """Rs from an RSVD table, capped by the saturated value at the local oil pressure."""

    density: DensityCalculator
    table: DepthTable

    def __call__(self, depth: float, pressure: float, saturation: float = 0.0) -> float:
        saturated = float(self.density.saturated_rs(pressure))
        if saturation > 0.0:
            return saturated
        return min(saturated, float(self.table(depth)))


@attrs.frozen
class RvVsDepth:
    """Rv from an RVVD table, capped by the saturated value at the local gas pressure."""

    density: DensityCalculator
    table: DepthTable

    def __call__(self, depth: float, pressure: float, saturation: float = 0.0) -> float:
        saturated = float(self.density.saturated_rv(pressure))
        if saturation > 0.0:
            return saturated
        return min(saturated, float(self.table(depth)))


def build_mixing_policies(
    record: EquilRecord,
    density: DensityCalculator,
    rsvd: typing.Optional[DepthTable] = None,
    rvvd: typing.Optional[DepthTable] = None,
) -> typing.Tuple[MixingPolicy, MixingPolicy]:
    """
    Select the Rs and Rv policies of an equilibration region.

    :param record: Equilibration record of the region.
    :param density: Density calculator of the region's fluid system.
    :param rsvd: Rs-vs-depth table, required for `RatioInitMethod.DEPTH_TABLE`.
    :param rvvd: Rv-vs-depth table, required for `RatioInitMethod.DEPTH_TABLE`.
    :return: Tuple of (rs_policy, rv_policy).
    :raises ValidationError: If a depth table is missing or a contact method is
        used with a datum away from the gas-oil contact.
    """
    fluid = density.fluid

    rs_policy: MixingPolicy = NoMixing()
    if fluid.has_dissolved_gas and record.rs_method is not RatioInitMethod.CONSTANT:
        if record.rs_method is RatioInitMethod.DEPTH_TABLE:
            if rsvd is None:
                raise ValidationError(
                    "Rs initialisation from depth requested but no RSVD table given."
                )
            rs_policy = RsVsDepth(density, rsvd)
        else:
            if record.goc_depth != record.datum_depth:
                raise ValidationError(
                    "Rs saturated at contact requires the datum at the gas-oil contact "
                    f"(datum {record.datum_depth} m, GOC {record.goc_depth} m)."
                )
            rs_policy = RsSatAtContact(density, record.datum_pressure)

    rv_policy: MixingPolicy = NoMixing()
    if fluid.has_vaporized_oil and record.rv_method is not RatioInitMethod.CONSTANT:
        if record.rv_method is RatioInitMethod.DEPTH_TABLE:
            if rvvd is None:
                raise ValidationError(
                    "Rv initialisation from depth requested but no RVVD table given."
                )
            rv_policy = RvVsDepth(density, rvvd)
        else:
            if record.goc_depth != record.datum_depth:
                raise ValidationError(
                    "Rv saturated at contact requires the datum at the gas-oil contact "
                    f"(datum {record.datum_depth} m, GOC {record.goc_depth} m)."
                )
            rv_policy = RvSatAtContact(density, record.datum_pressure + record.pc_goc)

    logger.debug(
        f"Mixing policies: rs={type(rs_policy).__name__}, rv={type(rv_policy).__name__}"
    )
    return rs_policy, rv_policy
