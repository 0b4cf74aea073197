import enum
import typing

import attrs

from equil.errors import ValidationError


__all__ = ["RatioInitMethod", "EquilRecord"]


class RatioInitMethod(enum.Enum):
    """How the dissolved (Rs) or vaporised (Rv) ratio is initialised in a region."""

    CONSTANT = "constant"
    """No mixing, the ratio is zero."""
    SATURATED_AT_CONTACT = "saturated_at_contact"
    """Saturated at the gas-oil contact pressure, capped by the local saturated value."""
    DEPTH_TABLE = "depth_table"
    """Read from an RSVD/RVVD depth table, capped by the local saturated value."""

    @classmethod
    def from_deck(cls, value: int) -> "RatioInitMethod":
        """Map the integer flag of an EQUIL record: `<= 0` contact, `> 0` depth table."""
        return cls.SATURATED_AT_CONTACT if int(value) <= 0 else cls.DEPTH_TABLE


@attrs.frozen
class EquilRecord:
    """One equilibration record (a row of EQUIL)."""

    datum_depth: float
    """Depth of the datum (m, positive downward)."""
    datum_pressure: float
    """Oil (or reference phase) pressure at the datum (Pa)."""
    woc_depth: float
    """Depth of the water-oil contact (m)."""
    pc_owc: float = 0.0
    """Oil-water capillary pressure `Po - Pw` at the water-oil contact (Pa)."""
    goc_depth: float = 0.0
    """Depth of the gas-oil contact (m)."""
    pc_goc: float = 0.0
    """Gas-oil capillary pressure `Pg - Po` at the gas-oil contact (Pa)."""
    rs_method: RatioInitMethod = attrs.field(
        default=RatioInitMethod.SATURATED_AT_CONTACT, converter=RatioInitMethod
    )
    rv_method: RatioInitMethod = attrs.field(
        default=RatioInitMethod.SATURATED_AT_CONTACT, converter=RatioInitMethod
    )
    pvt_region: int = attrs.field(default=0, validator=attrs.validators.ge(0))
    """0-based PVT region whose fluid system describes this equilibration region."""

    @classmethod
    def from_items(cls, items: typing.Sequence[typing.Any]) -> "EquilRecord":
        """
        Build a record from items in deck order.

        `(datum_depth, datum_pressure, woc_depth, pc_owc, goc_depth, pc_goc,
        rs_method, rv_method, pvt_region)`. Missing trailing items default to 0
        and items past the ninth are ignored. The ratio method flags follow
        `RatioInitMethod.from_deck`.

        :raises ValidationError: If fewer than six items are given.
        """
        if len(items) < 6:
            raise ValidationError(
                f"An equilibration record needs at least 6 items, got {len(items)}."
            )
        values = list(items[:9]) + [0] * max(0, 9 - len(items))
        return cls(
            datum_depth=float(values[0]),
            datum_pressure=float(values[1]),
            woc_depth=float(values[2]),
            pc_owc=float(values[3]),
            goc_depth=float(values[4]),
            pc_goc=float(values[5]),
            rs_method=RatioInitMethod.from_deck(values[6]),
            rv_method=RatioInitMethod.from_deck(values[7]),
            pvt_region=int(values[8]),
        )
