import typing

import attrs

from equil.density import DensityCalculator
from equil.records import EquilRecord
from equil.types import MixingPolicy, PhaseUsage


__all__ = ["EquilibrationRegion"]


@attrs.frozen
class EquilibrationRegion:
    """
    Everything needed to equilibrate one region.

    Bundles the region's equilibration record with the density calculator of
    its fluid system and the Rs/Rv mixing policies.
    """

    record: EquilRecord
    density: DensityCalculator
    rs: MixingPolicy
    """Dissolved gas-oil ratio policy."""
    rv: MixingPolicy
    """Vaporised oil-gas ratio policy."""
    phase_usage: PhaseUsage = attrs.field()
    index: typing.Optional[int] = None
    """Equilibration region id, used in diagnostics."""

    @phase_usage.default
    def _phase_usage(self) -> PhaseUsage:
        return self.density.phase_usage

    @property
    def datum(self) -> float:
        return self.record.datum_depth

    @property
    def pressure(self) -> float:
        """Pressure at the datum (Pa)."""
        return self.record.datum_pressure

    @property
    def zwoc(self) -> float:
        return self.record.woc_depth

    @property
    def pcow_woc(self) -> float:
        return self.record.pc_owc

    @property
    def zgoc(self) -> float:
        return self.record.goc_depth

    @property
    def pcgo_goc(self) -> float:
        return self.record.pc_goc

    @property
    def pvt_region(self) -> int:
        return self.record.pvt_region
