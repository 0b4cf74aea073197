import enum
import typing

import attrs
import numpy as np
import numpy.typing as npt
from typing_extensions import TypeAlias

from equil.errors import ValidationError


__all__ = [
    "FluidPhase",
    "PHASES",
    "PhaseUsage",
    "FloatOrArray",
    "OneDimensionalGrid",
    "ThreeDimensions",
    "Grid",
    "CapillaryPressureProvider",
    "MixingPolicy",
]


ThreeDimensions: TypeAlias = typing.Tuple[int, int, int]
"""Cartesian (nx, ny, nz) dimensions"""

FloatOrArray = typing.Union[float, npt.NDArray[np.floating]]
OneDimensionalGrid = npt.NDArray[np.floating]
"""Cell-indexed vector of floats"""

DensityFunction = typing.Callable[[float, float], float]
"""Right-hand side of a hydrostatic ODE, `f(depth, pressure) -> dp/dz`."""


class FluidPhase(enum.IntEnum):
    """
    Fluid phases of the black-oil model.

    The integer values are the row indices used by every per-phase array in
    this package (pressures, saturations, capillary pressures).
    """

    WATER = 0
    OIL = 1
    GAS = 2


PHASES: typing.Tuple[FluidPhase, ...] = tuple(FluidPhase)


@attrs.frozen(slots=True)
class PhaseUsage:
    """Which of the three black-oil phases are present."""

    water: bool = True
    oil: bool = True
    gas: bool = True

    def __attrs_post_init__(self) -> None:
        if not (self.water or self.oil or self.gas):
            raise ValidationError("At least one fluid phase must be active.")

    def __contains__(self, phase: FluidPhase) -> bool:
        return self.is_active(phase)

    def is_active(self, phase: FluidPhase) -> bool:
        return (self.water, self.oil, self.gas)[FluidPhase(phase)]

    @property
    def phases(self) -> typing.Tuple[FluidPhase, ...]:
        """Active phases in canonical (water, oil, gas) order."""
        return tuple(phase for phase in PHASES if self.is_active(phase))

    @property
    def num_phases(self) -> int:
        return len(self.phases)


@typing.runtime_checkable
class Grid(typing.Protocol):
    """
    Protocol for the grid provider.

    Equilibration only needs the cell count and the depth of each cell centroid.
    """

    @property
    def number_of_cells(self) -> int: ...

    @property
    def dimensions(self) -> int: ...

    @property
    def cartesian_dimensions(self) -> ThreeDimensions: ...

    @property
    def cell_depths(self) -> OneDimensionalGrid: ...


@typing.runtime_checkable
class CapillaryPressureProvider(typing.Protocol):
    """
    Protocol for the per-cell capillary pressure (saturation function) layer.

    Capillary pressures are reported per phase, columns ordered as `FluidPhase`:
    `Pcow = Po - Pw` in the water column, zero for oil and `Pcgo = Pg - Po`
    in the gas column.
    """

    def capillary_pressures(
        self,
        saturations: npt.ArrayLike,
        cells: npt.ArrayLike,
        derivatives: bool = False,
    ) -> typing.Any:
        """
        :param saturations: (n, 3) saturations ordered as `FluidPhase`.
        :param cells: n cell indices.
        :param derivatives: Also return dPc/dS when True.
        :return: (n, 3) capillary pressures, or a tuple (pc, dpc).
        """
        ...

    def saturation_range(
        self, cells: npt.ArrayLike
    ) -> typing.Tuple[npt.NDArray[np.floating], npt.NDArray[np.floating]]:
        """Per-cell (n, 3) minimum and maximum saturations."""
        ...

    def apply_swatinit(self, cell: int, pcow: float, water_saturation: float) -> float:
        """
        Rescale the water capillary curve of `cell` so that it honours `water_saturation`.

        :return: The water saturation actually honoured.
        """
        ...


class MixingPolicy(typing.Protocol):
    """Depth/pressure dependent dissolved-gas or vaporised-oil ratio."""

    def __call__(self, depth: float, pressure: float, saturation: float = 0.0) -> float:
        """
        :param depth: Cell depth (m).
        :param pressure: Pressure of the carrying phase (Pa).
        :param saturation: Saturation of the free phase of the dissolved component.
        :return: Surface volume ratio.
        """
        ...
