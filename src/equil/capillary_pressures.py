"""Capillary pressure tables and the per-cell saturation function layer."""

import copy
import logging
import typing

import attrs
import numpy as np
import numpy.typing as npt

from equil.constants import c
from equil.errors import ValidationError
from equil.tables import validate_abscissae
from equil.types import FloatOrArray, FluidPhase


logger = logging.getLogger(__name__)

__all__ = ["CapillaryPressureTable", "EndpointScaling", "SaturationFunctions"]


@attrs.frozen
class CapillaryPressureTable:
    """
    Capillary pressure lookup table of one phase.

    For water the table holds `Pcow(Sw) = Po - Pw`, for gas `Pcgo(Sg) = Pg - Po`.
    Uses `np.interp` for fast vectorized interpolation; saturations outside the
    table are clamped to the end points. The curve need not be monotone.
    """

    phase: FluidPhase = attrs.field(converter=FluidPhase)
    """Phase whose saturation is the abscissa, water or gas."""
    saturation: npt.NDArray[np.floating] = attrs.field(
        converter=lambda v: np.asarray(v, dtype=np.float64)
    )
    """Strictly increasing saturations of `phase`."""
    capillary_pressure: npt.NDArray[np.floating] = attrs.field(
        converter=lambda v: np.asarray(v, dtype=np.float64)
    )
    """Capillary pressures (Pa) at `saturation`."""

    def __attrs_post_init__(self) -> None:
        if self.phase is FluidPhase.OIL:
            raise ValidationError(
                "Capillary pressure tables are indexed by water or gas saturation."
            )
        validate_abscissae(
            self.saturation, self.capillary_pressure, name=type(self).__name__
        )
        if self.saturation[0] < 0.0 or self.saturation[-1] > 1.0:
            raise ValidationError(
                f"Saturations must lie in [0, 1], got [{self.saturation[0]}, {self.saturation[-1]}]."
            )

    @property
    def minimum_saturation(self) -> float:
        return float(self.saturation[0])

    @property
    def maximum_saturation(self) -> float:
        return float(self.saturation[-1])

    def get_capillary_pressure(self, saturation: FloatOrArray) -> FloatOrArray:
        """
        Capillary pressure at the given saturation(s).

        :param saturation: Saturation of `phase` (scalar or array).
        :return: Capillary pressure value(s), a float for scalar input.
        """
        result = np.interp(saturation, self.saturation, self.capillary_pressure)
        return float(result) if np.ndim(result) == 0 else result

    def get_derivative(self, saturation: FloatOrArray) -> FloatOrArray:
        """
        dPc/dS at the given saturation(s), zero outside the table.

        At a table node the slope of the segment to its right is used.
        """
        s = np.asarray(saturation, dtype=np.float64)
        slopes = np.diff(self.capillary_pressure) / np.diff(self.saturation)
        index = np.clip(
            np.searchsorted(self.saturation, s, side="right") - 1, 0, len(slopes) - 1
        )
        inside = (s >= self.saturation[0]) & (s <= self.saturation[-1])
        result = np.where(inside, slopes[index], 0.0)
        return float(result) if result.ndim == 0 else result

    def is_constant(self) -> bool:
        """Whether the curve is flat to within machine precision."""
        return bool(
            np.all(
                np.abs(self.capillary_pressure - self.capillary_pressure[0])
                < c.CONSTANT_PC_EPSILON
            )
        )

    def __call__(self, saturation: FloatOrArray) -> FloatOrArray:
        return self.get_capillary_pressure(saturation)


def _cell_array(value: typing.Any) -> npt.NDArray[np.floating]:
    return np.atleast_1d(np.asarray(value, dtype=np.float64))


@attrs.frozen
class EndpointScaling:
    """
    Per-cell saturation end points for two-point horizontal scaling.

    A cell saturation `s` in `[lower, upper]` is mapped linearly onto the
    table range before the table is evaluated.
    """

    swl: npt.NDArray[np.floating] = attrs.field(converter=_cell_array)
    """Connate water saturation per cell."""
    swu: npt.NDArray[np.floating] = attrs.field(converter=_cell_array)
    """Maximum water saturation per cell."""
    sgl: npt.NDArray[np.floating] = attrs.field(converter=_cell_array)
    """Minimum gas saturation per cell."""
    sgu: npt.NDArray[np.floating] = attrs.field(converter=_cell_array)
    """Maximum gas saturation per cell."""

    def __attrs_post_init__(self) -> None:
        lengths = {len(self.swl), len(self.swu), len(self.sgl), len(self.sgu)}
        if len(lengths) != 1:
            raise ValidationError("End point arrays must have the same length.")
        for lower, upper, name in ((self.swl, self.swu, "water"), (self.sgl, self.sgu, "gas")):
            if np.any(lower < 0.0) or np.any(upper > 1.0) or np.any(lower > upper):
                raise ValidationError(
                    f"Scaled {name} end points must satisfy 0 <= lower <= upper <= 1."
                )

    def __len__(self) -> int:
        return len(self.swl)

    def end_points(self, phase: FluidPhase) -> typing.Tuple[np.ndarray, np.ndarray]:
        if FluidPhase(phase) is FluidPhase.WATER:
            return self.swl, self.swu
        if FluidPhase(phase) is FluidPhase.GAS:
            return self.sgl, self.sgu
        raise ValidationError("End point scaling is defined for water and gas only.")


class SaturationFunctions:
    """
    Per-cell capillary pressure functions.

    Every cell selects its water and gas tables through its saturation region
    (SATNUM). Tables may be rescaled per cell by two-point end point scaling,
    and the water curve by a multiplicative factor that SWATINIT adjusts.

    Capillary pressure arrays are (n, 3) with columns ordered as `FluidPhase`:
    `[Pcow(Sw), 0, Pcgo(Sg)]`.
    """

    def __init__(
        self,
        number_of_cells: int,
        water_tables: typing.Optional[typing.Sequence[CapillaryPressureTable]] = None,
        gas_tables: typing.Optional[typing.Sequence[CapillaryPressureTable]] = None,
        satnum: typing.Optional[npt.ArrayLike] = None,
        scaling: typing.Optional[EndpointScaling] = None,
        water_scale: typing.Optional[npt.ArrayLike] = None,
    ) -> None:
        """
        :param number_of_cells: Number of grid cells.
        :param water_tables: `Pcow(Sw)` tables, one per saturation region, or None
            when water is absent.
        :param gas_tables: `Pcgo(Sg)` tables, one per saturation region, or None
            when gas is absent.
        :param satnum: 0-based saturation region of each cell. Defaults to region 0.
        :param scaling: Optional per-cell end point scaling.
        :param water_scale: Initial multiplicative factor of the water curve per cell.
        """
        self.number_of_cells = int(number_of_cells)
        self.water_tables = tuple(water_tables) if water_tables is not None else None
        self.gas_tables = tuple(gas_tables) if gas_tables is not None else None
        for tables, phase in (
            (self.water_tables, FluidPhase.WATER),
            (self.gas_tables, FluidPhase.GAS),
        ):
            if tables is not None:
                if not tables:
                    raise ValidationError(f"No {phase.name.lower()} capillary tables given.")
                if any(table.phase is not phase for table in tables):
                    raise ValidationError(
                        f"All {phase.name.lower()} tables must be indexed by {phase.name.lower()} saturation."
                    )

        if satnum is None:
            self.satnum = np.zeros(self.number_of_cells, dtype=np.int64)
        else:
            self.satnum = np.asarray(satnum, dtype=np.int64)
        if self.satnum.shape != (self.number_of_cells,):
            raise ValidationError(
                f"`satnum` must have one entry per cell ({self.number_of_cells}), got shape {self.satnum.shape}."
            )
        counts = [
            len(tables)
            for tables in (self.water_tables, self.gas_tables)
            if tables is not None
        ]
        if counts and self.number_of_cells:
            region_count = min(counts)
            if np.any(self.satnum < 0) or np.any(self.satnum >= region_count):
                raise ValidationError(
                    f"Saturation region ids must lie in [0, {region_count}), "
                    f"got [{self.satnum.min()}, {self.satnum.max()}]."
                )

        if scaling is not None and len(scaling) != self.number_of_cells:
            raise ValidationError(
                f"End point scaling covers {len(scaling)} cells, expected {self.number_of_cells}."
            )
        self.scaling = scaling

        if water_scale is None:
            self._water_scale = np.ones(self.number_of_cells)
        else:
            self._water_scale = np.array(water_scale, dtype=np.float64)
            if self._water_scale.shape != (self.number_of_cells,):
                raise ValidationError("`water_scale` must have one entry per cell.")

    def _table(self, phase: FluidPhase, cell: int) -> typing.Optional[CapillaryPressureTable]:
        tables = self.water_tables if phase is FluidPhase.WATER else self.gas_tables
        if tables is None:
            return None
        return tables[self.satnum[cell]]

    def end_points(self, phase: FluidPhase, cell: int) -> typing.Tuple[float, float]:
        """Minimum and maximum saturation of water or gas in `cell`."""
        phase = FluidPhase(phase)
        table = self._table(phase, cell)
        if table is None:
            return 0.0, 0.0
        if self.scaling is not None:
            lower, upper = self.scaling.end_points(phase)
            return float(lower[cell]), float(upper[cell])
        return table.minimum_saturation, table.maximum_saturation

    def _table_saturation(
        self, table: CapillaryPressureTable, phase: FluidPhase, cell: int, saturation: float
    ) -> typing.Tuple[float, float]:
        """Map a cell saturation onto the table abscissa; returns (s_table, ds_table/ds)."""
        if self.scaling is None:
            return saturation, 1.0
        lower, upper = self.end_points(phase, cell)
        if upper <= lower:
            return table.minimum_saturation, 0.0
        factor = (table.maximum_saturation - table.minimum_saturation) / (upper - lower)
        return table.minimum_saturation + (saturation - lower) * factor, factor

    def capillary_pressure(
        self, phase: FluidPhase, cell: int, saturation: float, derivative: bool = False
    ) -> typing.Union[float, typing.Tuple[float, float]]:
        """
        Capillary pressure of one phase in one cell.

        :param phase: `WATER` for `Pcow(Sw)`, `GAS` for `Pcgo(Sg)`; oil has none.
        :param cell: Cell index.
        :param saturation: Saturation of `phase`.
        :param derivative: Also return dPc/dS.
        """
        phase = FluidPhase(phase)
        table = None if phase is FluidPhase.OIL else self._table(phase, cell)
        if table is None:
            return (0.0, 0.0) if derivative else 0.0

        scale = self._water_scale[cell] if phase is FluidPhase.WATER else 1.0
        s_table, ds = self._table_saturation(table, phase, cell, saturation)
        pc = scale * table.get_capillary_pressure(s_table)
        if not derivative:
            return float(pc)
        return float(pc), float(scale * ds * table.get_derivative(s_table))

    def capillary_pressures(
        self,
        saturations: npt.ArrayLike,
        cells: npt.ArrayLike,
        derivatives: bool = False,
    ) -> typing.Union[np.ndarray, typing.Tuple[np.ndarray, np.ndarray]]:
        """
        Capillary pressures of a set of cells.

        :param saturations: (n, 3) saturations ordered as `FluidPhase`.
        :param cells: n cell indices.
        :param derivatives: Also return dPc/dS.
        :return: (n, 3) capillary pressures, or a tuple (pc, dpc/ds).
        """
        saturations = np.atleast_2d(np.asarray(saturations, dtype=np.float64))
        cells = np.atleast_1d(np.asarray(cells, dtype=np.int64))
        if saturations.shape != (len(cells), 3):
            raise ValidationError(
                f"Expected saturations of shape ({len(cells)}, 3), got {saturations.shape}."
            )
        pc = np.zeros((len(cells), 3))
        dpc = np.zeros((len(cells), 3))
        for row, cell in enumerate(cells):
            for phase in (FluidPhase.WATER, FluidPhase.GAS):
                value, slope = self.capillary_pressure(
                    phase, cell, saturations[row, phase], derivative=True
                )
                pc[row, phase] = value
                dpc[row, phase] = slope
        if derivatives:
            return pc, dpc
        return pc

    def saturation_range(
        self, cells: npt.ArrayLike
    ) -> typing.Tuple[np.ndarray, np.ndarray]:
        """
        Per-cell saturation limits.

        :param cells: Cell indices.
        :return: Tuple of (smin, smax), each (n, 3). The oil range is
            `[0, 1 - swl - sgl]`.
        """
        cells = np.atleast_1d(np.asarray(cells, dtype=np.int64))
        smin = np.zeros((len(cells), 3))
        smax = np.zeros((len(cells), 3))
        for row, cell in enumerate(cells):
            swl, swu = self.end_points(FluidPhase.WATER, cell)
            sgl, sgu = self.end_points(FluidPhase.GAS, cell)
            smin[row] = (swl, 0.0, sgl)
            smax[row] = (swu, max(0.0, 1.0 - swl - sgl), sgu)
        return smin, smax

    def is_constant(self, phase: FluidPhase, cell: int) -> bool:
        phase = FluidPhase(phase)
        table = None if phase is FluidPhase.OIL else self._table(phase, cell)
        return table is None or table.is_constant()

    def apply_swatinit(self, cell: int, pcow: float, water_saturation: float) -> float:
        """
        Rescale the water capillary curve of `cell` to honour an initial water saturation.

        :param cell: Cell index.
        :param pcow: Oil-water capillary pressure `Po - Pw` of the cell.
        :param water_saturation: Requested initial water saturation (SWATINIT).
        :return: The water saturation honoured by the rescaled curve. Cells with
            non-positive `pcow` lie in the water zone and get the maximum water
            saturation; requests below the connate saturation are raised to it.
        """
        swl, swu = self.end_points(FluidPhase.WATER, cell)
        if pcow <= 0.0:
            return swu

        sw = max(float(water_saturation), swl)
        pc = self.capillary_pressure(FluidPhase.WATER, cell, sw)
        if abs(pc) > c.SWATINIT_PC_THRESHOLD:
            self._water_scale[cell] *= pcow / pc
        elif sw < swu:
            logger.warning(
                f"Cell {cell}: capillary pressure {pc:.3e} Pa at SWATINIT {sw:.4f} "
                "is too small to rescale the water curve"
            )
        return sw

    def water_capillary_scale(
        self, cells: typing.Optional[npt.ArrayLike] = None
    ) -> np.ndarray:
        """Copy of the multiplicative water curve factors of `cells` (all cells by default)."""
        if cells is None:
            return self._water_scale.copy()
        return self._water_scale[np.asarray(cells, dtype=np.int64)].copy()

    def copy(self) -> "SaturationFunctions":
        """Copy sharing the tables but owning its water curve factors."""
        clone = copy.copy(self)
        clone._water_scale = self._water_scale.copy()
        return clone

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(cells={self.number_of_cells}, "
            f"water={self.water_tables is not None}, gas={self.gas_tables is not None})"
        )
