"""
Equilibrium initial state assembly.

For every equilibration region the assembler integrates hydrostatic phase
pressures over the region's cells, inverts the capillary pressure curves to
obtain saturations, re-anchors the pressures of immobile or single-phase
cells and finally evaluates the dissolved and vaporised ratios.
"""

import collections.abc
import logging
import typing

import numpy as np
import numpy.typing as npt

from equil.config import Config
from equil.density import BlackOilFluid, DensityCalculator
from equil.equilibration import EquilibrationRegion
from equil.errors import ValidationError
from equil.inversion import is_constant_pc, sat_from_depth, sat_from_pc, sat_from_sum_of_pcs
from equil.miscibility import build_mixing_policies
from equil.pressures import phase_pressures
from equil.records import EquilRecord
from equil.regions import RegionMapping
from equil.states import InitialState
from equil.tables import DepthTable
from equil.types import CapillaryPressureProvider, FluidPhase, Grid


logger = logging.getLogger(__name__)

__all__ = ["InitialStateComputer", "compute_initial_state", "phase_pressures_for_cells"]

W, O, G = FluidPhase.WATER, FluidPhase.OIL, FluidPhase.GAS

DepthTables = typing.Union[
    typing.Sequence[typing.Optional[DepthTable]],
    typing.Mapping[int, DepthTable],
]


def _lookup(
    tables: typing.Optional[DepthTables], region: int
) -> typing.Optional[DepthTable]:
    if tables is None:
        return None
    if isinstance(tables, collections.abc.Mapping):
        return tables.get(region)
    return tables[region] if region < len(tables) else None


def phase_pressures_for_cells(
    grid: Grid,
    region: EquilibrationRegion,
    cells: npt.ArrayLike,
    gravity: float,
    config: typing.Optional[Config] = None,
) -> np.ndarray:
    """
    Hydrostatic phase pressures of a subset of grid cells.

    :param grid: Grid provider.
    :param region: Equilibration region the cells belong to.
    :param cells: Cell indices.
    :param gravity: Gravitational acceleration (m/s²).
    :param config: Numerical parameters.
    :return: (3, len(cells)) phase pressures, rows ordered as `FluidPhase`.
    """
    cells = np.asarray(cells, dtype=np.int64)
    return phase_pressures(region, grid.cell_depths[cells], gravity, config)


class InitialStateComputer:
    """
    Computes the equilibrium initial state of a grid.

    The saturation functions are modified in place when SWATINIT values are
    given: the water capillary curve of every cell is rescaled so that it
    honours the requested water saturation.
    """

    def __init__(
        self,
        grid: Grid,
        fluids: typing.Union[BlackOilFluid, typing.Sequence[BlackOilFluid]],
        saturation_functions: CapillaryPressureProvider,
        records: typing.Sequence[EquilRecord],
        gravity: float,
        eqlnum: typing.Optional[typing.Union[npt.ArrayLike, RegionMapping]] = None,
        rsvd_tables: typing.Optional[DepthTables] = None,
        rvvd_tables: typing.Optional[DepthTables] = None,
        swatinit: typing.Optional[npt.ArrayLike] = None,
        config: typing.Optional[Config] = None,
    ) -> None:
        """
        :param grid: Grid provider.
        :param fluids: Fluid system per PVT region, or a single fluid system.
        :param saturation_functions: Per-cell capillary pressure functions.
        :param records: Equilibration record per equilibration region.
        :param gravity: Gravitational acceleration (m/s²).
        :param eqlnum: Equilibration region per cell, or a `RegionMapping`.
            Defaults to every cell in region 0.
        :param rsvd_tables: Rs-vs-depth table per equilibration region.
        :param rvvd_tables: Rv-vs-depth table per equilibration region.
        :param swatinit: Initial water saturation per cell to be honoured. Cells
            with a non-finite entry take their saturation from the unscaled curve.
        :param config: Numerical parameters.
        """
        self.grid = grid
        self.fluids: typing.Tuple[BlackOilFluid, ...] = (
            (fluids,) if isinstance(fluids, BlackOilFluid) else tuple(fluids)
        )
        self.saturation_functions = saturation_functions
        self.records = tuple(records)
        self.gravity = float(gravity)
        self.rsvd_tables = rsvd_tables
        self.rvvd_tables = rvvd_tables
        self.config = config or Config()

        n = grid.number_of_cells
        if isinstance(eqlnum, RegionMapping):
            self.regions = eqlnum
        elif eqlnum is None:
            self.regions = RegionMapping.single(n)
        else:
            self.regions = RegionMapping(eqlnum)
        if self.regions.number_of_cells != n:
            raise ValidationError(
                f"Region mapping covers {self.regions.number_of_cells} cells, grid has {n}."
            )

        if swatinit is None:
            self.swatinit = None
        else:
            self.swatinit = np.asarray(swatinit, dtype=np.float64)
            if self.swatinit.shape != (n,):
                raise ValidationError(
                    f"SWATINIT must have one value per cell ({n}), got shape {self.swatinit.shape}."
                )

        if not self.fluids:
            raise ValidationError("At least one fluid system is required.")
        for region in self.regions.active_regions():
            if region >= len(self.records):
                raise ValidationError(
                    f"No equilibration record for region {region} ({len(self.records)} given)."
                )
            pvt_region = self.records[region].pvt_region
            if pvt_region >= len(self.fluids):
                raise ValidationError(
                    f"Equilibration region {region} refers to PVT region {pvt_region}, "
                    f"but only {len(self.fluids)} fluid system(s) are given."
                )
            if not self.fluids[pvt_region].phase_usage.oil:
                raise ValidationError(
                    "Equilibration requires an active oil phase "
                    f"(PVT region {pvt_region})."
                )
        self._densities: typing.Dict[int, DensityCalculator] = {}

    def density(self, pvt_region: int) -> DensityCalculator:
        """Density calculator of a PVT region, shared by the equilibration regions using it."""
        if pvt_region not in self._densities:
            self._densities[pvt_region] = DensityCalculator(self.fluids[pvt_region])
        return self._densities[pvt_region]

    def region_bundle(self, region: int) -> EquilibrationRegion:
        """Equilibration region bundle of equilibration region `region`."""
        record = self.records[region]
        density = self.density(record.pvt_region)
        rs, rv = build_mixing_policies(
            record,
            density,
            rsvd=_lookup(self.rsvd_tables, region),
            rvvd=_lookup(self.rvvd_tables, region),
        )
        return EquilibrationRegion(record=record, density=density, rs=rs, rv=rv, index=region)

    def compute(self) -> InitialState:
        """
        Compute the initial state of all equilibration regions.

        :return: The initial state.
        :raises InconsistentStateError: If the saturations of a cell fall outside
            [0, 1] or do not sum to one.
        :raises NonConvergedError: If a hydrostatic sweep fails to converge.
        """
        with self.config.constants():
            return self._compute()

    def _compute(self) -> InitialState:
        n = self.grid.number_of_cells
        pressures = np.zeros((3, n))
        saturations = np.zeros((3, n))
        rs = np.zeros(n)
        rv = np.zeros(n)
        usage = self.fluids[0].phase_usage

        for region, cells in self.regions:
            bundle = self.region_bundle(region)
            usage = bundle.phase_usage
            logger.info(
                f"Equilibrating region {region}: {len(cells)} cell(s), datum "
                f"{bundle.datum} m at {bundle.pressure} Pa, WOC {bundle.zwoc} m, GOC {bundle.zgoc} m"
            )
            region_pressures = phase_pressures_for_cells(
                self.grid, bundle, cells, self.gravity, self.config
            )
            region_saturations = self.phase_saturations(bundle, cells, region_pressures)
            pressures[:, cells] = region_pressures
            saturations[:, cells] = region_saturations

            if usage.oil and usage.gas:
                depths = self.grid.cell_depths[cells]
                for index, cell in enumerate(cells):
                    rs[cell] = bundle.rs(
                        depths[index],
                        region_pressures[O, index],
                        region_saturations[G, index],
                    )
                    rv[cell] = bundle.rv(
                        depths[index],
                        region_pressures[G, index],
                        region_saturations[O, index],
                    )

        state = InitialState(
            pressures=pressures,
            saturations=saturations,
            rs=rs,
            rv=rv,
            phase_usage=usage,
        )
        state.validate(self.config.saturation_sum_tolerance)
        return state

    def phase_saturations(
        self,
        region: EquilibrationRegion,
        cells: np.ndarray,
        pressures: np.ndarray,
    ) -> np.ndarray:
        """
        Saturations of the region's cells from their phase pressures.

        `pressures` is adjusted in place for cells at a saturation end point:
        fully water or gas filled cells take their oil pressure from that
        phase, and immobile water or gas takes its pressure from the oil.

        :param region: Equilibration region.
        :param cells: Cell indices.
        :param pressures: (3, len(cells)) phase pressures of the cells.
        :return: (3, len(cells)) saturations.
        """
        props = self.saturation_functions
        config = self.config
        usage = region.phase_usage
        depths = self.grid.cell_depths[cells]
        threshold = config.threshold_saturation
        smin, smax = props.saturation_range(cells)
        saturations = np.zeros((3, len(cells)))

        for index, cell in enumerate(cells):
            cell = int(cell)
            depth = depths[index]
            pw, po, pg = pressures[W, index], pressures[O, index], pressures[G, index]
            swl, swu = smin[index, W], smax[index, W]
            sgl, sgu = smin[index, G], smax[index, G]

            target_sw = self.swatinit[cell] if self.swatinit is not None else np.nan
            honour_swatinit = bool(np.isfinite(target_sw))

            sw = 0.0
            if usage.water:
                if is_constant_pc(props, W, cell):
                    sw = sat_from_depth(props, W, cell, depth, region.zwoc, increasing=False)
                elif honour_swatinit:
                    sw = props.apply_swatinit(cell, po - pw, target_sw)
                else:
                    sw = sat_from_pc(props, W, cell, po - pw, increasing=False, config=config)

            sg = 0.0
            if usage.gas:
                if is_constant_pc(props, G, cell):
                    sg = sat_from_depth(props, G, cell, depth, region.zgoc, increasing=True)
                else:
                    sg = sat_from_pc(props, G, cell, pg - po, increasing=True, config=config)

            if usage.water and usage.gas and sw + sg > 1.0:
                # Overlapping transition zones, oil is absent
                pcgw = pg - pw
                if honour_swatinit:
                    props.apply_swatinit(cell, pcgw, sw)
                sw = sat_from_sum_of_pcs(props, cell, pcgw, config=config)
                sg = 1.0 - sw

            so = max(0.0, 1.0 - sw - sg)
            saturations[W, index] = sw
            saturations[O, index] = so
            saturations[G, index] = sg

            if usage.water and sw > swu - threshold:
                pressures[O, index] = pw + self._capillary_pressure(W, cell, swu)
            elif usage.gas and sg > sgu - threshold:
                pressures[O, index] = pg - self._capillary_pressure(G, cell, sgu)
            if usage.gas and sg < sgl + threshold:
                pressures[G, index] = pressures[O, index] + self._capillary_pressure(G, cell, sgl)
            if usage.water and sw < swl + threshold:
                pressures[W, index] = pressures[O, index] - self._capillary_pressure(W, cell, swl)

        return saturations

    def _capillary_pressure(self, phase: FluidPhase, cell: int, saturation: float) -> float:
        row = np.zeros((1, 3))
        row[0, phase] = saturation
        return float(self.saturation_functions.capillary_pressures(row, [cell])[0, phase])


def compute_initial_state(
    grid: Grid,
    fluids: typing.Union[BlackOilFluid, typing.Sequence[BlackOilFluid]],
    saturation_functions: CapillaryPressureProvider,
    records: typing.Sequence[EquilRecord],
    gravity: float,
    eqlnum: typing.Optional[typing.Union[npt.ArrayLike, RegionMapping]] = None,
    rsvd_tables: typing.Optional[DepthTables] = None,
    rvvd_tables: typing.Optional[DepthTables] = None,
    swatinit: typing.Optional[npt.ArrayLike] = None,
    config: typing.Optional[Config] = None,
) -> InitialState:
    """
    Compute the equilibrium initial state of a grid.

    See `InitialStateComputer` for the meaning of the arguments. When
    `swatinit` is given, `saturation_functions` is rescaled in place.

    Example:
    ```python
    grid = build_cartesian_grid(1, 1, 10, dz=1.0)
    fluid = BlackOilFluid(
        SurfaceDensities(water=1000.0, oil=700.0),
        water_pvt=IncompressiblePVT(phase=FluidPhase.WATER),
        oil_pvt=IncompressiblePVT(phase=FluidPhase.OIL),
    )
    props = SaturationFunctions(grid.number_of_cells, water_tables=[water_table])
    state = compute_initial_state(
        grid, fluid, props, [EquilRecord(0.0, 1e5, 5.0)], gravity=c.STANDARD_GRAVITY
    )
    ```
    """
    return InitialStateComputer(
        grid,
        fluids,
        saturation_functions,
        records,
        gravity,
        eqlnum=eqlnum,
        rsvd_tables=rsvd_tables,
        rvvd_tables=rvvd_tables,
        swatinit=swatinit,
        config=config,
    ).compute()
