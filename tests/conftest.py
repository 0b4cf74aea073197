import numpy as np
import pytest

from equil.capillary_pressures import CapillaryPressureTable, SaturationFunctions
from equil.density import BlackOilFluid, DensityCalculator, SurfaceDensities
from equil.pvt import (
    IncompressiblePVT,
    LiveOilPVT,
    LiveOilPVTTable,
    LiveOilRecord,
)
from equil.types import FluidPhase


@pytest.fixture
def water_oil_fluid() -> BlackOilFluid:
    """Incompressible water (1000 kg/m³) and oil (700 kg/m³)."""
    return BlackOilFluid(
        SurfaceDensities(water=1000.0, oil=700.0, gas=1.0),
        water_pvt=IncompressiblePVT(phase=FluidPhase.WATER),
        oil_pvt=IncompressiblePVT(phase=FluidPhase.OIL),
    )


@pytest.fixture
def three_phase_fluid() -> BlackOilFluid:
    """Incompressible water (1000), oil (700) and gas (100 kg/m³)."""
    return BlackOilFluid(
        SurfaceDensities(water=1000.0, oil=700.0, gas=100.0),
        water_pvt=IncompressiblePVT(phase=FluidPhase.WATER),
        oil_pvt=IncompressiblePVT(phase=FluidPhase.OIL),
        gas_pvt=IncompressiblePVT(phase=FluidPhase.GAS),
    )


@pytest.fixture
def live_oil_table() -> LiveOilPVTTable:
    """Three Rs records; only the last one carries an undersaturated branch."""
    return LiveOilPVTTable(
        records=[
            LiveOilRecord(rs=0.0, pressure=[1.0e6], formation_volume_factor=[1.05], viscosity=[2.0e-3]),
            LiveOilRecord(rs=50.0, pressure=[5.0e6], formation_volume_factor=[1.2], viscosity=[1.5e-3]),
            LiveOilRecord(
                rs=100.0,
                pressure=[1.0e7, 2.0e7],
                formation_volume_factor=[1.3, 1.28],
                viscosity=[1.0e-3, 1.1e-3],
            ),
        ]
    )


@pytest.fixture
def live_oil_pvt(live_oil_table: LiveOilPVTTable) -> LiveOilPVT:
    return LiveOilPVT(live_oil_table)


@pytest.fixture
def live_oil_density(live_oil_pvt: LiveOilPVT) -> DensityCalculator:
    """Live oil with incompressible dry gas."""
    fluid = BlackOilFluid(
        SurfaceDensities(water=1000.0, oil=700.0, gas=1.0),
        oil_pvt=live_oil_pvt,
        gas_pvt=IncompressiblePVT(phase=FluidPhase.GAS),
    )
    return DensityCalculator(fluid)


@pytest.fixture
def linear_water_table() -> CapillaryPressureTable:
    """Pcow falling linearly from 0.4 bar at Sw = 0.2 to 0.1 bar at Sw = 1."""
    return CapillaryPressureTable(
        FluidPhase.WATER, saturation=[0.2, 1.0], capillary_pressure=[0.4e5, 0.1e5]
    )


@pytest.fixture
def linear_gas_table() -> CapillaryPressureTable:
    """Pcgo rising linearly from 0.2 bar at Sg = 0 to 0.5 bar at Sg = 0.8."""
    return CapillaryPressureTable(
        FluidPhase.GAS, saturation=[0.0, 0.8], capillary_pressure=[0.2e5, 0.5e5]
    )


@pytest.fixture
def single_cell_props(
    linear_water_table: CapillaryPressureTable,
    linear_gas_table: CapillaryPressureTable,
) -> SaturationFunctions:
    return SaturationFunctions(
        1, water_tables=[linear_water_table], gas_tables=[linear_gas_table]
    )


@pytest.fixture
def zero_table():
    """Factory of flat, zero capillary pressure curves."""

    def make(phase: FluidPhase, low: float, high: float) -> CapillaryPressureTable:
        return CapillaryPressureTable(
            phase, saturation=[low, high], capillary_pressure=np.zeros(2)
        )

    return make
