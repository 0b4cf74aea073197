import numpy as np
import pytest

from equil.density import BlackOilFluid, DensityCalculator, SurfaceDensities
from equil.errors import ValidationError
from equil.pvt import IncompressiblePVT
from equil.types import FluidPhase


def test_incompressible_densities(three_phase_fluid):
    density = DensityCalculator(three_phase_fluid)
    assert density.water_density(1.0e5) == pytest.approx(1000.0)
    assert density.oil_density(1.0e5) == pytest.approx(700.0)
    assert density.gas_density(1.0e5) == pytest.approx(100.0)
    assert density.density(FluidPhase.GAS, 2.0e5) == pytest.approx(100.0)
    np.testing.assert_allclose(density.water_density(np.array([1.0e5, 2.0e5])), [1000.0, 1000.0])


def test_dissolved_components_add_surface_mass(three_phase_fluid):
    density = DensityCalculator(three_phase_fluid)
    # 700 + 10 * 100 over B = 1
    assert density.oil_density(1.0e5, rs=10.0) == pytest.approx(1700.0)
    # 100 + 0.01 * 700 over B = 1
    assert density.gas_density(1.0e5, rv=0.01) == pytest.approx(107.0)


def test_formation_volume_factor_scales_density():
    fluid = BlackOilFluid(
        SurfaceDensities(water=1000.0, oil=800.0, gas=1.0),
        water_pvt=IncompressiblePVT(fvf=1.25, phase=FluidPhase.WATER),
        oil_pvt=IncompressiblePVT(fvf=1.6, phase=FluidPhase.OIL),
    )
    density = DensityCalculator(fluid)
    assert density.water_density(1.0e5) == pytest.approx(800.0)
    assert density.oil_density(1.0e5) == pytest.approx(500.0)


def test_live_oil_density_uses_rs(live_oil_density):
    at_bubble_point = live_oil_density.oil_density(1.0e7, 100.0)
    assert at_bubble_point == pytest.approx((700.0 + 100.0) / 1.3, rel=1e-9)
    assert live_oil_density.saturated_rs(1.0e7) == pytest.approx(100.0)
    assert live_oil_density.saturated_rv(1.0e7) == 0.0


def test_phase_usage_and_miscibility_flags(water_oil_fluid, live_oil_density):
    usage = water_oil_fluid.phase_usage
    assert usage.water and usage.oil and not usage.gas
    assert usage.phases == (FluidPhase.WATER, FluidPhase.OIL)
    assert not water_oil_fluid.has_dissolved_gas

    live = live_oil_density.fluid
    assert live.has_dissolved_gas
    assert not live.has_vaporized_oil


def test_inactive_phase_is_rejected(water_oil_fluid):
    density = DensityCalculator(water_oil_fluid)
    with pytest.raises(ValidationError):
        density.gas_density(1.0e5)
    with pytest.raises(ValidationError):
        density.density(FluidPhase.GAS, 1.0e5)


def test_fluid_validates_phase_of_evaluators():
    with pytest.raises(ValidationError):
        BlackOilFluid(
            SurfaceDensities(),
            water_pvt=IncompressiblePVT(phase=FluidPhase.OIL),
        )
    with pytest.raises(ValidationError):
        BlackOilFluid(SurfaceDensities())
