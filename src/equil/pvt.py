"""
Black-oil PVT evaluators.

Every evaluator exposes the same capability set so that the density
calculator and the hydrostatic integrator never branch on the fluid
description:

- `formation_volume_factor(p, r)` and its reciprocal
- `formation_volume_factor_derivative(p, r)` giving (B, dB/dp)
- `viscosity(p, r)`
- `saturated_ratio(p)` and `saturated_ratio_derivative(p)`, the saturated
  dissolved gas-oil ratio Rs_sat(p) for oil or vaporised oil-gas ratio
  Rv_sat(p) for gas (zero for dead fluids)

`r` is the Rs of an oil or the Rv of a gas evaluation. Pressures are in Pa,
viscosities in Pa·s, ratios in surface m³/m³.
"""

import abc
import logging
import typing

import attrs
import numpy as np
import numpy.typing as npt

from equil.errors import InvalidTableError, MultipleRegionsExpectedError
from equil.tables import MonotoneUniformTable, validate_abscissae
from equil.types import FloatOrArray, FluidPhase
from equil.utils import clip_scalar, interpolate_linear


logger = logging.getLogger(__name__)

__all__ = [
    "PVTEvaluator",
    "DeadPVTTable",
    "LiveOilRecord",
    "LiveOilPVTTable",
    "LiveGasRecord",
    "LiveGasPVTTable",
    "DeadSplinePVT",
    "LiveOilPVT",
    "LiveGasPVT",
    "ConstantCompressibilityPVT",
    "IncompressiblePVT",
]


def _float_array(value: typing.Any) -> npt.NDArray[np.floating]:
    return np.atleast_1d(np.asarray(value, dtype=np.float64))


def _scalar_or_array(value: np.ndarray) -> FloatOrArray:
    return float(value) if np.ndim(value) == 0 else value


def _check_positive(values: np.ndarray, name: str) -> None:
    if not np.all(values > 0.0):
        raise InvalidTableError(f"{name} must be strictly positive.")


class PVTEvaluator(abc.ABC):
    """Base class of all PVT evaluators."""

    phase: FluidPhase
    """Phase described by this evaluator."""

    is_live: typing.ClassVar[bool] = False
    """Whether the phase carries a dissolved (Rs) or vaporised (Rv) component."""

    @abc.abstractmethod
    def formation_volume_factor_derivative(
        self, pressure: FloatOrArray, ratio: FloatOrArray = 0.0
    ) -> typing.Tuple[FloatOrArray, FloatOrArray]:
        """
        Formation volume factor and its pressure derivative.

        :param pressure: Pressure(s) in Pa.
        :param ratio: Rs (oil) or Rv (gas) of the evaluated state.
        :return: Tuple of (B, dB/dp).
        """
        ...

    @abc.abstractmethod
    def viscosity(
        self, pressure: FloatOrArray, ratio: FloatOrArray = 0.0
    ) -> FloatOrArray:
        """Viscosity (Pa·s) at the given pressure and ratio."""
        ...

    def formation_volume_factor(
        self, pressure: FloatOrArray, ratio: FloatOrArray = 0.0
    ) -> FloatOrArray:
        """Reservoir volume per surface volume of the phase."""
        return self.formation_volume_factor_derivative(pressure, ratio)[0]

    def inverse_formation_volume_factor(
        self, pressure: FloatOrArray, ratio: FloatOrArray = 0.0
    ) -> FloatOrArray:
        return 1.0 / self.formation_volume_factor(pressure, ratio)

    def saturated_ratio(self, pressure: FloatOrArray) -> FloatOrArray:
        """Saturated Rs (oil) or Rv (gas) at `pressure`. Zero for dead fluids."""
        return self.saturated_ratio_derivative(pressure)[0]

    def saturated_ratio_derivative(
        self, pressure: FloatOrArray
    ) -> typing.Tuple[FloatOrArray, FloatOrArray]:
        zeros = _scalar_or_array(np.zeros_like(np.asarray(pressure, dtype=np.float64)))
        return zeros, zeros


@attrs.frozen
class DeadPVTTable:
    """Dead fluid table (PVDO/PVDG): B and viscosity as functions of pressure."""

    pressure: npt.NDArray[np.floating] = attrs.field(converter=_float_array)
    """Strictly increasing pressures (Pa)."""
    formation_volume_factor: npt.NDArray[np.floating] = attrs.field(
        converter=_float_array
    )
    """Formation volume factors at `pressure`."""
    viscosity: npt.NDArray[np.floating] = attrs.field(converter=_float_array)
    """Viscosities (Pa·s) at `pressure`."""

    def __attrs_post_init__(self) -> None:
        validate_abscissae(
            self.pressure, self.formation_volume_factor, name=type(self).__name__
        )
        if len(self.viscosity) != len(self.pressure):
            raise InvalidTableError(
                f"Viscosity column has {len(self.viscosity)} rows, expected {len(self.pressure)}."
            )
        _check_positive(self.formation_volume_factor, "Formation volume factor")
        _check_positive(self.viscosity, "Viscosity")


class DeadSplinePVT(PVTEvaluator):
    """
    Dead oil or dry gas described by monotone spline tables of 1/B and viscosity.

    B(p) = 1 / (1/B)(p) and dB/dp = -B² d(1/B)/dp.
    """

    def __init__(
        self,
        table: DeadPVTTable,
        phase: FluidPhase = FluidPhase.OIL,
        samples: typing.Optional[int] = None,
    ) -> None:
        """
        :param table: Tabulated dead fluid data.
        :param phase: Phase described by the table.
        :param samples: Number of uniform samples of the spline tables.
        """
        self.phase = FluidPhase(phase)
        self._inverse_fvf = MonotoneUniformTable(
            table.pressure, 1.0 / table.formation_volume_factor, samples
        )
        self._viscosity = MonotoneUniformTable(table.pressure, table.viscosity, samples)

    @classmethod
    def from_region_tables(
        cls,
        tables: typing.Sequence[DeadPVTTable],
        phase: FluidPhase = FluidPhase.OIL,
        samples: typing.Optional[int] = None,
    ) -> "DeadSplinePVT":
        """
        Build from a list of per-PVT-region tables holding exactly one region.

        :raises MultipleRegionsExpectedError: If `tables` does not hold exactly one table.
        """
        if len(tables) != 1:
            raise MultipleRegionsExpectedError(
                f"Expected exactly one PVT region for {FluidPhase(phase).name.lower()}, got {len(tables)}."
            )
        return cls(tables[0], phase=phase, samples=samples)

    def inverse_formation_volume_factor(
        self, pressure: FloatOrArray, ratio: FloatOrArray = 0.0
    ) -> FloatOrArray:
        return self._inverse_fvf(pressure)

    def formation_volume_factor_derivative(
        self, pressure: FloatOrArray, ratio: FloatOrArray = 0.0
    ) -> typing.Tuple[FloatOrArray, FloatOrArray]:
        fvf = 1.0 / self._inverse_fvf(pressure)
        return fvf, -fvf * fvf * self._inverse_fvf.derivative(pressure)

    def viscosity(
        self, pressure: FloatOrArray, ratio: FloatOrArray = 0.0
    ) -> FloatOrArray:
        return self._viscosity(pressure)


@attrs.frozen
class ConstantCompressibilityPVT(PVTEvaluator):
    """
    Slightly compressible fluid (PVTW/PVCDO).

    With x = c (p - p_ref) and y = -c_v (p - p_ref):
    B = B_ref / (1 + x + x²/2) and mu = mu_ref / (1 + y + y²/2).
    """

    reference_pressure: float
    """Reference pressure (Pa)."""
    reference_formation_volume_factor: float = attrs.field(
        validator=attrs.validators.gt(0)
    )
    """Formation volume factor at the reference pressure."""
    compressibility: float
    """Fluid compressibility (1/Pa)."""
    reference_viscosity: float = attrs.field(validator=attrs.validators.gt(0))
    """Viscosity at the reference pressure (Pa·s)."""
    viscosibility: float = 0.0
    """Pressure dependence of viscosity (1/Pa)."""
    phase: FluidPhase = attrs.field(default=FluidPhase.WATER, converter=FluidPhase)

    def formation_volume_factor_derivative(
        self, pressure: FloatOrArray, ratio: FloatOrArray = 0.0
    ) -> typing.Tuple[FloatOrArray, FloatOrArray]:
        x = self.compressibility * (np.asarray(pressure, dtype=np.float64) - self.reference_pressure)
        d = 1.0 + x + 0.5 * x * x
        fvf = self.reference_formation_volume_factor / d
        dfvf = -self.reference_formation_volume_factor * self.compressibility * (1.0 + x) / (d * d)
        return _scalar_or_array(fvf), _scalar_or_array(dfvf)

    def viscosity(
        self, pressure: FloatOrArray, ratio: FloatOrArray = 0.0
    ) -> FloatOrArray:
        y = -self.viscosibility * (np.asarray(pressure, dtype=np.float64) - self.reference_pressure)
        return _scalar_or_array(self.reference_viscosity / (1.0 + y + 0.5 * y * y))


@attrs.frozen
class IncompressiblePVT(PVTEvaluator):
    """Fluid with constant formation volume factor and viscosity."""

    viscosity_value: float = attrs.field(default=1.0e-3, validator=attrs.validators.gt(0))
    """Constant viscosity (Pa·s)."""
    fvf: float = attrs.field(default=1.0, validator=attrs.validators.gt(0))
    """Constant formation volume factor."""
    phase: FluidPhase = attrs.field(default=FluidPhase.WATER, converter=FluidPhase)

    def formation_volume_factor_derivative(
        self, pressure: FloatOrArray, ratio: FloatOrArray = 0.0
    ) -> typing.Tuple[FloatOrArray, FloatOrArray]:
        shape = np.shape(pressure)
        return (
            _scalar_or_array(np.full(shape, self.fvf)),
            _scalar_or_array(np.zeros(shape)),
        )

    def viscosity(
        self, pressure: FloatOrArray, ratio: FloatOrArray = 0.0
    ) -> FloatOrArray:
        return _scalar_or_array(np.full(np.shape(pressure), self.viscosity_value))


@attrs.frozen
class LiveOilRecord:
    """
    One PVTO record: oil properties at a fixed dissolved gas-oil ratio.

    The first row is the saturated state (bubble point pressure); further
    rows, if any, describe the undersaturated branch.
    """

    rs: float
    """Dissolved gas-oil ratio of the record."""
    pressure: npt.NDArray[np.floating] = attrs.field(converter=_float_array)
    formation_volume_factor: npt.NDArray[np.floating] = attrs.field(
        converter=_float_array
    )
    viscosity: npt.NDArray[np.floating] = attrs.field(converter=_float_array)

    def __attrs_post_init__(self) -> None:
        _validate_record(self.pressure, self.formation_volume_factor, self.viscosity, "LiveOilRecord")


@attrs.frozen
class LiveGasRecord:
    """
    One PVTG record: gas properties at a fixed pressure.

    The first row is the saturated state (largest vaporised oil-gas ratio);
    further rows describe the undersaturated branch at smaller ratios.
    """

    pressure: float
    """Gas pressure of the record (Pa)."""
    rv: npt.NDArray[np.floating] = attrs.field(converter=_float_array)
    formation_volume_factor: npt.NDArray[np.floating] = attrs.field(
        converter=_float_array
    )
    viscosity: npt.NDArray[np.floating] = attrs.field(converter=_float_array)

    def __attrs_post_init__(self) -> None:
        rv = self.rv[np.argsort(self.rv)] if len(self.rv) > 1 else self.rv
        _validate_record(rv, self.formation_volume_factor, self.viscosity, "LiveGasRecord")
        if np.any(self.rv < 0.0):
            raise InvalidTableError("Vaporised oil-gas ratios must be non-negative.")


def _validate_record(
    abscissae: np.ndarray, fvf: np.ndarray, viscosity: np.ndarray, name: str
) -> None:
    if not (len(abscissae) == len(fvf) == len(viscosity)) or len(abscissae) == 0:
        raise InvalidTableError(f"{name}: columns must be non-empty and of equal length.")
    if len(abscissae) > 1 and not np.all(np.diff(abscissae) > 0.0):
        raise InvalidTableError(f"{name}: abscissae must be strictly monotone.")
    _check_positive(fvf, f"{name} formation volume factor")
    _check_positive(viscosity, f"{name} viscosity")


@attrs.frozen
class LiveOilPVTTable:
    """Live oil table (PVTO): records ordered by increasing Rs."""

    records: typing.Tuple[LiveOilRecord, ...] = attrs.field(converter=tuple)

    def __attrs_post_init__(self) -> None:
        if len(self.records) < 2:
            raise InvalidTableError("Live oil table needs at least two Rs records.")
        rs = np.array([record.rs for record in self.records])
        saturation_pressure = np.array([record.pressure[0] for record in self.records])
        if not np.all(np.diff(rs) > 0.0):
            raise InvalidTableError("Live oil records must have strictly increasing Rs.")
        if not np.all(np.diff(saturation_pressure) > 0.0):
            raise InvalidTableError(
                "Live oil bubble point pressures must increase with Rs."
            )


@attrs.frozen
class LiveGasPVTTable:
    """Live gas table (PVTG): records ordered by increasing pressure."""

    records: typing.Tuple[LiveGasRecord, ...] = attrs.field(converter=tuple)

    def __attrs_post_init__(self) -> None:
        if len(self.records) < 2:
            raise InvalidTableError("Live gas table needs at least two pressure records.")
        pressure = np.array([record.pressure for record in self.records])
        if not np.all(np.diff(pressure) > 0.0):
            raise InvalidTableError("Live gas records must have strictly increasing pressure.")


@attrs.frozen
class _Branch:
    """Undersaturated branch of a live fluid record, ordered by its abscissa."""

    key: float
    abscissae: np.ndarray
    inverse_fvf: np.ndarray
    viscosity: np.ndarray

    def evaluate(self, x: float) -> typing.Tuple[float, float, float, float]:
        inverse_fvf, dinverse_fvf = interpolate_linear(x, self.abscissae, self.inverse_fvf)
        viscosity, dviscosity = interpolate_linear(x, self.abscissae, self.viscosity)
        return inverse_fvf, dinverse_fvf, viscosity, dviscosity


def _extend_branches(
    branches: typing.List[typing.Optional[_Branch]],
    saturated: typing.List[typing.Tuple[float, float, float, float]],
    shift_abscissae: bool,
) -> typing.List[_Branch]:
    """
    Give every record an undersaturated branch.

    Records lacking one borrow the shape of the nearest record with a branch,
    searching towards larger keys first. The donor is anchored at its
    saturated row: the first row of an oil branch (bubble point pressure),
    the last row of a gas branch (largest Rv). Shapes are transferred by
    offset (`shift_abscissae=True`, oil pressures) or by ratio (gas Rv), with
    1/B and viscosity scaled by the ratio of saturated values.
    """
    donors = [(i, branch) for i, branch in enumerate(branches) if branch is not None]
    anchor = 0 if shift_abscissae else -1
    extended = []
    for i, branch in enumerate(branches):
        key, sat_x, sat_inverse_fvf, sat_viscosity = saturated[i]
        if branch is not None:
            extended.append(branch)
            continue
        if not donors:
            extended.append(
                _Branch(
                    key=key,
                    abscissae=np.array([sat_x]),
                    inverse_fvf=np.array([sat_inverse_fvf]),
                    viscosity=np.array([sat_viscosity]),
                )
            )
            continue
        donor = next((d for j, d in donors if j > i), donors[-1][1])
        donor_x = donor.abscissae[anchor]
        if shift_abscissae or donor_x <= 0.0:
            abscissae = sat_x + (donor.abscissae - donor_x)
        else:
            abscissae = donor.abscissae * (sat_x / donor_x)
        extended.append(
            _Branch(
                key=key,
                abscissae=abscissae,
                inverse_fvf=donor.inverse_fvf * (sat_inverse_fvf / donor.inverse_fvf[anchor]),
                viscosity=donor.viscosity * (sat_viscosity / donor.viscosity[anchor]),
            )
        )
    return extended


class _LivePVT(PVTEvaluator):
    """Shared machinery of the live oil and live gas evaluators."""

    is_live = True

    _saturated_ratio: MonotoneUniformTable
    _saturated_inverse_fvf: MonotoneUniformTable
    _saturated_viscosity: MonotoneUniformTable

    def saturated_ratio_derivative(
        self, pressure: FloatOrArray
    ) -> typing.Tuple[FloatOrArray, FloatOrArray]:
        return (
            self._saturated_ratio(pressure),
            self._saturated_ratio.derivative(pressure),
        )

    def _saturated(self, pressure: float) -> typing.Tuple[float, float, float]:
        return (
            self._saturated_inverse_fvf.value(pressure),
            self._saturated_inverse_fvf.derivative(pressure),
            self._saturated_viscosity.value(pressure),
        )

    @abc.abstractmethod
    def _undersaturated(self, pressure: float, ratio: float) -> typing.Tuple[float, float, float]:
        """(1/B, d(1/B)/dp, viscosity) below the saturated ratio."""
        ...

    def _evaluate(self, pressure: float, ratio: float) -> typing.Tuple[float, float, float]:
        if ratio >= self._saturated_ratio.value(pressure):
            return self._saturated(pressure)
        return self._undersaturated(pressure, ratio)

    def _evaluate_broadcast(
        self, pressure: FloatOrArray, ratio: FloatOrArray
    ) -> typing.Tuple[np.ndarray, np.ndarray, np.ndarray]:
        p, r = np.broadcast_arrays(
            np.asarray(pressure, dtype=np.float64), np.asarray(ratio, dtype=np.float64)
        )
        result = np.empty((3,) + p.shape)
        for index in np.ndindex(p.shape):
            result[(slice(None),) + index] = self._evaluate(float(p[index]), float(r[index]))
        return result[0], result[1], result[2]

    def formation_volume_factor_derivative(
        self, pressure: FloatOrArray, ratio: FloatOrArray = 0.0
    ) -> typing.Tuple[FloatOrArray, FloatOrArray]:
        inverse_fvf, dinverse_fvf, _ = self._evaluate_broadcast(pressure, ratio)
        fvf = 1.0 / inverse_fvf
        return _scalar_or_array(fvf), _scalar_or_array(-fvf * fvf * dinverse_fvf)

    def inverse_formation_volume_factor(
        self, pressure: FloatOrArray, ratio: FloatOrArray = 0.0
    ) -> FloatOrArray:
        return _scalar_or_array(self._evaluate_broadcast(pressure, ratio)[0])

    def viscosity(
        self, pressure: FloatOrArray, ratio: FloatOrArray = 0.0
    ) -> FloatOrArray:
        return _scalar_or_array(self._evaluate_broadcast(pressure, ratio)[2])


class LiveOilPVT(_LivePVT):
    """
    Live oil with dissolved gas (PVTO).

    At (p, Rs) with Rs >= Rs_sat(p) the oil is saturated and the saturated
    curves are read at p. Otherwise the undersaturated branches of the two
    records bracketing Rs are evaluated at p and interpolated linearly in Rs.
    """

    def __init__(
        self, table: LiveOilPVTTable, samples: typing.Optional[int] = None
    ) -> None:
        self.phase = FluidPhase.OIL
        records = table.records
        saturation_pressure = np.array([record.pressure[0] for record in records])
        rs = np.array([record.rs for record in records])
        saturated_inverse_fvf = np.array(
            [1.0 / record.formation_volume_factor[0] for record in records]
        )
        saturated_viscosity = np.array([record.viscosity[0] for record in records])

        self._saturated_ratio = MonotoneUniformTable(saturation_pressure, rs, samples)
        self._saturated_inverse_fvf = MonotoneUniformTable(
            saturation_pressure, saturated_inverse_fvf, samples
        )
        self._saturated_viscosity = MonotoneUniformTable(
            saturation_pressure, saturated_viscosity, samples
        )

        branches: typing.List[typing.Optional[_Branch]] = []
        for record in records:
            if len(record.pressure) > 1:
                branches.append(
                    _Branch(
                        key=record.rs,
                        abscissae=record.pressure,
                        inverse_fvf=1.0 / record.formation_volume_factor,
                        viscosity=record.viscosity,
                    )
                )
            else:
                branches.append(None)
        if all(branch is None for branch in branches):
            logger.warning(
                "Live oil table has no undersaturated data; undersaturated oil "
                "will be evaluated on the saturated curve."
            )
        saturated = list(
            zip(rs, saturation_pressure, saturated_inverse_fvf, saturated_viscosity)
        )
        self._branches = _extend_branches(branches, saturated, shift_abscissae=True)
        self._keys = rs

    def _undersaturated(self, pressure: float, ratio: float) -> typing.Tuple[float, float, float]:
        i = int(np.searchsorted(self._keys, ratio, side="right")) - 1
        i = min(max(i, 0), len(self._keys) - 2)
        weight = (ratio - self._keys[i]) / (self._keys[i + 1] - self._keys[i])
        weight = clip_scalar(weight, 0.0, 1.0)
        lower = self._branches[i].evaluate(pressure)
        upper = self._branches[i + 1].evaluate(pressure)
        inverse_fvf = lower[0] + weight * (upper[0] - lower[0])
        dinverse_fvf = lower[1] + weight * (upper[1] - lower[1])
        viscosity = lower[2] + weight * (upper[2] - lower[2])
        return inverse_fvf, dinverse_fvf, viscosity


class LiveGasPVT(_LivePVT):
    """
    Wet gas with vaporised oil (PVTG).

    At (p, Rv) with Rv >= Rv_sat(p) the gas is saturated and the saturated
    curves are read at p. Otherwise each of the two pressure records
    bracketing p is evaluated at Rv along its undersaturated branch and the
    results are interpolated linearly in pressure.
    """

    def __init__(
        self, table: LiveGasPVTTable, samples: typing.Optional[int] = None
    ) -> None:
        self.phase = FluidPhase.GAS
        records = table.records
        pressure = np.array([record.pressure for record in records])
        saturated_rv = np.array([record.rv[0] for record in records])
        saturated_inverse_fvf = np.array(
            [1.0 / record.formation_volume_factor[0] for record in records]
        )
        saturated_viscosity = np.array([record.viscosity[0] for record in records])

        self._saturated_ratio = MonotoneUniformTable(pressure, saturated_rv, samples)
        self._saturated_inverse_fvf = MonotoneUniformTable(
            pressure, saturated_inverse_fvf, samples
        )
        self._saturated_viscosity = MonotoneUniformTable(
            pressure, saturated_viscosity, samples
        )

        branches: typing.List[typing.Optional[_Branch]] = []
        for record in records:
            if len(record.rv) > 1:
                order = np.argsort(record.rv)
                branches.append(
                    _Branch(
                        key=record.pressure,
                        abscissae=record.rv[order],
                        inverse_fvf=1.0 / record.formation_volume_factor[order],
                        viscosity=record.viscosity[order],
                    )
                )
            else:
                branches.append(None)
        saturated = list(
            zip(pressure, saturated_rv, saturated_inverse_fvf, saturated_viscosity)
        )
        self._branches = _extend_branches(branches, saturated, shift_abscissae=False)
        self._keys = pressure

    def _undersaturated(self, pressure: float, ratio: float) -> typing.Tuple[float, float, float]:
        i = int(np.searchsorted(self._keys, pressure, side="right")) - 1
        i = min(max(i, 0), len(self._keys) - 2)
        span = self._keys[i + 1] - self._keys[i]
        weight = clip_scalar((pressure - self._keys[i]) / span, 0.0, 1.0)
        lower = self._branches[i].evaluate(ratio)
        upper = self._branches[i + 1].evaluate(ratio)
        inverse_fvf = lower[0] + weight * (upper[0] - lower[0])
        viscosity = lower[2] + weight * (upper[2] - lower[2])
        if 0.0 < weight < 1.0:
            dinverse_fvf = (upper[0] - lower[0]) / span
        else:
            dinverse_fvf = 0.0
        return inverse_fvf, dinverse_fvf, viscosity
