"""Tabulated functions of one variable."""

import logging
import typing

import attrs
import numpy as np
import numpy.typing as npt
from scipy.interpolate import CubicHermiteSpline  # type: ignore[import-untyped]

from equil.constants import c
from equil.errors import InvalidTableError
from equil.types import FloatOrArray
from equil.utils import fritsch_carlson_slopes


logger = logging.getLogger(__name__)

__all__ = ["MonotoneUniformTable", "DepthTable", "validate_abscissae"]


def validate_abscissae(
    x: npt.NDArray[np.floating],
    y: npt.NDArray[np.floating],
    name: str = "table",
) -> None:
    """
    Check that `(x, y)` describes a tabulated function.

    :raises InvalidTableError: If the arrays differ in length, hold fewer than
        two points, contain non-finite values or `x` is not strictly increasing.
    """
    if x.ndim != 1 or y.ndim != 1:
        raise InvalidTableError(f"{name}: columns must be one-dimensional.")
    if len(x) != len(y):
        raise InvalidTableError(
            f"{name}: columns must have the same length. Got {len(x)} vs {len(y)}"
        )
    if len(x) < 2:
        raise InvalidTableError(f"{name}: at least 2 points required, got {len(x)}.")
    if not (np.all(np.isfinite(x)) and np.all(np.isfinite(y))):
        raise InvalidTableError(f"{name}: columns must be finite.")
    if not np.all(np.diff(x) > 0.0):
        raise InvalidTableError(f"{name}: abscissae must be strictly increasing.")


class MonotoneUniformTable:
    """
    Monotone cubic interpolant of a sampled curve on a uniform grid.

    The samples are first interpolated with a Fritsch-Carlson monotone cubic,
    which is then sampled at `samples` equally spaced abscissae spanning the
    original range. A second Fritsch-Carlson interpolant of the uniform samples
    is used for lookups, so no spurious extrema appear between the input samples.

    Queries outside `[x[0], x[-1]]` are clamped to the nearest end point, both
    for values and derivatives.
    """

    def __init__(
        self,
        x: npt.ArrayLike,
        y: npt.ArrayLike,
        samples: typing.Optional[int] = None,
    ) -> None:
        """
        :param x: Strictly increasing abscissae (at least two).
        :param y: Ordinates sampled at `x`.
        :param samples: Number of uniform samples. Defaults to `c.PVT_TABLE_SAMPLES`.
        """
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        validate_abscissae(x, y, name=type(self).__name__)
        samples = int(samples or c.PVT_TABLE_SAMPLES)
        if samples < 2:
            raise InvalidTableError(f"At least 2 uniform samples required, got {samples}.")

        source = CubicHermiteSpline(x, y, fritsch_carlson_slopes(x, y))
        self.x_min = float(x[0])
        self.x_max = float(x[-1])
        self.abscissae = np.linspace(self.x_min, self.x_max, samples)
        self.ordinates = source(self.abscissae)
        self._spline = CubicHermiteSpline(
            self.abscissae,
            self.ordinates,
            fritsch_carlson_slopes(self.abscissae, self.ordinates),
        )
        self._derivative = self._spline.derivative()
        logger.debug(
            f"Built monotone table on [{self.x_min}, {self.x_max}] with {samples} samples"
        )

    def _clamp(self, x: FloatOrArray) -> FloatOrArray:
        return np.clip(x, self.x_min, self.x_max)

    def value(self, x: FloatOrArray) -> FloatOrArray:
        """
        Evaluate the interpolant.

        :param x: Scalar or array of abscissae.
        :return: Interpolated value(s); a float for scalar input.
        """
        result = self._spline(self._clamp(x))
        return float(result) if np.ndim(result) == 0 else result

    def derivative(self, x: FloatOrArray) -> FloatOrArray:
        """
        Evaluate dy/dx of the interpolant.

        :param x: Scalar or array of abscissae.
        :return: Derivative value(s); a float for scalar input.
        """
        result = self._derivative(self._clamp(x))
        return float(result) if np.ndim(result) == 0 else result

    def __call__(self, x: FloatOrArray) -> FloatOrArray:
        return self.value(x)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(range=({self.x_min}, {self.x_max}), "
            f"samples={len(self.abscissae)})"
        )


@attrs.frozen
class DepthTable:
    """
    Piecewise linear function of depth, e.g. an RSVD or RVVD table.

    Values are held constant beyond the first and last depths.
    """

    depth: npt.NDArray[np.floating] = attrs.field(
        converter=lambda v: np.asarray(v, dtype=np.float64)
    )
    """Strictly increasing depths (m)."""
    value: npt.NDArray[np.floating] = attrs.field(
        converter=lambda v: np.asarray(v, dtype=np.float64)
    )
    """Tabulated values at `depth`."""

    def __attrs_post_init__(self) -> None:
        if len(self.depth) == 1 and len(self.value) == 1:
            return
        validate_abscissae(self.depth, self.value, name=type(self).__name__)

    def __call__(self, depth: FloatOrArray) -> FloatOrArray:
        result = np.interp(depth, self.depth, self.value)
        return float(result) if np.ndim(result) == 0 else result
