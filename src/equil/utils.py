import typing

import numba
import numpy as np

from equil.errors import ValidationError


__all__ = [
    "clip_scalar",
    "fritsch_carlson_slopes",
    "interpolate_linear",
    "as_float_array",
]


@numba.njit(cache=True)
def clip_scalar(value: float, min_val: float, max_val: float) -> float:
    if value < min_val:
        return min_val
    elif value > max_val:
        return max_val
    return value


@numba.njit(cache=True)
def fritsch_carlson_slopes(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """
    Node derivatives of the monotone piecewise cubic Hermite interpolant of
    Fritsch & Carlson (1980).

    Interior slopes start as the mean of the adjacent secant slopes (zero at
    local extrema) and are then limited so that every interval stays
    monotone: with alpha = m_k / delta_k and beta = m_{k+1} / delta_k, the
    pair is scaled back onto the circle alpha² + beta² = 9 when it lies
    outside it.

    :param x: Strictly increasing abscissae (n >= 2).
    :param y: Ordinates.
    :return: Array of n slopes.
    """
    n = x.shape[0]
    secants = np.empty(n - 1)
    for k in range(n - 1):
        secants[k] = (y[k + 1] - y[k]) / (x[k + 1] - x[k])

    slopes = np.empty(n)
    slopes[0] = secants[0]
    slopes[n - 1] = secants[n - 2]
    for k in range(1, n - 1):
        if secants[k - 1] * secants[k] <= 0.0:
            slopes[k] = 0.0
        else:
            slopes[k] = 0.5 * (secants[k - 1] + secants[k])

    for k in range(n - 1):
        if secants[k] == 0.0:
            slopes[k] = 0.0
            slopes[k + 1] = 0.0
            continue
        alpha = slopes[k] / secants[k]
        beta = slopes[k + 1] / secants[k]
        if alpha < 0.0:
            slopes[k] = 0.0
            alpha = 0.0
        if beta < 0.0:
            slopes[k + 1] = 0.0
            beta = 0.0
        radius = alpha * alpha + beta * beta
        if radius > 9.0:
            tau = 3.0 / np.sqrt(radius)
            slopes[k] = tau * alpha * secants[k]
            slopes[k + 1] = tau * beta * secants[k]
    return slopes


@numba.njit(cache=True)
def interpolate_linear(
    x: float, xp: np.ndarray, fp: np.ndarray
) -> typing.Tuple[float, float]:
    """
    Piecewise linear interpolation with linear extrapolation beyond the end points.

    :param x: Query point.
    :param xp: Strictly increasing abscissae.
    :param fp: Ordinates.
    :return: Tuple of (value, slope) at `x`.
    """
    n = xp.shape[0]
    if n == 1:
        return fp[0], 0.0
    i = np.searchsorted(xp, x) - 1
    if i < 0:
        i = 0
    elif i > n - 2:
        i = n - 2
    slope = (fp[i + 1] - fp[i]) / (xp[i + 1] - xp[i])
    return fp[i] + slope * (x - xp[i]), slope


def as_float_array(values: typing.Any, name: str = "values") -> np.ndarray:
    """
    Convert `values` to a contiguous one-dimensional float64 array.

    :param values: Sequence or array of numbers.
    :param name: Name used in error messages.
    :return: float64 array.
    """
    array = np.ascontiguousarray(values, dtype=np.float64)
    if array.ndim != 1:
        raise ValidationError(f"`{name}` must be one-dimensional, got shape {array.shape}.")
    return array
