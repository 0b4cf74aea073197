"""Grid providers for equilibration."""

import typing

import attrs
import numpy as np
import numpy.typing as npt

from equil.errors import ValidationError
from equil.types import OneDimensionalGrid, ThreeDimensions


__all__ = ["CartesianGrid", "build_cartesian_grid"]


def _validate_depths(
    instance: "CartesianGrid", attribute: attrs.Attribute, value: np.ndarray
) -> None:
    nx, ny, nz = instance.cartesian_dimensions
    if value.shape != (nx * ny * nz,):
        raise ValidationError(
            f"Expected {nx * ny * nz} cell depths for a {nx}x{ny}x{nz} grid, got shape {value.shape}."
        )
    if not np.all(np.isfinite(value)):
        raise ValidationError("Cell depths must be finite.")


def _validate_dimensions(
    instance: "CartesianGrid", attribute: attrs.Attribute, value: ThreeDimensions
) -> None:
    if len(value) != 3 or any(n < 1 for n in value):
        raise ValidationError(f"Grid dimensions must be three positive integers, got {value}.")


@attrs.frozen
class CartesianGrid:
    """
    Logically Cartesian grid described by its cell centroid depths.

    Cells are numbered in natural order: `i` fastest, then `j`, then `k`.
    """

    cartesian_dimensions: ThreeDimensions = attrs.field(
        converter=lambda dims: tuple(int(n) for n in dims),
        validator=_validate_dimensions,
    )
    """Number of cells `(nx, ny, nz)`."""
    cell_depths: OneDimensionalGrid = attrs.field(
        converter=lambda v: np.ascontiguousarray(v, dtype=np.float64),
        validator=_validate_depths,
    )
    """Centroid depth of each cell (m, positive downward)."""

    @property
    def number_of_cells(self) -> int:
        return len(self.cell_depths)

    @property
    def dimensions(self) -> int:
        return 3

    @classmethod
    def from_depths(
        cls,
        depths: npt.ArrayLike,
        cartesian_dimensions: typing.Optional[ThreeDimensions] = None,
    ) -> "CartesianGrid":
        """
        Grid with explicitly given centroid depths.

        :param depths: Centroid depth per cell.
        :param cartesian_dimensions: Grid dimensions. Defaults to a single
            column `(1, 1, len(depths))`.
        """
        depths = np.asarray(depths, dtype=np.float64)
        if cartesian_dimensions is None:
            cartesian_dimensions = (1, 1, len(depths))
        return cls(cartesian_dimensions=cartesian_dimensions, cell_depths=depths)


def build_cartesian_grid(
    nx: int,
    ny: int,
    nz: int,
    dx: float = 1.0,
    dy: float = 1.0,
    dz: float = 1.0,
    top: float = 0.0,
) -> CartesianGrid:
    """
    Build a uniform Cartesian grid with horizontal layers.

    Layer `k` is centred at depth `top + (k + 1/2) dz`.

    :param nx: Number of cells along x.
    :param ny: Number of cells along y.
    :param nz: Number of layers.
    :param dx: Cell size along x (m). Only validated, depths do not depend on it.
    :param dy: Cell size along y (m). Only validated, depths do not depend on it.
    :param dz: Layer thickness (m).
    :param top: Depth of the top of the grid (m).
    :return: The grid.
    """
    if dx <= 0 or dy <= 0 or dz <= 0:
        raise ValidationError(f"Cell sizes must be positive, got ({dx}, {dy}, {dz}).")
    layer_depths = top + (np.arange(nz) + 0.5) * dz
    depths = np.repeat(layer_depths, nx * ny)
    return CartesianGrid(cartesian_dimensions=(nx, ny, nz), cell_depths=depths)
