import typing

import numpy as np
import numpy.typing as npt

from equil.errors import ValidationError
from equil.types import ThreeDimensions


__all__ = ["RegionMapping", "partition_uniform"]


class RegionMapping:
    """
    Partition of grid cells into regions.

    Every cell belongs to exactly one region, identified by a non-negative
    integer id. Cells of a region are reported in increasing cell index order.
    """

    def __init__(self, region_ids: npt.ArrayLike) -> None:
        """
        :param region_ids: Region id of each cell.
        """
        region_ids = np.asarray(region_ids)
        if region_ids.ndim != 1:
            raise ValidationError(
                f"Region ids must be one-dimensional, got shape {region_ids.shape}."
            )
        if region_ids.size and not np.issubdtype(region_ids.dtype, np.integer):
            if not np.all(np.equal(np.mod(region_ids, 1), 0)):
                raise ValidationError("Region ids must be integers.")
        self.region_ids = region_ids.astype(np.int64)
        if np.any(self.region_ids < 0):
            raise ValidationError("Region ids must be non-negative.")

        order = np.argsort(self.region_ids, kind="stable")
        regions, starts = np.unique(self.region_ids[order], return_index=True)
        bounds = list(starts[1:]) + [len(order)]
        self._cells: typing.Dict[int, np.ndarray] = {
            int(region): order[start:stop]
            for region, start, stop in zip(regions, starts, bounds)
        }

    @classmethod
    def single(cls, number_of_cells: int) -> "RegionMapping":
        """Mapping with every cell in region 0."""
        return cls(np.zeros(number_of_cells, dtype=np.int64))

    @property
    def number_of_cells(self) -> int:
        return len(self.region_ids)

    @property
    def number_of_regions(self) -> int:
        """Number of regions holding at least one cell."""
        return len(self._cells)

    def active_regions(self) -> typing.List[int]:
        """Sorted ids of the regions that hold at least one cell."""
        return sorted(self._cells)

    def cells(self, region: int) -> np.ndarray:
        """
        Cells of `region` in increasing index order.

        :raises KeyError: If no cell belongs to `region`.
        """
        try:
            return self._cells[int(region)]
        except KeyError:
            raise KeyError(f"No cells in region {region}") from None

    def region(self, cell: int) -> int:
        return int(self.region_ids[cell])

    def __iter__(self) -> typing.Iterator[typing.Tuple[int, np.ndarray]]:
        for region in self.active_regions():
            yield region, self._cells[region]

    def __len__(self) -> int:
        return self.number_of_regions

    def __repr__(self) -> str:
        return f"{type(self).__name__}(cells={self.number_of_cells}, regions={self.active_regions()})"


def partition_uniform(
    cartesian_dimensions: ThreeDimensions, coarse_dimensions: ThreeDimensions
) -> np.ndarray:
    """
    Region ids of a uniform block partition of a Cartesian grid.

    Cell `(i, j, k)` belongs to block `(ic, jc, kc) = (i * cx // nx, j * cy // ny, k * cz // nz)`
    with id `ic + cx * (jc + cy * kc)`. Cells are in natural order, `i` fastest.

    :param cartesian_dimensions: Grid dimensions `(nx, ny, nz)`.
    :param coarse_dimensions: Number of blocks `(cx, cy, cz)` along each axis.
    :return: Region id per cell.
    """
    nx, ny, nz = (int(n) for n in cartesian_dimensions)
    cx, cy, cz = (int(n) for n in coarse_dimensions)
    for fine, coarse in zip((nx, ny, nz), (cx, cy, cz)):
        if coarse < 1 or coarse > fine:
            raise ValidationError(
                f"Cannot partition {fine} cells into {coarse} blocks along an axis."
            )
    i = np.arange(nx) * cx // nx
    j = np.arange(ny) * cy // ny
    k = np.arange(nz) * cz // nz
    kk, jj, ii = np.meshgrid(k, j, i, indexing="ij")
    return (ii + cx * (jj + cy * kk)).ravel()
