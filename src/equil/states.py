import typing

import attrs
import numpy as np

from equil.errors import InconsistentStateError, ValidationError
from equil.types import FluidPhase, PhaseUsage


__all__ = ["InitialState"]


@attrs.frozen
class InitialState:
    """
    Equilibrium initial state of a reservoir.

    Per-phase arrays have shape (3, number_of_cells) with rows ordered as
    `FluidPhase`. Rows of inactive phases are zero.
    """

    pressures: np.ndarray
    """Phase pressures (Pa)."""
    saturations: np.ndarray
    """Phase saturations."""
    rs: np.ndarray
    """Dissolved gas-oil ratio per cell."""
    rv: np.ndarray
    """Vaporised oil-gas ratio per cell."""
    phase_usage: PhaseUsage = attrs.field(factory=PhaseUsage)

    def __attrs_post_init__(self) -> None:
        n = self.rs.shape[0]
        for name, array in (("pressures", self.pressures), ("saturations", self.saturations)):
            if array.shape != (3, n):
                raise ValidationError(f"`{name}` must have shape (3, {n}), got {array.shape}.")
        if self.rv.shape != (n,):
            raise ValidationError(f"`rv` must have shape ({n},), got {self.rv.shape}.")

    @property
    def number_of_cells(self) -> int:
        return self.rs.shape[0]

    def pressure(self, phase: FluidPhase) -> np.ndarray:
        return self.pressures[FluidPhase(phase)]

    def saturation(self, phase: FluidPhase) -> np.ndarray:
        return self.saturations[FluidPhase(phase)]

    def validate(self, tolerance: float = 1e-12, cells: typing.Optional[np.ndarray] = None) -> None:
        """
        Check that saturations are finite, lie in [0, 1] and sum to one.

        :param tolerance: Largest admissible deviation of the saturation sum from one.
        :param cells: Restrict the check to these cells.
        :raises InconsistentStateError: On the first offending cell.
        """
        saturations = self.saturations if cells is None else self.saturations[:, cells]
        indices = np.arange(self.number_of_cells) if cells is None else np.asarray(cells)
        bad = np.flatnonzero(np.any(~np.isfinite(saturations), axis=0))
        if bad.size:
            cell = int(indices[bad[0]])
            raise InconsistentStateError(
                f"Saturations {self.saturations[:, cell]} of cell {cell} are not finite."
            )
        bad = np.flatnonzero(np.any((saturations < 0.0) | (saturations > 1.0), axis=0))
        if bad.size:
            cell = int(indices[bad[0]])
            raise InconsistentStateError(
                f"Saturations {self.saturations[:, cell]} of cell {cell} leave [0, 1]."
            )
        deviation = np.abs(saturations.sum(axis=0) - 1.0)
        bad = np.flatnonzero(deviation > tolerance)
        if bad.size:
            cell = int(indices[bad[0]])
            raise InconsistentStateError(
                f"Saturations of cell {cell} sum to {self.saturations[:, cell].sum()!r}, expected 1."
            )
