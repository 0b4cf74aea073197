class EquilError(Exception):
    """Base class for all equilibration errors."""

    pass


class ValidationError(EquilError, ValueError):
    """Raised when input data fails validation checks."""

    pass


class InvalidTableError(ValidationError):
    """Raised when a tabulated function is empty or its abscissae are not strictly increasing."""

    pass


class MultipleRegionsExpectedError(ValidationError):
    """Raised when a constructor expecting exactly one table region receives zero or several."""

    pass


class ComputationError(EquilError):
    """Raised when there is an error during numerical computations."""

    pass


class UnbracketedError(ComputationError):
    """Raised when a capillary pressure target lies outside the curve and clamping is disabled."""

    pass


class InconsistentStateError(ComputationError):
    """Raised when computed saturations leave [0, 1] or do not sum to one."""

    pass


class NonConvergedError(ComputationError):
    """Raised when the hydrostatic integration fails to converge under step refinement."""

    def __init__(
        self,
        message: str,
        *,
        pressure: float,
        depth: float,
        region: object = None,
    ) -> None:
        super().__init__(
            f"{message} (pressure={pressure!r} Pa, depth={depth!r} m, region={region!r})"
        )
        self.pressure = pressure
        self.depth = depth
        self.region = region
