import attrs

from equil.constants import Constants, c


__all__ = ["Config"]


@attrs.frozen
class Config:
    """Numerical parameters of the equilibration."""

    max_depth_step: float = attrs.field(
        factory=lambda: float(c.MAX_DEPTH_STEP), validator=attrs.validators.gt(0)
    )
    """Largest depth increment (m) of the hydrostatic integrator before refinement."""
    min_integration_steps: int = attrs.field(
        factory=lambda: int(c.MIN_INTEGRATION_STEPS),
        validator=attrs.validators.ge(1),
    )
    """Minimum number of RK4 steps per upward or downward sweep."""
    max_density_change: float = attrs.field(
        default=0.01,
        validator=attrs.validators.and_(attrs.validators.gt(0), attrs.validators.le(1)),
    )
    """
    Largest relative change of phase density between two integration nodes.

    Sweeps whose density varies faster than this are refined by step doubling.
    """
    ode_tolerance: float = attrs.field(
        default=1e-8, validator=attrs.validators.and_(attrs.validators.gt(0), attrs.validators.le(1e-2))
    )
    """Relative agreement required between the end-point pressures of N and 2N steps."""
    max_refinements: int = attrs.field(
        default=6,
        validator=attrs.validators.and_(
            attrs.validators.ge(0), attrs.validators.le(16)
        ),
    )
    """
    Maximum number of step doublings per sweep.

    If the sweep has not converged after this many doublings the density
    description is most likely discontinuous or badly tabulated.
    """
    saturation_tolerance: float = attrs.field(
        factory=lambda: float(c.SATURATION_TOLERANCE), validator=attrs.validators.gt(0)
    )
    """Bracket width at which capillary inversion stops bisecting."""
    pc_tolerance: float = attrs.field(default=1e-9, validator=attrs.validators.ge(0))
    """Capillary pressure residual (Pa) tolerated at a curve end point before an unclamped inversion fails."""
    max_bisection_iterations: int = attrs.field(
        default=200, validator=attrs.validators.ge(1)
    )
    """Upper bound on bisection iterations per inversion."""
    bracket_samples: int = attrs.field(default=64, validator=attrs.validators.ge(1))
    """Uniform samples scanned to locate the first sign change on non-monotone curves."""
    saturation_sum_tolerance: float = attrs.field(
        factory=lambda: float(c.SATURATION_SUM_TOLERANCE),
        validator=attrs.validators.gt(0),
    )
    """Largest admissible |sum(s) - 1| in the assembled state."""
    threshold_saturation: float = attrs.field(
        factory=lambda: float(c.THRESHOLD_SATURATION),
        validator=attrs.validators.ge(0),
    )
    """Distance to a saturation end point at which phase pressures are re-anchored."""
    pvt_table_samples: int = attrs.field(
        factory=lambda: int(c.PVT_TABLE_SAMPLES), validator=attrs.validators.ge(2)
    )
    """Number of uniform samples used when building monotone PVT tables."""
    constants: Constants = attrs.field(factory=Constants)
    """Physical constants used during equilibration."""
