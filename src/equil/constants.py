"""Physical constants and numerical defaults"""

from contextvars import ContextVar, Token
import typing

import attrs


__all__ = ["Constant", "Constants", "c", "ConstantsContext"]


@attrs.frozen(slots=True)
class Constant:
    """A named value with its unit and meaning."""

    value: typing.Any
    description: typing.Optional[str] = None
    unit: typing.Optional[str] = None

    def __str__(self) -> str:
        return f"{self.value} {self.unit}" if self.unit else str(self.value)


DEFAULT_CONSTANTS: typing.Dict[str, Constant] = {
    "STANDARD_GRAVITY": Constant(9.80665, "Standard acceleration due to gravity", "m/s²"),
    "PVT_TABLE_SAMPLES": Constant(
        1025, "Uniform samples per resampled PVT curve", "points"
    ),
    "MIN_INTEGRATION_STEPS": Constant(
        100, "Fewest RK4 steps taken over a hydrostatic span", "steps"
    ),
    "MAX_DEPTH_STEP": Constant(1.0, "Largest RK4 depth step", "m"),
    "SATURATION_TOLERANCE": Constant(
        1e-10, "Bracket width that ends a capillary pressure bisection", "fraction"
    ),
    "SATURATION_SUM_TOLERANCE": Constant(
        1e-12, "Admissible deviation of a cell's saturation sum from one", "fraction"
    ),
    "THRESHOLD_SATURATION": Constant(
        1e-6, "Width of the band around a saturation end point", "fraction"
    ),
    "SWATINIT_PC_THRESHOLD": Constant(
        1.0, "Capillary pressure below which SWATINIT leaves a curve unscaled", "Pa"
    ),
    "CONSTANT_PC_EPSILON": Constant(
        2.220446049250313e-16, "Pc spread below which a curve counts as flat", "Pa"
    ),
}


class Constants:
    """
    A set of named constants.

    Attribute access returns the value (`constants.STANDARD_GRAVITY`), item
    access returns the `Constant` record (`constants["STANDARD_GRAVITY"]`).
    Assigning a plain value wraps it in a `Constant`.

    Calling the instance returns a context manager that makes it the set
    seen through `equil.c`:

    ```python
    constants = Constants()
    constants.STANDARD_GRAVITY = 10.0
    with constants():
        assert c.STANDARD_GRAVITY == 10.0
    ```
    """

    def __init__(self, **overrides: typing.Any) -> None:
        object.__setattr__(self, "_store", dict(DEFAULT_CONSTANTS))
        for name, value in overrides.items():
            self[name] = value

    def __getattr__(self, name: str) -> typing.Any:
        store = object.__getattribute__(self, "_store")
        if name in store:
            return store[name].value
        raise AttributeError(f"Unknown constant {name!r}")

    def __setattr__(self, name: str, value: typing.Any) -> None:
        self[name] = value

    def __getitem__(self, name: str) -> Constant:
        return self._store[name]

    def __setitem__(self, name: str, value: typing.Any) -> None:
        if not isinstance(value, Constant):
            previous = self._store.get(name)
            value = (
                attrs.evolve(previous, value=value)
                if previous is not None
                else Constant(value)
            )
        self._store[name] = value

    def __contains__(self, name: str) -> bool:
        return name in self._store

    def __iter__(self) -> typing.Iterator[str]:
        return iter(self._store)

    def __len__(self) -> int:
        return len(self._store)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({', '.join(f'{k}={v.value!r}' for k, v in self._store.items())})"

    def get(self, name: str, default: typing.Any = None) -> typing.Any:
        """Value of constant `name`, or `default` when it is not defined."""
        constant = self._store.get(name)
        return default if constant is None else constant.value

    def __call__(self) -> "ConstantsContext":
        return ConstantsContext(self)


_active_constants: ContextVar[Constants] = ContextVar(
    "active_constants", default=Constants()
)


class ConstantsContext:
    """Activates a `Constants` set for the duration of a `with` block."""

    def __init__(self, constants: Constants) -> None:
        self.constants = constants
        self._tokens: typing.List[Token] = []

    def __enter__(self) -> Constants:
        self._tokens.append(_active_constants.set(self.constants))
        return self.constants

    def __exit__(self, *exc_info: typing.Any) -> None:
        _active_constants.reset(self._tokens.pop())


class _ActiveConstants:
    def __getattr__(self, name: str) -> typing.Any:
        return getattr(_active_constants.get(), name)

    def __getitem__(self, name: str) -> Constant:
        return _active_constants.get()[name]

    def __repr__(self) -> str:
        return f"<active {_active_constants.get()!r}>"


c = _ActiveConstants()
"""Constants of the current context."""
