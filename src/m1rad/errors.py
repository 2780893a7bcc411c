"""Exception hierarchy for the :mod:`m1rad` package.

Failures fall into four classes:

- ``ConfigurationError``: a setup problem detected before stepping.
- ``InvariantViolation``: a state invariant is broken (non-positive density,
  radiation energy below the floor, superluminal flux). Fatal.
- ``CouplingFailure``: the implicit matter-radiation solve failed in some
  cell. Recoverable: the time integrator retries the step with a smaller dt.
- ``SimulationAbort``: the retry budget was exhausted. Fatal.
"""

from __future__ import annotations

from typing import Any


class M1RadError(Exception):
    """Base exception for radiation transport errors."""


class ConfigurationError(M1RadError, ValueError):
    """Invalid parameters or an incomplete problem policy."""


class InvariantViolation(M1RadError, RuntimeError):
    """A state invariant does not hold in an interior or ghost cell."""

    def __init__(
        self,
        invariant: str,
        *,
        variable: str | None = None,
        index: tuple[int, ...] | None = None,
        value: float | None = None,
        time: float | None = None,
        step: int | None = None,
    ) -> None:
        self.invariant = invariant
        self.variable = variable
        self.index = index
        self.value = value
        self.time = time
        self.step = step
        super().__init__(self._format())

    def _format(self) -> str:
        parts = [self.invariant]
        if self.variable is not None:
            parts.append(f"variable={self.variable}")
        if self.index is not None:
            parts.append(f"cell={self.index}")
        if self.value is not None:
            parts.append(f"value={self.value:.6e}")
        if self.time is not None:
            parts.append(f"t={self.time:.6e}")
        if self.step is not None:
            parts.append(f"step={self.step}")
        return ", ".join(parts)


class CouplingFailure(M1RadError, RuntimeError):
    """The implicit energy exchange did not produce a valid state."""

    def __init__(
        self,
        reason: str,
        *,
        index: tuple[int, ...] | None = None,
        variable: str | None = None,
        residual: float | None = None,
        iterations: int = 0,
    ) -> None:
        self.reason = reason
        self.index = index
        self.variable = variable
        self.residual = residual
        self.iterations = iterations
        msg = f"{reason} (cell={index}, variable={variable}"
        if residual is not None:
            msg += f", residual={residual:.3e}"
        msg += f", iterations={iterations})"
        super().__init__(msg)


class SimulationAbort(M1RadError, RuntimeError):
    """The integrator gave up on a step after repeated coupling failures."""

    def __init__(
        self,
        message: str,
        *,
        time: float,
        step: int,
        dt: float,
        retries: int,
        cause: CouplingFailure | None = None,
    ) -> None:
        self.time = time
        self.step = step
        self.dt = dt
        self.retries = retries
        self.cause = cause
        detail = f"{message}: t={time:.6e}, step={step}, dt={dt:.3e}, retries={retries}"
        if cause is not None:
            detail += f"; last failure: {cause}"
        super().__init__(detail)

    def diagnostics(self) -> dict[str, Any]:
        """Flat summary for drivers and logs."""
        out: dict[str, Any] = {
            "time": self.time,
            "step": self.step,
            "dt": self.dt,
            "retries": self.retries,
        }
        if self.cause is not None:
            out.update(
                cell=self.cause.index,
                variable=self.cause.variable,
                residual=self.cause.residual,
            )
        return out


__all__ = [
    "M1RadError",
    "ConfigurationError",
    "InvariantViolation",
    "CouplingFailure",
    "SimulationAbort",
]
