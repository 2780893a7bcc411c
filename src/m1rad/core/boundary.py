"""Ghost-zone fill policies.

Each face condition fills exactly ``nghost`` cells on one face of one axis,
for every variable, and never writes to the interior. Faces are processed
axis by axis over the full padded transverse extent, so edge and corner
ghost cells end up filled as well.

``BoundarySet`` combines one condition per face into the
``fill_ghost_zones(grid, time)`` callable expected by
:class:`m1rad.core.bases.ProblemPolicy`.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping

from m1rad.core.state import NORMAL_COMPONENTS, RadiationGrid, Var

LOWER = 0
UPPER = 1


def _along(axis: int, sl: slice | int, nspatial: int) -> tuple:
    """Buffer index selecting ``sl`` along spatial ``axis``, everything else."""
    idx: list = [slice(None)] * (nspatial + 1)
    idx[axis + 1] = sl
    return tuple(idx)


def _ghost_slice(grid: RadiationGrid, axis: int, side: int) -> slice:
    g = grid.span.nghost
    n = grid.span.shape[axis]
    return slice(0, g) if side == LOWER else slice(n + g, n + 2 * g)


class FaceCondition:
    """Base class for a boundary condition on one face."""

    def apply(self, grid: RadiationGrid, axis: int, side: int, time: float) -> None:
        raise NotImplementedError


class Outflow(FaceCondition):
    """Zero-gradient: every ghost cell copies the adjacent interior cell."""

    def apply(self, grid: RadiationGrid, axis: int, side: int, time: float) -> None:
        g = grid.span.nghost
        n = grid.span.shape[axis]
        nd = grid.span.ndim
        edge = g if side == LOWER else n + g - 1
        src = grid.data[_along(axis, slice(edge, edge + 1), nd)]
        grid.data[_along(axis, _ghost_slice(grid, axis, side), nd)] = src


class Reflecting(FaceCondition):
    """Mirror symmetry; normal radiation flux and momentum change sign."""

    def apply(self, grid: RadiationGrid, axis: int, side: int, time: float) -> None:
        g = grid.span.nghost
        n = grid.span.shape[axis]
        nd = grid.span.ndim
        if n < g:
            raise ValueError(f"reflecting boundary needs >= {g} interior cells along axis {axis}")
        # ghost cells mirror the interior cells in reverse order
        src = slice(2 * g - 1, g - 1, -1) if side == LOWER else slice(n + g - 1, n - 1, -1)
        ghost = _along(axis, _ghost_slice(grid, axis, side), nd)
        grid.data[ghost] = grid.data[_along(axis, src, nd)]
        for var in NORMAL_COMPONENTS[axis]:
            grid.data[(var, *ghost[1:])] *= -1.0


class Periodic(FaceCondition):
    """Copy from the opposite end of the interior."""

    def apply(self, grid: RadiationGrid, axis: int, side: int, time: float) -> None:
        g = grid.span.nghost
        n = grid.span.shape[axis]
        nd = grid.span.ndim
        if n < g:
            raise ValueError(f"periodic boundary needs >= {g} interior cells along axis {axis}")
        src = slice(n, n + g) if side == LOWER else slice(g, 2 * g)
        grid.data[_along(axis, _ghost_slice(grid, axis, side), nd)] = grid.data[_along(axis, src, nd)]


class FixedState(FaceCondition):
    """Prescribed values for some variables, zero-gradient for the rest.

    Args:
        values: Mapping from variable to a constant or a ``value(time)`` callable.
    """

    def __init__(self, values: Mapping[Var, float | Callable[[float], float]]) -> None:
        self.values = dict(values)

    def apply(self, grid: RadiationGrid, axis: int, side: int, time: float) -> None:
        Outflow().apply(grid, axis, side, time)
        ghost = _along(axis, _ghost_slice(grid, axis, side), grid.span.ndim)
        for var, value in self.values.items():
            v = value(time) if callable(value) else value
            grid.data[(var, *ghost[1:])] = v


class MarshakIncident(FixedState):
    """Isotropic incident radiation at a fixed (or time-dependent) temperature.

    Sets ``E = a T^4`` and a normal flux ``flux_fraction * c_hat * E`` pointing
    into the domain. Gas variables are zero-gradient.

    Args:
        temperature: Incident radiation temperature, or a ``T(time)`` callable.
        a_rad: Radiation constant.
        c_hat: Reduced speed of light.
        flux_fraction: Incident flux in units of ``c_hat E`` (1/4 for a
            half-space isotropic source).
    """

    def __init__(
        self,
        temperature: float | Callable[[float], float],
        a_rad: float,
        c_hat: float,
        flux_fraction: float = 0.25,
    ) -> None:
        if not 0.0 <= flux_fraction <= 1.0:
            raise ValueError("flux_fraction must be within [0, 1]")
        self.temperature = temperature
        self.a_rad = a_rad
        self.c_hat = c_hat
        self.flux_fraction = flux_fraction
        super().__init__({})

    def incident_energy(self, time: float) -> float:
        T = self.temperature(time) if callable(self.temperature) else self.temperature
        return self.a_rad * T**4

    def apply(self, grid: RadiationGrid, axis: int, side: int, time: float) -> None:
        Outflow().apply(grid, axis, side, time)
        ghost = _along(axis, _ghost_slice(grid, axis, side), grid.span.ndim)[1:]
        E = self.incident_energy(time)
        sign = 1.0 if side == LOWER else -1.0
        grid.data[(Var.RAD_ENERGY, *ghost)] = E
        for comp in range(3):
            grid.data[(Var.X1_RAD_FLUX + comp, *ghost)] = 0.0
        grid.data[(Var.X1_RAD_FLUX + axis, *ghost)] = sign * self.flux_fraction * self.c_hat * E


class BoundarySet:
    """One face condition per (axis, side), applied axis by axis.

    Args:
        conditions: Mapping ``(axis, side) -> FaceCondition`` covering every face.
        ndim: Number of spatial dimensions.
    """

    def __init__(self, conditions: Mapping[tuple[int, int], FaceCondition], ndim: int) -> None:
        missing = [
            (axis, side)
            for axis in range(ndim)
            for side in (LOWER, UPPER)
            if (axis, side) not in conditions
        ]
        if missing:
            raise ValueError(f"no boundary condition for faces {missing}")
        self.conditions = dict(conditions)
        self.ndim = ndim

    @classmethod
    def uniform(cls, condition: FaceCondition, ndim: int) -> BoundarySet:
        """Same condition on every face."""
        return cls(
            {(axis, side): condition for axis in range(ndim) for side in (LOWER, UPPER)},
            ndim,
        )

    def __call__(self, grid: RadiationGrid, time: float) -> None:
        if grid.span.ndim != self.ndim:
            raise ValueError(f"boundary set is {self.ndim}-D, grid is {grid.span.ndim}-D")
        for axis in range(self.ndim):
            for side in (LOWER, UPPER):
                self.conditions[(axis, side)].apply(grid, axis, side, time)
