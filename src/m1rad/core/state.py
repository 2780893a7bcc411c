"""Conserved-variable layout and the padded grid buffer.

Every cell carries nine conserved quantities in a fixed order (``Var``).
Vector quantities always have three components, even on 1-D and 2-D grids;
only the first ``ndim`` directions are ever swept.

The buffer has shape ``(NVAR, *padded_shape)`` where each axis is padded by
``nghost`` cells on both sides. Interior indices used by the accessors are
relative to the first interior cell.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

import numpy as np


class Var(IntEnum):
    """Index of each conserved variable in the state buffer."""

    RAD_ENERGY = 0
    X1_RAD_FLUX = 1
    X2_RAD_FLUX = 2
    X3_RAD_FLUX = 3
    GAS_ENERGY = 4
    GAS_DENSITY = 5
    X1_GAS_MOMENTUM = 6
    X2_GAS_MOMENTUM = 7
    X3_GAS_MOMENTUM = 8


NVAR = len(Var)
RAD_FLUX = slice(Var.X1_RAD_FLUX, Var.X3_RAD_FLUX + 1)
GAS_MOMENTUM = slice(Var.X1_GAS_MOMENTUM, Var.X3_GAS_MOMENTUM + 1)
# Radiation subsystem updated by the hyperbolic solver: E, F1, F2, F3
NRAD = 4

# Variables whose sign flips under reflection through a face normal to ``axis``
NORMAL_COMPONENTS: tuple[tuple[Var, Var], ...] = (
    (Var.X1_RAD_FLUX, Var.X1_GAS_MOMENTUM),
    (Var.X2_RAD_FLUX, Var.X2_GAS_MOMENTUM),
    (Var.X3_RAD_FLUX, Var.X3_GAS_MOMENTUM),
)


@dataclass(frozen=True)
class GridSpan:
    """Geometry of a uniform padded block.

    Attributes:
        shape: Interior cell count per axis.
        nghost: Ghost cells on each side of every axis.
        dx: Cell width per axis.
        origin: Coordinate of the lower domain corner per axis.
    """

    shape: tuple[int, ...]
    nghost: int
    dx: tuple[float, ...]
    origin: tuple[float, ...] | None = None

    @property
    def ndim(self) -> int:
        return len(self.shape)

    @property
    def padded_shape(self) -> tuple[int, ...]:
        return tuple(n + 2 * self.nghost for n in self.shape)

    @property
    def interior(self) -> tuple[slice, ...]:
        """Spatial slices selecting the interior of the padded block."""
        g = self.nghost
        return tuple(slice(g, g + n) for n in self.shape)

    @property
    def cell_volume(self) -> float:
        return float(np.prod(self.dx))

    def ghost_region(self, axis: int, side: int) -> tuple[slice, ...]:
        """Ghost slab of one face, restricted to the transverse interior.

        Args:
            axis: Face normal (0-based).
            side: 0 for the lower face, 1 for the upper face.
        """
        g = self.nghost
        n = self.shape[axis]
        region = list(self.interior)
        region[axis] = slice(0, g) if side == 0 else slice(g + n, g + n + g)
        return tuple(region)

    def cell_centers(self) -> tuple[np.ndarray, ...]:
        """Interior cell-center coordinates, broadcast to the interior shape."""
        origin = self.origin or (0.0,) * self.ndim
        axes = [
            origin[d] + (np.arange(self.shape[d]) + 0.5) * self.dx[d]
            for d in range(self.ndim)
        ]
        return tuple(np.meshgrid(*axes, indexing="ij"))

    def cell_edges(self, axis: int) -> np.ndarray:
        """Interior face coordinates along one axis, shape ``(n + 1,)``."""
        origin = self.origin or (0.0,) * self.ndim
        return origin[axis] + np.arange(self.shape[axis] + 1) * self.dx[axis]


class RadiationGrid:
    """Padded state buffer for one uniform block.

    Args:
        span: Grid geometry.
        data: Optional existing buffer of shape ``(NVAR, *span.padded_shape)``.
            Copied into a new contiguous float64 array.
    """

    def __init__(self, span: GridSpan, data: np.ndarray | None = None) -> None:
        self.span = span
        full_shape = (NVAR, *span.padded_shape)
        if data is None:
            self.data = np.zeros(full_shape)
        else:
            if data.shape != full_shape:
                raise ValueError(f"state buffer shape {data.shape} != expected {full_shape}")
            self.data = np.ascontiguousarray(data, dtype=np.float64).copy()

    @classmethod
    def from_config(cls, grid_cfg) -> RadiationGrid:
        """Allocate a zeroed grid from a :class:`m1rad.config.GridConfig`."""
        span = GridSpan(
            shape=tuple(grid_cfg.resolution),
            nghost=grid_cfg.nghost,
            dx=grid_cfg.dx,
            origin=None if grid_cfg.origin is None else tuple(grid_cfg.origin),
        )
        return cls(span)

    # --- views -----------------------------------------------------------

    def _interior_index(self, var) -> tuple:
        return (var, *self.span.interior)

    def interior(self, var: Var | slice) -> np.ndarray:
        """Writable interior view of one variable (or a slice of variables)."""
        return self.data[self._interior_index(var)]

    def interior_data(self) -> np.ndarray:
        """Writable interior view of all variables, shape ``(NVAR, *shape)``."""
        return self.data[(slice(None), *self.span.interior)]

    @property
    def rad_energy(self) -> np.ndarray:
        return self.interior(Var.RAD_ENERGY)

    @property
    def rad_flux(self) -> np.ndarray:
        return self.interior(RAD_FLUX)

    @property
    def gas_energy(self) -> np.ndarray:
        return self.interior(Var.GAS_ENERGY)

    @property
    def gas_density(self) -> np.ndarray:
        return self.interior(Var.GAS_DENSITY)

    @property
    def gas_momentum(self) -> np.ndarray:
        return self.interior(GAS_MOMENTUM)

    # --- single-cell access ------------------------------------------------

    def _cell(self, index) -> tuple[int, ...]:
        if isinstance(index, (int, np.integer)):
            index = (int(index),)
        if len(index) != self.span.ndim:
            raise IndexError(f"expected {self.span.ndim} indices, got {len(index)}")
        for i, n in zip(index, self.span.shape):
            if not 0 <= i < n:
                raise IndexError(f"cell index {tuple(index)} outside interior {self.span.shape}")
        g = self.span.nghost
        return tuple(i + g for i in index)

    def get(self, var: Var, index) -> float:
        """Value of ``var`` in the interior cell ``index``."""
        return float(self.data[(var, *self._cell(index))])

    def set(self, var: Var, index, value: float) -> None:
        """Overwrite ``var`` in the interior cell ``index``."""
        self.data[(var, *self._cell(index))] = value

    # --- reductions ----------------------------------------------------------

    def compute_radiation_energy(self) -> float:
        """Volume-integrated radiation energy over the interior."""
        return float(np.sum(self.rad_energy)) * self.span.cell_volume

    def compute_gas_energy(self) -> float:
        """Volume-integrated total gas energy over the interior."""
        return float(np.sum(self.gas_energy)) * self.span.cell_volume

    def gas_internal_energy(self, data: np.ndarray | None = None) -> np.ndarray:
        """Gas energy minus kinetic energy, for the interior or a given buffer."""
        if data is None:
            data = self.interior_data()
        return internal_energy(data)

    def gas_temperature(self, policy) -> np.ndarray:
        """Interior gas temperature through ``policy.tgas_from_egas``."""
        return policy.gas_temperature(self.interior_data())

    def copy(self) -> RadiationGrid:
        return RadiationGrid(self.span, self.data)

    def __repr__(self) -> str:
        return f"RadiationGrid(shape={self.span.shape}, nghost={self.span.nghost})"


def internal_energy(data: np.ndarray) -> np.ndarray:
    """``E_gas - |p|^2 / (2 rho)`` for a buffer laid out as ``(NVAR, ...)``."""
    rho = data[Var.GAS_DENSITY]
    p2 = np.sum(data[GAS_MOMENTUM] ** 2, axis=0)
    return data[Var.GAS_ENERGY] - 0.5 * p2 / rho
