"""Cell-edge reconstruction for the radiation sweep.

All functions work along axis 0 of the input (the sweep axis, padded by
``nghost`` ghost cells on both sides); trailing axes are transverse and are
carried along unchanged.

Edge states are produced for the ``n - 2 g + 2`` cells from ``g - 1`` to
``n - g`` (the interior plus one ghost cell on each side), which is exactly
what is needed for the ``n - 2 g + 1`` faces bounding the interior.

Methods:
    constant: piecewise constant (first order)
    plm: piecewise linear with a TVD slope limiter (minmod, mc, vanleer)
    ppm: piecewise parabolic (Colella & Woodward 1984) with the standard
        monotonicity constraints
"""

from __future__ import annotations

import numpy as np

from m1rad.config import STENCIL_HALF_WIDTH


def minmod(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Two-argument minmod, element-wise."""
    same_sign = (a * b) > 0.0
    return np.where(same_sign, np.sign(a) * np.minimum(np.abs(a), np.abs(b)), 0.0)


def monotonized_central(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """MC limiter: minmod of (a + b)/2, 2a, 2b."""
    same_sign = (a * b) > 0.0
    m = np.minimum(0.5 * np.abs(a + b), 2.0 * np.minimum(np.abs(a), np.abs(b)))
    return np.where(same_sign, np.sign(a) * m, 0.0)


def van_leer(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Harmonic-mean (van Leer) limiter."""
    same_sign = (a * b) > 0.0
    denom = np.where(same_sign, a + b, 1.0)
    return np.where(same_sign, 2.0 * a * b / denom, 0.0)


LIMITERS = {
    "minmod": minmod,
    "mc": monotonized_central,
    "vanleer": van_leer,
}


def cell_values(q: np.ndarray, nghost: int) -> np.ndarray:
    """Cell-centered values of the cells that receive edge states."""
    n = q.shape[0]
    return q[nghost - 1 : n - nghost + 1]


def _plm_edges(q: np.ndarray, g: int, limiter: str) -> tuple[np.ndarray, np.ndarray]:
    n = q.shape[0]
    qc = q[g - 1 : n - g + 1]
    qm = q[g - 2 : n - g]
    qp = q[g : n - g + 2]
    slope = LIMITERS[limiter](qc - qm, qp - qc)
    return qc - 0.5 * slope, qc + 0.5 * slope


def _ppm_edges(q: np.ndarray, g: int) -> tuple[np.ndarray, np.ndarray]:
    n = q.shape[0]
    # interface values at j+1/2 for j = g-2 .. n-g
    q0 = q[g - 2 : n - g + 1]
    q1 = q[g - 1 : n - g + 2]
    qface = (7.0 / 12.0) * (q0 + q1) - (1.0 / 12.0) * (q[g - 3 : n - g] + q[g : n - g + 3])
    qface = np.clip(qface, np.minimum(q0, q1), np.maximum(q0, q1))

    qc = q[g - 1 : n - g + 1]
    q_minus = qface[:-1].copy()
    q_plus = qface[1:].copy()

    extremum = (q_plus - qc) * (qc - q_minus) <= 0.0
    q_minus = np.where(extremum, qc, q_minus)
    q_plus = np.where(extremum, qc, q_plus)

    dq = q_plus - q_minus
    q6 = 6.0 * (qc - 0.5 * (q_minus + q_plus))
    overshoot_left = dq * q6 > dq * dq
    overshoot_right = -dq * dq > dq * q6
    q_minus = np.where(overshoot_left, 3.0 * qc - 2.0 * q_plus, q_minus)
    q_plus = np.where(overshoot_right, 3.0 * qc - 2.0 * q_minus, q_plus)
    return q_minus, q_plus


def reconstruct_edges(
    q: np.ndarray,
    nghost: int,
    method: str = "plm",
    limiter: str = "mc",
) -> tuple[np.ndarray, np.ndarray]:
    """Left and right edge values of the cells adjacent to the interior.

    Args:
        q: Cell-centered values, sweep axis first, shape ``(n, ...)``.
        nghost: Ghost cells on each side along the sweep axis.
        method: ``"constant"``, ``"plm"`` or ``"ppm"``.
        limiter: PLM slope limiter name.

    Returns:
        ``(q_minus, q_plus)``: values at the lower and upper edge of each
        cell ``g-1 .. n-g``, shape ``(n - 2 g + 2, ...)`` each.

    Raises:
        ValueError: Unknown method or limiter, or too few ghost cells.
    """
    if method not in STENCIL_HALF_WIDTH:
        raise ValueError(f"unknown reconstruction method '{method}'")
    if nghost < STENCIL_HALF_WIDTH[method]:
        raise ValueError(f"'{method}' reconstruction needs nghost >= {STENCIL_HALF_WIDTH[method]}")
    if method == "constant":
        qc = cell_values(q, nghost)
        return qc, qc
    if method == "plm":
        if limiter not in LIMITERS:
            raise ValueError(f"unknown limiter '{limiter}'")
        return _plm_edges(q, nghost, limiter)
    return _ppm_edges(q, nghost)


def face_states(q_minus: np.ndarray, q_plus: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Left/right states at each face between consecutive edge-state cells."""
    return q_plus[:-1], q_minus[1:]
