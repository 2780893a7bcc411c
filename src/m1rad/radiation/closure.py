"""M1 (Levermore) closure for the two-moment radiation system.

The radiation pressure tensor is closed from the energy density ``E`` and
the reduced flux ``f = F / (c_hat E)``:

    P = E [ (1 - chi)/2 I + (3 chi - 1)/2 n n ],   n = f / |f|
    chi(f) = (3 + 4 f^2) / (5 + 2 sqrt(4 - 3 f^2))

``chi`` runs from 1/3 (isotropic, diffusion limit) at ``f = 0`` to 1
(free streaming) at ``f = 1``.

Signal speeds are the eigenvalues of the 1-D M1 system along the sweep
normal (Berthon, Charrier & Dubroca 2007; Audit et al. 2002):

    lambda_pm = c_hat (f_n +- sqrt(2/3 (4 - 3 f^2 - s) + 2 f^2 (2 - f^2 - s))) / s
    s = sqrt(4 - 3 f^2)

References:
    Levermore C.D., JQSRT 31, 149 (1984).
    Audit E. et al., arXiv:astro-ph/0206281 (2002).
"""

from __future__ import annotations

import numpy as np

_TINY = 1e-300


def eddington_factor(f: np.ndarray | float) -> np.ndarray:
    """M1 Eddington factor ``chi(|f|)``; input clipped to [0, 1]."""
    f = np.clip(np.abs(f), 0.0, 1.0)
    return (3.0 + 4.0 * f**2) / (5.0 + 2.0 * np.sqrt(4.0 - 3.0 * f**2))


def reduced_flux(E: np.ndarray, F: np.ndarray, c_hat: float, floor: float) -> np.ndarray:
    """Reduced flux ``F / (c_hat max(E, floor))``.

    Args:
        E: Radiation energy density, shape ``(...)``.
        F: Radiation flux, shape ``(3, ...)``.
        c_hat: Reduced speed of light.
        floor: Lower bound on the denominator energy.

    Returns:
        Reduced flux vector, shape ``(3, ...)``.
    """
    denom = c_hat * np.maximum(E, max(floor, _TINY))
    return F / denom


def pressure_tensor_column(E: np.ndarray, f: np.ndarray, axis: int) -> np.ndarray:
    """Column ``axis`` of the M1 pressure tensor, ``P[:, axis]``.

    Args:
        E: Radiation energy density, shape ``(...)``.
        f: Reduced flux vector, shape ``(3, ...)``.
        axis: Column index (sweep direction).

    Returns:
        ``P_{k, axis}`` for k = 0..2, shape ``(3, ...)``.
    """
    fmag = np.sqrt(np.sum(f**2, axis=0))
    chi = eddington_factor(fmag)
    safe = np.where(fmag > _TINY, fmag, 1.0)
    n = np.where(fmag > _TINY, f / safe, 0.0)

    iso = 0.5 * (1.0 - chi) * E
    aniso = 0.5 * (3.0 * chi - 1.0) * E
    col = aniso * n * n[axis]
    col[axis] += iso
    return col


def pressure_tensor(E: np.ndarray, f: np.ndarray) -> np.ndarray:
    """Full M1 pressure tensor, shape ``(3, 3, ...)``."""
    return np.stack([pressure_tensor_column(E, f, j) for j in range(3)], axis=1)


def m1_signal_speeds(
    f_n: np.ndarray,
    c_hat: float,
    f_mag: np.ndarray | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Minimum and maximum M1 eigenvalues along a sweep direction.

    With ``s = sqrt(4 - 3 |f|^2)``::

        lambda_+- = c_hat (f_n +- sqrt(2/3 (4 - 3|f|^2 - s) + 2 f_n^2 (2 - |f|^2 - s))) / s

    Args:
        f_n: Reduced flux component along the sweep normal.
        c_hat: Reduced speed of light.
        f_mag: Reduced flux magnitude ``|f|``. Defaults to ``|f_n|``, the
            one-dimensional case.

    Returns:
        ``(lambda_minus, lambda_plus)``, each within ``[-c_hat, c_hat]``.
    """
    f_n = np.clip(f_n, -1.0, 1.0)
    f2 = f_n**2 if f_mag is None else np.maximum(np.clip(f_mag, 0.0, 1.0) ** 2, f_n**2)
    fn2 = f_n**2
    s = np.sqrt(4.0 - 3.0 * f2)
    disc = (2.0 / 3.0) * (4.0 - 3.0 * f2 - s) + 2.0 * fn2 * (2.0 - f2 - s)
    root = np.sqrt(np.maximum(disc, 0.0))
    lam_minus = np.clip(c_hat * (f_n - root) / s, -c_hat, c_hat)
    lam_plus = np.clip(c_hat * (f_n + root) / s, -c_hat, c_hat)
    return lam_minus, lam_plus
