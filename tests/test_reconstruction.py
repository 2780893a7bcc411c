"""Tests for edge reconstruction and slope limiters.

Test categories:
1. Limiter properties (zero at extrema, symmetric)
2. Exactness on linear data
3. Monotonicity (no new extrema at a step)
4. Output shapes and argument validation
"""

from __future__ import annotations

import numpy as np
import pytest


class TestLimiters:

    @pytest.mark.parametrize("name", ["minmod", "mc", "vanleer"])
    def test_zero_at_extremum(self, name):
        from m1rad.radiation.reconstruction import LIMITERS

        out = LIMITERS[name](np.array([1.0, -2.0]), np.array([-1.0, 3.0]))
        np.testing.assert_array_equal(out, 0.0)

    @pytest.mark.parametrize("name", ["minmod", "mc", "vanleer"])
    def test_smooth_slope_preserved(self, name):
        from m1rad.radiation.reconstruction import LIMITERS

        out = LIMITERS[name](np.array([0.5]), np.array([0.5]))
        assert out[0] == pytest.approx(0.5)

    def test_minmod_picks_smaller(self):
        from m1rad.radiation.reconstruction import minmod

        assert minmod(np.array([1.0]), np.array([3.0]))[0] == 1.0
        assert minmod(np.array([-4.0]), np.array([-2.0]))[0] == -2.0


class TestReconstructEdges:

    @pytest.mark.parametrize("method", ["constant", "plm", "ppm"])
    def test_shapes(self, method):
        from m1rad.radiation.reconstruction import reconstruct_edges

        g, n = 3, 10
        q = np.arange(n + 2 * g, dtype=float)
        qm, qp = reconstruct_edges(q, g, method)
        assert qm.shape == (n + 2,)
        assert qp.shape == (n + 2,)

    @pytest.mark.parametrize("method", ["plm", "ppm"])
    def test_linear_exact(self, method):
        from m1rad.radiation.reconstruction import reconstruct_edges

        g, n = 3, 8
        q = 2.0 * np.arange(n + 2 * g, dtype=float)
        qm, qp = reconstruct_edges(q, g, method)
        centers = q[g - 1 : n + g + 1]
        np.testing.assert_allclose(qm, centers - 1.0)
        np.testing.assert_allclose(qp, centers + 1.0)

    @pytest.mark.parametrize("method", ["plm", "ppm"])
    def test_step_is_monotone(self, method):
        from m1rad.radiation.reconstruction import reconstruct_edges

        g, n = 3, 12
        q = np.where(np.arange(n + 2 * g) < 9, 1.0, 0.0)
        qm, qp = reconstruct_edges(q, g, method)
        assert np.all(qm >= 0.0) and np.all(qm <= 1.0)
        assert np.all(qp >= 0.0) and np.all(qp <= 1.0)

    def test_transverse_axes_carried(self):
        from m1rad.radiation.reconstruction import reconstruct_edges

        g, n = 2, 6
        q = np.tile(np.arange(n + 2 * g, dtype=float)[:, None], (1, 3))
        qm, qp = reconstruct_edges(q, g, "plm", "minmod")
        assert qm.shape == (n + 2, 3)
        np.testing.assert_allclose(qp[:, 0], qp[:, 2])

    def test_face_states(self):
        from m1rad.radiation.reconstruction import face_states

        qm = np.array([0.0, 1.0, 2.0])
        qp = np.array([0.5, 1.5, 2.5])
        left, right = face_states(qm, qp)
        np.testing.assert_array_equal(left, [0.5, 1.5])
        np.testing.assert_array_equal(right, [1.0, 2.0])

    def test_unknown_method(self):
        from m1rad.radiation.reconstruction import reconstruct_edges

        with pytest.raises(ValueError, match="unknown reconstruction"):
            reconstruct_edges(np.zeros(10), 3, "weno")

    def test_too_few_ghosts(self):
        from m1rad.radiation.reconstruction import reconstruct_edges

        with pytest.raises(ValueError, match="nghost"):
            reconstruct_edges(np.zeros(10), 2, "ppm")

    def test_unknown_limiter(self):
        from m1rad.radiation.reconstruction import reconstruct_edges

        with pytest.raises(ValueError, match="limiter"):
            reconstruct_edges(np.zeros(10), 2, "plm", "superbee")
