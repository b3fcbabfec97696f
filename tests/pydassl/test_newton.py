"""
Tests for pydassl.newton — modified Newton corrector.

The corrector residual of a linear DAE  y' = A y  is affine in the
unknown, f(x) = (a I - A) x + b, so its root is known in closed form.
"""

import numpy as np
import pytest

from pydassl import newton as N
from pydassl.jacobian import G
from pydassl.norms import dassl_norm

A = np.array([[-1.0, 0.5], [0.0, -2.0]])


def _norm(v):
    return dassl_norm(v, np.ones_like(v))


def _linear_problem(a, b=np.array([0.3, -1.2])):
    """f_newton, g_new and exact root for y' - A y = 0 with y' = a*y + b."""
    M = a * np.eye(2) - A

    def f_newton(x):
        return (a * x + b) - A @ x

    def g_new():
        return G(f_newton, np.zeros(2), np.full(2, 1e-7))

    return f_newton, g_new, np.linalg.solve(M, -b)


# ═════════════════════════════════════════════════════════════════════
#  newton_iteration
# ═════════════════════════════════════════════════════════════════════

class TestNewtonIteration:
    def test_exact_increment_converges(self):
        """With the exact Newton increment the second increment vanishes."""
        status, y = N.newton_iteration(lambda x: 2.0 - x, np.array([0.0]), _norm)
        assert status == 0
        np.testing.assert_allclose(y, [2.0], rtol=1e-15)

    def test_tiny_first_increment_accepted_immediately(self):
        calls = []

        def f(x):
            calls.append(x)
            return np.zeros_like(x)

        status, y = N.newton_iteration(f, np.array([1.0, 2.0]), _norm)
        assert status == 0
        assert len(calls) == 1
        np.testing.assert_array_equal(y, [1.0, 2.0])

    def test_divergence_returns_start(self):
        y0 = np.array([1.0])
        status, y = N.newton_iteration(lambda x: 2.0 * x, y0, _norm)
        assert status == -1
        np.testing.assert_array_equal(y, y0)

    def test_slow_contraction_fails_after_four_evaluations(self):
        """rho = 0.85 never meets the 1/3 projected-error test."""
        calls = []

        def f(x):
            calls.append(1)
            return -0.15 * x

        status, y = N.newton_iteration(f, np.array([100.0]), _norm)
        assert status == -1
        assert len(calls) == 4
        np.testing.assert_array_equal(y, [100.0])

    def test_fast_contraction_succeeds(self):
        status, y = N.newton_iteration(lambda x: -0.5 * x, np.array([1.0]), _norm)
        assert status == 0
        np.testing.assert_allclose(y, [0.25])

    def test_non_finite_increment_is_divergence(self):
        y0 = np.array([1.0])
        status, y = N.newton_iteration(lambda x: np.array([np.inf]), y0, _norm)
        assert status == -1
        np.testing.assert_array_equal(y, y0)


# ═════════════════════════════════════════════════════════════════════
#  corrector
# ═════════════════════════════════════════════════════════════════════

class TestCorrector:
    @pytest.mark.parametrize("factorize", [True, False])
    def test_linear_residual_converges(self, factorize):
        a = 10.0
        f_newton, g_new, root = _linear_problem(a)
        state = N.NewtonState()
        status, yc = N.corrector(state, a, g_new, np.zeros(2), f_newton, _norm, factorize)
        assert status == 0
        np.testing.assert_allclose(yc, root, rtol=1e-6)
        assert state.a == a
        assert state.rebuilds == 1
        assert state.factorized is factorize

    def test_small_drift_reuses_matrix(self):
        state = N.NewtonState()
        f1, g1, _ = _linear_problem(10.0)
        N.corrector(state, 10.0, g1, np.zeros(2), f1, _norm, True)

        f2, g2, root2 = _linear_problem(11.0)
        status, yc = N.corrector(state, 11.0, g2, np.zeros(2), f2, _norm, True)
        assert status == 0
        assert state.rebuilds == 1
        assert state.a == 10.0
        np.testing.assert_allclose(yc, root2, atol=1e-3)

    def test_large_drift_rebuilds(self):
        state = N.NewtonState()
        f1, g1, _ = _linear_problem(10.0)
        N.corrector(state, 10.0, g1, np.zeros(2), f1, _norm, False)

        f2, g2, root2 = _linear_problem(20.0)
        status, yc = N.corrector(state, 20.0, g2, np.zeros(2), f2, _norm, False)
        assert status == 0
        assert state.rebuilds == 2
        assert state.a == 20.0
        np.testing.assert_allclose(yc, root2, rtol=1e-6)

    def test_failed_reuse_falls_back_to_rebuild(self):
        """A wrong stored matrix diverges; the corrector rebuilds and retries."""
        a = 10.0
        f_newton, g_new, root = _linear_problem(a)
        state = N.NewtonState(a=a, jac=-(a * np.eye(2) - A), factorized=False)
        status, yc = N.corrector(state, a, g_new, np.zeros(2), f_newton, _norm, False)
        assert status == 0
        assert state.rebuilds == 1
        np.testing.assert_allclose(yc, root, rtol=1e-6)

    def test_non_convergent_residual_reports_failure(self):
        """Modified Newton on a cube root diverges from any start off the root."""
        state = N.NewtonState()
        f = lambda x: np.cbrt(x - 1.0)
        g = lambda: G(f, np.array([2.0]), np.array([1e-8]))
        status, yc = N.corrector(state, 5.0, g, np.array([2.0]), f, _norm, True)
        assert status == -1
        np.testing.assert_array_equal(yc, [2.0])

    @pytest.mark.parametrize("factorize", [True, False])
    def test_singular_matrix_reports_failure(self, factorize):
        state = N.NewtonState()
        f = lambda x: np.array([x[0] - 1.0, 0.0 * x[1]])
        g = lambda: np.array([[1.0, 0.0], [0.0, 0.0]])
        y0 = np.array([2.0, 3.0])
        status, yc = N.corrector(state, 5.0, g, y0, f, _norm, factorize)
        assert status == -1
        np.testing.assert_array_equal(yc, y0)

    def test_non_finite_residual_reports_failure(self):
        state = N.NewtonState()
        f = lambda x: np.full_like(x, np.nan)
        status, yc = N.corrector(state, 5.0, lambda: np.eye(2), np.ones(2), f, _norm, True)
        assert status == -1
        np.testing.assert_array_equal(yc, np.ones(2))

    def test_non_finite_matrix_reports_failure(self):
        state = N.NewtonState()
        f = lambda x: x - 1.0
        g = lambda: np.array([[np.inf]])
        status, yc = N.corrector(state, 5.0, g, np.array([2.0]), f, _norm, True)
        assert status == -1
        assert state.a == 0.0


class TestNewtonState:
    def test_solve_matches_dense_and_factorized(self):
        M = np.array([[4.0, 1.0], [2.0, 3.0]])
        v = np.array([1.0, -1.0])
        dense = N.NewtonState()
        dense.rebuild(1.0, lambda: M, False)
        lu = N.NewtonState()
        lu.rebuild(1.0, lambda: M, True)
        np.testing.assert_allclose(dense.solve(v), np.linalg.solve(M, v), rtol=1e-14)
        np.testing.assert_allclose(lu.solve(v), np.linalg.solve(M, v), rtol=1e-14)

    @pytest.mark.parametrize("matrix", [
        np.array([[np.nan, 0.0], [0.0, 1.0]]),
        np.array([[1.0, 2.0], [2.0, 4.0]]),
    ])
    def test_unusable_matrix_discards_old_one(self, matrix):
        state = N.NewtonState()
        state.rebuild(1.0, lambda: np.eye(2), True)
        with pytest.raises(np.linalg.LinAlgError):
            state.rebuild(2.0, lambda: matrix, True)
        assert state.a == 0.0
        assert state.jac is None
        assert state.rebuilds == 1
