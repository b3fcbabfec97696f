"""
Tests for pydassl.errorestimates — divided-difference error estimates.

Data sampled from a polynomial of degree < j has vanishing j-th divided
difference, so the corresponding estimate must be zero.
"""

import numpy as np
import pytest

from pydassl.errorestimates import errorEstimates

absnorm = lambda v: float(np.max(np.abs(np.atleast_1d(v))))


def _history(f, t):
    """Values of f on all but the last (tentative) time."""
    return np.array([[f(ti)] for ti in t[:-1]])


class TestErrorEstimates:
    def test_uniform_quadratic_k1(self):
        """h=1, y=t^2/2: sigma_2 = 1/2, phi_3 = 1*2*(1/2) -> error[1] = 1/2."""
        t = np.array([0.0, 1.0, 2.0, 3.0])
        y = _history(lambda s: 0.5 * s ** 2, t)
        errors = errorEstimates(t, y, absnorm, 1, 0, 6)
        assert errors.shape == (8,)
        assert errors[1] == pytest.approx(0.5)
        assert errors[2] == 0.0

    def test_linear_data_has_zero_error_k1(self):
        t = np.array([0.0, 0.1, 0.25, 0.3])
        y = _history(lambda s: 3.0 * s - 1.0, t)
        errors = errorEstimates(t, y, absnorm, 1, 0, 6)
        assert errors[1] == pytest.approx(0.0, abs=1e-12)

    def test_quadratic_data_k2(self):
        """Quadratic data: order-2 estimate vanishes, order-1 does not."""
        t = np.array([0.0, 0.1, 0.25, 0.3, 0.42])
        y = _history(lambda s: s ** 2 - s, t)
        errors = errorEstimates(t, y, absnorm, 2, 0, 6)
        assert errors[2] == pytest.approx(0.0, abs=1e-10)
        assert errors[1] > 0.0

    def test_k3_fills_three_orders(self):
        t = np.linspace(0.0, 0.5, 7)
        y = _history(np.exp, t)
        errors = errorEstimates(t, y, absnorm, 3, 0, 6)
        assert errors[1] > 0 and errors[2] > 0 and errors[3] > 0
        assert errors[4] == 0.0

    def test_higher_order_estimates_smaller_for_smooth_data(self):
        """On a smooth solution with small steps, errors fall with the order."""
        t = np.linspace(0.0, 0.05, 7)
        y = _history(np.exp, t)
        errors = errorEstimates(t, y, absnorm, 3, 0, 6)
        assert errors[1] > errors[2] > errors[3]

    def test_k_plus_one_needs_fixed_order(self):
        t = np.linspace(0.0, 0.6, 7)
        y = _history(lambda s: s ** 5, t)
        without = errorEstimates(t, y, absnorm, 2, 2, 6)
        with_ = errorEstimates(t, y, absnorm, 2, 3, 6)
        assert without[3] == 0.0
        assert with_[3] > 0.0
        np.testing.assert_allclose(without[:3], with_[:3])

    def test_k_plus_one_not_beyond_maxorder(self):
        t = np.linspace(0.0, 0.6, 7)
        y = _history(lambda s: s ** 5, t)
        errors = errorEstimates(t, y, absnorm, 2, 10, 2)
        assert errors[3] == 0.0

    def test_k_plus_one_needs_history(self):
        """With only k+2 stored values the k+1 estimate is skipped."""
        t = np.linspace(0.0, 0.4, 5)
        y = _history(lambda s: s ** 5, t)
        errors = errorEstimates(t, y, absnorm, 2, 10, 6)
        assert errors[3] == 0.0

    def test_vector_state(self):
        t = np.linspace(0.0, 0.3, 5)
        y = np.array([[np.exp(s), s] for s in t[:-1]])
        errors = errorEstimates(t, y, absnorm, 2, 0, 6)
        assert errors[2] > 0.0

    def test_size_mismatch_raises(self):
        with pytest.raises(ValueError):
            errorEstimates(np.arange(4.0), np.zeros((4, 1)), absnorm, 1, 0, 6)
