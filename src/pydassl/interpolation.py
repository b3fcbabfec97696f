"""
Polynomial interpolation kernels used by the BDF predictor and the
error estimator.

All three routines work on the unique polynomial of degree ``n-1`` passing
through ``n`` distinct nodes.  The Lagrange basis weights depend on the
nodes only and are computed by JIT-compiled loops; the values (scalars or
vectors, one per node) are then combined with a single contraction.

Coincident nodes raise ``ZeroDivisionError`` from the compiled kernels.
"""

from typing import Sequence, Union

import numpy as np
from numba import jit


# ═════════════════════════════════════════════════════════════════════
#  Basis-weight kernels
# ═════════════════════════════════════════════════════════════════════

@jit(nopython=True, cache=True)
def _lagrange_weights(x, x0):
    """Values L_i(x0) of the Lagrange basis polynomials."""
    n = x.shape[0]
    w = np.ones(n)
    for i in range(n):
        for j in range(n):
            if j != i:
                w[i] *= (x0 - x[j]) / (x[i] - x[j])
    return w


@jit(nopython=True, cache=True)
def _lagrange_derivative_weights(x, x0):
    """Derivatives L_i'(x0) of the Lagrange basis polynomials."""
    n = x.shape[0]
    w = np.zeros(n)
    for i in range(n):
        dLi = 0.0
        for k in range(n):
            if k == i:
                continue
            p = 1.0
            for j in range(n):
                if j != k and j != i:
                    p *= (x0 - x[j]) / (x[i] - x[j])
            dLi += p / (x[i] - x[k])
        w[i] = dLi
    return w


@jit(nopython=True, cache=True)
def _leading_coefficient_weights(x):
    """Weights 1 / prod_{j != i} (x_i - x_j) of the divided difference."""
    n = x.shape[0]
    w = np.ones(n)
    for i in range(n):
        for j in range(n):
            if j != i:
                w[i] *= 1.0 / (x[i] - x[j])
    return w


def _nodes(x: Sequence[float], y) -> tuple:
    xs = np.ascontiguousarray(x, dtype=np.float64)
    ys = np.asarray(y)
    if xs.ndim != 1 or ys.shape[0] != xs.shape[0]:
        raise ValueError("x and y have to be of the same size.")
    return xs, ys


# ═════════════════════════════════════════════════════════════════════
#  Public interface
# ═════════════════════════════════════════════════════════════════════

def interpolateAt(x: Sequence[float], y, x0: float) -> Union[float, np.ndarray]:
    """
    Value of the interpolating polynomial at *x0*.

    Parameters
    ----------
    x : array_like, shape (n,)
        Distinct nodes.
    y : array_like, shape (n,) or (n, m)
        Values at the nodes, scalars or length-``m`` vectors.
    x0 : float
        Evaluation point.

    Returns
    -------
    float or ndarray, shape (m,)
    """
    xs, ys = _nodes(x, y)
    return _lagrange_weights(xs, float(x0)) @ ys


def interpolateDerivativeAt(x: Sequence[float], y, x0: float) -> Union[float, np.ndarray]:
    """
    First derivative of the interpolating polynomial at *x0*.

    Same arguments as :func:`interpolateAt`.
    """
    xs, ys = _nodes(x, y)
    return _lagrange_derivative_weights(xs, float(x0)) @ ys


def interpolateHighestDerivative(x: Sequence[float], y) -> Union[float, np.ndarray]:
    """
    Leading coefficient of the interpolating polynomial.

    If p(x) = a_{n-1} x^{n-1} + ... + a_0 interpolates the data, this
    returns ``a_{n-1}``, i.e. the divided difference ``y[x_1, ..., x_n]``.
    The error estimator scales it by products of step sums, so no
    factorial is applied here.
    """
    xs, ys = _nodes(x, y)
    return _leading_coefficient_weights(xs) @ ys
