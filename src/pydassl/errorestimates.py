"""
Local truncation error estimates for neighbouring BDF orders.

For the current order k the estimator returns the errors the methods of
order k-2, k-1, k and, when the history allows it, k+1 would have made on
the step just taken.  The estimates are built from scaled divided
differences

    phi_i = psi_1 * ... * psi_{i-1} * y[t_{n-i+1}, ..., t_n]

where ``psi_j`` is the sum of the last ``j`` step sizes, and the BDF error
constants ``sigma_i``.
"""

import numpy as np

from .interpolation import interpolateHighestDerivative


def errorEstimates(t, y, norm, k, nfixed, maxorder):
    """
    Error estimates of the methods of order k-2, k-1, k and k+1.

    Parameters
    ----------
    t : array_like, shape (m + 1,)
        History times followed by the tentative next time.
    y : array_like, shape (m, n)
        History values.
    norm : callable
        Weighted norm ``v -> float``.
    k : int
        Current order.
    nfixed : int
        Number of consecutive steps taken at order k.  The order-(k+1)
        estimate needs at least k+1 of them.
    maxorder : int
        Largest admissible order.

    Returns
    -------
    errors : ndarray, shape (maxorder + 2,)
        ``errors[j]`` is the estimate for order ``j``; entries that were not
        computed are 0.
    """
    t = np.asarray(t, dtype=np.float64)
    y = np.asarray(y)
    if t.size != y.shape[0] + 1:
        raise ValueError("incompatible size of y and t")

    h = np.diff(t)
    psi = np.cumsum(h[::-1][:k + 2])
    th = t[:-1]

    def phi(i):
        # column i (1-based) uses the last i history points
        return np.prod(psi[:i - 1]) * interpolateHighestDerivative(th[-i:], y[-i:])

    sigma = np.ones(k + 2)
    for i in range(2, k + 3):
        sigma[i - 1] = (i - 1) * sigma[i - 2] * h[-1] / psi[i - 1]

    errors = np.zeros(maxorder + 2)
    errors[k] = sigma[k] * norm(phi(k + 2))

    if k >= 2:
        errors[k - 1] = sigma[k - 1] * norm(phi(k + 1))

    if k >= 3:
        errors[k - 2] = sigma[k - 2] * norm(phi(k))

    if k + 1 <= maxorder and nfixed >= k + 1 and y.shape[0] >= k + 3:
        errors[k + 1] = norm(phi(k + 3))

    return errors
