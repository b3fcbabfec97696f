"""
Forward-difference approximation of the iteration matrix.

The stepper needs the Jacobian of ``x -> F(t, x, a*x + b)``, which is
``dF/dy + a*dF/dy'``.  It is estimated one column at a time; each column
only reads ``y0`` and writes its own slice of the result.
"""

import numpy as np


def perturbation(y0, dy0, h, wt):
    """
    Per-coordinate increments for the finite-difference Jacobian.

    ``delta_i = max(|y0_i|, |h*dy0_i|, wt_i) * sqrt(eps)`` balances the
    truncation error of the difference quotient against cancellation.
    The sign of ``h*dy0`` is not used, so ``dy0 == 0`` is harmless.
    """
    y0 = np.asarray(y0)
    ep = np.finfo(np.result_type(y0.dtype, np.float32)).eps
    return np.maximum(np.maximum(np.abs(y0), np.abs(h * np.asarray(dy0))), wt) * np.sqrt(ep)


def G(f, y0, delta):
    """
    Finite-difference Jacobian of *f* at *y0*.

    Parameters
    ----------
    f : callable
        ``f(y) -> residual``; vector-valued for vector *y0*.
    y0 : float or ndarray, shape (n,)
        Linearisation point.
    delta : float or ndarray, shape (n,)
        Increment per coordinate.

    Returns
    -------
    float or ndarray, shape (n, n)
        Scalar derivative for scalar *y0*, otherwise the matrix whose
        i-th column is ``(f(y0 + delta_i e_i) - f(y0)) / delta_i``.
    """
    if np.ndim(y0) == 0:
        return (f(y0 + delta) - f(y0)) / delta

    y0 = np.asarray(y0)
    y0 = y0.astype(np.result_type(y0.dtype, np.float32), copy=False)
    delta = np.broadcast_to(np.asarray(delta), y0.shape)
    n = y0.size
    f0 = np.asarray(f(y0))
    s = np.empty((f0.size, n), dtype=np.result_type(f0.dtype, y0.dtype))
    for i in range(n):
        yi = y0.copy()
        yi[i] += delta[i]
        s[:, i] = (np.asarray(f(yi)) - f0) / delta[i]
    return s
