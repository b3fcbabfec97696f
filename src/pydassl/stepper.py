"""
One attempt of a variable-step BDF step.

The predictor extrapolates the last ``k`` accepted points to the new time,
the BDF formula turns ``F(t, y, y') = 0`` into an equation in ``y`` alone,
and the modified Newton corrector solves it.  The distance between
predictor and corrector, scaled by the variable-step error constant, is the
local error estimate the integrator tests against 1.
"""

import numpy as np

from .interpolation import interpolateAt, interpolateDerivativeAt
from .jacobian import G, perturbation
from .newton import corrector


def stepper(state, dae, h_next, wt, norm):
    """
    Attempt a step of size *h_next* at the current order.

    Parameters
    ----------
    state : DAEState
        Integration state (history, order, Newton matrix).  Only the stored
        Newton matrix is modified.
    dae : DAE
        Problem definition.
    h_next : float
        Trial step size.
    wt : ndarray
        Error weights of the last accepted state.
    norm : callable
        Weighted norm ``v -> float``.

    Returns
    -------
    status : int
        0 if the corrector converged, -1 otherwise.
    err : float
        Local error estimate (``nan`` when status < 0).
    yc : ndarray
        Corrected value at ``t + h_next``.
    dyc : ndarray
        Derivative at ``t + h_next`` implied by the BDF formula.
    """
    k = state.order
    t = state.history.t
    y = state.history.y
    dy = state.history.dy

    if k < 1 or k > dae.maxorder:
        raise RuntimeError(f"Order k={k} should be [1,...,{dae.maxorder}]")
    if t.size < k:
        raise RuntimeError(f"Not enough points in a grid to use method of order {k}")

    tk = t[-k:]
    yk = y[-k:]
    t_next = tk[-1] + h_next

    dtype = dae.y0.dtype
    if t.size == 1:
        # first step: explicit Euler from the initial data
        dy0 = dy[0]
        y0 = (y[0] + h_next * dy[0]).astype(dtype)
    else:
        dy0 = interpolateDerivativeAt(tk, yk, t_next).astype(dtype)
        y0 = interpolateAt(tk, yk, t_next).astype(dtype)

    alphas = -sum(1.0 / j for j in range(1, k + 1))

    a = -alphas / h_next
    b = dy0 - a * y0

    delta = perturbation(y0, dy0, h_next, wt)

    def f_newton(yc):
        return dae.residual(t_next, yc, a * yc + b)

    def g_new():
        return G(f_newton, y0, delta)

    status, yc = corrector(state.newton, a, g_new, y0, f_newton, norm, dae.factorizeJacobian)

    if status < 0:
        return status, np.nan, y0, dy0

    alpha = np.empty(k + 1)
    for i in range(1, k + 1):
        alpha[i - 1] = h_next / (t_next - t[-i])

    if t.size >= k + 1:
        t0 = t[-k - 1]
    elif t.size >= 2:
        # not enough history: pretend the first step was repeated once more
        t0 = t[0] - (t[1] - t[0])
    else:
        t0 = t[0] - h_next

    alpha[k] = h_next / (t_next - t0)

    alpha0 = -np.sum(alpha[:k])
    M = max(alpha[k], abs(alpha[k] + alphas - alpha0))
    err = norm(yc - y0) * M

    return status, err, yc.astype(dtype, copy=False), (a * yc + b).astype(dtype)
