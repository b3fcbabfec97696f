"""
Order and step-size selection.

After every step attempt the integrator asks :func:`newStepOrder` for a
step multiplier ``r`` and the order of the next attempt.  During start-up
(too few stored steps for the error estimator) the order grows by one and
the step doubles after each accepted step; afterwards the choice is driven
by the error estimates of the neighbouring orders.
"""

import numpy as np

from .errorestimates import errorEstimates
from .logger import get_logger

log = get_logger(__name__)


def newStepOrder(state, dae, h, normy, erk):
    """
    Step multiplier and order for the next attempt.

    Parameters
    ----------
    state : DAEState
        Integration state.  On an accepted step its history already holds
        the new point; on a rejected one it does not.
    dae : DAE
        Problem definition (for ``maxorder``).
    h : float
        Step size of the attempt just made.
    normy : callable
        Weighted norm.
    erk : float
        Local error estimate of the attempt at the current order.

    Returns
    -------
    (r, order) : (float, int)
    """
    t = np.append(state.history.t, state.history.t[-1] + h)
    y = state.history.y
    k = state.order
    num_fail = state.counter.rejected_current
    maxorder = dae.maxorder

    available_steps = t.size

    if num_fail >= 3:
        # several rejections in a row: restart at order one
        r, order = 0.25, 1

    elif available_steps < k + 3:
        # start-up, not enough points for the error estimator
        if num_fail == 0:
            r, order = 2.0, min(k + 1, maxorder)
        else:
            r, order = 0.25, max(k - 1, 1)

    else:
        r, order = newStepOrderContinuous(t, y, normy, k, state.counter.fixed, erk, maxorder)
        r = normalizeStepSize(r, num_fail)
        # never raise the order right after a rejection
        if num_fail > 0:
            order = min(order, k)

    log.debug2("order %d -> %d, r=%.4g (failures=%d)", k, order, r, num_fail)
    return r, order


def newStepOrderContinuous(t, y, normy, k, nfixed, erk, maxorder):
    """
    Order and raw step multiplier from the error estimates.

    ``erk`` replaces the estimate of the current order by the error of the
    attempt actually made.  The estimates are normalised as
    ``errors[i]*(i+1)`` before they are compared.

    Returns
    -------
    (r, order) : (float, int)
        ``r = (2*err + 1e-4)^(-1/(order+1))`` with ``err`` the estimate of
        the chosen order.
    """
    errors = errorEstimates(t, y, normy, k, nfixed, maxorder)
    errors[k] = erk
    nerrors = errors * np.arange(1, errors.size + 1)

    order = k

    if k == maxorder:
        order = k

    elif k == 1:
        if nerrors[k] / 2 > nerrors[k + 1]:
            order = k + 1

    elif k == 2 and nerrors[k - 1] < nerrors[k] / 2:
        order = k - 1

    elif k >= 3 and max(nerrors[k - 1], nerrors[k - 2]) <= nerrors[k]:
        order = k - 1

    elif nfixed >= k + 1:
        # the order k+1 estimate is available
        if nerrors[k - 1] <= min(nerrors[k], nerrors[k + 1]):
            order = k - 1
        elif nerrors[k] <= nerrors[k + 1]:
            order = k
        else:
            order = k + 1

    est = errors[order]
    r = (2 * est + 1e-4) ** (-1.0 / (order + 1))

    return float(r), order


def normalizeStepSize(r, numFail):
    """
    Limit the step multiplier according to the recent failures.

    Parameters
    ----------
    r : float
        Suggested multiplier.
    numFail : int
        Rejections since the last accepted step.

    Returns
    -------
    float
        * no failure: 2 if ``r >= 2``; ``r`` clipped to [0.5, 0.9] if
          ``r < 1``; otherwise 1 (keep the step).
        * one failure: ``max(0.25, 0.9*min(r, 1))``.
        * two failures: 0.25.
        * any other count: ``r`` unchanged.
    """
    if numFail == 0:
        if r >= 2:
            r = 2.0
        elif r < 1:
            r = max(0.5, min(r, 0.9))
        else:
            r = 1.0

    elif numFail == 1:
        r = max(0.25, 0.9 * min(r, 1.0))

    elif numFail == 2:
        r = 0.25

    return r
