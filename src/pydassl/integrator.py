"""
Variable-order, variable-step BDF integrator for implicit DAEs
=============================================================

Solves ``F(t, y, y') = 0`` with backward differentiation formulas of order
1 to 6 and a modified Newton corrector, following the DASSL algorithm.

Implements:
    - Problem definition and lazy step iterator (dasslIterator, DAE)
    - Step-by-step protocol (start, step, done)
    - Batch driver over a time span (dasslSolve)

Each call to :func:`step` retries the step with a smaller step size (and
possibly a lower order) until the local error test passes, then records the
new point in the history and picks the order and step size of the next
step.  Rejections are handled inside the loop; only the two fatal
conditions, :class:`StepSizeUnderflow` and :class:`ExcessiveRejections`,
reach the caller.

Example
-------
>>> import numpy as np
>>> from pydassl import dasslSolve
>>> tout, yout, dyout = dasslSolve(lambda t, y, dy: dy + y, 1.0, [0.0, 5.0], dy0=-1.0)
>>> abs(yout[-1] - np.exp(-tout[-1])) < 1e-2
True
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

import numpy as np

from .counters import Counter
from .exceptions import ConfigurationError, DasslError, ExcessiveRejections, StepSizeUnderflow
from .history import HistoryBuffer
from .logger import get_logger
from .newton import NewtonState
from .norms import dassl_norm, dassl_weights
from .stepcontrol import newStepOrder
from .stepper import stepper
from .typedae import DAEOptions, validate_options

log = get_logger(__name__)


class Phase(Enum):
    """States of the step-acceptance loop."""
    ATTEMPTING = "attempting"
    ACCEPTED = "accepted"
    FATAL_STOP = "fatal_stop"


# ═════════════════════════════════════════════════════════════════════
#  Problem definition
# ═════════════════════════════════════════════════════════════════════

def _as_state_vector(value, name, dtype=None):
    """Convert a real scalar or 1-D real vector to a 1-D float array."""
    try:
        arr = np.asarray(value)
    except ValueError as exc:
        raise ConfigurationError(f"{name} should be a real number or a vector of real numbers") from exc

    numeric = np.issubdtype(arr.dtype, np.integer) or np.issubdtype(arr.dtype, np.floating)
    if arr.dtype == np.bool_ or not numeric:
        raise ConfigurationError(
            f"Unsupported type of {name} ({arr.dtype}), it should be a real number "
            "or a vector of real numbers"
        )
    if arr.ndim > 1:
        raise ConfigurationError(f"{name} must be a scalar or a 1-D vector, got shape {arr.shape}")
    if arr.ndim == 1 and arr.size == 0:
        raise ConfigurationError(f"{name} must not be empty")

    if dtype is None:
        dtype = arr.dtype if np.issubdtype(arr.dtype, np.floating) else np.float64
    return np.atleast_1d(arr).astype(dtype), arr.ndim == 0


@dataclass(frozen=True, eq=False)
class DAE:
    """
    Immutable description of one integration problem.

    Iterating over a DAE starts a new run from the initial data and yields
    the accepted steps ``(t, y, dy)``.  Scalar problems (``y0`` a number)
    are integrated as length-1 vectors; their residual is called with
    scalars and they yield scalars.

    Attributes
    ----------
    F : callable
        Residual ``F(t, y, dy)``.
    y0, dy0 : ndarray, shape (n,)
        Initial state and derivative.
    tstart : float
        Initial time.
    options : DAEOptions
        Numeric solver options.
    norm : callable
        ``norm(v, wt) -> float``.
    weights : callable
        ``weights(y, reltol, abstol) -> wt``.
    scalar : bool
        Whether the problem was posed with a scalar ``y0``.
    """
    F: Callable
    y0: np.ndarray
    dy0: np.ndarray
    tstart: float
    options: DAEOptions
    norm: Callable = dassl_norm
    weights: Callable = dassl_weights
    scalar: bool = False

    # option shortcuts used by the stepping code
    @property
    def reltol(self):
        return self.options.reltol

    @property
    def abstol(self):
        return self.options.abstol

    @property
    def initstep(self):
        return self.options.initstep

    @property
    def maxstep(self):
        return self.options.maxstep

    @property
    def minstep(self):
        return self.options.minstep

    @property
    def maxorder(self):
        return self.options.maxorder

    @property
    def tstop(self):
        return self.options.tstop

    @property
    def factorizeJacobian(self):
        return self.options.factorizeJacobian

    def residual(self, t, y, dy):
        """Evaluate F on the internal vector representation."""
        if self.scalar:
            return np.atleast_1d(np.asarray(self.F(t, y[0], dy[0]), dtype=self.y0.dtype))
        return np.asarray(self.F(t, y, dy), dtype=self.y0.dtype)

    def output(self, v):
        """Convert an internal vector to what the caller passed in."""
        if self.scalar:
            return v[0].item()
        return v.copy()

    def __iter__(self):
        state = start(self)
        while not done(state):
            yield step(self, state)


@dataclass
class DAEState:
    """
    Mutable state of one integration run.

    Attributes
    ----------
    history : HistoryBuffer
        Accepted steps, at most ``maxorder + 3``.
    h : float
        Step size proposed for the next step.
    newton : NewtonState
        Stored iteration matrix.
    counter : Counter
        Step statistics.
    order : int
        BDF order of the next step.
    r : float
        Last step multiplier.
    stop : bool
        Set once ``tstop`` is reached or a fatal error occurred.
    status : Phase
        Phase of the acceptance loop when the last step call returned.
    error : DasslError or None
        The fatal error that stopped the run, if any.
    """
    history: HistoryBuffer
    h: float
    newton: NewtonState = field(default_factory=NewtonState)
    counter: Counter = field(default_factory=Counter)
    order: int = 1
    r: float = 1.0
    stop: bool = False
    status: Phase = Phase.ATTEMPTING
    error: Any = None


def dasslIterator(F, y0, tstart, *, options=None, dy0=None,
                  norm=dassl_norm, weights=dassl_weights, **kwargs):
    """
    Define a DAE problem whose iteration yields the accepted steps.

    Parameters
    ----------
    F : callable
        Residual ``F(t, y, dy)``; zero along the solution.
    y0 : float or array_like, shape (n,)
        Initial state.  Its floating dtype is used throughout.
    tstart : float
        Initial time.
    options : DAEOptions, optional
        Base options; keywords below override single fields.
    dy0 : float or array_like, optional
        Initial derivative (default zero).
    norm, weights : callable, optional
        Weighted norm and error weights (defaults :func:`dassl_norm`,
        :func:`dassl_weights`).
    **kwargs
        ``reltol``, ``abstol``, ``initstep``, ``maxstep``, ``minstep``,
        ``maxorder``, ``tstop``, ``factorizeJacobian``.

    Returns
    -------
    DAE

    Raises
    ------
    ConfigurationError
        On invalid initial data or options.
    """
    opts = (options or DAEOptions()).replace(**kwargs)
    validate_options(opts)

    y0v, scalar = _as_state_vector(y0, "y0")
    if dy0 is None:
        dy0v = np.zeros_like(y0v)
    else:
        dy0v, dscalar = _as_state_vector(dy0, "dy0", dtype=y0v.dtype)
        if dy0v.shape != y0v.shape or dscalar != scalar:
            raise ConfigurationError(
                f"dy0 must have the same shape as y0, got {np.shape(dy0)} and {np.shape(y0)}"
            )

    tstart = float(tstart)
    if not opts.tstop > tstart:
        raise ConfigurationError(f"tstop={opts.tstop!r} must lie after tstart={tstart!r}")
    if not callable(F):
        raise ConfigurationError("F must be callable as F(t, y, dy)")

    return DAE(F, y0v, dy0v, tstart, opts, norm, weights, scalar)


# ═════════════════════════════════════════════════════════════════════
#  Step-by-step protocol
# ═════════════════════════════════════════════════════════════════════

def start(dae):
    """Fresh integration state at the initial data of *dae*."""
    history = HistoryBuffer(dae.maxorder + 3, dae.tstart, dae.y0.copy(), dae.dy0.copy())
    return DAEState(history=history, h=dae.initstep)


def done(state):
    """True once the run reached ``tstop`` or failed."""
    return state.stop


def _fatal(state, exc):
    state.stop = True
    state.status = Phase.FATAL_STOP
    state.error = exc
    log.info(str(exc))
    raise exc


def step(dae, state):
    """
    Advance the integration by one accepted step.

    Rejected attempts are retried inside this call.  A corrector failure
    divides the step by four at the same order.  A failed error test asks
    the controller for a new step and order, and that order is applied to
    the retry at once, so ``state.order`` (and ``counter.fixed``, if the
    order changed) can already differ from the last accepted step while
    the call is still looping.

    Parameters
    ----------
    dae : DAE
        Problem definition.
    state : DAEState
        Integration state, updated in place.

    Returns
    -------
    (t, y, dy)
        The accepted step.

    Raises
    ------
    StepSizeUnderflow
        The step size fell below ``max(4*eps, minstep)`` or no longer
        changes ``t`` in floating point.
    ExcessiveRejections
        At least ``-2/3*ln(eps)`` rejections in a row.
    """
    if state.stop:
        raise DasslError("integration has already stopped")

    ep = np.finfo(np.float64).eps
    hmin = max(4 * ep, dae.minstep)
    max_fail = -2.0 / 3.0 * np.log(ep)

    t, y, _ = state.history.last()
    h_trial = state.h
    state.status = Phase.ATTEMPTING

    while state.status is Phase.ATTEMPTING:

        remaining = dae.tstop - t
        h = min(h_trial, dae.maxstep, remaining)

        # t + h == t once h drops below the spacing of floats at t
        if h < hmin or t + h <= t:
            _fatal(state, StepSizeUnderflow(t, h, hmin))
        if state.counter.rejected_current >= max_fail:
            _fatal(state, ExcessiveRejections(t, h, state.counter.rejected_current))

        wt = dae.weights(y, dae.reltol, dae.abstol)

        def normy(v):
            return dae.norm(v, wt)

        status, err, yn, dyn = stepper(state, dae, h, wt, normy)

        if status < 0:
            # corrector diverged: shrink the step, keep the order
            state.counter.rejected_step(newton_failure=True)
            log.debug("t=%.6g: corrector failed with h=%.4g", t, h)
            h_trial = h / 4

        elif err > 1:
            # local error too large: new step and order without the trial point
            state.counter.rejected_step()
            log.debug("t=%.6g: error test failed with h=%.4g (err=%.4g)", t, h, err)
            r, order = newStepOrder(state, dae, h, normy, err)
            if order != state.order:
                state.counter.fixed = 0
            state.order = order
            h_trial = h * r

        else:
            state.status = Phase.ACCEPTED

    t_new = dae.tstop if h == remaining else t + h
    state.history.push(t_new, yn, dyn)

    r_new, ord_new = newStepOrder(state, dae, h, normy, err)
    state.counter.order_update(ord_new == state.order, r_new == state.r)
    state.counter.accepted_step()

    state.r, state.order = r_new, ord_new
    state.h = h * r_new

    if t_new >= dae.tstop:
        state.stop = True
        c = state.counter
        log.debug("reached tstop=%.6g: %d accepted, %d rejected (%d corrector, %d error test)",
                  dae.tstop, c.accepted, c.rejected, c.newton_failures, c.error_failures)

    return t_new, dae.output(yn), dae.output(dyn)


# ═════════════════════════════════════════════════════════════════════
#  Batch driver
# ═════════════════════════════════════════════════════════════════════

def dasslSolve(F, y0, tspan, dy0=None, **options):
    """
    Integrate over ``tspan = [t0, ..., t1]`` and collect every accepted step.

    Parameters
    ----------
    F : callable
        Residual ``F(t, y, dy)``.
    y0 : float or array_like
        State at ``t0``.
    tspan : sequence of float
        Only the first and last entries are used.
    dy0 : float or array_like, optional
        Derivative at ``t0`` (default zero).
    **options
        Passed to :func:`dasslIterator`; ``tstop`` is set to ``t1``.

    Returns
    -------
    tout : list of float
    yout : list
    dyout : list
        Start with the initial data; the last time satisfies ``t >= t1``.

    Raises
    ------
    StepSizeUnderflow, ExcessiveRejections
        If the integration cannot reach ``t1``.
    """
    t0, t1 = float(tspan[0]), float(tspan[-1])
    options["tstop"] = t1
    dae = dasslIterator(F, y0, t0, dy0=dy0, **options)

    tout = [t0]
    yout = [dae.output(dae.y0)]
    dyout = [dae.output(dae.dy0)]
    for t, y, dy in dae:
        tout.append(t)
        yout.append(y)
        dyout.append(dy)
        if t >= t1:
            break

    log.debug("dasslSolve: %d steps to t=%.6g", len(tout) - 1, tout[-1])
    return tout, yout, dyout
