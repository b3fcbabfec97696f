"""
Modified Newton corrector.

The corrector solves ``F(t_next, yc, a*yc + b) = 0`` for ``yc``.  The
iteration matrix ``dF/dy + a*dF/dy'`` is expensive (one residual call per
unknown), so it is kept between steps together with the coefficient ``a``
it was built for, and only rebuilt when ``a`` has drifted too far or the
iteration with the stale matrix fails.
"""

import warnings
from dataclasses import dataclass
from typing import Any, Callable, Tuple

import numpy as np
from scipy.linalg import LinAlgWarning, lu_factor, lu_solve

from .logger import get_logger

log = get_logger(__name__)

# Relative drift of ``a`` beyond which the stored matrix is rebuilt
JACOBIAN_DRIFT = 0.25
# Newton iterations after the first increment (4 residual calls in total)
MAXIT = 3
# Divergence threshold on the convergence rate
RHO_MAX = 0.9
# Projected error below which the corrector has converged
CONVERGENCE_TOL = 1.0 / 3.0


@dataclass
class NewtonState:
    """
    Stored iteration matrix of the modified Newton method.

    Attributes
    ----------
    a : float
        Coefficient ``a`` the matrix was built for; 0 means "never built".
    jac : ndarray or tuple or None
        Dense matrix, or ``(lu, piv)`` from ``scipy.linalg.lu_factor``
        when ``factorized`` is set.
    factorized : bool
        Whether ``jac`` holds an LU factorisation.
    rebuilds : int
        Number of times the matrix has been recomputed.
    """
    a: float = 0.0
    jac: Any = None
    factorized: bool = False
    rebuilds: int = 0

    def rebuild(self, a_new: float, g_new: Callable[[], np.ndarray], factorize: bool) -> None:
        """
        Recompute the matrix at the current predictor.

        Raises ``numpy.linalg.LinAlgError`` if the new matrix is not finite
        or its LU factors are exactly singular.  The old matrix is discarded
        either way.
        """
        self.a, self.jac, self.factorized = 0.0, None, False
        jac = np.atleast_2d(g_new())
        if not np.all(np.isfinite(jac)):
            raise np.linalg.LinAlgError("iteration matrix is not finite")
        if factorize:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore", LinAlgWarning)
                lu, piv = lu_factor(jac)
            if np.any(np.diag(lu) == 0):
                raise np.linalg.LinAlgError("Singular matrix")
            self.jac = (lu, piv)
        else:
            self.jac = jac
        self.factorized = factorize
        self.a = a_new
        self.rebuilds += 1
        log.debug3("iteration matrix rebuilt for a=%.6g", a_new)

    def solve(self, v: np.ndarray) -> np.ndarray:
        """Return ``jac^{-1} v``; a singular dense matrix raises ``LinAlgError``."""
        if self.factorized:
            return lu_solve(self.jac, v, check_finite=False)
        return np.linalg.solve(self.jac, v)


def newton_iteration(
    f: Callable[[np.ndarray], np.ndarray],
    y0: np.ndarray,
    norm: Callable[[np.ndarray], float],
) -> Tuple[int, np.ndarray]:
    """
    Fixed-point iteration ``y <- y + f(y)`` started from *y0*.

    *f* returns the Newton increment.  At most four increments are
    computed.  The convergence rate ``rho`` is measured against the first
    increment, ``rho = (|d_i| / |d_0|)^(1/i)``; the iteration stops with
    success once the projected remaining error ``rho/(1-rho)*|d_i|`` drops
    below 1/3, and with failure as soon as ``rho > 0.9``.

    A non-finite increment counts as divergence.

    Returns
    -------
    status : int
        0 on convergence, -1 otherwise.
    y : ndarray
        The converged value, or *y0* unchanged on failure.
    """
    delta = f(y0)
    if not np.all(np.isfinite(delta)):
        return -1, y0
    norm1 = norm(delta)
    yn = y0 + delta

    ep = np.finfo(np.result_type(np.asarray(y0).dtype, np.float32)).eps
    if norm1 < 10 * ep:
        return 0, yn

    for i in range(1, MAXIT + 1):
        delta = f(yn)
        if not np.all(np.isfinite(delta)):
            return -1, y0
        normn = norm(delta)
        rho = (normn / norm1) ** (1.0 / i)
        yn = yn + delta

        if rho > RHO_MAX:
            return -1, y0

        err = rho / (1.0 - rho) * normn
        if err < CONVERGENCE_TOL:
            return 0, yn

    return -1, y0


def corrector(
    newton: NewtonState,
    a_new: float,
    g_new: Callable[[], np.ndarray],
    y0: np.ndarray,
    f_newton: Callable[[np.ndarray], np.ndarray],
    norm: Callable[[np.ndarray], float],
    factorizeJacobian: bool,
) -> Tuple[int, np.ndarray]:
    """
    Corrected value of the next step, rebuilding the iteration matrix if needed.

    Parameters
    ----------
    newton : NewtonState
        Stored matrix and its coefficient; updated in place.
    a_new : float
        Coefficient ``a`` of the current step.
    g_new : callable
        ``g_new()`` returns a fresh iteration matrix at the predictor.
    y0 : ndarray
        Predicted value, the starting point of the iteration.
    f_newton : callable
        Corrector residual ``yc -> F(t_next, yc, a*yc + b)``.
    norm : callable
        Weighted norm used for the convergence test.
    factorizeJacobian : bool
        Store the LU factorisation instead of the dense matrix.

    Returns
    -------
    (status, yc) : (int, ndarray)
        status 0 on success, -1 if the iteration did not converge or the
        iteration matrix is singular or not finite.
    """
    # a == 0 (no matrix yet) always lands in the first branch
    if newton.a == 0 or abs((newton.a - a_new) / (newton.a + a_new)) > JACOBIAN_DRIFT:
        return _rebuild_and_iterate(newton, a_new, g_new, y0, f_newton, norm, factorizeJacobian)

    # the stale matrix scales like a_old; c compensates for the drift in a
    c = 2.0 * newton.a / (a_new + newton.a)
    status, yc = _iterate(newton, c, y0, f_newton, norm)

    if status < 0:
        log.debug3("stale iteration matrix failed to converge, rebuilding")
        status, yc = _rebuild_and_iterate(newton, a_new, g_new, y0, f_newton, norm, factorizeJacobian)

    return status, yc


def _iterate(newton, c, y0, f_newton, norm):
    try:
        return newton_iteration(lambda x: -c * newton.solve(f_newton(x)), y0, norm)
    except np.linalg.LinAlgError as exc:
        log.debug3("corrector stopped: %s", exc)
        return -1, y0


def _rebuild_and_iterate(newton, a_new, g_new, y0, f_newton, norm, factorizeJacobian):
    try:
        newton.rebuild(a_new, g_new, factorizeJacobian)
    except np.linalg.LinAlgError as exc:
        log.debug3("iteration matrix unusable for a=%.6g: %s", a_new, exc)
        return -1, y0
    return _iterate(newton, 1.0, y0, f_newton, norm)
