"""
Exceptions raised by the DAE integrator.

Only configuration errors and fatal stops are exceptions.  Rejected steps
(Newton non-convergence, local error above tolerance) are absorbed by the
stepping loop and never reach the caller.
"""


class DasslError(RuntimeError):
    """Base class for all pydassl errors."""


class ConfigurationError(DasslError, ValueError):
    """Invalid problem definition or solver option, raised before stepping."""


class StepSizeUnderflow(DasslError):
    """The step size required to continue fell below the numerical floor."""

    def __init__(self, t, h, hmin):
        self.t = t
        self.h = h
        self.hmin = hmin
        super().__init__(f"Stepsize too small (h={h:.6g} < hmin={hmin:.6g} at t={t:.6g})")


class ExcessiveRejections(DasslError):
    """Too many consecutive rejected steps; the problem is likely ill-posed."""

    def __init__(self, t, h, rejections):
        self.t = t
        self.h = h
        self.rejections = rejections
        super().__init__(
            f"Too many ({rejections}) failed steps in a row (h={h:.6g} at t={t:.6g})"
        )
