"""
pydassl: variable-order BDF integration of implicit differential-algebraic
equations F(t, y, y') = 0 (the DASSL algorithm).
"""

__version__ = "0.1.0"

# Import modules themselves (allows: from pydassl import stepper)
from . import counters
from . import errorestimates
from . import exceptions
from . import history
from . import integrator
from . import interpolation
from . import jacobian
from . import logger
from . import newton
from . import norms
from . import stepcontrol
from . import stepper
from . import typedae

from .exceptions import (
    ConfigurationError,
    DasslError,
    ExcessiveRejections,
    StepSizeUnderflow,
)
from .integrator import DAE, DAEState, dasslIterator, dasslSolve, done, start, step
from .norms import dassl_norm, dassl_weights
from .typedae import DAEOptions, ReadDAEParams, WriteDAEParams

__all__ = [
    "counters",
    "errorestimates",
    "exceptions",
    "history",
    "integrator",
    "interpolation",
    "jacobian",
    "logger",
    "newton",
    "norms",
    "stepcontrol",
    "stepper",
    "typedae",
    "ConfigurationError",
    "DasslError",
    "ExcessiveRejections",
    "StepSizeUnderflow",
    "DAE",
    "DAEState",
    "dasslIterator",
    "dasslSolve",
    "done",
    "start",
    "step",
    "dassl_norm",
    "dassl_weights",
    "DAEOptions",
    "ReadDAEParams",
    "WriteDAEParams",
]
