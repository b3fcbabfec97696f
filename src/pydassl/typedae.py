"""
Solver options and their parameter-file representation.

The numeric options of the integrator live in :class:`DAEOptions`.  They
can be given as keywords to :func:`pydassl.dasslIterator`, or stored in a
plain-text parameter file with one value per line followed by an optional
comment::

    1.0E-03     : Relative tolerance.
    1.0E-05     : Absolute tolerance.
    1.0E-04     : Initial step size.
    INF         : Maximum step size.
    0.0         : Minimum step size.
    6           : Maximum BDF order (1-6).
    1.0E+01     : Stop time.
    1           : Store the factorized Jacobian (0/1).

The ``norm`` and ``weights`` callables are not part of the file format.
"""

from dataclasses import asdict, dataclass, fields

import numpy as np

from .exceptions import ConfigurationError

# BDF methods of order above six are not zero-stable
MAXORDER = 6


# ---------------------------------------------------------------------------
# Data structure
# ---------------------------------------------------------------------------
@dataclass
class DAEOptions:
    """
    Numeric solver options.

    Attributes
    ----------
    reltol : float
        Relative tolerance.
    abstol : float
        Absolute tolerance.
    initstep : float
        First trial step size.
    maxstep : float
        Upper bound on the step size.
    minstep : float
        Lower bound on the step size; a smaller required step is fatal.
    maxorder : int
        Highest BDF order used, between 1 and 6.
    tstop : float
        Time at which the integration stops.
    factorizeJacobian : bool
        Keep the LU factorisation of the iteration matrix.
    """
    reltol: float = 1.0e-3
    abstol: float = 1.0e-5
    initstep: float = 1.0e-4
    maxstep: float = np.inf
    minstep: float = 0.0
    maxorder: int = MAXORDER
    tstop: float = np.inf
    factorizeJacobian: bool = True

    def replace(self, **changes):
        """Copy with some options changed; unknown names are an error."""
        names = {f.name for f in fields(self)}
        unknown = set(changes) - names
        if unknown:
            raise ConfigurationError(f"Unknown solver option(s): {', '.join(sorted(unknown))}")
        values = asdict(self)
        values.update(changes)
        return DAEOptions(**values)


def validate_options(opts):
    """
    Check the option values; raise ConfigurationError on the first problem.

    Parameters
    ----------
    opts : DAEOptions
    """
    if isinstance(opts.maxorder, bool) or not isinstance(opts.maxorder, (int, np.integer)):
        raise ConfigurationError(f"maxorder must be an integer, got {opts.maxorder!r}")
    if not 1 <= opts.maxorder <= MAXORDER:
        raise ConfigurationError(f"maxorder={opts.maxorder} should be in [1,...,{MAXORDER}]")
    if opts.reltol < 0 or opts.abstol < 0:
        raise ConfigurationError("Tolerances must be non-negative")
    if opts.reltol == 0 and opts.abstol == 0:
        raise ConfigurationError("At least one of reltol and abstol must be positive")
    if not opts.initstep > 0:
        raise ConfigurationError(f"initstep must be positive, got {opts.initstep!r}")
    if opts.minstep < 0 or opts.minstep > opts.maxstep:
        raise ConfigurationError(
            f"Need 0 <= minstep <= maxstep, got minstep={opts.minstep!r}, maxstep={opts.maxstep!r}"
        )


# ---------------------------------------------------------------------------
# File I/O
# ---------------------------------------------------------------------------
def GetFileParam(file_handle):
    """Read a single numeric parameter from a file handle.

    Reads one line, extracts the first whitespace-delimited token and
    converts it to float.  Anything after the token is a comment.

    Raises
    ------
    ValueError
        If the line is empty or cannot be parsed.
    """
    line = file_handle.readline()
    if not line:
        raise ValueError("Unexpected end of file while reading parameter")
    parts = line.split()
    if not parts:
        raise ValueError(f"Empty line in parameter file: {line!r}")
    token = parts[0]
    if token.startswith(("!", "#")):
        raise ValueError(f"Comment-only line: {line!r}")
    return float(token)


def readdaeparams_sub(fh):
    """Read solver options from an open file handle.

    Parameters
    ----------
    fh : file-like
        Readable text stream in the layout shown in the module docstring.

    Returns
    -------
    DAEOptions
    """
    opts = DAEOptions(
        reltol=GetFileParam(fh),
        abstol=GetFileParam(fh),
        initstep=GetFileParam(fh),
        maxstep=GetFileParam(fh),
        minstep=GetFileParam(fh),
        maxorder=int(GetFileParam(fh)),
        tstop=GetFileParam(fh),
        factorizeJacobian=bool(int(GetFileParam(fh))),
    )
    validate_options(opts)
    return opts


def ReadDAEParams(filename):
    """Read solver options from a named file."""
    with open(filename, "r") as fh:
        return readdaeparams_sub(fh)


def writedaeparams_sub(fh, opts):
    """Write solver options to an open file handle.

    Parameters
    ----------
    fh : file-like
        Writable text stream.
    opts : DAEOptions
        Options to write.
    """
    fh.write(f"{opts.reltol:25.14E} : Relative tolerance.\n")
    fh.write(f"{opts.abstol:25.14E} : Absolute tolerance.\n")
    fh.write(f"{opts.initstep:25.14E} : Initial step size.\n")
    fh.write(f"{opts.maxstep:25.14E} : Maximum step size.\n")
    fh.write(f"{opts.minstep:25.14E} : Minimum step size.\n")
    fh.write(f"{opts.maxorder:25d} : Maximum BDF order (1-6).\n")
    fh.write(f"{opts.tstop:25.14E} : Stop time.\n")
    fh.write(f"{int(opts.factorizeJacobian):25d} : Store the factorized Jacobian (0/1).\n")


def WriteDAEParams(filename, opts):
    """Write solver options to a named file."""
    with open(filename, "w") as fh:
        writedaeparams_sub(fh, opts)
