"""
Logging for the integrator.

Every module logs to a child of the ``pydassl`` logger.  What gets logged
at which level:

=========  ===========  =================================================
level      topic        messages
=========  ===========  =================================================
INFO       ``fatal``    a run stopped with StepSizeUnderflow or
                        ExcessiveRejections
DEBUG      ``steps``    rejected attempts, end of a run with its counters
DEBUG2     ``order``    order and step-size decision after each attempt
DEBUG3     ``newton``   iteration-matrix rebuilds and corrector failures
=========  ===========  =================================================

Usage
-----
>>> from pydassl import logger
>>> logger.setup("order")                  # everything down to DEBUG2
>>> log = logger.get_logger(__name__)
>>> log.debug3("iteration matrix rebuilt")
"""

import logging
import sys

# ── Levels below DEBUG=10 ───────────────────────────────────────────────
DEBUG2 = 9
DEBUG3 = 8

logging.addLevelName(DEBUG2, "DEBUG2")
logging.addLevelName(DEBUG3, "DEBUG3")


class _DasslLogger(logging.Logger):
    """Logger with ``debug2`` and ``debug3`` methods for the levels above."""

    def debug2(self, msg, *args, **kwargs):
        if self.isEnabledFor(DEBUG2):
            self._log(DEBUG2, msg, args, **kwargs)

    def debug3(self, msg, *args, **kwargs):
        if self.isEnabledFor(DEBUG3):
            self._log(DEBUG3, msg, args, **kwargs)


logging.setLoggerClass(_DasslLogger)

# ── Topic names accepted by set_level / setup ───────────────────────────
TOPIC_LEVELS = {
    "fatal": logging.INFO,
    "steps": logging.DEBUG,
    "order": DEBUG2,
    "newton": DEBUG3,
}

# module name instead of the full logger name: all records are pydassl's
LOG_FORMAT = "pydassl %(levelname)-6s %(module)s: %(message)s"


def get_logger(name: str | None = None) -> _DasslLogger:
    """Return *name*'s logger, ``pydassl`` by default.

    Pass ``__name__`` from inside the package so that the logger sits below
    ``pydassl`` and follows :func:`set_level`.
    """
    return logging.getLogger(name or "pydassl")


def _resolve(level: int | str) -> int | str:
    if isinstance(level, str) and level.lower() in TOPIC_LEVELS:
        return TOPIC_LEVELS[level.lower()]
    return level


def set_level(level: int | str = logging.INFO) -> None:
    """Set the level of all pydassl loggers.

    *level* is a logging level (``logging.DEBUG``, ``"DEBUG2"``, ...) or one
    of the topics in :data:`TOPIC_LEVELS`.
    """
    logging.getLogger("pydassl").setLevel(_resolve(level))


def setup(level: int | str = logging.INFO, stream=None) -> None:
    """Attach a handler with :data:`LOG_FORMAT` to the ``pydassl`` logger.

    Only the first call has an effect; later calls neither add handlers nor
    change the level.
    """
    root = logging.getLogger("pydassl")
    if root.handlers:
        return
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    set_level(level)
