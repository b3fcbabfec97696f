"""
Default error weights and weighted norm.

Both are plain functions so that callers may pass their own replacements
through the ``norm`` and ``weights`` options.
"""

import numpy as np


def dassl_norm(v, wt):
    """Weighted root-mean-square norm ``||v / wt||_2 / sqrt(len(v))``."""
    v = np.atleast_1d(v)
    return float(np.linalg.norm(v / wt) / np.sqrt(v.size))


def dassl_weights(y, reltol, abstol):
    """Component-wise error weights ``reltol*|y| + abstol``."""
    return reltol * np.abs(y) + abstol
