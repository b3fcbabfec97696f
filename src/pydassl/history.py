"""
Bounded buffer of accepted steps.

Holds the triples ``(t, y, dy)`` the BDF formulas are built from, oldest
first.  Once ``capacity`` entries are stored each push evicts the oldest
one.
"""

from collections import deque

import numpy as np


class HistoryBuffer:
    """
    Time-ordered store of accepted ``(t, y, dy)`` triples.

    Parameters
    ----------
    capacity : int
        Maximum number of stored steps (``maxorder + 3``).
    t0 : float
        Initial time.
    y0, dy0 : ndarray, shape (n,)
        Initial state and derivative.
    """

    def __init__(self, capacity, t0, y0, dy0):
        self.capacity = capacity
        self._t = deque(maxlen=capacity)
        self._y = deque(maxlen=capacity)
        self._dy = deque(maxlen=capacity)
        self.push(t0, y0, dy0)

    def __len__(self):
        return len(self._t)

    def push(self, t, y, dy):
        if self._t and t <= self._t[-1]:
            raise ValueError(f"history times must increase: {t!r} <= {self._t[-1]!r}")
        self._t.append(t)
        self._y.append(y)
        self._dy.append(dy)

    @property
    def t(self):
        """Stored times, shape (m,)."""
        return np.array(self._t)

    @property
    def y(self):
        """Stored states, shape (m, n)."""
        return np.array(self._y)

    @property
    def dy(self):
        """Stored derivatives, shape (m, n)."""
        return np.array(self._dy)

    def last(self):
        """Most recent ``(t, y, dy)``."""
        return self._t[-1], self._y[-1], self._dy[-1]
