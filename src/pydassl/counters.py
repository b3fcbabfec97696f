"""
Step counters of one integration run.

``rejected_current`` and ``fixed`` feed back into step and order
selection; the remaining fields are diagnostics.
"""

from dataclasses import dataclass


@dataclass
class Counter:
    """
    Attributes
    ----------
    accepted, rejected : int
        Cumulative accepted / rejected step attempts.
    rejected_current : int
        Rejections since the last accepted step.
    order_changed, order_unchanged : int
        Accepted steps after which (order, multiplier) did / did not change.
    fixed : int
        Consecutive accepted steps taken without an order change.
    newton_failures, error_failures : int
        Rejections caused by corrector divergence / by the error test.
    """
    accepted: int = 0
    rejected: int = 0
    rejected_current: int = 0
    order_changed: int = 0
    order_unchanged: int = 0
    fixed: int = 0
    newton_failures: int = 0
    error_failures: int = 0

    def accepted_step(self):
        self.accepted += 1
        self.rejected_current = 0

    def rejected_step(self, newton_failure=False):
        self.rejected += 1
        self.rejected_current += 1
        if newton_failure:
            self.newton_failures += 1
        else:
            self.error_failures += 1

    def order_update(self, same_order, same_multiplier):
        """Tally the controller decision taken after an accepted step."""
        if same_order and same_multiplier:
            self.order_unchanged += 1
        else:
            self.order_changed += 1
        self.fixed = self.fixed + 1 if same_order else 0
