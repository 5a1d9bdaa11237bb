# context_compare/workflow/budget.py
"""
Cost accounting and the process-wide spend ceiling.

calculate_cost is pure; BudgetTracker holds the only mutable spend state.
"""

import logging
import threading
from typing import Dict

from context_compare.config import (
    BUDGET_LIMIT,
    CACHE_READ_PRICE_PER_MTOK,
    CACHE_WRITE_PRICE_PER_MTOK,
    INPUT_PRICE_PER_MTOK,
    OUTPUT_PRICE_PER_MTOK,
)
from context_compare.exceptions import BudgetExceeded
from context_compare.models import TokenUsage

logger = logging.getLogger(__name__)

_PER_MILLION = 1_000_000


def calculate_cost(usage: TokenUsage) -> float:
    """
    Dollar cost of one model call.

    Args:
        usage: Token counters reported for the call

    Returns:
        Cost in USD (never negative)
    """
    input_cost = usage.input_tokens / _PER_MILLION * INPUT_PRICE_PER_MTOK
    output_cost = usage.output_tokens / _PER_MILLION * OUTPUT_PRICE_PER_MTOK
    cache_write_cost = (
        usage.cache_creation_input_tokens / _PER_MILLION * CACHE_WRITE_PRICE_PER_MTOK
    )
    cache_read_cost = (
        usage.cache_read_input_tokens / _PER_MILLION * CACHE_READ_PRICE_PER_MTOK
    )

    return input_cost + output_cost + cache_write_cost + cache_read_cost


class BudgetTracker:
    """Running total of spend since the last reset, with a hard ceiling."""

    def __init__(self, limit: float = BUDGET_LIMIT):

        self.limit = limit
        self._spent = 0.0
        self._lock = threading.Lock()

    @property
    def spent(self) -> float:
        return self._spent

    @property
    def remaining(self) -> float:
        return self.limit - self._spent

    def check(self) -> None:
        """Raise BudgetExceeded once the ceiling is reached."""

        spent = self._spent

        if spent >= self.limit:

            logger.warning(
                "Budget gate closed",
                extra={"spent": spent, "limit": self.limit},
            )

            raise BudgetExceeded(spent=spent, limit=self.limit)

    def add(self, cost: float) -> float:

        if cost < 0:
            raise ValueError("Cost cannot be negative")

        with self._lock:
            self._spent += cost
            total = self._spent

        logger.info(
            "Spend recorded",
            extra={"cost": round(cost, 6), "total_spent": round(total, 6)},
        )

        return total

    def reset(self) -> None:

        with self._lock:
            self._spent = 0.0

    def snapshot(self) -> Dict[str, float]:

        spent = self._spent

        return {
            "spent": spent,
            "limit": self.limit,
            "remaining": self.limit - spent,
        }
