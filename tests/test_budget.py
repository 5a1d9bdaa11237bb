# tests/test_budget.py
import pytest
from pydantic import ValidationError

from context_compare.exceptions import BudgetExceeded
from context_compare.models import TokenUsage
from context_compare.workflow.budget import BudgetTracker, calculate_cost


class TestCalculateCost:
    """Pricing per million tokens for each usage counter."""

    def test_input_tokens_price(self):
        assert calculate_cost(TokenUsage(input_tokens=1_000_000)) == pytest.approx(3.00)

    def test_output_tokens_price(self):
        assert calculate_cost(TokenUsage(output_tokens=1_000_000)) == pytest.approx(15.00)

    def test_cache_write_price(self):
        usage = TokenUsage(cache_creation_input_tokens=1_000_000)
        assert calculate_cost(usage) == pytest.approx(3.75)

    def test_cache_read_price(self):
        usage = TokenUsage(cache_read_input_tokens=1_000_000)
        assert calculate_cost(usage) == pytest.approx(0.30)

    def test_zero_usage_costs_nothing(self):
        assert calculate_cost(TokenUsage()) == 0.0

    def test_cache_fields_default_to_zero(self):
        usage = TokenUsage(input_tokens=2000, output_tokens=500)
        assert calculate_cost(usage) == pytest.approx(0.006 + 0.0075)

    @pytest.mark.parametrize("field", [
        "input_tokens",
        "output_tokens",
        "cache_creation_input_tokens",
        "cache_read_input_tokens",
    ])
    def test_cost_is_linear_in_each_field(self, field):
        single = calculate_cost(TokenUsage(**{field: 12_345}))
        triple = calculate_cost(TokenUsage(**{field: 3 * 12_345}))

        assert single >= 0
        assert triple == pytest.approx(3 * single)

    def test_mixed_usage_is_sum_of_parts(self):
        usage = TokenUsage(
            input_tokens=1000,
            output_tokens=200,
            cache_creation_input_tokens=3000,
            cache_read_input_tokens=4000,
        )
        expected = 0.003 + 0.003 + 0.01125 + 0.0012
        assert calculate_cost(usage) == pytest.approx(expected)

    def test_negative_tokens_rejected(self):
        with pytest.raises(ValidationError):
            TokenUsage(input_tokens=-1)


class TestBudgetTracker:

    def test_starts_empty(self):
        tracker = BudgetTracker(limit=1.0)

        assert tracker.snapshot() == {"spent": 0.0, "limit": 1.0, "remaining": 1.0}

    def test_add_accumulates(self):
        tracker = BudgetTracker(limit=1.0)

        tracker.add(0.25)
        total = tracker.add(0.5)

        assert total == pytest.approx(0.75)
        assert tracker.remaining == pytest.approx(0.25)

    def test_check_passes_under_limit(self):
        tracker = BudgetTracker(limit=1.0)
        tracker.add(0.99)

        tracker.check()

    def test_check_raises_at_limit(self):
        tracker = BudgetTracker(limit=1.0)
        tracker.add(1.0)

        with pytest.raises(BudgetExceeded) as exc_info:
            tracker.check()

        assert exc_info.value.status_code == 429
        assert "$1.00" in str(exc_info.value)

    def test_reset_zeroes_spend(self):
        tracker = BudgetTracker(limit=1.0)
        tracker.add(2.0)

        tracker.reset()

        assert tracker.spent == 0.0
        tracker.check()

    def test_negative_cost_rejected(self):
        tracker = BudgetTracker(limit=1.0)

        with pytest.raises(ValueError):
            tracker.add(-0.1)
