"""
Tests for budget_payroll.services.payroll_service.PayrollService.

Covers monthly idempotency, forced re-runs, actor access, all-or-nothing
rollback, and cancellation before a transaction opens.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4

import pytest

from budget_kernel.exceptions import (
    BudgetNotFoundError,
    NonPositiveAmountError,
    PayrollRunCancelledError,
)
from budget_kernel.services.ledger_store import LedgerStore

from tests.conftest import MID_MARCH

UTC = timezone.utc


def _payroll_credits(entries) -> list:
    return [e for e in entries if e.description.startswith("Payroll ")]


class TestMonthlyIdempotency:
    def test_second_automatic_run_same_month_is_noop(self, payroll_service, create_budget, entries_for):
        budget_id = create_budget(payroll="500")

        assert payroll_service.run_monthly_payroll(MID_MARCH) == 1
        assert payroll_service.run_monthly_payroll(MID_MARCH + timedelta(days=5)) == 0

        credits = _payroll_credits(entries_for(budget_id))
        assert [c.amount for c in credits] == [Decimal("500.00")]

    def test_forced_run_credits_again(self, payroll_service, create_budget, entries_for):
        budget_id = create_budget(payroll="500")

        payroll_service.run_monthly_payroll(MID_MARCH)
        payroll_service.run_monthly_payroll(MID_MARCH)
        created = payroll_service.run_budget_payroll(budget_id, None, MID_MARCH, force=True)

        assert created == 1
        assert len(_payroll_credits(entries_for(budget_id))) == 2

    def test_next_month_runs_again(self, payroll_service, create_budget, entries_for, load_budget):
        budget_id = create_budget(payroll="500")
        april = datetime(2024, 4, 1, 0, 0, 5, tzinfo=UTC)

        payroll_service.run_monthly_payroll(MID_MARCH)
        assert payroll_service.run_monthly_payroll(april) == 1

        descriptions = [c.description for c in _payroll_credits(entries_for(budget_id))]
        assert sorted(descriptions) == ["Payroll April 2024", "Payroll March 2024"]
        assert load_budget(budget_id).payroll_run_at == april

    def test_counts_only_credited_budgets(self, payroll_service, create_budget):
        create_budget("A", payroll="100")
        create_budget("B", payroll="200")
        create_budget("Zero", payroll="0")
        create_budget("Paid", payroll="300", payroll_run_at=MID_MARCH - timedelta(days=1))

        assert payroll_service.run_monthly_payroll(MID_MARCH) == 2

    def test_defaults_to_clock_time(self, payroll_service, create_budget, load_budget, clock):
        budget_id = create_budget(payroll="500")

        payroll_service.run_monthly_payroll()

        assert load_budget(budget_id).payroll_run_at == clock.now_local()


class TestAutoBalanceEndToEnd:
    def test_negative_balance_topped_up_before_payroll(
        self, payroll_service, create_budget, add_entry, link_source, entries_for, load_budget,
    ):
        target = create_budget("Rent", payroll="500", auto_balance_enabled=True)
        first, second = sorted([create_budget("Savings"), create_budget("Fun")], key=str)
        link_source(target, first, 70)
        link_source(target, second, 30)
        add_entry(target, "120.00", credit=False)

        assert payroll_service.run_monthly_payroll(MID_MARCH) == 1

        assert [(e.credit, e.amount) for e in entries_for(first)] == [(False, Decimal("84.00"))]
        assert [(e.credit, e.amount) for e in entries_for(second)] == [(False, Decimal("36.00"))]
        target_entries = {(e.description, e.credit, e.amount) for e in entries_for(target)}
        assert ("Auto-balance for Rent", True, Decimal("120.00")) in target_entries
        assert ("Payroll March 2024", True, Decimal("500.00")) in target_entries
        assert load_budget(target).payroll_run_at == MID_MARCH


class TestBudgetPayroll:
    def test_member_can_run(self, payroll_service, create_budget):
        user = uuid4()
        budget_id = create_budget(payroll="250", members=(user,))

        assert payroll_service.run_budget_payroll(budget_id, user, MID_MARCH) == 1
        assert payroll_service.run_budget_payroll(budget_id, user, MID_MARCH) == 0

    def test_non_member_gets_not_found(self, payroll_service, create_budget, entries_for):
        budget_id = create_budget(payroll="250", members=(uuid4(),))

        with pytest.raises(BudgetNotFoundError):
            payroll_service.run_budget_payroll(budget_id, uuid4(), MID_MARCH, force=True)
        assert entries_for(budget_id) == []

    def test_unknown_budget_for_system_actor(self, payroll_service):
        with pytest.raises(BudgetNotFoundError):
            payroll_service.run_budget_payroll(uuid4(), None, MID_MARCH)

    def test_zero_payroll_with_force_is_noop(self, payroll_service, create_budget):
        budget_id = create_budget(payroll="0")
        assert payroll_service.run_budget_payroll(budget_id, None, MID_MARCH, force=True) == 0

    def test_logs_carry_budget_context(self, payroll_service, create_budget, captured_logs):
        user = uuid4()
        budget_id = create_budget(payroll="250", members=(user,))

        payroll_service.run_budget_payroll(budget_id, user, MID_MARCH)

        done = [r for r in captured_logs() if r["message"] == "budget_payroll_completed"]
        assert done[0]["budget_id"] == str(budget_id)
        assert done[0]["actor_id"] == str(user)
        assert done[0]["created_count"] == 1
        assert "run_id" in done[0]


class TestAtomicity:
    def test_failure_rolls_back_every_budget(self, payroll_service, create_budget, entries_for, load_budget):
        first = create_budget("First", payroll="100")
        second = create_budget("Second", payroll="200")
        real_insert = LedgerStore.insert_ledger_entry
        calls = []

        def flaky_insert(self, budget_id, *args, **kwargs):
            calls.append(budget_id)
            if len(calls) == 2:
                raise NonPositiveAmountError(Decimal("0"), budget_id)
            return real_insert(self, budget_id, *args, **kwargs)

        with patch.object(LedgerStore, "insert_ledger_entry", flaky_insert):
            with pytest.raises(NonPositiveAmountError):
                payroll_service.run_monthly_payroll(MID_MARCH)

        assert entries_for(first) == [] and entries_for(second) == []
        assert load_budget(first).payroll_run_at is None
        assert load_budget(second).payroll_run_at is None

        # Nothing was marked, so a clean retry credits both
        assert payroll_service.run_monthly_payroll(MID_MARCH) == 2


class TestCancellation:
    def test_cancelled_token_blocks_new_runs(self, payroll_service, token, create_budget, entries_for):
        budget_id = create_budget(payroll="500")
        token.cancel()

        with pytest.raises(PayrollRunCancelledError):
            payroll_service.run_monthly_payroll(MID_MARCH)
        with pytest.raises(PayrollRunCancelledError):
            payroll_service.run_budget_payroll(budget_id, None, MID_MARCH)
        with pytest.raises(PayrollRunCancelledError):
            payroll_service.ping(1.0)

        assert entries_for(budget_id) == []

    def test_ping_succeeds(self, payroll_service):
        payroll_service.ping(3.0)
