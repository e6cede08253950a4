"""Tests for the public data API."""

from decimal import Decimal

import pytest

from pocketbudget.data_api import create_data_api
from pocketbudget.models.audit import AuditEventType, NotificationVariant
from pocketbudget.models.ledger import ErrorKind, TransactionType
from pocketbudget.services.auth import AuthUser, LocalAuthProvider
from pocketbudget.services.storage import MemoryTreeStore
from pocketbudget.sync import SessionState

from conftest import NOW, USER_ID, user_node


def expense(amount: str, category_id: str = "groceries") -> dict:
    return {
        "date": NOW.isoformat(),
        "amount": amount,
        "type": "expense",
        "categoryId": category_id,
    }


def income(amount: str) -> dict:
    return {
        "date": NOW.isoformat(),
        "amount": amount,
        "type": "income",
        "categoryId": "salary",
    }


class TestErrorBoundary:
    """Tests for how failures reach the caller."""

    @pytest.mark.asyncio
    async def test_auth_required(self, api, store, audit_logger):
        before = store.dump()
        result = await api.add_transaction(expense("10"))
        assert result.success is False
        assert result.error_kind == ErrorKind.AUTH_REQUIRED
        notification = api.notifier.latest()
        assert notification.title == "Authentication Error"
        assert notification.variant == NotificationVariant.DESTRUCTIVE
        assert store.dump() == before
        assert audit_logger.events_of_type(AuditEventType.AUTH_REQUIRED)

    @pytest.mark.asyncio
    async def test_validation_is_inline(self, api, audit_logger):
        await api.synchronizer.start(USER_ID)
        notified = len(api.notifier.history)
        result = await api.add_transaction(expense("0"))
        assert result.error_kind == ErrorKind.VALIDATION_FAILED
        assert result.issues[0].field == "amount"
        assert len(api.notifier.history) == notified
        assert audit_logger.events_of_type(AuditEventType.VALIDATION_FAILED)

    @pytest.mark.asyncio
    async def test_schema_errors_are_inline(self, api):
        await api.synchronizer.start(USER_ID)
        result = await api.add_category({"name": "Pets", "icon": "NotAnIcon"})
        assert result.error_kind == ErrorKind.VALIDATION_FAILED
        assert result.issues[0].field == "icon"

    @pytest.mark.asyncio
    async def test_copied_goal_with_bad_period_is_inline(self, api, store):
        """Test an invalid period set through model_copy fails before any write."""
        await api.synchronizer.start(USER_ID)
        goal = (await api.add_budget_goal({"categoryId": "groceries", "amount": "300"})).data
        before = store.dump()

        result = await api.update_budget_goal(goal.model_copy(update={"period": "weekly"}))
        assert result.error_kind == ErrorKind.VALIDATION_FAILED
        assert result.issues[0].field == "period"
        assert store.dump() == before

        result = await api.update_budget_goal(goal.model_copy(update={"period": "yearly"}))
        assert result.success
        assert user_node(store)["budgetGoals"][goal.id]["period"] == "yearly"

    @pytest.mark.asyncio
    async def test_remote_failure_notifies(self, api, store, audit_logger):
        await api.synchronizer.start(USER_ID)
        seen = []
        api.notifier.add_listener(seen.append)
        store.fail_writes = True

        result = await api.add_transaction(expense("10"))
        assert result.success is False
        assert result.error_kind == ErrorKind.REMOTE_WRITE_FAILED
        assert seen[-1].title == "Error"
        assert seen[-1].description == "Could not add transaction."
        assert api.transactions == []
        assert audit_logger.events_of_type(AuditEventType.REMOTE_WRITE_FAILED)


class TestWrites:
    """Tests for successful writes through the API."""

    @pytest.mark.asyncio
    async def test_add_returns_transaction(self, api):
        await api.synchronizer.start(USER_ID)
        result = await api.add_transaction(expense("75.50"))
        assert result.success is True
        assert result.data.id
        assert result.data.amount == Decimal("75.50")

    @pytest.mark.asyncio
    async def test_delete_category_notifies(self, api, store):
        await api.synchronizer.start(USER_ID)
        await api.add_transaction(expense("75.50"))
        await api.add_budget_goal({"categoryId": "groceries", "amount": "300"})

        result = await api.delete_category("groceries")
        assert result.success is True
        assert api.notifier.latest().title == "Category Deleted"
        assert api.get_transactions_by_category("groceries") == []
        assert api.budget_goals == []
        assert api.summary.total_expenses == Decimal("0")

    @pytest.mark.asyncio
    async def test_budget_progress(self, api):
        """Test a 75.50 spend against a 300 budget reads as 25.17%."""
        await api.synchronizer.start(USER_ID)
        await api.add_transaction(expense("75.50"))
        result = await api.add_budget_goal({
            "categoryId": "groceries",
            "amount": "300",
            "period": "monthly",
        })
        goal = api.budget_goals[0]
        assert goal.id == result.data.id
        assert goal.spent_amount == Decimal("75.50")
        assert api.budget_progress(goal).quantize(Decimal("0.01")) == Decimal("25.17")

    @pytest.mark.asyncio
    async def test_repair_summary(self, api, store):
        await api.synchronizer.start(USER_ID)
        await api.add_transaction(income("100"))
        await store.set_at_path(f"users/{USER_ID}/summary/totalIncome", "5")

        result = await api.repair_summary()
        assert result.success is True
        assert result.data.changed is True
        assert user_node(store)["summary"]["totalIncome"] == "100"


class TestReadHelpers:
    """Tests for read helpers over the mirrors."""

    @pytest.mark.asyncio
    async def test_category_lookups(self, api):
        await api.synchronizer.start(USER_ID)
        assert api.get_category_by_id("groceries").name == "Groceries"
        assert api.get_category_by_id("ghost") is None
        assert api.get_category_name_by_id("salary") == "Salary"
        assert api.get_category_name_by_id("ghost") == "N/A"

    @pytest.mark.asyncio
    async def test_transactions_by_category_expense_only(self, api):
        await api.synchronizer.start(USER_ID)
        await api.add_transaction(expense("10"))
        await api.add_transaction({**income("20"), "categoryId": "groceries"})
        matches = api.get_transactions_by_category("groceries")
        assert [tx.type for tx in matches] == [TransactionType.EXPENSE]

    @pytest.mark.asyncio
    async def test_budget_target_categories(self, api):
        await api.synchronizer.start(USER_ID)
        assert [c.id for c in api.budget_target_categories] == ["groceries"]

    @pytest.mark.asyncio
    async def test_spending_and_recent(self, api):
        await api.synchronizer.start(USER_ID)
        for amount in ["1", "2", "3", "4", "5", "6"]:
            await api.add_transaction(expense(amount))
        breakdown = api.spending_by_category("monthly")
        assert breakdown[0].total == Decimal("21")
        assert len(api.recent_transactions()) == 5
        assert len(api.recent_transactions(limit=2)) == 2


class TestFactory:
    """Tests for create_data_api."""

    @pytest.mark.asyncio
    async def test_wires_auth(self):
        auth = LocalAuthProvider()
        api = await create_data_api(store=MemoryTreeStore(), auth=auth)
        assert api.state == SessionState.UNAUTHENTICATED

        await auth.sign_in(AuthUser(uid="someone"))
        assert api.state == SessionState.SYNCED
        assert len(api.categories) == 22

        await auth.sign_out()
        assert api.categories == []
