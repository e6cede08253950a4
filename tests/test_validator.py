"""Tests for ledger input validation."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from pocketbudget.config import AppSettings
from pocketbudget.models.ledger import (
    BudgetGoalInput,
    BudgetPeriod,
    Category,
    CategoryInput,
    CategoryKind,
    TransactionInput,
)
from pocketbudget.validation import LedgerValidator


CATEGORIES = [
    Category(id="groceries", name="Groceries"),
    Category(id="salary", name="Salary", kind=CategoryKind.INCOME),
]


@pytest.fixture
def validator() -> LedgerValidator:
    return LedgerValidator(AppSettings())


def expense(amount: str, category_id: str = "groceries", description: str = "") -> TransactionInput:
    return TransactionInput(
        date=datetime(2025, 3, 10, tzinfo=timezone.utc),
        amount=Decimal(amount),
        type="expense",
        category_id=category_id,
        description=description,
    )


class TestCoerce:
    """Stage 1: schema validation."""

    def test_dict_with_store_keys(self, validator):
        tx, issues = validator.coerce(TransactionInput, {
            "date": "2025-03-10T00:00:00Z",
            "amount": "75.50",
            "type": "expense",
            "categoryId": "groceries",
        })
        assert issues == []
        assert tx.amount == Decimal("75.50")

    def test_schema_errors_become_issues(self, validator):
        tx, issues = validator.coerce(TransactionInput, {
            "date": "yesterday",
            "amount": "lots",
            "type": "expense",
            "categoryId": "groceries",
        })
        assert tx is None
        fields = {issue.field for issue in issues}
        assert {"date", "amount"} <= fields

    def test_model_revalidated(self, validator):
        tx = expense("1")
        coerced, issues = validator.coerce(TransactionInput, tx)
        assert coerced == tx
        assert issues == []

    def test_copied_model_with_plain_string_enum(self, validator):
        """Test fields set through model_copy are coerced like caller data."""
        goal = BudgetGoalInput(category_id="groceries", amount=Decimal("300"))
        coerced, issues = validator.coerce(BudgetGoalInput, goal.model_copy(update={"period": "yearly"}))
        assert issues == []
        assert coerced.period == BudgetPeriod.YEARLY

        coerced, issues = validator.coerce(BudgetGoalInput, goal.model_copy(update={"period": "weekly"}))
        assert coerced is None
        assert [issue.field for issue in issues] == ["period"]


class TestTransactionValidation:
    """Stage 2 for transactions."""

    def test_valid(self, validator):
        is_valid, issues = validator.validate_transaction(expense("75.50"), CATEGORIES)
        assert is_valid
        assert issues == []

    @pytest.mark.parametrize("amount", ["0", "-5"])
    def test_non_positive_amount(self, validator, amount):
        is_valid, issues = validator.validate_transaction(expense(amount), CATEGORIES)
        assert not is_valid
        assert issues[0].field == "amount"
        assert issues[0].issue_type == "invalid_value"

    def test_too_many_decimals(self, validator):
        is_valid, issues = validator.validate_transaction(expense("1.005"), CATEGORIES)
        assert not is_valid
        assert issues[0].issue_type == "invalid_precision"

    def test_amount_over_maximum(self, validator):
        is_valid, issues = validator.validate_transaction(expense("1000000.01"), CATEGORIES)
        assert not is_valid
        assert issues[0].issue_type == "suspicious_value"

    def test_description_too_long(self, validator):
        is_valid, issues = validator.validate_transaction(
            expense("1", description="x" * 201), CATEGORIES
        )
        assert not is_valid
        assert issues[0].field == "description"

    def test_unknown_category(self, validator):
        is_valid, issues = validator.validate_transaction(expense("1", "ghost"), CATEGORIES)
        assert not is_valid
        assert issues[0].issue_type == "unknown_reference"

    def test_unknown_category_allowed_before_categories_load(self, validator):
        is_valid, _ = validator.validate_transaction(expense("1", "ghost"), [])
        assert is_valid

    def test_missing_category(self, validator):
        is_valid, issues = validator.validate_transaction(expense("1", ""), CATEGORIES)
        assert not is_valid
        assert issues[0].issue_type == "missing"


class TestCategoryValidation:
    """Stage 2 for categories."""

    def test_blank_name(self, validator):
        is_valid, issues = validator.validate_category(CategoryInput(name="   "))
        assert not is_valid
        assert issues[0].field == "name"

    def test_valid(self, validator):
        is_valid, _ = validator.validate_category(CategoryInput(name="Pets"))
        assert is_valid


class TestBudgetGoalValidation:
    """Stage 2 for budget goals."""

    def test_valid(self, validator):
        goal = BudgetGoalInput(category_id="groceries", amount=Decimal("300"))
        is_valid, _ = validator.validate_budget_goal(goal, CATEGORIES)
        assert is_valid

    def test_income_category_rejected(self, validator):
        goal = BudgetGoalInput(category_id="salary", amount=Decimal("300"))
        is_valid, issues = validator.validate_budget_goal(goal, CATEGORIES)
        assert not is_valid
        assert issues[-1].issue_type == "invalid_target"

    def test_non_positive_amount(self, validator):
        goal = BudgetGoalInput(category_id="groceries", amount=Decimal("0"))
        is_valid, _ = validator.validate_budget_goal(goal, CATEGORIES)
        assert not is_valid
