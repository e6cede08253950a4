"""
Core Data Models for Pocket Budget

These models define the schemas for every record mirrored from the
remote tree store. They are designed to:
1. Parse store snapshots into typed objects ({id, **value})
2. Serialize back to JSON-compatible store values (camelCase keys)
3. Keep money as Decimal end to end

DESIGN DECISION: Models enforce types and enum membership only.
Business rules (positive amounts, non-empty names, budget targets)
live in the validator so they can be reported as issues instead of
raised from deep inside a constructor.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


ZERO = Decimal("0")


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a money movement."""
    INCOME = "income"
    EXPENSE = "expense"


class BudgetPeriod(str, Enum):
    """
    Recurring window a budget goal is measured against.

    Yearly is a wider window with the same structure as monthly.
    Unspent amounts never roll over.
    """
    MONTHLY = "monthly"
    YEARLY = "yearly"


class CategoryKind(str, Enum):
    """
    What a category is used for.

    DESIGN DECISION: Income categories are flagged explicitly rather
    than recognised by name, so renaming "Salary" cannot turn it
    into a budget target.
    """
    INCOME = "income"
    EXPENSE = "expense"
    NEUTRAL = "neutral"


class CategoryIcon(str, Enum):
    """
    Supported category icons.

    Values are symbolic names. Mapping them to rendered glyphs is the
    UI's job; nothing in this package depends on it.
    """
    SHOPPING_CART = "ShoppingCart"
    LANDMARK = "Landmark"
    UTENSILS = "Utensils"
    CAR = "Car"
    TICKET = "Ticket"
    LIGHTBULB = "Lightbulb"
    HOME = "Home"
    SHOPPING_BAG = "ShoppingBag"
    HEART_PULSE = "HeartPulse"
    BOOK_OPEN = "BookOpen"
    PALETTE = "Palette"
    DUMBBELL = "Dumbbell"
    GIFT = "Gift"
    PLANE = "Plane"
    REPEAT = "Repeat"
    SHIELD_CHECK = "ShieldCheck"
    TRENDING_UP = "TrendingUp"
    DOG = "Dog"
    BABY = "Baby"
    HELPING_HAND = "HelpingHand"
    WRENCH = "Wrench"
    SMARTPHONE = "Smartphone"
    BRIEFCASE = "Briefcase"
    COFFEE = "Coffee"
    WALLET = "Wallet"
    TAG = "Tag"


class ErrorKind(str, Enum):
    """Failure classes reported by the data API."""
    AUTH_REQUIRED = "auth_required"
    VALIDATION_FAILED = "validation_failed"
    REMOTE_WRITE_FAILED = "remote_write_failed"


# =============================================================================
# STORED RECORDS
# =============================================================================

class StoreModel(BaseModel):
    """
    Base for anything written to the tree store.

    Keys in the store are camelCase; Python attributes are snake_case.
    Either name is accepted when parsing.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
    )

    def to_store_value(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict without the id."""
        return self.model_dump(mode="json", by_alias=True, exclude={"id"})


class TransactionInput(StoreModel):
    """A transaction as entered by the user, before it has a key."""

    date: datetime = Field(
        ...,
        description="When the money moved (ISO-8601 instant)"
    )
    description: str = Field(
        default="",
        description="Free text shown in the transaction list"
    )
    amount: Decimal = Field(
        ...,
        description="Positive amount; direction comes from type"
    )
    type: TransactionType
    category_id: str = Field(
        ...,
        alias="categoryId",
        description="Key of the owning category"
    )

    @field_validator('date')
    @classmethod
    def ensure_timezone(cls, v: datetime) -> datetime:
        """Naive instants are taken to be UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def is_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE


class Transaction(TransactionInput):
    """A stored transaction."""

    id: str = Field(..., min_length=1)

    @classmethod
    def from_store(cls, key: str, value: dict) -> "Transaction":
        return cls.model_validate({**value, "id": key})


class CategoryInput(StoreModel):
    """A category as entered by the user."""

    name: str = Field(
        ...,
        max_length=100,
        description="Display name"
    )
    icon: CategoryIcon = Field(
        default=CategoryIcon.TAG,
        description="Symbolic icon name"
    )
    color: Optional[str] = Field(
        default=None,
        max_length=50,
        description="Display colour hint, e.g. hsl(231, 48%, 48%)"
    )
    kind: CategoryKind = Field(
        default=CategoryKind.EXPENSE,
        description="Income categories cannot be budget targets"
    )

    @property
    def can_be_budget_target(self) -> bool:
        return self.kind != CategoryKind.INCOME


class Category(CategoryInput):
    """A stored category."""

    id: str = Field(..., min_length=1)

    @classmethod
    def from_store(cls, key: str, value: dict) -> "Category":
        return cls.model_validate({**value, "id": key})


class BudgetGoalInput(StoreModel):
    """A spending ceiling as entered by the user."""

    category_id: str = Field(
        ...,
        alias="categoryId",
        description="Key of the budgeted category"
    )
    amount: Decimal = Field(
        ...,
        description="Spending ceiling for one period"
    )
    period: BudgetPeriod = Field(
        default=BudgetPeriod.MONTHLY
    )


class BudgetGoal(BudgetGoalInput):
    """
    A stored budget goal.

    spent_amount is a cache of the current period's expenses for the
    category. It is always recomputed from transactions, never taken
    from a caller.
    """

    id: str = Field(..., min_length=1)
    spent_amount: Decimal = Field(
        default=ZERO,
        alias="spentAmount",
        description="Derived: expenses for category_id in the current period"
    )

    @field_validator('spent_amount', mode='before')
    @classmethod
    def missing_spent_is_zero(cls, v: Any) -> Any:
        return ZERO if v is None else v

    @classmethod
    def from_store(cls, key: str, value: dict) -> "BudgetGoal":
        return cls.model_validate({**value, "id": key})


class Summary(StoreModel):
    """
    Per-user running totals.

    INVARIANT: current_balance == total_income - total_expenses.
    Use with_totals() to build one so the balance is never set
    independently.
    """

    total_income: Decimal = Field(default=ZERO, alias="totalIncome")
    total_expenses: Decimal = Field(default=ZERO, alias="totalExpenses")
    current_balance: Decimal = Field(default=ZERO, alias="currentBalance")

    @classmethod
    def zero(cls) -> "Summary":
        return cls()

    @classmethod
    def with_totals(cls, total_income: Decimal, total_expenses: Decimal) -> "Summary":
        return cls(
            total_income=total_income,
            total_expenses=total_expenses,
            current_balance=total_income - total_expenses,
        )

    @classmethod
    def from_store(cls, value: Optional[dict]) -> "Summary":
        """Parse a summary snapshot; an absent node reads as zero."""
        if not value:
            return cls.zero()
        return cls.model_validate(value)

    @property
    def is_balanced(self) -> bool:
        return self.current_balance == self.total_income - self.total_expenses


# =============================================================================
# VALIDATION AND OPERATION RESULTS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'unknown_reference')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class OperationResult(BaseModel):
    """
    Outcome of one data API call.

    The data API never raises for expected failures; callers inspect
    success and, on failure, error_kind and issues.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    data: Any = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None
    issues: list[ValidationIssue] = Field(default_factory=list)

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None) -> "OperationResult":
        return cls(success=True, data=data, message=message)

    @classmethod
    def failed(
        cls,
        error_kind: ErrorKind,
        message: str,
        issues: Optional[list[ValidationIssue]] = None,
    ) -> "OperationResult":
        return cls(
            success=False,
            error_kind=error_kind,
            message=message,
            issues=issues or [],
        )
