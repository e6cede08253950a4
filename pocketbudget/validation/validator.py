"""
Ledger Input Validation

DESIGN DECISION: Every mutation is validated before any remote call.
A rejected input never reaches the store, so a validation failure can
never leave the summary half-updated.

Validation happens in two stages:

STAGE 1 - SCHEMA VALIDATION:
- Types, enum membership, required fields
- Done by pydantic when a dict is turned into an input model
- Pydantic errors are converted to ValidationIssues here

STAGE 2 - SEMANTIC VALIDATION:
- Positive, sane amounts
- Non-empty names
- References to categories that exist
- Budget goals only on categories that can be budget targets

IMPORTANT: Validation NEVER silently fixes issues.
It reports them to the caller.
"""

from decimal import Decimal
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from pocketbudget.config import AppSettings, get_settings
from pocketbudget.models.ledger import (
    BudgetGoalInput,
    Category,
    CategoryInput,
    TransactionInput,
    ValidationIssue,
)


ModelT = TypeVar("ModelT", bound=BaseModel)


def issues_from_pydantic(error: ValidationError) -> list[ValidationIssue]:
    """Convert pydantic errors to ValidationIssues."""
    issues = []
    for detail in error.errors():
        field = ".".join(str(part) for part in detail.get("loc", ())) or "input"
        issues.append(ValidationIssue(
            field=field,
            issue_type=detail.get("type", "invalid"),
            message=detail.get("msg", "Invalid value"),
            severity="error",
        ))
    return issues


class LedgerValidator:
    """
    Validates ledger inputs.

    Stage 1 runs through coerce(); stage 2 through the validate_* methods,
    which return (is_valid, issues).
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def coerce(self, model: type[ModelT], data: Any) -> tuple[Optional[ModelT], list[ValidationIssue]]:
        """
        Stage 1: turn caller data into an input model.

        Model instances are re-validated from their own dump, so a
        Transaction given where a TransactionInput is expected is accepted
        and fields set without validation (model_copy) are checked.

        Returns: (model_or_None, issues)
        """
        try:
            if isinstance(data, BaseModel):
                data = data.model_dump(by_alias=True, warnings=False)
            return model.model_validate(data), []
        except ValidationError as e:
            return None, issues_from_pydantic(e)

    def _validate_amount(self, amount: Decimal, field: str = "amount") -> list[ValidationIssue]:
        issues = []
        if not amount.is_finite():
            issues.append(ValidationIssue(
                field=field,
                issue_type="invalid_value",
                message="Amount must be a finite number",
            ))
        elif amount <= 0:
            issues.append(ValidationIssue(
                field=field,
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                suggested_fix="Use the type field to record money going out",
            ))
        elif amount > self._settings.max_transaction_amount:
            issues.append(ValidationIssue(
                field=field,
                issue_type="suspicious_value",
                message=f"Amount exceeds the maximum of {self._settings.max_transaction_amount}",
            ))
        elif amount.as_tuple().exponent < -2:
            issues.append(ValidationIssue(
                field=field,
                issue_type="invalid_precision",
                message="Amount cannot have more than two decimal places",
            ))
        return issues

    def _validate_category_reference(
        self,
        category_id: str,
        categories: Optional[list[Category]],
    ) -> tuple[Optional[Category], list[ValidationIssue]]:
        """Look category_id up; an unknown id is an error once categories are known."""
        if not category_id:
            return None, [ValidationIssue(
                field="category_id",
                issue_type="missing",
                message="A category is required",
            )]
        if not categories:
            return None, []
        for category in categories:
            if category.id == category_id:
                return category, []
        return None, [ValidationIssue(
            field="category_id",
            issue_type="unknown_reference",
            message=f"Category {category_id} does not exist",
        )]

    def validate_transaction(
        self,
        transaction: TransactionInput,
        categories: Optional[list[Category]] = None,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2 for a transaction.

        Checks:
        - Amount positive, finite, sane, at most 2 decimals
        - Description length
        - Category exists (when the category list is known)

        Returns: (is_valid, list_of_issues)
        """
        issues = self._validate_amount(transaction.amount)

        if len(transaction.description) > self._settings.max_description_length:
            issues.append(ValidationIssue(
                field="description",
                issue_type="too_long",
                message=(
                    "Description is longer than "
                    f"{self._settings.max_description_length} characters"
                ),
            ))

        _, reference_issues = self._validate_category_reference(
            transaction.category_id, categories
        )
        issues.extend(reference_issues)

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def validate_category(self, category: CategoryInput) -> tuple[bool, list[ValidationIssue]]:
        """Stage 2 for a category: the name must not be blank."""
        issues = []
        if not category.name:
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Category name cannot be empty",
            ))
        return not issues, issues

    def validate_budget_goal(
        self,
        goal: BudgetGoalInput,
        categories: Optional[list[Category]] = None,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2 for a budget goal.

        Checks:
        - Amount positive and sane
        - Category exists and is not an income category

        Returns: (is_valid, list_of_issues)
        """
        issues = self._validate_amount(goal.amount)

        category, reference_issues = self._validate_category_reference(
            goal.category_id, categories
        )
        issues.extend(reference_issues)

        if category is not None and not category.can_be_budget_target:
            issues.append(ValidationIssue(
                field="category_id",
                issue_type="invalid_target",
                message=f"{category.name} is an income category and cannot have a budget",
                suggested_fix="Pick an expense category",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues
