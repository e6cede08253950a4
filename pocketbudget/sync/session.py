"""
Ledger session state.

One LedgerSession exists per synchronizer. It holds the local mirrors
of a signed-in user's four collections and is reset on sign-out.
Consumers receive it by reference; there is no module-level state.
"""

from enum import Enum
from typing import Any, Optional, TypeVar

import structlog
from pydantic import ValidationError

from pocketbudget.models.ledger import (
    BudgetGoal,
    Category,
    Summary,
    Transaction,
)
from pocketbudget.services.storage import join_path


logger = structlog.get_logger(__name__)

RecordT = TypeVar("RecordT", Transaction, Category, BudgetGoal)


class SessionState(str, Enum):
    """
    Unauthenticated -> Loading -> Synced.

    Synced means the summary has arrived; the other mirrors may still
    be catching up.
    """
    UNAUTHENTICATED = "unauthenticated"
    LOADING = "loading"
    SYNCED = "synced"


class LedgerPaths:
    """Store paths of one user's namespace."""

    TRANSACTIONS = "transactions"
    CATEGORIES = "categories"
    BUDGET_GOALS = "budgetGoals"
    SUMMARY = "summary"

    def __init__(self, root: str, user_id: str):
        if not user_id or "/" in user_id:
            raise ValueError(f"Invalid user id: {user_id!r}")
        self.base = join_path(root, user_id)

    @property
    def transactions(self) -> str:
        return join_path(self.base, self.TRANSACTIONS)

    @property
    def categories(self) -> str:
        return join_path(self.base, self.CATEGORIES)

    @property
    def budget_goals(self) -> str:
        return join_path(self.base, self.BUDGET_GOALS)

    @property
    def summary(self) -> str:
        return join_path(self.base, self.SUMMARY)

    def transaction(self, key: str) -> str:
        return join_path(self.transactions, key)

    def category(self, key: str) -> str:
        return join_path(self.categories, key)

    def budget_goal(self, key: str) -> str:
        return join_path(self.budget_goals, key)

    def budget_goal_field(self, key: str, field: str) -> str:
        return join_path(self.budget_goals, key, field)


def records_from_snapshot(model: type[RecordT], value: Any) -> list[RecordT]:
    """
    Turn a collection snapshot ({key: value}) into models.

    Records that do not parse are skipped and logged.
    """
    if not isinstance(value, dict):
        return []
    records = []
    for key, child in value.items():
        if not isinstance(child, dict):
            logger.warning("record_skipped", model=model.__name__, key=key, reason="not a map")
            continue
        try:
            records.append(model.from_store(key, child))
        except ValidationError as e:
            logger.warning(
                "record_skipped",
                model=model.__name__,
                key=key,
                reason=str(e),
            )
    return records


class LedgerSession:
    """Local mirrors plus lifecycle state for one signed-in user."""

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        self.user_id: Optional[str] = None
        self.state = SessionState.UNAUTHENTICATED
        self.transactions: list[Transaction] = []
        self.categories: list[Category] = []
        self.budget_goals: list[BudgetGoal] = []
        self.summary = Summary.zero()

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None
