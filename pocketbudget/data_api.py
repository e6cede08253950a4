"""
Public Data API for Pocket Budget

The thin layer UI code talks to. Writes are delegated to the
Synchronizer; reads scan its local mirrors.

DESIGN DECISION: Nothing here raises for an expected failure.
Every write returns an OperationResult:
- AuthRequired      -> destructive notification, error_kind auth_required
- ValidationFailure -> inline issues for the form, no notification
- RemoteWriteFailure -> destructive notification, error_kind remote_write_failed

Failures are also audited, so a user report of "my balance is wrong"
can be traced back to the write that did not happen.
"""

from decimal import Decimal
from typing import Any, Awaitable, Callable, Optional, Union

from pocketbudget.aggregates import (
    CategorySpending,
    period_window,
    progress_percent,
    recent_transactions,
    spending_by_category,
)
from pocketbudget.audit import AuditLogger, Notifier
from pocketbudget.config import Settings, get_settings
from pocketbudget.models.ledger import (
    BudgetGoal,
    BudgetGoalInput,
    BudgetPeriod,
    Category,
    CategoryInput,
    ErrorKind,
    OperationResult,
    Summary,
    Transaction,
    TransactionInput,
    TransactionType,
)
from pocketbudget.services.auth import AuthProviderInterface
from pocketbudget.services.storage import (
    GoogleSheetsTreeStore,
    TreeStoreInterface,
    create_tree_store,
)
from pocketbudget.sync import (
    AuthRequiredError,
    LedgerValidationError,
    RemoteWriteError,
    SessionState,
    Synchronizer,
)


class LedgerDataAPI:
    """
    Add/update/delete for transactions, categories and budget goals,
    plus read helpers over the local mirrors.
    """

    def __init__(
        self,
        synchronizer: Synchronizer,
        settings: Optional[Settings] = None,
    ):
        self._sync = synchronizer
        self._settings = settings or get_settings()
        self._notifier: Notifier = synchronizer.notifier
        self._audit: AuditLogger = synchronizer.audit_logger

    @property
    def synchronizer(self) -> Synchronizer:
        return self._sync

    @property
    def notifier(self) -> Notifier:
        return self._notifier

    # ------------------------------------------------------------------
    # Error boundary
    # ------------------------------------------------------------------

    async def _run(
        self,
        operation: str,
        call: Callable[[], Awaitable[Any]],
        success_message: Optional[str] = None,
    ) -> OperationResult:
        try:
            data = await call()
        except AuthRequiredError as e:
            self._audit.log_auth_required(operation)
            self._notifier.error("Authentication Error", "You must be logged in.")
            return OperationResult.failed(ErrorKind.AUTH_REQUIRED, str(e))
        except LedgerValidationError as e:
            self._audit.log_validation_failed(
                self._sync.session.user_id,
                operation,
                [issue.model_dump() for issue in e.issues],
            )
            return OperationResult.failed(ErrorKind.VALIDATION_FAILED, str(e), e.issues)
        except RemoteWriteError as e:
            self._audit.log_remote_write_failed(
                self._sync.session.user_id,
                operation,
                str(e.cause),
            )
            self._notifier.error("Error", f"Could not {operation}.")
            return OperationResult.failed(ErrorKind.REMOTE_WRITE_FAILED, str(e))
        return OperationResult.ok(data, success_message)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def add_transaction(self, data: Union[TransactionInput, dict]) -> OperationResult:
        return await self._run(
            "add transaction",
            lambda: self._sync.add_transaction(data),
        )

    async def update_transaction(
        self,
        updated: Union[Transaction, dict],
        original: Optional[Union[Transaction, dict]] = None,
    ) -> OperationResult:
        return await self._run(
            "update transaction",
            lambda: self._sync.update_transaction(updated, original),
        )

    async def delete_transaction(self, transaction: Union[Transaction, str]) -> OperationResult:
        return await self._run(
            "delete transaction",
            lambda: self._sync.delete_transaction(transaction),
        )

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    async def add_category(self, data: Union[CategoryInput, dict]) -> OperationResult:
        return await self._run(
            "add category",
            lambda: self._sync.add_category(data),
        )

    async def update_category(self, data: Union[Category, dict]) -> OperationResult:
        return await self._run(
            "update category",
            lambda: self._sync.update_category(data),
        )

    async def delete_category(self, category_id: str) -> OperationResult:
        """Delete a category along with its transactions and budget goals."""
        result = await self._run(
            "delete category",
            lambda: self._sync.delete_category(category_id),
        )
        if result.success:
            cascade = result.data
            self._notifier.notify(
                "Category Deleted",
                "Removed the category, "
                f"{len(cascade.transaction_ids)} transaction(s) and "
                f"{len(cascade.budget_goal_ids)} budget goal(s).",
            )
        return result

    # ------------------------------------------------------------------
    # Budget goals
    # ------------------------------------------------------------------

    async def add_budget_goal(self, data: Union[BudgetGoalInput, dict]) -> OperationResult:
        return await self._run(
            "add budget goal",
            lambda: self._sync.add_budget_goal(data),
        )

    async def update_budget_goal(self, data: Union[BudgetGoal, dict]) -> OperationResult:
        return await self._run(
            "update budget goal",
            lambda: self._sync.update_budget_goal(data),
        )

    async def delete_budget_goal(self, goal_id: str) -> OperationResult:
        return await self._run(
            "delete budget goal",
            lambda: self._sync.delete_budget_goal(goal_id),
        )

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    async def repair_summary(self) -> OperationResult:
        """Recompute the stored summary from the stored transactions."""
        return await self._run("repair summary", self._sync.repair_summary)

    # ------------------------------------------------------------------
    # Mirrors
    # ------------------------------------------------------------------

    @property
    def transactions(self) -> list[Transaction]:
        return self._sync.session.transactions

    @property
    def categories(self) -> list[Category]:
        return self._sync.session.categories

    @property
    def budget_goals(self) -> list[BudgetGoal]:
        return self._sync.session.budget_goals

    @property
    def summary(self) -> Summary:
        return self._sync.session.summary

    @property
    def state(self) -> SessionState:
        return self._sync.state

    @property
    def loading(self) -> bool:
        return self._sync.loading

    @property
    def budget_target_categories(self) -> list[Category]:
        """Categories a budget goal may be set on."""
        return [c for c in self.categories if c.can_be_budget_target]

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    def get_category_by_id(self, category_id: str) -> Optional[Category]:
        for category in self.categories:
            if category.id == category_id:
                return category
        return None

    def get_category_name_by_id(self, category_id: str) -> str:
        category = self.get_category_by_id(category_id)
        return category.name if category is not None else "N/A"

    def get_transactions_by_category(self, category_id: str) -> list[Transaction]:
        """Expense transactions in one category."""
        return [
            tx for tx in self.transactions
            if tx.category_id == category_id and tx.type == TransactionType.EXPENSE
        ]

    def budget_progress(self, goal: BudgetGoal) -> Decimal:
        """Exact percentage of goal used, clamped to [0, 100]."""
        return progress_percent(goal.spent_amount, goal.amount)

    def spending_by_category(
        self,
        period: Optional[Union[BudgetPeriod, str]] = None,
    ) -> list[CategorySpending]:
        """
        Expense totals per category, largest first.

        With a period, only expenses in the current window count.
        """
        window = period_window(period, self._sync.now()) if period is not None else None
        return spending_by_category(self.transactions, self.categories, window)

    def recent_transactions(self, limit: Optional[int] = None) -> list[Transaction]:
        if limit is None:
            limit = self._settings.app.recent_transactions_limit
        return recent_transactions(self.transactions, limit)


async def create_data_api(
    store: Optional[TreeStoreInterface] = None,
    auth: Optional[AuthProviderInterface] = None,
    settings: Optional[Settings] = None,
) -> LedgerDataAPI:
    """
    Factory function to wire a data API to a store.

    Args:
        store: Tree store to use. Built from settings when omitted.
        auth: When given, sessions start and stop with its sign-ins.
        settings: Settings; loaded from the environment if omitted

    A Google Sheets store is switched to polling here.

    Returns:
        LedgerDataAPI
    """
    settings = settings or get_settings()
    store = store or create_tree_store(settings.store)
    if isinstance(store, GoogleSheetsTreeStore):
        store.start_polling()
    synchronizer = Synchronizer(
        store,
        settings=settings,
        notifier=Notifier(),
        audit_logger=AuditLogger(),
    )
    if auth is not None:
        await synchronizer.bind_auth(auth)
    return LedgerDataAPI(synchronizer, settings=settings)
