"""
Ledger Synchronizer

Keeps a user's local mirrors in step with the tree store and keeps the
derived numbers right after every mutation.

Flow per session:
1. start(uid) -> LOADING
   - seed default categories if there are none
   - write a zeroed summary if there is none
   - subscribe to transactions, categories, budgetGoals, summary
2. First summary snapshot -> SYNCED
3. stop() -> UNAUTHENTICATED, mirrors emptied

DERIVED DATA:
- Summary: maintained by delta. Every transaction write goes out in
  the same multi-path update as the summary it implies.
- Budget spentAmount: recomputed from transactions by the
  recalculation pass, which runs on every transaction or budget
  snapshot and only writes values that changed.

The stored copy of a record is the authority for deltas: update and
delete read the record back from the store rather than trusting the
caller's copy, so a stale UI cannot double-count.

Mirrors are only ever changed by snapshots. A failed write leaves no
local trace.

KNOWN LIMITATION: two clients updating the same summary at the same
time can lose one update. repair_summary() recomputes it from the
transactions.
"""

import asyncio
from datetime import datetime
from decimal import Decimal
from typing import Any, Awaitable, Callable, NamedTuple, Optional, Union

import structlog
from pydantic import ValidationError

from pocketbudget.aggregates import (
    apply_transaction_delta,
    spent_for_period,
    summarize_transactions,
)
from pocketbudget.audit import AuditLogger, Notifier
from pocketbudget.config import Settings, get_settings
from pocketbudget.models.audit import AuditEventBuilder, AuditEventType
from pocketbudget.models.defaults import DEFAULT_CATEGORIES
from pocketbudget.models.ledger import (
    BudgetGoal,
    BudgetGoalInput,
    Category,
    CategoryInput,
    Summary,
    Transaction,
    TransactionInput,
    ValidationIssue,
)
from pocketbudget.services.auth import AuthProviderInterface, AuthUser
from pocketbudget.services.storage import (
    StorageError,
    Subscription,
    TreeStoreInterface,
)
from pocketbudget.sync.errors import (
    AuthRequiredError,
    LedgerValidationError,
    RemoteWriteError,
)
from pocketbudget.sync.session import (
    LedgerPaths,
    LedgerSession,
    SessionState,
    records_from_snapshot,
)
from pocketbudget.validation import LedgerValidator


logger = structlog.get_logger(__name__)


class CategoryCascade(NamedTuple):
    """What a category deletion removed."""
    category_id: str
    transaction_ids: list[str]
    budget_goal_ids: list[str]


class SummaryRepair(NamedTuple):
    before: Summary
    after: Summary
    changed: bool


class Synchronizer:
    """
    Owns the ledger session and implements every mutation protocol.

    Mutations raise AuthRequiredError, LedgerValidationError or
    RemoteWriteError. Background work (seeding, snapshot handling,
    recalculation) never raises; it reports through the notifier.
    """

    def __init__(
        self,
        store: TreeStoreInterface,
        settings: Optional[Settings] = None,
        notifier: Optional[Notifier] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        settings = settings or get_settings()
        self._app_settings = settings.app
        self._root_path = settings.store.root_path
        self._store = store
        self._notifier = notifier or Notifier()
        self._audit = audit_logger or AuditLogger()
        self._validator = LedgerValidator(self._app_settings)
        self._clock = clock or (lambda: datetime.now(self._app_settings.tzinfo))

        self.session = LedgerSession()
        self._paths: Optional[LedgerPaths] = None
        self._subscriptions: list[Subscription] = []

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def store(self) -> TreeStoreInterface:
        return self._store

    @property
    def notifier(self) -> Notifier:
        return self._notifier

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit

    @property
    def state(self) -> SessionState:
        return self.session.state

    @property
    def loading(self) -> bool:
        return self.session.state == SessionState.LOADING

    def now(self) -> datetime:
        return self._clock()

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def bind_auth(self, auth: AuthProviderInterface) -> Callable[[], None]:
        """Start and stop sessions as the signed-in user changes."""

        async def on_auth_changed(user: Optional[AuthUser]) -> None:
            if user is None:
                await self.stop()
            elif user.uid != self.session.user_id:
                await self.start(user.uid)

        return await auth.add_listener(on_auth_changed)

    async def start(self, user_id: str) -> None:
        """Enter LOADING for user_id and open the live mirrors."""
        if self.session.is_authenticated:
            await self.stop()

        self._paths = LedgerPaths(self._root_path, user_id)
        self.session.user_id = user_id
        self.session.state = SessionState.LOADING
        self._audit.log(AuditEventBuilder.session_started(user_id))

        await asyncio.gather(
            self._seed_default_categories(user_id),
            self._initialize_summary(user_id),
            self._open_subscriptions(user_id),
        )

    async def stop(self) -> None:
        """Tear down subscriptions and empty the mirrors."""
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []

        user_id = self.session.user_id
        self.session.reset()
        self._paths = None
        if user_id is not None:
            self._audit.log(AuditEventBuilder.session_stopped(user_id))

    def _is_current(self, user_id: str) -> bool:
        return self.session.user_id == user_id and self._paths is not None

    async def _seed_default_categories(self, user_id: str) -> None:
        paths = self._paths
        try:
            existing = await self._store.get_once(paths.categories)
            if existing:
                return
            updates = {}
            for category in DEFAULT_CATEGORIES:
                key = self._store.generate_key(paths.categories)
                updates[paths.category(key)] = category.to_store_value()
            await self._store.multi_path_update(updates)
            self._audit.log(AuditEventBuilder.categories_seeded(user_id, len(updates)))
        except StorageError as e:
            self._report_failure(user_id, "set up default categories", e, title="Setup Error")

    async def _initialize_summary(self, user_id: str) -> None:
        paths = self._paths
        try:
            existing = await self._store.get_once(paths.summary)
            if existing:
                return
            await self._store.set_at_path(paths.summary, Summary.zero().to_store_value())
            self._audit.log(AuditEventBuilder.summary_initialized(user_id))
        except StorageError as e:
            self._report_failure(user_id, "initialize user summary", e, title="Setup Error")

    async def _open_subscriptions(self, user_id: str) -> None:
        paths = self._paths
        handlers = [
            (paths.transactions, self._on_transactions),
            (paths.categories, self._on_categories),
            (paths.budget_goals, self._on_budget_goals),
            (paths.summary, self._on_summary),
        ]
        for path, handler in handlers:
            try:
                subscription = await self._store.subscribe(
                    path,
                    self._bind_snapshot(user_id, handler),
                    self._bind_error(user_id, path),
                )
            except StorageError as e:
                self._report_failure(user_id, f"subscribe to {path}", e, title="Data Sync Error")
                continue
            if not self._is_current(user_id):
                subscription.unsubscribe()
                return
            self._subscriptions.append(subscription)

    def _bind_snapshot(
        self,
        user_id: str,
        handler: Callable[[str, Any], Awaitable[None]],
    ) -> Callable[[Any], Awaitable[None]]:
        async def on_change(value: Any) -> None:
            if self._is_current(user_id):
                await handler(user_id, value)
        return on_change

    def _bind_error(self, user_id: str, path: str) -> Callable[[Exception], None]:
        def on_error(error: Exception) -> None:
            self._audit.log_subscription_failed(user_id, path, str(error))
            self._notifier.error("Data Sync Error", "Could not load your latest data.")
        return on_error

    # ------------------------------------------------------------------
    # Snapshot handlers
    # ------------------------------------------------------------------

    async def _on_transactions(self, user_id: str, value: Any) -> None:
        self.session.transactions = records_from_snapshot(Transaction, value)
        if self.session.budget_goals:
            await self._recalculate_in_background(user_id)

    async def _on_categories(self, user_id: str, value: Any) -> None:
        self.session.categories = records_from_snapshot(Category, value)

    async def _on_budget_goals(self, user_id: str, value: Any) -> None:
        self.session.budget_goals = records_from_snapshot(BudgetGoal, value)
        if self.session.budget_goals:
            await self._recalculate_in_background(user_id)

    async def _on_summary(self, user_id: str, value: Any) -> None:
        if value:
            try:
                self.session.summary = Summary.from_store(value)
            except ValidationError as e:
                logger.warning("summary_snapshot_malformed", user_id=user_id, error=str(e))
        else:
            self.session.summary = Summary.zero()
            try:
                await self._store.set_at_path(self._paths.summary, Summary.zero().to_store_value())
            except StorageError as e:
                self._report_failure(user_id, "initialize user summary", e, title="Setup Error")

        if self._is_current(user_id) and self.session.state == SessionState.LOADING:
            self.session.state = SessionState.SYNCED
            self._audit.log(AuditEventBuilder.session_synced(user_id))

    async def _recalculate_in_background(self, user_id: str) -> None:
        try:
            await self.recalculate_budget_spent()
        except RemoteWriteError as e:
            self._report_failure(user_id, "update budget spent amounts", e.cause, title="Data Sync Error")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_user(self, operation: str) -> LedgerPaths:
        if not self.session.is_authenticated or self._paths is None:
            raise AuthRequiredError(f"You must be signed in to {operation}.")
        return self._paths

    async def _remote(self, operation: str, call: Awaitable[Any]) -> Any:
        try:
            return await call
        except StorageError as e:
            raise RemoteWriteError(operation, e) from e

    def _coerce(self, model: type, data: Any, operation: str):
        value, issues = self._validator.coerce(model, data)
        if value is None:
            raise LedgerValidationError(f"Invalid input to {operation}", issues)
        return value

    @staticmethod
    def _check(result: tuple[bool, list[ValidationIssue]], operation: str) -> None:
        is_valid, issues = result
        if not is_valid:
            raise LedgerValidationError(f"Invalid input to {operation}", issues)

    @staticmethod
    def _not_found(entity: str, key: str, operation: str) -> LedgerValidationError:
        return LedgerValidationError(
            f"Invalid input to {operation}",
            [ValidationIssue(
                field="id",
                issue_type="not_found",
                message=f"{entity} {key} does not exist",
            )],
        )

    def _report_failure(self, user_id: Optional[str], operation: str, error: Exception, title: str) -> None:
        self._audit.log_remote_write_failed(user_id, operation, str(error))
        self._notifier.error(title, f"Could not {operation}.")

    async def _read_summary(self, paths: LedgerPaths, operation: str) -> Summary:
        """Current stored summary; a malformed one is rebuilt from transactions."""
        value = await self._remote(operation, self._store.get_once(paths.summary))
        try:
            return Summary.from_store(value)
        except ValidationError:
            logger.warning("stored_summary_malformed", user_id=self.session.user_id)
            return summarize_transactions(await self._read_transactions(paths, operation))

    async def _read_transactions(self, paths: LedgerPaths, operation: str) -> list[Transaction]:
        value = await self._remote(operation, self._store.get_once(paths.transactions))
        return records_from_snapshot(Transaction, value)

    async def _read_transaction(self, paths: LedgerPaths, key: str, operation: str) -> Optional[Transaction]:
        value = await self._remote(operation, self._store.get_once(paths.transaction(key)))
        if not isinstance(value, dict):
            return None
        try:
            return Transaction.from_store(key, value)
        except ValidationError as e:
            raise RemoteWriteError(operation, StorageError(f"stored transaction {key} is malformed: {e}"))

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def add_transaction(self, data: Union[TransactionInput, dict]) -> Transaction:
        """
        Write a new transaction and the summary it implies in one batch.

        Returns:
            The stored transaction, with its new id
        """
        operation = "add transaction"
        paths = self._require_user(operation)
        tx_input = self._coerce(TransactionInput, data, operation)
        self._check(self._validator.validate_transaction(tx_input, self.session.categories), operation)

        key = self._store.generate_key(paths.transactions)
        transaction = Transaction.model_validate({**tx_input.model_dump(), "id": key})

        summary = await self._read_summary(paths, operation)
        new_summary = apply_transaction_delta(summary, transaction, +1)

        await self._remote(operation, self._store.multi_path_update({
            paths.transaction(key): transaction.to_store_value(),
            paths.summary: new_summary.to_store_value(),
        }))
        self._audit.log_entity_changed(
            AuditEventType.TRANSACTION_ADDED,
            self.session.user_id,
            "transaction",
            key,
            details={"type": transaction.type.value, "amount": str(transaction.amount)},
        )
        return transaction

    async def update_transaction(
        self,
        updated: Union[Transaction, dict],
        original: Optional[Union[Transaction, dict]] = None,
    ) -> Transaction:
        """
        Replace a transaction, reverting the old contribution and applying the new.

        The stored record is the old version. A caller-supplied original
        that disagrees with it is logged and ignored.
        """
        operation = "update transaction"
        paths = self._require_user(operation)
        new = self._coerce(Transaction, updated, operation)
        self._check(self._validator.validate_transaction(new, self.session.categories), operation)

        stored = await self._read_transaction(paths, new.id, operation)
        if stored is None:
            raise self._not_found("Transaction", new.id, operation)
        if original is not None:
            given = self._coerce(Transaction, original, operation)
            if given != stored:
                logger.warning("stale_original_ignored", transaction_id=new.id)

        summary = await self._read_summary(paths, operation)
        new_summary = apply_transaction_delta(
            apply_transaction_delta(summary, stored, -1), new, +1
        )

        await self._remote(operation, self._store.multi_path_update({
            paths.transaction(new.id): new.to_store_value(),
            paths.summary: new_summary.to_store_value(),
        }))
        self._audit.log_entity_changed(
            AuditEventType.TRANSACTION_UPDATED,
            self.session.user_id,
            "transaction",
            new.id,
            details={"old_amount": str(stored.amount), "new_amount": str(new.amount)},
        )
        return new

    async def delete_transaction(self, transaction: Union[Transaction, str]) -> Optional[Transaction]:
        """
        Remove a transaction and its contribution to the summary.

        Deleting a transaction that is already gone is a no-op, so a
        repeated delete cannot subtract twice.

        Returns:
            The removed transaction, or None if it did not exist
        """
        operation = "delete transaction"
        paths = self._require_user(operation)
        key = transaction if isinstance(transaction, str) else transaction.id

        stored = await self._read_transaction(paths, key, operation)
        if stored is None:
            return None

        summary = await self._read_summary(paths, operation)
        new_summary = apply_transaction_delta(summary, stored, -1)

        await self._remote(operation, self._store.multi_path_update({
            paths.transaction(key): None,
            paths.summary: new_summary.to_store_value(),
        }))
        self._audit.log_entity_changed(
            AuditEventType.TRANSACTION_DELETED,
            self.session.user_id,
            "transaction",
            key,
            details={"type": stored.type.value, "amount": str(stored.amount)},
        )
        return stored

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    async def add_category(self, data: Union[CategoryInput, dict]) -> Category:
        operation = "add category"
        paths = self._require_user(operation)
        category_input = self._coerce(CategoryInput, data, operation)
        self._check(self._validator.validate_category(category_input), operation)

        key = self._store.generate_key(paths.categories)
        category = Category.model_validate({**category_input.model_dump(), "id": key})
        await self._remote(operation, self._store.set_at_path(
            paths.category(key), category.to_store_value()
        ))
        self._audit.log_entity_changed(
            AuditEventType.CATEGORY_ADDED,
            self.session.user_id,
            "category",
            key,
            details={"name": category.name, "kind": category.kind.value},
        )
        return category

    async def update_category(self, data: Union[Category, dict]) -> Category:
        operation = "update category"
        paths = self._require_user(operation)
        category = self._coerce(Category, data, operation)
        self._check(self._validator.validate_category(category), operation)

        await self._remote(operation, self._store.set_at_path(
            paths.category(category.id), category.to_store_value()
        ))
        self._audit.log_entity_changed(
            AuditEventType.CATEGORY_UPDATED,
            self.session.user_id,
            "category",
            category.id,
            details={"name": category.name, "kind": category.kind.value},
        )
        return category

    async def delete_category(self, category_id: str) -> CategoryCascade:
        """
        Delete a category with every transaction and budget goal that uses it.

        The category, its transactions, its budget goals and the reverted
        summary are written in a single multi-path update.
        """
        operation = "delete category"
        paths = self._require_user(operation)
        if not category_id:
            raise self._not_found("Category", category_id, operation)

        updates: dict[str, Any] = {paths.category(category_id): None}

        transactions = await self._remote(operation, self._store.query_by_field(
            paths.transactions, "categoryId", category_id
        ))
        summary = await self._read_summary(paths, operation)
        for key, value in transactions.items():
            updates[paths.transaction(key)] = None
            try:
                summary = apply_transaction_delta(summary, Transaction.from_store(key, value), -1)
            except ValidationError:
                # Amount unknown; repair_summary() can reconcile afterwards
                logger.warning("cascade_transaction_malformed", transaction_id=key)
        updates[paths.summary] = summary.to_store_value()

        goals = await self._remote(operation, self._store.query_by_field(
            paths.budget_goals, "categoryId", category_id
        ))
        for key in goals:
            updates[paths.budget_goal(key)] = None

        await self._remote(operation, self._store.multi_path_update(updates))

        cascade = CategoryCascade(category_id, sorted(transactions), sorted(goals))
        self._audit.log_entity_changed(
            AuditEventType.CATEGORY_DELETED,
            self.session.user_id,
            "category",
            category_id,
            details={
                "transactions_removed": len(cascade.transaction_ids),
                "budget_goals_removed": len(cascade.budget_goal_ids),
            },
        )
        return cascade

    # ------------------------------------------------------------------
    # Budget goals
    # ------------------------------------------------------------------

    def _spent_for(self, goal: BudgetGoalInput) -> Decimal:
        return spent_for_period(
            self.session.transactions,
            goal.category_id,
            goal.period,
            self.now(),
        )

    async def add_budget_goal(self, data: Union[BudgetGoalInput, dict]) -> BudgetGoal:
        """Store a budget goal with spent_amount computed from the local mirror."""
        operation = "add budget goal"
        paths = self._require_user(operation)
        goal_input = self._coerce(BudgetGoalInput, data, operation)
        self._check(self._validator.validate_budget_goal(goal_input, self.session.categories), operation)

        key = self._store.generate_key(paths.budget_goals)
        goal = BudgetGoal.model_validate({
            **goal_input.model_dump(),
            "id": key,
            "spent_amount": self._spent_for(goal_input),
        })
        await self._remote(operation, self._store.set_at_path(
            paths.budget_goal(key), goal.to_store_value()
        ))
        self._audit.log_entity_changed(
            AuditEventType.BUDGET_GOAL_ADDED,
            self.session.user_id,
            "budget_goal",
            key,
            details={"category_id": goal.category_id, "period": goal.period.value},
        )
        return goal

    async def update_budget_goal(self, data: Union[BudgetGoal, dict]) -> BudgetGoal:
        """Replace a budget goal; any spent_amount the caller sends is recomputed."""
        operation = "update budget goal"
        paths = self._require_user(operation)
        goal = self._coerce(BudgetGoal, data, operation)
        self._check(self._validator.validate_budget_goal(goal, self.session.categories), operation)

        goal = goal.model_copy(update={"spent_amount": self._spent_for(goal)})
        await self._remote(operation, self._store.set_at_path(
            paths.budget_goal(goal.id), goal.to_store_value()
        ))
        self._audit.log_entity_changed(
            AuditEventType.BUDGET_GOAL_UPDATED,
            self.session.user_id,
            "budget_goal",
            goal.id,
            details={"category_id": goal.category_id, "period": goal.period.value},
        )
        return goal

    async def delete_budget_goal(self, goal_id: str) -> None:
        operation = "delete budget goal"
        paths = self._require_user(operation)
        if not goal_id:
            raise self._not_found("Budget goal", goal_id, operation)

        await self._remote(operation, self._store.remove_path(paths.budget_goal(goal_id)))
        self._audit.log_entity_changed(
            AuditEventType.BUDGET_GOAL_DELETED,
            self.session.user_id,
            "budget_goal",
            goal_id,
        )

    # ------------------------------------------------------------------
    # Derived data
    # ------------------------------------------------------------------

    async def recalculate_budget_spent(self) -> dict[str, Decimal]:
        """
        Bring every budget goal's spent_amount in line with the transactions.

        Both collections are read fresh from the store, so the result
        does not depend on which snapshot arrived first, and goals
        deleted in the meantime are not written back. Only changed
        values are written; running it twice writes nothing the
        second time.

        Returns:
            {goal_id: new_spent_amount} for every goal that changed
        """
        operation = "recalculate budget spent amounts"
        paths = self._require_user(operation)
        transactions = await self._read_transactions(paths, operation)
        goals_value = await self._remote(operation, self._store.get_once(paths.budget_goals))
        goals = records_from_snapshot(BudgetGoal, goals_value)

        now = self.now()
        updates: dict[str, str] = {}
        changed: dict[str, Decimal] = {}
        for goal in goals:
            spent = spent_for_period(transactions, goal.category_id, goal.period, now)
            if spent != goal.spent_amount:
                updates[paths.budget_goal_field(goal.id, "spentAmount")] = str(spent)
                changed[goal.id] = spent

        if not updates:
            return {}

        await self._remote(operation, self._store.multi_path_update(updates))
        self._audit.log(AuditEventBuilder.budgets_recalculated(
            self.session.user_id,
            {goal_id: str(spent) for goal_id, spent in changed.items()},
        ))
        return changed

    def detect_drift(self) -> bool:
        """
        Compare the mirrored summary with the mirrored transactions.

        Between two snapshots the mirrors can disagree briefly, so a
        positive result is a hint to call repair_summary(), not proof.
        """
        expected = summarize_transactions(self.session.transactions)
        if expected == self.session.summary:
            return False
        if self.session.user_id is not None:
            self._audit.log(AuditEventBuilder.summary_drift_detected(
                self.session.user_id,
                stored=self.session.summary.to_store_value(),
                expected=expected.to_store_value(),
            ))
        return True

    async def repair_summary(self) -> SummaryRepair:
        """
        Recompute the summary from every stored transaction.

        Idempotent: writes only when the stored summary differs.
        """
        operation = "repair summary"
        paths = self._require_user(operation)
        transactions = await self._read_transactions(paths, operation)
        expected = summarize_transactions(transactions)

        stored_value = await self._remote(operation, self._store.get_once(paths.summary))
        try:
            stored = Summary.from_store(stored_value)
        except ValidationError:
            stored = None

        if stored == expected:
            return SummaryRepair(before=stored, after=expected, changed=False)

        await self._remote(operation, self._store.set_at_path(
            paths.summary, expected.to_store_value()
        ))
        before = stored if stored is not None else Summary.zero()
        self._audit.log(AuditEventBuilder.summary_repaired(
            self.session.user_id,
            before=before.to_store_value(),
            after=expected.to_store_value(),
        ))
        return SummaryRepair(before=before, after=expected, changed=True)
