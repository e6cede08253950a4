"""Shared fixtures: a fixed clock, a seeded in-memory store and a synchronizer."""

from datetime import datetime, timezone
from typing import Optional

import pytest

from pocketbudget.audit import AuditLogger, Notifier
from pocketbudget.config import Settings
from pocketbudget.data_api import LedgerDataAPI
from pocketbudget.services.storage import MemoryTreeStore, StorageError
from pocketbudget.sync import Synchronizer


NOW = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)
USER_ID = "u1"


class FlakyTreeStore(MemoryTreeStore):
    """Memory store whose writes and reads can be made to fail on demand."""

    def __init__(self, initial: Optional[dict] = None):
        super().__init__(initial)
        self.fail_writes = False
        self.fail_reads = False
        self.write_count = 0

    async def multi_path_update(self, updates):
        if self.fail_writes:
            raise StorageError("permission denied")
        self.write_count += 1
        await super().multi_path_update(updates)

    async def get_once(self, path):
        if self.fail_reads:
            raise StorageError("network unreachable")
        return await super().get_once(path)


def category_value(name: str, kind: str = "expense", icon: str = "Tag") -> dict:
    return {"name": name, "icon": icon, "color": "hsl(0, 0%, 50%)", "kind": kind}


@pytest.fixture
def initial_tree() -> dict:
    return {
        "users": {
            USER_ID: {
                "categories": {
                    "groceries": category_value("Groceries", icon="ShoppingCart"),
                    "salary": category_value("Salary", kind="income", icon="Landmark"),
                },
            },
        },
    }


@pytest.fixture
def store(initial_tree) -> FlakyTreeStore:
    return FlakyTreeStore(initial_tree)


@pytest.fixture
def notifier() -> Notifier:
    return Notifier()


@pytest.fixture
def audit_logger() -> AuditLogger:
    return AuditLogger()


@pytest.fixture
def synchronizer(store, notifier, audit_logger) -> Synchronizer:
    return Synchronizer(
        store,
        settings=Settings(),
        notifier=notifier,
        audit_logger=audit_logger,
        clock=lambda: NOW,
    )


@pytest.fixture
def api(synchronizer) -> LedgerDataAPI:
    return LedgerDataAPI(synchronizer, settings=Settings())


def user_node(store: MemoryTreeStore, user_id: str = USER_ID) -> dict:
    return store.dump().get("users", {}).get(user_id, {})
