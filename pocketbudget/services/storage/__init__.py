"""
Storage Services Package

Provides the abstract tree store interface and concrete implementations.
Ships an in-memory store and a Google Sheets store; designed to be swappable.
"""

from pocketbudget.services.storage.interface import (
    ConnectionError,
    StorageError,
    Subscription,
    TreeStoreInterface,
    generate_push_key,
    join_path,
    split_path,
)
from pocketbudget.services.storage.memory import (
    MemoryTreeStore,
    flatten_tree,
    unflatten_tree,
)
from pocketbudget.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsTreeStore,
)
from pocketbudget.services.storage.factory import create_tree_store

__all__ = [
    # Interfaces
    "Subscription",
    "TreeStoreInterface",
    "generate_push_key",
    "join_path",
    "split_path",
    # Exceptions
    "ConnectionError",
    "StorageError",
    # Implementations
    "GoogleSheetsClient",
    "GoogleSheetsTreeStore",
    "MemoryTreeStore",
    "create_tree_store",
    "flatten_tree",
    "unflatten_tree",
]
