"""Services package."""

from pocketbudget.services.auth import (
    AuthProviderInterface,
    AuthUser,
    LocalAuthProvider,
)
from pocketbudget.services.storage import (
    ConnectionError,
    GoogleSheetsClient,
    GoogleSheetsTreeStore,
    MemoryTreeStore,
    StorageError,
    TreeStoreInterface,
    create_tree_store,
)

__all__ = [
    # Auth
    "AuthProviderInterface",
    "AuthUser",
    "LocalAuthProvider",
    # Storage services
    "ConnectionError",
    "GoogleSheetsClient",
    "GoogleSheetsTreeStore",
    "MemoryTreeStore",
    "StorageError",
    "TreeStoreInterface",
    "create_tree_store",
]
