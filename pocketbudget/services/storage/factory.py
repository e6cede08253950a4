"""Factory for creating the configured tree store."""

from typing import Optional

from pocketbudget.config import StoreSettings, get_settings
from pocketbudget.services.storage.google_sheets import GoogleSheetsTreeStore
from pocketbudget.services.storage.interface import TreeStoreInterface
from pocketbudget.services.storage.memory import MemoryTreeStore


def create_tree_store(settings: Optional[StoreSettings] = None) -> TreeStoreInterface:
    """
    Create the tree store selected by STORE_BACKEND.

    Args:
        settings: Store settings; loaded from the environment if omitted

    Returns:
        MemoryTreeStore for "memory", GoogleSheetsTreeStore for "google_sheets"
    """
    settings = settings or get_settings().store
    if settings.backend == "google_sheets":
        return GoogleSheetsTreeStore()
    return MemoryTreeStore()
