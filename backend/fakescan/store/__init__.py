# fakescan/store/__init__.py
from fakescan.store.base import ReportOrError, Store
from fakescan.store.memory import MemoryStore, StoreEntry

__all__ = ["MemoryStore", "ReportOrError", "Store", "StoreEntry", "new_store"]


def new_store() -> Store:
    return MemoryStore()
