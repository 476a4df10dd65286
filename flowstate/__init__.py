"""FlowState quarter-hour activity ledger."""

__version__ = "0.1.0"

from .ledger import Ledger
from .storage import MemoryKeyValueStore, SQLiteKeyValueStore, StorageError

__all__ = [
    "Ledger",
    "MemoryKeyValueStore",
    "SQLiteKeyValueStore",
    "StorageError",
    "__version__",
]
