"""
Storage abstraction layer.
Provides one contract for task persistence with a local and a remote backend.
"""
from .interface import TaskStorage
from .sqlite_storage import SQLiteStorage
from .api_storage import APIStorage

__all__ = [
    'TaskStorage',
    'SQLiteStorage',
    'APIStorage',
]
