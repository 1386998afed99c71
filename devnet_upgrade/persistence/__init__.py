"""Durable storage for upgrade state."""

from .file_lock import PosixFileLock, ProcessLock, WindowsFileLock, create_process_lock
from .state_store import StateStore

__all__ = [
    "StateStore",
    "ProcessLock",
    "PosixFileLock",
    "WindowsFileLock",
    "create_process_lock",
]
