"""
Cross-process exclusive locks on a sibling lock file.

The locks are advisory: they only exclude other processes that go through
the same lock file. They are taken without blocking so a second upgrade
process fails fast instead of queueing behind a live one.
"""

import os
import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

if sys.platform == "win32":
    import msvcrt
else:
    import fcntl


class ProcessLock(ABC):
    """Exclusive, non-blocking lock shared between processes."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._fd: Optional[int] = None

    @property
    def held(self) -> bool:
        return self._fd is not None

    @abstractmethod
    def try_acquire(self) -> bool:
        """
        Take the lock without waiting.

        Returns:
            True if the lock is now held, False if another holder has it
        """
        pass

    @abstractmethod
    def release(self) -> None:
        """Drop the lock and remove the lock file. No-op when not held."""
        pass

    def _open(self) -> int:
        return os.open(str(self.path), os.O_RDWR | os.O_CREAT, 0o600)


class PosixFileLock(ProcessLock):
    """flock()-based lock for POSIX systems."""

    def try_acquire(self) -> bool:
        if self.held:
            return True

        while True:
            fd = self._open()
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            except BlockingIOError:
                os.close(fd)
                return False
            except OSError:
                os.close(fd)
                raise

            # The previous holder unlinks the file on release; a lock taken on
            # an unlinked inode excludes nobody, so start over on a fresh file.
            try:
                same_file = os.fstat(fd).st_ino == os.stat(self.path).st_ino
            except FileNotFoundError:
                same_file = False

            if same_file:
                self._fd = fd
                return True

            fcntl.flock(fd, fcntl.LOCK_UN)
            os.close(fd)

    def release(self) -> None:
        if self._fd is None:
            return

        fd, self._fd = self._fd, None
        try:
            # Unlink while still holding the lock so waiters see a stale inode
            try:
                os.unlink(self.path)
            except FileNotFoundError:
                pass
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)


class WindowsFileLock(ProcessLock):
    """msvcrt byte-range lock for Windows."""

    def try_acquire(self) -> bool:
        if self.held:
            return True

        fd = self._open()
        try:
            msvcrt.locking(fd, msvcrt.LK_NBLCK, 1)
        except OSError:
            os.close(fd)
            return False

        self._fd = fd
        return True

    def release(self) -> None:
        if self._fd is None:
            return

        fd, self._fd = self._fd, None
        try:
            os.lseek(fd, 0, os.SEEK_SET)
            msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)
        finally:
            os.close(fd)

        # Open files cannot be removed on Windows; another process may
        # already have the file open again, in which case it stays.
        try:
            os.unlink(self.path)
        except (FileNotFoundError, PermissionError):
            pass


def create_process_lock(path: Union[str, Path]) -> ProcessLock:
    """Create the lock implementation for the current platform."""
    if sys.platform == "win32":
        return WindowsFileLock(path)
    return PosixFileLock(path)
