"""Tests for cross-process file locks."""

import sys

import pytest

from devnet_upgrade.persistence.file_lock import (
    PosixFileLock,
    ProcessLock,
    WindowsFileLock,
    create_process_lock,
)


class TestCreateProcessLock:

    def test_platform_implementation(self, tmp_path):
        lock = create_process_lock(tmp_path / "x.lock")

        assert isinstance(lock, ProcessLock)
        expected = WindowsFileLock if sys.platform == "win32" else PosixFileLock
        assert isinstance(lock, expected)
        assert lock.held is False


class TestProcessLock:
    """Behaviour shared by every platform lock."""

    def setup_method(self):
        self.locks = []

    def teardown_method(self):
        for lock in self.locks:
            lock.release()

    def make_lock(self, path):
        lock = create_process_lock(path)
        self.locks.append(lock)
        return lock

    def test_exclusive(self, tmp_path):
        path = tmp_path / "upgrade.lock"
        first = self.make_lock(path)
        second = self.make_lock(path)

        assert first.try_acquire() is True
        assert second.try_acquire() is False
        assert second.held is False

    def test_reacquire_is_idempotent(self, tmp_path):
        lock = self.make_lock(tmp_path / "upgrade.lock")

        assert lock.try_acquire() is True
        assert lock.try_acquire() is True
        assert lock.held is True

    def test_release_removes_file(self, tmp_path):
        path = tmp_path / "upgrade.lock"
        lock = self.make_lock(path)

        lock.try_acquire()
        lock.release()

        assert lock.held is False
        assert not path.exists()

    def test_handover_after_release(self, tmp_path):
        path = tmp_path / "upgrade.lock"
        first = self.make_lock(path)
        second = self.make_lock(path)

        first.try_acquire()
        first.release()

        assert second.try_acquire() is True


@pytest.mark.skipif(sys.platform == "win32", reason="flock semantics")
class TestPosixFileLock:
    """POSIX-specific stale inode handling."""

    def test_lock_on_recreated_file_is_exclusive(self, tmp_path):
        path = tmp_path / "upgrade.lock"
        first = PosixFileLock(path)
        second = PosixFileLock(path)
        third = PosixFileLock(path)

        try:
            assert first.try_acquire() is True
            first.release()

            # The file was unlinked; a new holder recreates it
            assert second.try_acquire() is True
            assert path.exists()
            assert third.try_acquire() is False
        finally:
            for lock in (first, second, third):
                lock.release()
