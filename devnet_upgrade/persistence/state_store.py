"""
File-backed store for upgrade state.

One state file lives in each deployment home directory. Writes go through a
temp file and an atomic rename so a crash never leaves a half-written file,
and every file carries a SHA-256 checksum so manual edits or disk damage are
detected on load instead of being trusted.
"""

import hashlib
import json
import os
import sys
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from structlog.types import FilteringBoundLogger

from ..config.defaults import StoreParams
from ..errors import (
    PersistenceError,
    StateCorruptionError,
    UpgradeInProgressError,
    UpgradeStateError,
)
from ..logging.config import get_state_logger
from ..state.models import CURRENT_SCHEMA_VERSION, VALID_MODES, UpgradeState
from .file_lock import ProcessLock, create_process_lock


class StateStore:
    """Loads, saves and locks the upgrade state of one home directory."""

    def __init__(
        self,
        home_dir: Union[str, Path],
        params: Optional[StoreParams] = None,
        logger: Optional[FilteringBoundLogger] = None
    ):
        self.home_dir = Path(home_dir)
        self.params = params or StoreParams()
        self.logger = logger or get_state_logger(__name__)
        self._lock: ProcessLock = create_process_lock(self.lock_path)

    @property
    def state_path(self) -> Path:
        return self.home_dir / self.params.state_filename

    @property
    def lock_path(self) -> Path:
        return self.home_dir / self.params.lock_filename

    @property
    def lock_held(self) -> bool:
        return self._lock.held

    def load_state(self) -> Optional[UpgradeState]:
        """
        Read the persisted state.

        Returns:
            The saved state, or None when no state file exists

        Raises:
            PersistenceError: If the file exists but cannot be read
            StateCorruptionError: If the content is not a valid state document
                or its checksum does not match
        """
        try:
            raw = self.state_path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise PersistenceError(
                f"failed to read state file: {e}",
                operation="load",
                target=str(self.state_path)
            ) from e

        try:
            state = UpgradeState.from_dict(json.loads(raw))
        except (ValueError, TypeError, KeyError, AttributeError, RecursionError) as e:
            raise StateCorruptionError(f"invalid JSON: {e}") from e

        if state.checksum:
            computed = self.compute_checksum(state)
            if computed != state.checksum:
                raise StateCorruptionError(
                    f"checksum mismatch: stored={state.checksum}, computed={computed}"
                )

        return state

    def save_state(self, state: Optional[UpgradeState]) -> None:
        """
        Persist state atomically, refreshing its checksum.

        Raises:
            ValueError: If state is None
            PersistenceError: If the file system rejects the write
        """
        if state is None:
            raise ValueError("cannot save state: state is None")

        state.checksum = self.compute_checksum(state)
        payload = json.dumps(state.to_dict(), indent=2)

        temp_path = None
        try:
            self.home_dir.mkdir(parents=True, exist_ok=True)
            temp_fd, temp_path = tempfile.mkstemp(
                dir=str(self.home_dir),
                prefix=f"{self.params.state_filename}.",
                suffix=".tmp"
            )
            with os.fdopen(temp_fd, "w") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())

            os.chmod(temp_path, self.params.file_mode)
            os.replace(temp_path, self.state_path)
            temp_path = None
            self._sync_directory()
        except OSError as e:
            raise PersistenceError(
                f"failed to save state file: {e}",
                operation="save",
                target=str(self.state_path)
            ) from e
        finally:
            if temp_path is not None and os.path.exists(temp_path):
                os.unlink(temp_path)

        self.logger.debug(
            "Upgrade state saved",
            upgrade_name=state.upgrade_name,
            stage=str(state.stage or ""),
            checksum=state.checksum
        )

    def delete_state(self) -> None:
        """Remove the state file. Deleting a missing file is not an error."""
        try:
            self.state_path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise PersistenceError(
                f"failed to delete state file: {e}",
                operation="delete",
                target=str(self.state_path)
            ) from e

        self.logger.info("Upgrade state deleted", path=str(self.state_path))

    def state_exists(self) -> bool:
        return self.state_path.exists()

    def validate_state(self, state: UpgradeState) -> None:
        """
        Check every structural invariant of a state.

        Raises:
            StateCorruptionError: Naming the first violated invariant
        """
        if state.schema_version < 1 or state.schema_version > CURRENT_SCHEMA_VERSION:
            raise StateCorruptionError(f"unsupported schema version: {state.schema_version}")
        if not state.upgrade_name:
            raise StateCorruptionError("upgrade name is empty")
        if state.stage is None:
            raise StateCorruptionError("stage is empty")
        if state.mode not in VALID_MODES:
            raise StateCorruptionError(f"invalid mode: {state.mode!r}")
        if not state.stage_history:
            raise StateCorruptionError("stage history is empty")
        if state.stage_history[0].from_stage is not None:
            raise StateCorruptionError(
                f"first stage history entry must start from an empty stage, "
                f"got {state.stage_history[0].from_stage}"
            )
        if state.created_at > state.updated_at:
            raise StateCorruptionError("createdAt is after updatedAt")

        for i, vote in enumerate(state.validator_votes):
            if not vote.address:
                raise StateCorruptionError(f"validator vote {i} has no address")
            if vote.voted and not vote.tx_hash:
                raise StateCorruptionError(
                    f"validator {vote.address} is marked voted without a tx hash"
                )

        for i, switch in enumerate(state.node_switches):
            if not switch.node_name:
                raise StateCorruptionError(f"node switch {i} has no node name")
            if switch.switched:
                if not (switch.stopped and switch.started):
                    raise StateCorruptionError(
                        f"node {switch.node_name} is marked switched but was not stopped and started"
                    )
                if not switch.new_binary:
                    raise StateCorruptionError(
                        f"node {switch.node_name} is marked switched without a new binary"
                    )

    @staticmethod
    def compute_checksum(state: UpgradeState) -> str:
        """SHA-256 over the canonical JSON of the state with its checksum cleared."""
        document = state.to_dict()
        document["checksum"] = ""
        canonical = json.dumps(document, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    def acquire_lock(self) -> None:
        """
        Take the cross-process upgrade lock without waiting.

        Raises:
            UpgradeInProgressError: If another process holds the lock; names
                the upgrade and stage of the holder when the state is readable
            PersistenceError: If the lock file cannot be created
        """
        try:
            self.home_dir.mkdir(parents=True, exist_ok=True)
            acquired = self._lock.try_acquire()
        except OSError as e:
            raise PersistenceError(
                f"failed to acquire lock: {e}",
                operation="lock",
                target=str(self.lock_path)
            ) from e

        if acquired:
            self.logger.debug("Upgrade lock acquired", path=str(self.lock_path))
            return

        try:
            holder = self.load_state()
        except UpgradeStateError as e:
            self.logger.warning("Lock holder state unreadable", error=str(e))
            holder = None

        if holder is None:
            raise UpgradeInProgressError()
        raise UpgradeInProgressError(holder.upgrade_name, holder.stage)

    def release_lock(self) -> None:
        """Release the upgrade lock if held by this store."""
        if not self._lock.held:
            return

        try:
            self._lock.release()
        except OSError as e:
            raise PersistenceError(
                f"failed to release lock: {e}",
                operation="unlock",
                target=str(self.lock_path)
            ) from e

        self.logger.debug("Upgrade lock released", path=str(self.lock_path))

    @contextmanager
    def locked(self) -> Iterator["StateStore"]:
        """
        Hold the upgrade lock for the duration of a with-block.

        Nested use keeps a lock taken by an outer acquire_lock() or locked();
        only the block that acquired the lock releases it.
        """
        already_held = self.lock_held
        self.acquire_lock()
        try:
            yield self
        finally:
            if not already_held:
                self.release_lock()

    def _sync_directory(self) -> None:
        # Directory fsync makes the rename durable; Windows has no equivalent
        if sys.platform == "win32":
            return
        dir_fd = os.open(str(self.home_dir), os.O_RDONLY)
        try:
            os.fsync(dir_fd)
        finally:
            os.close(dir_fd)
