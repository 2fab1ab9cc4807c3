"""
Snapshot manager - owns one subsystem's snapshot slot on disk.

One slot per subsystem, last persist wins: the slot holds exactly one
"before" record, replaced atomically by each new capture.
"""

import contextlib
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Optional

from ..protocol.errors import (
    CleanForgeError,
    CorruptSnapshotError,
    SnapshotLoadError,
    SnapshotPersistError,
    TypeMismatchError,
)
from .capture import CapturePlan, CaptureResult, SnapshotCapture
from .models import Snapshot

logger = logging.getLogger(__name__)


class SnapshotManager:
    """Capture, persist and load the snapshot of one subsystem."""

    SLOT_SUFFIX = "_snapshot.json"

    def __init__(
        self,
        subsystem: str,
        backup_dir: Path,
        capture: Optional[SnapshotCapture] = None,
    ):
        """
        Initialize snapshot manager.

        Args:
            subsystem: Slot name (gaming, privacy, ...)
            backup_dir: Directory holding slot files (created on first persist)
            capture: Component used to read current state (not needed to
                     load or discard)
        """
        self.subsystem = subsystem
        self.backup_dir = Path(backup_dir)
        self._capture = capture

        # Guards capture -> persist -> mutate and restore for this slot
        self.lock = threading.RLock()

    @property
    def path(self) -> Path:
        """Path to this subsystem's slot file."""
        return self.backup_dir / f"{self.subsystem}{self.SLOT_SUFFIX}"

    # =========================================================================
    # Core Operations
    # =========================================================================

    def capture(self, plan: CapturePlan, base: Optional[Snapshot] = None) -> CaptureResult:
        """Capture a new snapshot. Never raises for per-target problems."""
        if self._capture is None:
            raise CleanForgeError(f"{self.subsystem}: snapshot manager has no capture component")
        return self._capture.capture(self.subsystem, plan, base=base)

    def persist(self, snapshot: Snapshot) -> None:
        """
        Write the snapshot atomically (temp file, fsync, rename).

        Raises:
            SnapshotPersistError: the slot could not be written
        """
        text = snapshot.to_json()
        tmp_name = None
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.backup_dir,
                prefix=f".{self.subsystem}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(text)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
            raise SnapshotPersistError(f"could not write snapshot {self.path}: {e}") from e

        logger.info("Persisted %s snapshot (%d entries) to %s", self.subsystem, len(snapshot.entries), self.path)

    def load(self) -> Optional[Snapshot]:
        """
        Load the slot's snapshot.

        Returns:
            The snapshot, or None when no backup is available (file missing,
            truncated or malformed).

        Raises:
            SnapshotLoadError: the file exists but cannot be read
        """
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info("No %s backup available", self.subsystem)
            return None
        except UnicodeDecodeError as e:
            logger.warning("Ignoring unreadable %s snapshot %s: %s", self.subsystem, self.path, e)
            return None
        except OSError as e:
            raise SnapshotLoadError(f"could not read snapshot {self.path}: {e}") from e

        try:
            return Snapshot.from_json(text, subsystem=self.subsystem)
        except (CorruptSnapshotError, TypeMismatchError) as e:
            logger.warning("Ignoring corrupt %s snapshot %s: %s", self.subsystem, self.path, e)
            return None

    # =========================================================================
    # Query Operations
    # =========================================================================

    def has_backup(self) -> bool:
        """True when load() would return a snapshot."""
        try:
            return self.load() is not None
        except SnapshotLoadError:
            return False

    def discard(self) -> bool:
        """
        Delete the slot file.

        Returns:
            True if a file was removed
        """
        with self.lock:
            try:
                self.path.unlink()
            except FileNotFoundError:
                return False
        logger.info("Discarded %s snapshot", self.subsystem)
        return True
