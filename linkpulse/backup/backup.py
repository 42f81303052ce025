"""
Snapshot backup / restore for Linkpulse.

Responsibilities:
    - Write timestamped JSON snapshots of the whole index (debounced)
    - Repoint a LATEST pointer file at the newest snapshot atomically
    - Prune snapshots beyond the retention count
    - Restore the latest (or a chosen) snapshot at boot; a missing or corrupt
      snapshot falls back to an empty index instead of failing startup

Layout:
    <backup_dir>/backup-20261018T121500123456Z.json
    <backup_dir>/LATEST          # contains the newest snapshot's filename

Concurrency:
    The index is copied under its lock (LinkManager.export_data); encoding and
    file I/O happen outside the lock so click recording never waits on disk.

LLM Prompt Example:
    "Show a portable alternative to a 'latest' symlink: a pointer file rewritten
    with write-to-temp-then-rename, and explain why rename gives atomicity."
"""

import json
import logging
import os
import tempfile
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from linkpulse.errors import PersistenceError
from linkpulse.manager.link_manager import LinkManager
from linkpulse.models import to_iso

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "backup-"
BACKUP_SUFFIX = ".json"
POINTER_NAME = "LATEST"


def _atomic_write(path: Path, payload: str) -> None:
    """Write to a temp file in the same directory, fsync, then rename over `path`."""
    fd, tmp = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(payload)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


class BackupManager:
    def __init__(
        self,
        manager: LinkManager,
        directory: Optional[str] = None,
        retention: Optional[int] = None,
        interval_seconds: Optional[int] = None,
    ):
        config = manager.config
        self.manager = manager
        self.directory = Path(directory or config.backup_dir)
        self.retention = retention if retention is not None else config.backup_retention
        self.interval_ms = (interval_seconds if interval_seconds is not None else config.backup_interval_seconds) * 1000
        self.last_backup_at: Optional[int] = None
        # Serializes writers (timer, sweep hook, manual trigger); readers of the index are unaffected
        self._write_lock = threading.Lock()

    @property
    def pointer_path(self) -> Path:
        return self.directory / POINTER_NAME

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------
    def create_backup(self, force: bool = False) -> Optional[Path]:
        """
        Write one snapshot and repoint LATEST at it.

        Args:
            force (bool): Ignore the debounce against the last successful backup.

        Returns:
            Optional[Path]: Snapshot path, or None when debounced.

        Raises:
            PersistenceError: directory, write or rename failure.
        """
        with self._write_lock:
            now = self.manager.now()
            if not force and self.last_backup_at is not None and now - self.last_backup_at < self.interval_ms:
                return None

            snapshot = self.manager.export_data()
            stamp = datetime.fromtimestamp(now / 1000.0, tz=timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
            path = self.directory / f"{BACKUP_PREFIX}{stamp}{BACKUP_SUFFIX}"

            try:
                self.directory.mkdir(parents=True, exist_ok=True)
                _atomic_write(path, json.dumps(snapshot, indent=2))
                _atomic_write(self.pointer_path, path.name + "\n")
            except OSError as exc:
                logger.error("Backup failed: %s", exc)
                raise PersistenceError(f"Backup failed: {exc}") from exc

            self.last_backup_at = now
            logger.info("Backup created: %s (%d short URLs)", path, len(snapshot["url_database"]))
            self.prune()
            return path

    def run_scheduled(self) -> Optional[Path]:
        """Timer entry point: debounced backup that logs failures instead of raising."""
        try:
            return self.create_backup()
        except PersistenceError:
            logger.exception("Scheduled backup cycle failed; index keeps serving")
            return None

    def prune(self) -> List[str]:
        """Delete snapshots beyond `retention`, newest kept. Never deletes LATEST's target."""
        latest = self._read_pointer()
        names = sorted((p.name for p in self._snapshot_files()), reverse=True)
        removed = []
        for name in names[self.retention:]:
            if name == latest:
                continue
            try:
                (self.directory / name).unlink()
                removed.append(name)
                logger.info("Deleted old backup: %s", name)
            except OSError as exc:
                logger.warning("Could not delete old backup %s: %s", name, exc)
        return removed

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------
    def list_backups(self) -> List[Dict[str, Any]]:
        """Snapshots on disk, newest first."""
        backups = []
        for path in self._snapshot_files():
            stat = path.stat()
            backups.append({
                "filename": path.name,
                "size": stat.st_size,
                "created": datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
            })
        return sorted(backups, key=lambda b: b["filename"], reverse=True)

    def load_snapshot(self, filename: str) -> Dict[str, Any]:
        """
        Read and decode one snapshot file.

        Raises:
            PersistenceError: missing file, unreadable, or not JSON.
        """
        path = self.directory / Path(filename).name
        try:
            with path.open("r", encoding="utf-8") as fh:
                return json.load(fh)
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"Cannot read snapshot {path}: {exc}") from exc

    def restore(self, filename: str) -> int:
        """
        Replace the index with a named snapshot.

        Returns:
            int: number of records loaded.

        Raises:
            PersistenceError: unreadable or invalid snapshot (index unchanged).
        """
        count = self.manager.import_data(self.load_snapshot(filename))
        logger.info("Restored from backup: %s", filename)
        return count

    def restore_latest(self) -> bool:
        """
        Boot-time restore from the LATEST pointer.

        Returns:
            bool: True if a snapshot was loaded. On a missing pointer or a
            corrupt snapshot the index is left empty and the condition logged.
        """
        latest = self._read_pointer()
        if latest is None:
            logger.info("No backup pointer in %s; starting with an empty index", self.directory)
            return False
        try:
            self.restore(latest)
        except PersistenceError as exc:
            logger.warning("Restore of %s failed, starting with an empty index: %s", latest, exc)
            self.manager.storage.load({}, {}, {})
            return False
        return True

    def status(self) -> Dict[str, Any]:
        return {
            "last_backup_at": to_iso(self.last_backup_at),
            "backup_dir": str(self.directory),
            "backup_interval_seconds": self.interval_ms // 1000,
            "backup_retention": self.retention,
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _snapshot_files(self) -> List[Path]:
        if not self.directory.is_dir():
            return []
        return [
            p for p in self.directory.iterdir()
            if p.is_file() and p.name.startswith(BACKUP_PREFIX) and p.name.endswith(BACKUP_SUFFIX)
        ]

    def _read_pointer(self) -> Optional[str]:
        try:
            name = self.pointer_path.read_text(encoding="utf-8").strip()
        except OSError:
            return None
        return name or None
