"""Durable snapshot storage with write-once backups."""

from __future__ import annotations

import json
import os
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import PersistenceError
from .logging import get_logger
from .models import Snapshot

logger = get_logger(__name__)

STATUS_FIELDS = ("lastUpdated", "totalStates", "totalCongresspeople", "totalMoney", "source")


class SnapshotStore:
    """Owns the canonical snapshot file and its backups."""

    def __init__(self, data_path: Path, backup_dir: Path) -> None:
        self.data_path = Path(data_path)
        self.backup_dir = Path(backup_dir)

    def exists(self) -> bool:
        return self.data_path.is_file()

    def load(self) -> Optional[Snapshot]:
        payload = self._read_payload()
        if payload is None:
            return None
        try:
            snapshot = Snapshot.from_dict(payload)
        except (KeyError, TypeError, ValueError) as exc:
            raise PersistenceError(f"Snapshot at {self.data_path} is malformed: {exc}") from exc
        logger.info("snapshot_loaded", path=str(self.data_path), last_updated=payload.get("lastUpdated"))
        return snapshot

    def read_status(self) -> Optional[Dict[str, Any]]:
        payload = self._read_payload()
        if payload is None:
            return None
        return {field: payload.get(field) for field in STATUS_FIELDS}

    def persist(self, snapshot: Snapshot) -> Optional[Path]:
        """Back up the current snapshot, then atomically replace it.

        Returns the backup path, or None when there was nothing to protect.
        """
        backup_path = self.backup() if self.exists() else None
        self._write_atomic(snapshot)
        logger.info(
            "snapshot_saved",
            path=str(self.data_path),
            backup=str(backup_path) if backup_path else None,
        )
        return backup_path

    def backup(self) -> Path:
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            target = self._unused_backup_path(timestamp)
            shutil.copy2(self.data_path, target)
        except OSError as exc:
            raise PersistenceError(f"Failed to back up {self.data_path}: {exc}") from exc
        logger.info("backup_done", location=str(target))
        return target

    def list_backups(self) -> List[Path]:
        if not self.backup_dir.is_dir():
            return []
        return sorted(self.backup_dir.glob(f"{self.data_path.stem}.backup.*.json"))

    def _unused_backup_path(self, timestamp: str) -> Path:
        stem = self.data_path.stem
        target = self.backup_dir / f"{stem}.backup.{timestamp}.json"
        counter = 1
        while target.exists():
            target = self.backup_dir / f"{stem}.backup.{timestamp}-{counter}.json"
            counter += 1
        return target

    def _write_atomic(self, snapshot: Snapshot) -> None:
        body = json.dumps(snapshot.to_dict(), indent=2, ensure_ascii=False) + "\n"
        tmp_path: Optional[str] = None
        try:
            self.data_path.parent.mkdir(parents=True, exist_ok=True)
            tmp_fd, tmp_path = tempfile.mkstemp(
                dir=self.data_path.parent,
                prefix=f".{self.data_path.stem}_",
                suffix=".json.tmp",
            )
            with os.fdopen(tmp_fd, "w", encoding="utf-8") as handle:
                handle.write(body)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, self.data_path)
        except OSError as exc:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except FileNotFoundError:
                    pass
            raise PersistenceError(f"Failed to write snapshot {self.data_path}: {exc}") from exc

    def _read_payload(self) -> Optional[Dict[str, Any]]:
        if not self.exists():
            return None
        try:
            with self.data_path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            raise PersistenceError(f"Failed to read snapshot {self.data_path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise PersistenceError(f"Snapshot at {self.data_path} is not a JSON object")
        return payload
