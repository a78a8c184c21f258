"""
Backup Store
============

Keeps a copy of the last Reading on disk so a restarted bridge doesn't
report zeros until the sensor posts again.

HOW IT WORKS:
------------
- Every ingest overwrites the whole file with the new reading (JSON)
- Only read when the in-memory cache is empty (cold start)
- A backup older than MAX_TIME_DELTA seconds is ignored: a reading from
  yesterday is worse than no reading at all

This is best-effort recovery state. Nothing here is retried and nothing
here ever fails a request.
"""

import logging
import os
import threading
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from airgradient_bridge.errors import BackupReadFailed, BackupStale, BackupWriteFailed
from airgradient_bridge.models import Reading

logger = logging.getLogger(__name__)


class BackupStore:
    """The single-file snapshot of the last Reading."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    # =========================================================================
    # WRITING
    # =========================================================================

    def save(self, reading: Reading) -> None:
        """
        Overwrite the backup file with this reading (atomic write).

        Raises:
            BackupWriteFailed: the file couldn't be written
        """
        data = reading.to_backup_json()

        # Each thread gets its own temp file, so two ingests racing each other
        # can't interleave their bytes. Last rename wins.
        temp_file = self.path.with_name(f"{self.path.name}.{threading.get_ident()}.tmp")
        try:
            with open(temp_file, "wb") as f:
                f.write(data)
            os.replace(temp_file, self.path)
        except OSError as e:
            try:
                temp_file.unlink()
            except FileNotFoundError:
                pass
            raise BackupWriteFailed(f"failed to write {self.path}: {e}") from e

        logger.debug(f"Saved backup for {reading.instance_id} to {self.path}")

    # =========================================================================
    # READING
    # =========================================================================

    def load(self) -> Reading:
        """
        Read and decode the backup file.

        Raises:
            BackupReadFailed: missing, unreadable or not a valid reading
        """
        try:
            data = self.path.read_bytes()
        except OSError as e:
            raise BackupReadFailed(f"failed to read {self.path}: {e}") from e

        try:
            return Reading.from_backup_json(data)
        except ValidationError as e:
            raise BackupReadFailed(f"failed to decode {self.path}: {e}") from e

    def load_recent(self, now: int, max_time_delta: int) -> Reading:
        """
        Like load(), but only accepts a backup younger than max_time_delta.

        Raises:
            BackupReadFailed: see load()
            BackupStale: decoded fine, but too old
        """
        reading = self.load()
        age = now - reading.timestamp
        if age >= max_time_delta:
            raise BackupStale(age, max_time_delta)
        return reading

    def restore_recent(self, now: int, max_time_delta: int) -> Optional[Reading]:
        """
        Cold-start restore. Never raises: any problem just means "no reading".
        """
        try:
            return self.load_recent(now, max_time_delta)
        except BackupStale as e:
            logger.info(f"Ignoring backup at {self.path}: {e}")
        except BackupReadFailed as e:
            logger.error(f"Failed to read init data: {e}")
        return None
