"""
Reading Bridge
==============

This is the BRAIN of the bridge!

WHAT IT DOES:
------------
1. Ingest: takes the JSON a sensor POSTed, fixes up bad values, stamps it
   with the server time and makes it the current reading
2. Persist: writes that reading to the backup file (in the background)
3. Render: turns the current reading into /metrics text, falling back to
   the backup file on a cold start

THE DATA FLOW:
-------------
    AirGradient sensor
            |
            | POST /sensors/airgradient:<id>/measures
            v
    [ingest: parse -> substitute -> stamp -> cache]
            |                               |
            | (background)                  | GET /metrics
            v                               v
    [backup file]  ---- cold start ---->  [render]

BAD SENSOR VALUES:
-----------------
The PM2.5 and CO2 sensors report 0 or a negative number when they don't
have a valid value (warming up, read error). We don't want those spikes in
the graphs, so a non-positive pm02/rco2 is replaced by the previous
reading's value. On the very first ingest after startup there is no
previous reading, and the value becomes 0.
"""

import logging
import time
from typing import Callable, Optional

from pydantic import ValidationError

from airgradient_bridge.errors import BackupWriteFailed, MalformedInput
from airgradient_bridge.models import NULL_INSTANCE_ID, MeasurePayload, Reading
from airgradient_bridge.services.backup_store import BackupStore
from airgradient_bridge.services.exposition import render_metrics
from airgradient_bridge.services.last_value_cache import LastValueCache

logger = logging.getLogger(__name__)

# Token format in the URL is "<anything>:<instance id>", e.g. "airgradient:a1b2c3"
TOKEN_DELIMITER = ":"


def parse_instance_id(token: Optional[str]) -> str:
    """
    Pull the instance id out of the path token.

    "abc:sensor7" -> "sensor7"; anything without exactly one colon -> "null".
    """
    if not token:
        return NULL_INSTANCE_ID
    parts = token.split(TOKEN_DELIMITER)
    if len(parts) == 2 and parts[1]:
        return parts[1]
    return NULL_INSTANCE_ID


def substitute_invalid(reading: Reading, previous: Optional[Reading]) -> Reading:
    """Replace non-positive pm25/co2 with the previous reading's (or 0)."""
    updates = {}
    if reading.pm25 <= 0:
        updates["pm25"] = previous.pm25 if previous else 0
    if reading.co2 <= 0:
        updates["co2"] = previous.co2 if previous else 0
    if not updates:
        return reading
    return reading.model_copy(update=updates)


class ReadingBridge:
    """
    Owns the last-value cache and the backup file.

    One instance is shared by every listener (public and internal) so they
    all see the same reading.
    """

    def __init__(
        self,
        cache: LastValueCache,
        backup: BackupStore,
        max_time_delta: int = 60,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            cache: where the current reading lives
            backup: the backup file used for cold-start restore
            max_time_delta: max age (seconds) of a backup still worth restoring
            clock: returns epoch seconds; tests swap in a fixed clock
        """
        self.cache = cache
        self.backup = backup
        self.max_time_delta = max_time_delta
        self.clock = clock

    def now(self) -> int:
        return int(self.clock())

    # =========================================================================
    # INGEST
    # =========================================================================

    def ingest(self, body: bytes, token: Optional[str]) -> Reading:
        """
        Parse, normalize and commit one posted measurement.

        Args:
            body: raw request body (JSON)
            token: the {token} part of the URL

        Returns:
            The reading that is now current. Hand it to persist().

        Raises:
            MalformedInput: body isn't a JSON measurement. Cache untouched.
        """
        try:
            payload = MeasurePayload.model_validate_json(body)
        except ValidationError as e:
            raise MalformedInput("failed to unmarshal") from e

        logger.debug(f"received metric: {body.decode('utf-8', errors='replace')}")

        incoming = Reading.from_payload(
            payload,
            instance_id=parse_instance_id(token),
            timestamp=self.now(),
        )

        # Read previous + substitute + store all happen under one write lock
        return self.cache.replace(lambda previous: substitute_invalid(incoming, previous))

    def persist(self, reading: Reading) -> None:
        """
        Write the reading to the backup file. Fire-and-forget.

        Meant to run after the response has gone out. Failures are logged
        and dropped; the next ingest will try again with fresher data anyway.
        """
        try:
            self.backup.save(reading)
        except BackupWriteFailed as e:
            logger.error(f"Failed to write backup: {e}")

    # =========================================================================
    # RENDER
    # =========================================================================

    def snapshot(self) -> Reading:
        """
        The reading /metrics should show.

        Cold start (nothing ingested yet) tries the backup file. The restored
        reading is NOT put into the cache, so the next cold render reads the
        file again and can still notice that it went stale.
        """
        reading = self.cache.get()
        if reading is not None:
            return reading

        restored = self.backup.restore_recent(self.now(), self.max_time_delta)
        if restored is not None:
            return restored
        return Reading()

    def render(self) -> str:
        return render_metrics(self.snapshot())
