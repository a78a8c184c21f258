"""
Bridge Errors
=============

Every failure the bridge knows about has its own exception class here.

WHO SEES WHAT:
-------------
- MalformedInput     -> 400 to the sensor
- AuthRejected       -> 401 to the caller
- OutputWriteFailed  -> 500 to the scraper
- BackupWriteFailed  -> only in the logs
- BackupReadFailed   -> only in the logs, /metrics shows zeros
- BackupStale        -> only in the logs, /metrics shows zeros
- ConfigError        -> process refuses to start
"""


class BridgeError(Exception):
    """Base class for all bridge errors."""


class MalformedInput(BridgeError):
    """The posted body could not be read or decoded as a measurement."""


class AuthRejected(BridgeError):
    """Missing or mismatched basic auth credential."""


class OutputWriteFailed(BridgeError):
    """The rendered metrics could not be written to the response."""


class BackupWriteFailed(BridgeError):
    """The backup file could not be written."""


class BackupReadFailed(BridgeError):
    """The backup file is missing, unreadable or not valid JSON."""


class BackupStale(BridgeError):
    """The backup file decoded fine but is older than the staleness bound."""

    def __init__(self, age_seconds: int, max_time_delta: int):
        super().__init__(
            f"backup is {age_seconds}s old (max {max_time_delta}s)"
        )
        self.age_seconds = age_seconds
        self.max_time_delta = max_time_delta


class ConfigError(BridgeError):
    """Environment configuration is invalid."""
