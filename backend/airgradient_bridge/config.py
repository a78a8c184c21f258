"""
Bridge Configuration
====================

Everything is read from environment variables. A .env file in the working
directory is loaded first (python-dotenv), real environment variables win.

Environment Variables:
    LISTEN_ADDR:                 public listener, host:port (default 0.0.0.0:12321)
    INTERNAL_LISTEN_ADDR:        internal listener without auth, used for
                                 Prometheus scraping (default 0.0.0.0:12322,
                                 empty = don't start it)
    BACKUP_FILENAME:             last-reading backup file (default /tmp/airgradient.json)
    MAX_TIME_DELTA:              max age in seconds of a backup we still restore (default 60)
    ENABLE_BASIC_AUTH:           protect the public listener with basic auth (default false)
    BASIC_AUTH_USERNAME_HASHED:  sha256 of the username, base64 encoded
    BASIC_AUTH_PASSWORD_HASHED:  sha256 of the password, base64 encoded
    LOG_LEVEL:                   DEBUG, INFO, ... (default INFO)

To get a hash:
    echo -n 'my-password' | sha256sum | xxd -r -p | base64
"""

import base64
import binascii
import logging
import os
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

from airgradient_bridge.errors import ConfigError


_TRUE = {"1", "true", "t", "yes", "y", "on"}
_FALSE = {"0", "false", "f", "no", "n", "off", ""}


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None


def _decode_hash(name: str, value: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ConfigError(f"failed to parse {name}: {e}") from e


def split_listen_addr(addr: str) -> Tuple[str, int]:
    """
    "0.0.0.0:12321" -> ("0.0.0.0", 12321). ":8080" listens on all interfaces.
    """
    host, sep, port = addr.rpartition(":")
    if not sep:
        raise ConfigError(f"listen address must be host:port, got {addr!r}")
    try:
        port_num = int(port)
    except ValueError:
        raise ConfigError(f"invalid port in listen address {addr!r}") from None
    return (host.strip("[]") or "0.0.0.0"), port_num


class Config:
    """
    Application configuration loaded from environment variables.

    Defaults match a plain `docker run` with nothing set.
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        env = os.environ if environ is None else environ

        # http listen addr
        self.LISTEN_ADDR = env.get("LISTEN_ADDR", "0.0.0.0:12321")
        # internal http listen addr, used for prometheus scraping (without auth)
        self.INTERNAL_LISTEN_ADDR = env.get("INTERNAL_LISTEN_ADDR", "0.0.0.0:12322")

        # last metric backup file name
        self.BACKUP_FILENAME = env.get("BACKUP_FILENAME", "/tmp/airgradient.json")
        # max time diff when restoring last metric from file
        self.MAX_TIME_DELTA = _parse_int("MAX_TIME_DELTA", env.get("MAX_TIME_DELTA", "60"))

        self.ENABLE_BASIC_AUTH = _parse_bool(
            "ENABLE_BASIC_AUTH", env.get("ENABLE_BASIC_AUTH", "false")
        )
        self.BASIC_AUTH_USERNAME_HASHED = env.get("BASIC_AUTH_USERNAME_HASHED", "")
        self.BASIC_AUTH_PASSWORD_HASHED = env.get("BASIC_AUTH_PASSWORD_HASHED", "")

        self.LOG_LEVEL = env.get("LOG_LEVEL", "INFO").upper()
        if not isinstance(logging.getLevelName(self.LOG_LEVEL), int):
            raise ConfigError(f"unknown LOG_LEVEL {self.LOG_LEVEL!r}")

        # Filled below, raw digests
        self.BASIC_AUTH_USERNAME: bytes = b""
        self.BASIC_AUTH_PASSWORD: bytes = b""

        if self.ENABLE_BASIC_AUTH:
            self.BASIC_AUTH_USERNAME = _decode_hash(
                "BASIC_AUTH_USERNAME_HASHED", self.BASIC_AUTH_USERNAME_HASHED
            )
            self.BASIC_AUTH_PASSWORD = _decode_hash(
                "BASIC_AUTH_PASSWORD_HASHED", self.BASIC_AUTH_PASSWORD_HASHED
            )

        # Fail at startup, not on the first request
        split_listen_addr(self.LISTEN_ADDR)
        if self.INTERNAL_LISTEN_ADDR:
            split_listen_addr(self.INTERNAL_LISTEN_ADDR)

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Config":
        """Load .env (if any) and build the config from os.environ."""
        if dotenv:
            load_dotenv()
        return cls()
