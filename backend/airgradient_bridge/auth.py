"""
Basic Auth Gate
===============

Optional HTTP basic auth in front of the public listener.

We never store the credential itself, only sha256 digests of the username
and password (see config.py). Incoming credentials are hashed the same way
and compared with hmac.compare_digest, so the comparison takes the same
time whether the first byte or the last byte is wrong.

The header is decoded here rather than with fastapi.security.HTTPBasic:
HTTPBasic insists on ASCII, and we hash whatever bytes the client sent
(UTF-8 passwords included).
"""

import base64
import binascii
import hashlib
import hmac
from typing import Optional, Tuple

from fastapi import Request
from fastapi.security.utils import get_authorization_scheme_param

from airgradient_bridge.errors import AuthRejected

CHALLENGE_HEADER = 'Basic realm="restricted", charset="UTF-8"'


def parse_basic_authorization(authorization: Optional[str]) -> Tuple[bytes, bytes]:
    """
    "Basic dXNlcjpwYXNz" -> (b"user", b"pass").

    Raises:
        AuthRejected: missing header, other scheme, bad base64, no colon
    """
    scheme, param = get_authorization_scheme_param(authorization)
    if not authorization or scheme.lower() != "basic":
        raise AuthRejected("failed to get basic auth credential")

    try:
        decoded = base64.b64decode(param, validate=True)
    except (binascii.Error, ValueError) as e:
        raise AuthRejected("failed to get basic auth credential") from e

    username, sep, password = decoded.partition(b":")
    if not sep:
        raise AuthRejected("failed to get basic auth credential")
    return username, password


class BasicAuthGate:
    """Checks a basic auth credential against pre-hashed expected values."""

    def __init__(self, username_hash: bytes, password_hash: bytes):
        self.username_hash = username_hash
        self.password_hash = password_hash

    def check(self, username: bytes, password: bytes) -> None:
        """
        Raises:
            AuthRejected: credential doesn't match
        """
        username_hash = hashlib.sha256(username).digest()
        password_hash = hashlib.sha256(password).digest()

        # Both always run, no short-circuit
        username_match = hmac.compare_digest(username_hash, self.username_hash)
        password_match = hmac.compare_digest(password_hash, self.password_hash)

        if not (username_match and password_match):
            raise AuthRejected("credential mismatched")

    def dependency(self):
        """FastAPI dependency for routers: raises AuthRejected on failure."""

        def require_basic_auth(request: Request):
            username, password = parse_basic_authorization(request.headers.get("Authorization"))
            self.check(username, password)

        return require_basic_auth
