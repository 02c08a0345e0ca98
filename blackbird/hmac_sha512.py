"""HMAC-SHA512 message signing."""

from __future__ import annotations

import hashlib
import hmac


def _as_bytes(value) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


class HmacSha512:
    """HMAC-SHA512 digest of a message under a key."""

    def __init__(self, key, msg):
        self.digest = hmac.new(_as_bytes(key), _as_bytes(msg), hashlib.sha512).digest()

    def hex_digest(self) -> str:
        """Return the digest as lower-case hexadecimal text."""
        return self.digest.hex()