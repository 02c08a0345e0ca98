"""Base64 encoding with lenient decoding."""

from __future__ import annotations

import base64
import string

_ALPHABET = frozenset(string.ascii_letters + string.digits + "+/")


def base64_encode(data) -> str:
    """Encode bytes as padded standard base64 text."""
    return base64.b64encode(bytes(data)).decode("ascii")


def base64_decode(encoded: str) -> bytes:
    """Decode base64 text.

    Decoding stops at the first ``=`` or character outside the alphabet;
    a trailing incomplete group contributes the bytes it fully covers.
    """
    valid = []
    for char in encoded:
        if char not in _ALPHABET:
            break
        valid.append(char)
    text = "".join(valid)
    if len(text) % 4 == 1:
        text = text[:-1]
    text += "=" * (-len(text) % 4)
    return base64.b64decode(text)