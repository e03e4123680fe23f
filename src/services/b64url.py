"""URL-safe, unpadded base64 used for push keys, JWT segments and signatures."""

import base64
import binascii
import re

_ALPHABET = re.compile(r"^[A-Za-z0-9_-]*={0,2}$")


class DecodeError(ValueError):
    """Raised when a string is not valid base64url."""


def encode(data: bytes) -> str:
    """Encode bytes as base64url without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def decode(value: str) -> bytes:
    """Decode base64url, with or without padding.

    Raises:
        DecodeError: if the input contains characters outside the base64url
            alphabet or has an impossible length.
    """
    if not isinstance(value, str) or not _ALPHABET.match(value):
        raise DecodeError("Invalid base64url string")

    stripped = value.rstrip("=")
    if len(stripped) % 4 == 1:
        raise DecodeError("Invalid base64url length")

    try:
        return base64.urlsafe_b64decode(stripped + "=" * (-len(stripped) % 4))
    except binascii.Error as e:
        raise DecodeError(f"Invalid base64url string: {e}") from e
