"""Web Push message encryption (RFC 8291) using the aes128gcm content coding (RFC 8188).

The output is a single record:

    salt (16) | record size (uint32 BE) | key id length (1) | sender public key (65)
    | AES-128-GCM ciphertext with 16-byte tag

A fresh ephemeral key pair and salt are generated for every message.
"""

import os
import struct

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from src.services import b64url

PUBLIC_KEY_LENGTH = 65
AUTH_SECRET_LENGTH = 16
SALT_LENGTH = 16
TAG_LENGTH = 16
HEADER_LENGTH = SALT_LENGTH + 4 + 1 + PUBLIC_KEY_LENGTH
MAX_RECORD_SIZE = 4096

PADDING_DELIMITER = b"\x02"
WEBPUSH_INFO = b"WebPush: info\x00"
CEK_INFO = b"Content-Encoding: aes128gcm\x00"
NONCE_INFO = b"Content-Encoding: nonce\x00"


class PushEncryptionError(Exception):
    """Base error for message encryption."""


class KeyFormatError(PushEncryptionError):
    """Raised when a subscription's p256dh key or auth secret is malformed."""


class PayloadTooLargeError(PushEncryptionError):
    """Raised when an encrypted payload would exceed the push service limit."""


def encrypted_length(plaintext_length: int) -> int:
    """Size in bytes of the encrypted body for a plaintext of the given length."""
    return HEADER_LENGTH + plaintext_length + len(PADDING_DELIMITER) + TAG_LENGTH


def decode_recipient_keys(p256dh_key: str, auth_secret: str) -> tuple[bytes, bytes]:
    """Decode and validate a subscription's keys.

    Returns:
        The 65-byte uncompressed public point and the 16-byte auth secret.

    Raises:
        KeyFormatError: if either value is not valid base64url, has the wrong
            length, or the public key is not a point on P-256.
    """
    try:
        public_key = b64url.decode(p256dh_key)
        auth = b64url.decode(auth_secret)
    except b64url.DecodeError as e:
        raise KeyFormatError(str(e)) from e

    if len(public_key) != PUBLIC_KEY_LENGTH or public_key[0] != 0x04:
        raise KeyFormatError(
            f"p256dh key must be a {PUBLIC_KEY_LENGTH}-byte uncompressed point, "
            f"got {len(public_key)} bytes"
        )
    if len(auth) != AUTH_SECRET_LENGTH:
        raise KeyFormatError(
            f"auth secret must be {AUTH_SECRET_LENGTH} bytes, got {len(auth)} bytes"
        )

    try:
        ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), public_key)
    except ValueError as e:
        raise KeyFormatError("p256dh key is not a valid P-256 point") from e

    return public_key, auth


def _hkdf(salt: bytes, ikm: bytes, info: bytes, length: int) -> bytes:
    return HKDF(algorithm=hashes.SHA256(), length=length, salt=salt, info=info).derive(ikm)


def encrypt_payload(
    plaintext: bytes,
    p256dh_key: str,
    auth_secret: str,
    *,
    salt: bytes | None = None,
    ephemeral_key: ec.EllipticCurvePrivateKey | None = None,
) -> bytes:
    """Encrypt a push message body for a single recipient.

    Args:
        plaintext: Message bytes (usually UTF-8 JSON).
        p256dh_key: Recipient public key, base64url.
        auth_secret: Recipient auth secret, base64url.
        salt: Override the random salt (tests only).
        ephemeral_key: Override the ephemeral key pair (tests only).

    Returns:
        The complete aes128gcm body to POST to the push endpoint.
    """
    recipient_public, auth = decode_recipient_keys(p256dh_key, auth_secret)

    if salt is None:
        salt = os.urandom(SALT_LENGTH)
    elif len(salt) != SALT_LENGTH:
        raise PushEncryptionError(f"salt must be {SALT_LENGTH} bytes")
    if ephemeral_key is None:
        ephemeral_key = ec.generate_private_key(ec.SECP256R1())

    try:
        peer = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), recipient_public)
        shared_secret = ephemeral_key.exchange(ec.ECDH(), peer)
        ephemeral_public = ephemeral_key.public_key().public_bytes(
            serialization.Encoding.X962,
            serialization.PublicFormat.UncompressedPoint,
        )

        ikm = _hkdf(auth, shared_secret, WEBPUSH_INFO + recipient_public + ephemeral_public, 32)
        cek = _hkdf(salt, ikm, CEK_INFO, 16)
        nonce = _hkdf(salt, ikm, NONCE_INFO, 12)

        padded = plaintext + PADDING_DELIMITER
        ciphertext = AESGCM(cek).encrypt(nonce, padded, None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise PushEncryptionError(f"Encryption failed: {e}") from e

    header = salt + struct.pack("!IB", len(padded) + TAG_LENGTH, PUBLIC_KEY_LENGTH)
    return header + ephemeral_public + ciphertext
