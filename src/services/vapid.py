"""VAPID (RFC 8292) sender identification for Web Push.

Each delivery carries a short-lived ES256 JWT whose audience is the origin of
the push service endpoint, plus the sender's public key:

    Authorization: vapid t=<jwt>, k=<public key>

Push services reject tokens that expire more than 24 hours after issue.
"""

import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from urllib.parse import urlsplit

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

from src.config import Settings
from src.services import b64url

logger = logging.getLogger(__name__)

JWT_HEADER = {"typ": "JWT", "alg": "ES256"}
DEFAULT_EXPIRY_SECONDS = 12 * 3600
MAX_EXPIRY_SECONDS = 24 * 3600

_P256_COORDINATE_SIZE = 32


class VapidError(Exception):
    """Base error for VAPID identity and token handling."""


class VapidConfigError(VapidError):
    """Raised when the configured VAPID key pair is missing or malformed."""


class VapidSigningError(VapidError):
    """Raised when a token cannot be produced for one endpoint."""


@dataclass(frozen=True)
class VapidIdentity:
    """The deployment's fixed P-256 signing key and contact URI."""

    private_key: ec.EllipticCurvePrivateKey
    subject: str

    @classmethod
    def generate(cls, subject: str) -> "VapidIdentity":
        """Create an identity with a freshly generated key pair."""
        return cls(private_key=ec.generate_private_key(ec.SECP256R1()), subject=subject)

    @classmethod
    def from_base64url(
        cls,
        private_key: str,
        public_key: str | None,
        subject: str,
    ) -> "VapidIdentity":
        """Load an identity from base64url-encoded keys.

        The private key is either the raw 32-byte scalar or a PKCS#8 DER
        document. When a public key is given it must be the point derived
        from the private key.
        """
        if not subject:
            raise VapidConfigError("VAPID subject must not be empty")

        try:
            raw = b64url.decode(private_key.strip())
        except b64url.DecodeError as e:
            raise VapidConfigError("VAPID private key is not valid base64url") from e

        try:
            if len(raw) == _P256_COORDINATE_SIZE:
                key = ec.derive_private_key(int.from_bytes(raw, "big"), ec.SECP256R1())
            else:
                key = serialization.load_der_private_key(raw, password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise VapidConfigError(f"VAPID private key could not be loaded: {e}") from e

        if not isinstance(key, ec.EllipticCurvePrivateKey) or not isinstance(
            key.curve, ec.SECP256R1
        ):
            raise VapidConfigError("VAPID private key must be a P-256 key")

        identity = cls(private_key=key, subject=subject)

        if public_key:
            try:
                expected = b64url.decode(public_key.strip())
            except b64url.DecodeError as e:
                raise VapidConfigError("VAPID public key is not valid base64url") from e
            if expected != identity.public_key_bytes:
                raise VapidConfigError("VAPID public key does not match the private key")

        return identity

    @classmethod
    def from_settings(cls, settings: Settings) -> "VapidIdentity":
        """Load the identity configured in application settings."""
        if not settings.vapid_private_key:
            raise VapidConfigError("VAPID_PRIVATE_KEY is not configured")
        return cls.from_base64url(
            settings.vapid_private_key,
            settings.vapid_public_key,
            settings.vapid_subject,
        )

    @property
    def public_key_bytes(self) -> bytes:
        """Uncompressed public point (65 bytes, leading 0x04)."""
        return self.private_key.public_key().public_bytes(
            serialization.Encoding.X962,
            serialization.PublicFormat.UncompressedPoint,
        )

    @property
    def public_key_b64(self) -> str:
        return b64url.encode(self.public_key_bytes)

    @property
    def private_key_b64(self) -> str:
        value = self.private_key.private_numbers().private_value
        return b64url.encode(value.to_bytes(_P256_COORDINATE_SIZE, "big"))


def audience_for(endpoint: str) -> str:
    """Return the origin (scheme://host[:port]) of a push endpoint."""
    parts = urlsplit(endpoint)
    if not parts.scheme or not parts.netloc:
        raise VapidSigningError(f"Endpoint has no origin: {endpoint[:60]}")
    return f"{parts.scheme}://{parts.netloc}"


def der_to_raw_signature(der: bytes, size: int = _P256_COORDINATE_SIZE) -> bytes:
    """Convert a DER-encoded ECDSA signature into fixed-width ``r || s``.

    DER drops leading zero bytes of each integer and prepends 0x00 when the
    high bit is set, so ``r`` and ``s`` arrive as 1 to ``size + 1`` bytes.
    Both are normalised to exactly ``size`` bytes.

    Raises:
        ValueError: if ``der`` is not a two-integer DER sequence or an integer
            does not fit in ``size`` bytes.
    """
    if len(der) < 8 or der[0] != 0x30:
        raise ValueError("Not a DER sequence")

    offset = 1
    seq_len = der[offset]
    offset += 1
    if seq_len & 0x80:
        # Long form; only a single length byte is possible for ECDSA signatures
        if seq_len != 0x81:
            raise ValueError("Unsupported DER length encoding")
        seq_len = der[offset]
        offset += 1
    if offset + seq_len != len(der):
        raise ValueError("DER sequence length mismatch")

    r, offset = _read_der_integer(der, offset, size)
    s, offset = _read_der_integer(der, offset, size)
    if offset != len(der):
        raise ValueError("Trailing bytes after DER signature")
    return r + s


def _read_der_integer(der: bytes, offset: int, size: int) -> tuple[bytes, int]:
    if offset + 2 > len(der) or der[offset] != 0x02:
        raise ValueError("Expected DER integer")
    length = der[offset + 1]
    start = offset + 2
    end = start + length
    if length == 0 or end > len(der):
        raise ValueError("Truncated DER integer")

    value = der[start:end].lstrip(b"\x00")
    if len(value) > size:
        raise ValueError(f"DER integer longer than {size} bytes")
    return value.rjust(size, b"\x00"), end


def _segment(data: dict) -> str:
    return b64url.encode(json.dumps(data, separators=(",", ":")).encode("utf-8"))


def create_vapid_jwt(
    identity: VapidIdentity,
    audience: str,
    now: datetime | None = None,
    expiry_seconds: int = DEFAULT_EXPIRY_SECONDS,
) -> str:
    """Create a signed ES256 JWT for one push service audience."""
    if not 0 < expiry_seconds <= MAX_EXPIRY_SECONDS:
        raise VapidSigningError(f"Token lifetime must be 1..{MAX_EXPIRY_SECONDS} seconds")

    issued_at = int((now or datetime.now(UTC)).timestamp())
    claims = {
        "aud": audience,
        "iat": issued_at,
        "exp": issued_at + expiry_seconds,
        "sub": identity.subject,
    }
    signing_input = f"{_segment(JWT_HEADER)}.{_segment(claims)}"

    try:
        der = identity.private_key.sign(signing_input.encode("ascii"), ec.ECDSA(hashes.SHA256()))
        signature = der_to_raw_signature(der)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise VapidSigningError(f"Failed to sign VAPID token: {e}") from e

    return f"{signing_input}.{b64url.encode(signature)}"


class VapidAuthenticator:
    """Builds per-endpoint Authorization headers for a fixed identity."""

    def __init__(
        self,
        identity: VapidIdentity,
        expiry_seconds: int = DEFAULT_EXPIRY_SECONDS,
    ) -> None:
        self.identity = identity
        self.expiry_seconds = expiry_seconds
        self._public_key = identity.public_key_b64

    def authorization_header(self, endpoint: str, now: datetime | None = None) -> str:
        """Return ``vapid t=<jwt>, k=<public key>`` scoped to the endpoint's origin."""
        token = create_vapid_jwt(
            self.identity,
            audience_for(endpoint),
            now=now,
            expiry_seconds=self.expiry_seconds,
        )
        return f"vapid t={token}, k={self._public_key}"
