"""Pytest configuration and fixtures."""

import hashlib
import hmac
import os
from dataclasses import dataclass, field

# Point the app at the test database before anything imports src.config
os.environ["DATABASE_URL"] = os.getenv("TEST_DATABASE_URL", "sqlite:///./test.db")
os.environ["ENVIRONMENT"] = "test"
os.environ.pop("VAPID_PRIVATE_KEY", None)
os.environ.pop("VAPID_PUBLIC_KEY", None)

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from cryptography.hazmat.primitives import serialization  # noqa: E402
from cryptography.hazmat.primitives.asymmetric import ec  # noqa: E402
from cryptography.hazmat.primitives.ciphers.aead import AESGCM  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from src.database import Base, SessionLocal, engine, get_db  # noqa: E402
from src.main import app  # noqa: E402
from src.services import b64url  # noqa: E402
from src.services.subscription_store import PushTarget  # noqa: E402
from src.services.vapid import VapidIdentity  # noqa: E402


class AuthHeaders(dict):
    """Dict subclass that also stores user info."""

    def __init__(self, *args, user_id: int | None = None, email: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.user_id = user_id
        self.email = email


@dataclass
class Recipient:
    """A browser-side subscription key pair, as PushManager would create it."""

    private_key: ec.EllipticCurvePrivateKey
    auth: bytes

    @property
    def public_bytes(self) -> bytes:
        return self.private_key.public_key().public_bytes(
            serialization.Encoding.X962,
            serialization.PublicFormat.UncompressedPoint,
        )

    @property
    def p256dh(self) -> str:
        return b64url.encode(self.public_bytes)

    @property
    def auth_b64(self) -> str:
        return b64url.encode(self.auth)


@dataclass
class InMemorySubscriptionStore:
    """Subscription store holding targets in a dict."""

    targets: list[PushTarget] = field(default_factory=list)
    deleted: list[int] = field(default_factory=list)

    def list_for_group(self, group_id: int, exclude_owner_id: int) -> list[PushTarget]:
        return [
            t for t in self.targets if t.group_id == group_id and t.owner_id != exclude_owner_id
        ]

    def delete(self, subscription_id: int) -> bool:
        before = len(self.targets)
        self.targets = [t for t in self.targets if t.id != subscription_id]
        self.deleted.append(subscription_id)
        return len(self.targets) < before


def _hkdf_extract(salt: bytes, ikm: bytes) -> bytes:
    return hmac.new(salt, ikm, hashlib.sha256).digest()


def _hkdf_expand(prk: bytes, info: bytes, length: int) -> bytes:
    return hmac.new(prk, info + b"\x01", hashlib.sha256).digest()[:length]


def reference_decrypt(blob: bytes, recipient: Recipient) -> bytes:
    """Receiver-side aes128gcm Web Push decryption (RFC 8291), as a browser does it."""
    salt = blob[:16]
    record_size = int.from_bytes(blob[16:20], "big")
    key_id_length = blob[20]
    sender_public = blob[21 : 21 + key_id_length]
    record = blob[21 + key_id_length :]
    assert len(record) <= record_size

    sender = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), sender_public)
    shared_secret = recipient.private_key.exchange(ec.ECDH(), sender)

    prk = _hkdf_extract(recipient.auth, shared_secret)
    ikm = _hkdf_expand(prk, b"WebPush: info\x00" + recipient.public_bytes + sender_public, 32)
    prk2 = _hkdf_extract(salt, ikm)
    cek = _hkdf_expand(prk2, b"Content-Encoding: aes128gcm\x00", 16)
    nonce = _hkdf_expand(prk2, b"Content-Encoding: nonce\x00", 12)

    padded = AESGCM(cek).decrypt(nonce, record, None).rstrip(b"\x00")
    assert padded.endswith(b"\x02"), "last record must end with the 0x02 delimiter"
    return padded[:-1]


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create test database schema once at the start of the test session."""
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture(scope="function", autouse=True)
def db():
    """Create a fresh database session for each test with cleanup."""
    session = SessionLocal()

    yield session

    # Clean up all data after test
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture(scope="function")
def client(db):
    """Create a test client with database override."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    app.state.vapid_identity = None


@pytest.fixture(scope="session")
def vapid_identity() -> VapidIdentity:
    """A VAPID identity shared by the test session."""
    return VapidIdentity.generate("mailto:test@ourjourney.app")


@pytest.fixture
def make_recipient():
    """Factory for fresh browser subscription keys."""

    def _make() -> Recipient:
        return Recipient(private_key=ec.generate_private_key(ec.SECP256R1()), auth=os.urandom(16))

    return _make


@pytest.fixture
def recipient(make_recipient) -> Recipient:
    return make_recipient()


@pytest.fixture
def decrypt_push():
    """Reference decryptor for encrypted push bodies."""
    return reference_decrypt


@pytest.fixture
def memory_store() -> InMemorySubscriptionStore:
    return InMemorySubscriptionStore()


@pytest.fixture
def register_user(client):
    """Factory that registers a user and returns auth headers."""

    def _register(email: str, name: str | None = None) -> AuthHeaders:
        response = client.post(
            "/api/v1/auth/register",
            json={"email": email, "password": "testpass123", "name": name},
        )
        assert response.status_code == 201
        data = response.json()
        return AuthHeaders(
            {"Authorization": f"Bearer {data['access_token']}"},
            user_id=data["user"]["id"],
            email=email,
        )

    return _register


@pytest.fixture
def auth_headers(register_user) -> AuthHeaders:
    """Create a user and return auth headers with user info."""
    return register_user("test@example.com", "Test User")


@pytest.fixture
def couple_headers(client, register_user) -> tuple[AuthHeaders, AuthHeaders]:
    """Two users paired into one couple."""
    first = register_user("fawwaz@example.com", "Fawwaz")
    second = register_user("anggun@example.com", "Anggun")

    response = client.post("/api/v1/couples", headers=first, json={"name": "Us"})
    assert response.status_code == 201
    invite_code = response.json()["invite_code"]

    response = client.post(
        "/api/v1/couples/join", headers=second, json={"invite_code": invite_code}
    )
    assert response.status_code == 200
    return first, second


@pytest_asyncio.fixture
async def mock_push_client():
    """Factory for push clients backed by an in-process handler, closed after the test."""
    clients: list[httpx.AsyncClient] = []

    def _make(handler) -> httpx.AsyncClient:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield _make

    for client in clients:
        await client.aclose()
