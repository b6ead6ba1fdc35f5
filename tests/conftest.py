import os

# Settings are read at import time; test values must be in place first.
# Security: test-only secrets. Production secrets come from the environment.
TEST_JWT_SECRET = "test-access-secret-that-is-at-least-32-characters"  # nosec B105  # gitleaks:allow
TEST_RESET_SECRET = "test-reset-secret-that-is-at-least-32-characters"  # nosec B105  # gitleaks:allow
os.environ.setdefault("JWT_SECRET", TEST_JWT_SECRET)
os.environ.setdefault("PASSWORD_RESET_SECRET", TEST_RESET_SECRET)
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("GOOGLE_CLIENT_ID", "google-client-id")
os.environ.setdefault("GOOGLE_CLIENT_SECRET", "google-client-secret")

import socket  # noqa: E402
from collections.abc import AsyncGenerator  # noqa: E402
from datetime import UTC, datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from tenant_auth.core.config import settings  # noqa: E402
from tenant_auth.core.credentials import hash_password  # noqa: E402
from tenant_auth.core.errors import AccountConflictError  # noqa: E402
from tenant_auth.core.oauth import OAuthProvider, get_provider_config  # noqa: E402
from tenant_auth.core.oauth_client import (  # noqa: E402
    AuthenticateOptions,
    ExternalIdentity,
    OAuthClientCredentials,
    OAuthStrategy,
)
from tenant_auth.core.oauth_registry import StrategyRegistry  # noqa: E402
from tenant_auth.core.tokens import TokenCodec  # noqa: E402
from tenant_auth.models import Base, OAuthAccount, User  # noqa: E402
from tenant_auth.services.auth_service import AuthService  # noqa: E402

# Use separate test database
TEST_DATABASE_URL = settings.database_url.replace(
    settings.database_name, f"{settings.database_name}_test"
)


def _is_postgres_available() -> bool:
    """Check if PostgreSQL is accepting connections on port 5432."""
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(1)
        result = sock.connect_ex((settings.database_host, settings.database_port))
        sock.close()
        return result == 0
    except OSError:
        return False


# Check once at module load time
_POSTGRES_AVAILABLE = _is_postgres_available()


def skip_if_no_postgres() -> None:
    """Skip test if PostgreSQL is not available."""
    if not _POSTGRES_AVAILABLE:
        pytest.skip(
            "PostgreSQL not available on port 5432. "
            "Start database with: docker compose up -d"
        )


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine.

    Skips test if PostgreSQL is not available.
    """
    skip_if_no_postgres()

    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


# =============================================================================
# In-memory collaborators
# =============================================================================


class FakeClock:
    """Wall clock that can be pushed forward."""

    def __init__(self) -> None:
        self.offset = timedelta(0)

    def __call__(self) -> datetime:
        return datetime.now(UTC) + self.offset

    def advance(self, delta: timedelta) -> None:
        self.offset += delta


class InMemoryAccountStore:
    """AccountStore keeping transient ORM objects in dicts."""

    def __init__(self) -> None:
        self.users: dict[int, User] = {}
        self.identities: list[OAuthAccount] = []
        self.verification_tokens: dict[str, tuple[str, datetime]] = {}
        self._next_user_id = 1
        self._next_identity_id = 1

    async def find_by_email(self, email: str) -> User | None:
        email = email.strip().lower()
        return next((u for u in self.users.values() if u.email == email), None)

    async def find_by_id(self, user_id: int) -> User | None:
        return self.users.get(user_id)

    async def find_by_external_identity(
        self, provider: str, provider_id: str
    ) -> User | None:
        for acc in self.identities:
            if acc.provider == provider and acc.provider_id == provider_id:
                return self.users.get(acc.user_id)
        return None

    async def create(
        self,
        *,
        email: str,
        nickname: str,
        password_hash: str | None = None,
        verified: bool = False,
    ) -> User:
        if await self.find_by_email(email) is not None:
            raise AccountConflictError()
        user = User(
            id=self._next_user_id,
            email=email.strip().lower(),
            nickname=nickname,
            password_hash=password_hash,
            verified=verified,
        )
        self._next_user_id += 1
        self.users[user.id] = user
        return user

    async def update(self, user_id: int, **fields) -> User | None:
        user = self.users.get(user_id)
        if user is None:
            return None
        for key, value in fields.items():
            setattr(user, key, value)
        return user

    async def delete(self, user_id: int) -> bool:
        self.identities = [a for a in self.identities if a.user_id != user_id]
        return self.users.pop(user_id, None) is not None

    async def list_identities(self, user_id: int) -> list[OAuthAccount]:
        return [a for a in self.identities if a.user_id == user_id]

    async def link_identity(
        self,
        user_id: int,
        *,
        provider: str,
        provider_id: str,
        oauth_email: str | None,
    ) -> OAuthAccount:
        for acc in self.identities:
            if (acc.provider, acc.provider_id) == (provider, provider_id) or (
                acc.user_id,
                acc.provider,
            ) == (user_id, provider):
                raise AccountConflictError(f"This {provider} account is already linked")
        account = OAuthAccount(
            id=self._next_identity_id,
            user_id=user_id,
            provider=provider,
            provider_id=provider_id,
            oauth_email=oauth_email,
        )
        self._next_identity_id += 1
        self.identities.append(account)
        return account

    async def unlink_identity(self, user_id: int, provider: str) -> bool:
        before = len(self.identities)
        self.identities = [
            a
            for a in self.identities
            if not (a.user_id == user_id and a.provider == provider)
        ]
        return len(self.identities) < before

    async def save_verification_token(
        self, *, email: str, token_hash: str, expires: datetime
    ) -> None:
        self.verification_tokens[token_hash] = (email, expires)

    async def consume_verification_token(self, token_hash: str) -> str | None:
        entry = self.verification_tokens.get(token_hash)
        if entry is None or entry[1] <= datetime.now(UTC):
            return None
        email = entry[0]
        self.verification_tokens = {
            h: v for h, v in self.verification_tokens.items() if v[0] != email
        }
        return email

    # Test helpers

    async def add_user(
        self,
        email: str,
        *,
        password: str | None = None,
        verified: bool = True,
        nickname: str = "Tester",
    ) -> User:
        return await self.create(
            email=email,
            nickname=nickname,
            password_hash=hash_password(password) if password else None,
            verified=verified,
        )


class RecordingEmailSender:
    """EmailSender that records messages instead of sending them."""

    def __init__(self) -> None:
        self.password_resets: list[tuple[str, str]] = []
        self.verifications: list[tuple[str, str]] = []

    async def send_password_reset_email(self, email: str, token: str) -> None:
        self.password_resets.append((email, token))

    async def send_verification_email(self, email: str, token: str) -> None:
        self.verifications.append((email, token))


class FakeOAuthStrategy(OAuthStrategy):
    """Strategy returning a preset identity and counting exchanges."""

    def __init__(self, provider: OAuthProvider, identity: ExternalIdentity | None = None):
        super().__init__(
            provider,
            get_provider_config(provider),
            OAuthClientCredentials(client_id=f"{provider.value}-client", client_secret="x"),
        )
        self.identity = identity or ExternalIdentity(
            provider=provider,
            provider_id=f"{provider.value}-123",
            email="oauth@example.com",
            email_verified=True,
        )
        self.calls: list[tuple[str, AuthenticateOptions]] = []

    async def exchange(self, code: str, options: AuthenticateOptions) -> ExternalIdentity:
        self.calls.append((code, options))
        return self.identity


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def codec(clock: FakeClock) -> TokenCodec:
    """Codec with test secrets and a movable clock."""
    return TokenCodec(
        access_secret=TEST_JWT_SECRET,
        reset_secret=TEST_RESET_SECRET,
        access_ttl=timedelta(hours=1),
        clock=clock,
    )


@pytest.fixture
def store() -> InMemoryAccountStore:
    return InMemoryAccountStore()


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def service(store, codec, email_sender) -> AuthService:
    return AuthService(store, codec, email_sender)


@pytest.fixture
def strategies() -> dict[str, FakeOAuthStrategy]:
    """One fake strategy per supported provider."""
    return {p.value: FakeOAuthStrategy(p) for p in OAuthProvider}


@pytest.fixture
def registry(strategies) -> StrategyRegistry:
    return StrategyRegistry(strategies)


@pytest_asyncio.fixture
async def client(
    store, codec, email_sender, registry
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to in-memory collaborators.

    Overrides the store, codec, registry and email sender dependencies,
    so no database or provider is contacted.
    """
    from tenant_auth.api.deps import (
        get_account_store,
        get_email_sender,
        get_strategy_registry,
        get_token_codec,
    )
    from tenant_auth.main import app

    app.dependency_overrides[get_account_store] = lambda: store
    app.dependency_overrides[get_token_codec] = lambda: codec
    app.dependency_overrides[get_email_sender] = lambda: email_sender
    app.dependency_overrides[get_strategy_registry] = lambda: registry

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(codec):
    """Build a bearer header for an account."""

    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {codec.issue_access(user)}"}

    return _headers
