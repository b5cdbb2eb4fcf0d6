"""Shared test fixtures."""

from __future__ import annotations

import base64
import itertools
import os
import tempfile
import time
from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import jwt
import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

WEBHOOK_SECRET = "whsec_" + base64.b64encode(b"microlearning-test-webhook-key!!").decode()
ADMIN_EXTERNAL_ID = "user_admin"
_slug_seq = itertools.count(1)


def _generate_test_keys() -> bytes:
    """Write an RSA public key for session-token verification; return the private PEM."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    tmpdir = tempfile.mkdtemp(prefix="mlc_test_keys_")
    public_path = os.path.join(tmpdir, "identity_public.pem")
    with open(public_path, "wb") as f:
        f.write(public_pem)
    os.environ["MLC_AUTH_JWT_PUBLIC_KEY_PATH"] = public_path
    return private_pem


# Settings are read once and cached, so the environment must be in place
# before anything from mlc is imported.
os.environ["MLC_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["MLC_REDIS_URL"] = ""
os.environ["MLC_ADMIN_USER_IDS"] = f'["{ADMIN_EXTERNAL_ID}"]'
os.environ["MLC_WEBHOOK_SECRET"] = WEBHOOK_SECRET
os.environ["MLC_EMAIL_PROVIDER"] = "console"
os.environ["MLC_LOG_FORMAT"] = "console"
PRIVATE_KEY_PEM = _generate_test_keys()

from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import select  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from mlc.auth.jwt import reset_keys  # noqa: E402
from mlc.config import get_settings  # noqa: E402
from mlc.database import close_db, get_engine, get_session_factory, init_db  # noqa: E402
from mlc.db.models import Base, Category, Lesson, User  # noqa: E402
from mlc.email.service import reset_email_service  # noqa: E402
from mlc.gamification.catalog import seed_catalog  # noqa: E402
from mlc.main import create_app  # noqa: E402
from mlc.users.service import upsert_identity_user  # noqa: E402

get_settings.cache_clear()
reset_keys()


def make_token(sub: str, *, expires_in: int = 3600, **claims: Any) -> str:
    """Sign a session token the way the identity provider would."""
    now = int(time.time())
    payload = {"sub": sub, "iat": now, "exp": now + expires_in, **claims}
    return jwt.encode(payload, PRIVATE_KEY_PEM, algorithm="RS256")


def auth_headers(sub: str, **claims: Any) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(sub, **claims)}"}


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    """Fresh in-memory schema with the achievement catalog and default categories seeded."""
    reset_email_service()
    await init_db(get_settings().database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with get_session_factory()() as session:
        await seed_catalog(session)
    yield
    await close_db()
    reset_email_service()


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """A direct database session for setup and assertions.

    All sessions share one SQLite connection: commit setup data before
    calling the API, and expire cached state before re-reading.
    """
    async with get_session_factory()() as session:
        yield session


@pytest_asyncio.fixture
async def client(database: None) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to a fresh app instance."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def mock_email_service(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    """Replace the email service everywhere it is looked up."""
    mock_service = MagicMock()
    mock_service.send_template = AsyncMock(return_value=True)
    mock_service.send_email = AsyncMock(return_value=True)
    factory = lambda *a, **kw: mock_service  # noqa: E731
    monkeypatch.setattr("mlc.auth.router.get_email_service", factory)
    monkeypatch.setattr("mlc.admin.service.get_email_service", factory)
    monkeypatch.setattr("mlc.gamification.achievement_service.get_email_service", factory)
    return mock_service


# ---------------------------------------------------------------------------
# Data factories
# ---------------------------------------------------------------------------


async def create_user(
    db: AsyncSession,
    external_id: str = "user_learner",
    email: str = "learner@example.com",
    name: str = "Ada Learner",
    **fields: Any,
) -> User:
    user, _ = await upsert_identity_user(db, external_id, email=email, name=name)
    for key, value in fields.items():
        setattr(user, key, value)
    await db.commit()
    return user


async def first_category(db: AsyncSession) -> Category:
    result = await db.execute(select(Category).order_by(Category.sort_order).limit(1))
    return result.scalar_one()


async def create_lesson(
    db: AsyncSession,
    title: str = "Intro to Python",
    *,
    lesson_type: str = "TEXT",
    difficulty: str = "BEGINNER",
    is_published: bool = True,
    category: Category | None = None,
    **fields: Any,
) -> Lesson:
    category = category or await first_category(db)
    now = datetime.now(timezone.utc)
    slug = fields.pop("slug", None) or f"{title.lower().replace(' ', '-')}-{next(_slug_seq)}"
    lesson = Lesson(
        title=title,
        slug=slug,
        description=fields.pop("description", f"About {title}"),
        content=fields.pop("content", f"# {title}"),
        type=lesson_type,
        difficulty=difficulty,
        category_id=category.id,
        is_published=is_published,
        published_at=now if is_published else None,
        created_at=now,
        updated_at=now,
        **fields,
    )
    db.add(lesson)
    await db.commit()
    return lesson


@pytest.fixture
def lesson_factory(db_session: AsyncSession) -> Callable[..., Any]:
    async def _make(title: str = "Intro to Python", **kwargs: Any) -> Lesson:
        return await create_lesson(db_session, title, **kwargs)

    return _make


@pytest_asyncio.fixture
async def learner(db_session: AsyncSession) -> User:
    return await create_user(db_session)


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, ADMIN_EXTERNAL_ID, email="admin@example.com", name="Admin")


@pytest.fixture
def learner_headers(learner: User) -> dict[str, str]:
    return auth_headers(learner.external_id)


@pytest.fixture
def admin_headers(admin_user: User) -> dict[str, str]:
    return auth_headers(admin_user.external_id)
