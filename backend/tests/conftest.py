"""Shared test fixtures: in-memory SQLite DB, in-memory object stores, test client."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import quotedocs.models  # noqa: F401
from quotedocs.dependencies import (
    get_db,
    get_document_store,
    get_photo_store,
    get_renderer,
    get_url_signer,
)
from quotedocs.main import app
from quotedocs.models.base import Base
from quotedocs.services.object_store import ObjectStoreClient
from quotedocs.services.renderer import TextDocumentRenderer
from quotedocs.services.storage import InMemoryStorageBackend, UrlSigner

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False)


# Enable foreign key enforcement in SQLite (off by default).
@event.listens_for(test_engine.sync_engine, "connect")
def _set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
test_session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


class RecordingRenderer(TextDocumentRenderer):
    """Text renderer that remembers every (quote_id, variant) it rendered."""

    def __init__(self):
        self.calls: list[tuple[str, str]] = []

    def render(self, quote, variant, context):
        self.calls.append((quote.id, variant))
        return super().render(quote, variant, context)


@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """Yield a test DB session."""
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def signer() -> UrlSigner:
    return UrlSigner("http://test", "test-secret")


@pytest.fixture
def photo_backend(signer: UrlSigner) -> InMemoryStorageBackend:
    return InMemoryStorageBackend("photos", signer=signer)


@pytest.fixture
def document_backend(signer: UrlSigner) -> InMemoryStorageBackend:
    return InMemoryStorageBackend("documents", signer=signer)


@pytest.fixture
def photo_store(photo_backend: InMemoryStorageBackend) -> ObjectStoreClient:
    return ObjectStoreClient(photo_backend)


@pytest.fixture
def document_store(document_backend: InMemoryStorageBackend) -> ObjectStoreClient:
    return ObjectStoreClient(document_backend)


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    photo_store: ObjectStoreClient,
    document_store: ObjectStoreClient,
    renderer: RecordingRenderer,
    signer: UrlSigner,
) -> AsyncClient:
    """Yield an httpx AsyncClient wired to the test DB and in-memory stores."""

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_photo_store] = lambda: photo_store
    app.dependency_overrides[get_document_store] = lambda: document_store
    app.dependency_overrides[get_renderer] = lambda: renderer
    app.dependency_overrides[get_url_signer] = lambda: signer
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
