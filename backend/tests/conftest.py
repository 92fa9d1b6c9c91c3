"""Shared test fixtures.

Repository, service and route tests run against an in-memory SQLite
database and a LocalBlobStore rooted in a temporary directory.
"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from deal_attachments.clients.deals import DealDirectory
from deal_attachments.db.models import DealAttachment  # noqa: F401
from deal_attachments.services.attachment import AttachmentService
from deal_attachments.services.blob_store import LocalBlobStore

KNOWN_DEAL_ID = 101
OTHER_DEAL_ID = 202
UNKNOWN_DEAL_ID = 999


class FakeDealDirectory(DealDirectory):
    """In-memory deal directory."""

    def __init__(self, deal_ids: set[int]):
        self.deal_ids = set(deal_ids)
        self.lookups: list[int] = []

    async def deal_exists(self, deal_id: int) -> bool:
        self.lookups.append(deal_id)
        return deal_id in self.deal_ids


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine with the schema created."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Database session configured like the application's."""
    session_maker = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_maker() as session:
        yield session


@pytest.fixture
def blob_root(tmp_path: Path) -> Path:
    return tmp_path / "attachments"


@pytest.fixture
def blob_store(blob_root: Path) -> LocalBlobStore:
    return LocalBlobStore(blob_root)


@pytest.fixture
def deal_directory() -> FakeDealDirectory:
    return FakeDealDirectory({KNOWN_DEAL_ID, OTHER_DEAL_ID})


@pytest.fixture
def attachment_service(
    db_session: AsyncSession,
    blob_store: LocalBlobStore,
    deal_directory: FakeDealDirectory,
) -> AttachmentService:
    return AttachmentService(
        db_session,
        blob_store,
        deal_directory,
        max_attachment_bytes=1024 * 1024,
    )


def stored_files(root: Path) -> list[Path]:
    """All blob files under a LocalBlobStore root, ignoring temp files."""
    deals_dir = root / "deals"
    if not deals_dir.exists():
        return []
    return sorted(path for path in deals_dir.rglob("*") if path.is_file())
