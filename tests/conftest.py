"""Shared test fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from openchecklist.checklists.contributions import ContributionQueue
from openchecklist.checklists.files import FileStorage
from openchecklist.checklists.payload import EmbeddedBinary, FileKind
from openchecklist.checklists.resolver import ContentResolver
from openchecklist.checklists.store import ChecklistStore
from openchecklist.core.config import settings
from openchecklist.core.database import get_session, set_sqlite_pragma
from openchecklist.main import app
from openchecklist.models import Checklist
from openchecklist.models.schemas import ChecklistCreate, ItemInput
from openchecklist.routes.deps import get_file_storage

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\n%%EOF\n"
ZIP_BYTES = b"PK\x03\x04\x14\x00\x00\x00\x08\x00:colons:in:zip\x00\xff\xfe"


def fake_pdf_renderer(markdown_text: str) -> bytes:
    """Stand-in for the PDF renderer that keeps the source text visible."""
    return b"%PDF-FAKE\n" + markdown_text.encode("utf-8")


@pytest.fixture(name="engine")
def engine_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine, "connect", set_sqlite_pragma)
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    """Create a new database session for each test."""
    with Session(engine) as session:
        yield session


@pytest.fixture(name="file_storage")
def file_storage_fixture(tmp_path) -> FileStorage:
    return FileStorage(tmp_path / "files")


@pytest.fixture(name="store")
def store_fixture(session: Session) -> ChecklistStore:
    return ChecklistStore(session)


@pytest.fixture(name="resolver")
def resolver_fixture(session: Session, file_storage: FileStorage) -> ContentResolver:
    return ContentResolver(session, file_storage, pdf_renderer=fake_pdf_renderer)


@pytest.fixture(name="queue")
def queue_fixture(session: Session) -> ContributionQueue:
    return ContributionQueue(session)


@pytest.fixture(name="client")
def client_fixture(session: Session, file_storage: FileStorage):
    """Create a test client with the test database session."""

    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_file_storage] = lambda: file_storage
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="admin_headers")
def admin_headers_fixture() -> dict[str, str]:
    return {"X-Admin-Key": settings.admin_key}


@pytest.fixture(name="sample_checklist")
def sample_checklist_fixture(store: ChecklistStore) -> Checklist:
    """Create a checklist with phased items and features."""
    checklist_id = store.create(
        ChecklistCreate(
            title="Restaurant Opening Checklist",
            description="Everything needed to open a restaurant",
            category="Food & Beverage",
            features=["120+ steps", "Permit templates"],
            items=[
                ItemInput(phase="Planning", item_text="Write business plan", is_required=True),
                ItemInput(phase="Planning", item_text="Scout locations"),
                ItemInput(phase="Legal", item_text="Apply for food license", is_required=True),
                ItemInput(phase="Launch", item_text="Plan soft opening"),
            ],
        )
    )
    return store.get(checklist_id)


@pytest.fixture(name="empty_checklist")
def empty_checklist_fixture(store: ChecklistStore) -> Checklist:
    """Create a checklist with no items or features."""
    checklist_id = store.create(
        ChecklistCreate(title="Podcast Launch", description="Start a podcast")
    )
    return store.get(checklist_id)


@pytest.fixture(name="zip_checklist")
def zip_checklist_fixture(store: ChecklistStore) -> Checklist:
    """Create a checklist backed by an embedded zip file."""
    checklist_id = store.create(
        ChecklistCreate(title="Starter Kit", description="Templates bundle"),
        EmbeddedBinary.from_bytes(FileKind.ZIP, "starter:kit.zip", ZIP_BYTES),
    )
    return store.get(checklist_id)
