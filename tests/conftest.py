"""Pytest configuration and fixtures"""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from filehost.api.dependencies import get_file_service
from filehost.core.config import settings
from filehost.core.services.file_service import FileService
from filehost.core.storage import ContentAccessor, DirectoryTree, PathResolver, QuotaTracker
from filehost.main import app

TEST_TOKENS = {
    "token-u1": "u1",
    "token-u2": "u2",
}


@pytest.fixture
def storage_root(tmp_path: Path) -> Path:
    """Storage root holding one directory per tenant"""
    root = tmp_path / "uploads"
    root.mkdir()
    return root


@pytest.fixture
def resolver(storage_root: Path) -> PathResolver:
    return PathResolver(storage_root)


@pytest.fixture
def tree() -> DirectoryTree:
    return DirectoryTree()


@pytest.fixture
def content() -> ContentAccessor:
    return ContentAccessor()


@pytest.fixture
def quota(resolver: PathResolver, tree: DirectoryTree) -> QuotaTracker:
    """Quota tracker with a 10 byte ceiling"""
    return QuotaTracker(resolver, tree, max_bytes=10)


@pytest.fixture
def file_service(storage_root: Path) -> FileService:
    return FileService(
        storage_root=storage_root,
        max_user_storage_bytes=1024,
        max_file_size_bytes=512,
    )


@pytest.fixture
def client(file_service: FileService, monkeypatch):
    """Test client wired to a temporary storage root"""
    monkeypatch.setattr(settings, "api_tokens", dict(TEST_TOKENS))
    app.dependency_overrides[get_file_service] = lambda: file_service

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def u1_headers():
    return {"Authorization": "Bearer token-u1"}


@pytest.fixture
def u2_headers():
    return {"Authorization": "Bearer token-u2"}
