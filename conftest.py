import pytest

from auth import CredentialService
from database import DocumentStore
from library import Library


@pytest.fixture
def store(tmp_path):
    # Each test gets its own data directory
    store = DocumentStore(data_dir=str(tmp_path / "data"), admin_password="admin")
    store.initialize()
    return store


@pytest.fixture
def lib(store):
    return Library(store)


@pytest.fixture
def credentials(store):
    return CredentialService(store)
