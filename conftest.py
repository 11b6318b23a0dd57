import shutil
from pathlib import Path

import pytest

from backend.storage import Storage
from storied.models import Project

TEST_DATA_DIR = Path("data-tests")


@pytest.fixture(autouse=True)
def clean_test_data():
    """Wipe data-tests/ before every test."""
    if TEST_DATA_DIR.exists():
        shutil.rmtree(TEST_DATA_DIR)
    yield
    # leave data-tests around after tests for inspection; CI can ignore it


@pytest.fixture
def storage():
    with Storage(TEST_DATA_DIR) as engine:
        yield engine


@pytest.fixture
def project(storage):
    return storage.create_project(Project(name="Atlas"))
