import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from taskmd.store.file_store import FileTaskStore
from taskmd.store.sqlite_store import SqliteTaskStore


@pytest.fixture(params=["file", "sqlite"])
def store(request, tmp_path):
    """Each test using this fixture runs once per storage backend."""
    if request.param == "file":
        yield FileTaskStore(tmp_path / "data", lock_timeout=1.0)
    else:
        sqlite_store = SqliteTaskStore(":memory:", lock_timeout=1.0)
        yield sqlite_store
        sqlite_store.close()
