"""
Tests for store/file_store.py, store/sqlite_store.py and store/base.py.

The shared `store` fixture (conftest.py) runs each backend-agnostic test
against both backends.
"""

import os
import sqlite3
import sys
import threading
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from taskmd.errors import (
    InputValidationError,
    ProjectLockTimeout,
    ProjectNotFound,
    TaskNotFound,
)
from taskmd.models.changes import ChangeSet, TaskUpdate
from taskmd.models.task import TaskSkeleton
from taskmd.store.base import ProjectLocks, check_fields
from taskmd.store import file_store as file_store_module
from taskmd.store.file_store import FileTaskStore
from taskmd.store.sqlite_store import SqliteTaskStore


def _ids(tasks):
    return [t.id for root in tasks for t in root.all_tasks()]


# ---------------------------------------------------------------------------
# Backend-agnostic behaviour
# ---------------------------------------------------------------------------

class TestProjects:
    def test_create_and_load(self, store):
        project = store.create_project("groceries", "Groceries")
        assert project.id == "groceries"
        assert store.load_project_title("groceries") == "Groceries"
        assert store.load_project_tasks("groceries") == []

    def test_duplicate_rejected(self, store):
        store.create_project("groceries", "Groceries")
        with pytest.raises(InputValidationError):
            store.create_project("groceries", "Again")

    def test_unknown_project(self, store):
        with pytest.raises(ProjectNotFound):
            store.load_project("missing")

    def test_invalid_id_rejected(self, store):
        with pytest.raises(InputValidationError):
            store.create_project("../escape", "Nope")

    def test_list_sorted(self, store):
        store.create_project("b", "B")
        store.create_project("a", "A")
        assert [p.id for p in store.list_projects()] == ["a", "b"]

    def test_update_title(self, store):
        store.create_project("g", "Old")
        store.update_project_title("g", "New")
        assert store.load_project_title("g") == "New"


class TestTasks:
    def test_create_top_level_and_child(self, store):
        store.create_project("g", "G")
        milk = store.create_task("g", None, {"content": "Buy milk", "due_date": "2025-11-23"})
        brand = store.create_task("g", milk.id, {"content": "Pick brand"})

        assert milk.id == "g-1"
        assert brand.id == "g-2"
        assert brand.parent_id == milk.id

        tasks = store.load_project_tasks("g")
        assert len(tasks) == 1
        assert tasks[0].content == "Buy milk"
        assert tasks[0].due_date == "2025-11-23"
        assert tasks[0].status == "todo"
        assert [c.id for c in tasks[0].subtasks] == ["g-2"]

    def test_sibling_order_kept(self, store):
        store.create_project("g", "G")
        for name in ("one", "two", "three"):
            store.create_task("g", None, {"content": name})
        assert [t.content for t in store.load_project_tasks("g")] == ["one", "two", "three"]

    def test_update_fields(self, store):
        store.create_project("g", "G")
        task = store.create_task("g", None, {"content": "Gym"})
        store.update_task(task.id, {"status": "doing", "repeat_frequency": "weekly"})
        loaded = store.load_project("g").find_task(task.id)
        assert loaded.status == "doing"
        assert loaded.repeat_frequency == "weekly"
        assert loaded.content == "Gym"

    def test_delete_cascades(self, store):
        store.create_project("g", "G")
        parent = store.create_task("g", None, {"content": "Parent"})
        child = store.create_task("g", parent.id, {"content": "Child"})
        store.create_task("g", child.id, {"content": "Grandchild"})
        keep = store.create_task("g", None, {"content": "Keep"})

        store.delete_task(parent.id)
        assert _ids(store.load_project_tasks("g")) == [keep.id]

    def test_ids_never_reused(self, store):
        store.create_project("g", "G")
        store.create_task("g", None, {"content": "A"})
        b = store.create_task("g", None, {"content": "B"})
        store.delete_task(b.id)
        c = store.create_task("g", None, {"content": "C"})
        assert c.id == "g-3"

    def test_unknown_task(self, store):
        store.create_project("g", "G")
        with pytest.raises(TaskNotFound):
            store.update_task("g-99", {"content": "x"})
        with pytest.raises(TaskNotFound):
            store.delete_task("g-99")

    def test_unknown_parent(self, store):
        store.create_project("g", "G")
        with pytest.raises(TaskNotFound):
            store.create_task("g", "g-42", {"content": "orphan"})

    def test_unknown_field_rejected(self, store):
        store.create_project("g", "G")
        with pytest.raises(ValueError, match="priority"):
            store.create_task("g", None, {"content": "x", "priority": "high"})


class TestApplyChangeSet:
    def test_deletes_updates_creates(self, store):
        store.create_project("g", "G")
        a = store.create_task("g", None, {"content": "A"})
        b = store.create_task("g", None, {"content": "B"})
        store.create_task("g", b.id, {"content": "B1"})

        changes = ChangeSet(
            to_delete={b.id, "g-3"},
            to_update=[TaskUpdate(a.id, {"content": "A!", "status": "done"})],
            to_create=[
                TaskSkeleton(content="C", key="k1"),
                TaskSkeleton(content="C1", parent_key="k1", key="k2"),
                TaskSkeleton(content="A1", parent_id=a.id),
            ],
        )
        store.apply_change_set("g", changes)

        tasks = store.load_project_tasks("g")
        assert [t.content for t in tasks] == ["A!", "C"]
        assert tasks[0].status == "done"
        assert [c.content for c in tasks[0].subtasks] == ["A1"]
        assert [c.content for c in tasks[1].subtasks] == ["C1"]
        assert tasks[1].subtasks[0].parent_id == tasks[1].id
        assert b.id not in _ids(tasks)
        assert all(tid not in ("g-2", "g-3") for tid in _ids(tasks))


# ---------------------------------------------------------------------------
# File store specifics
# ---------------------------------------------------------------------------

class TestFileTaskStore:
    def test_file_is_canonical_markdown(self, tmp_path):
        store = FileTaskStore(tmp_path)
        store.create_project("g", "Groceries")
        milk = store.create_task("g", None, {"content": "Buy milk", "due_date": "2025-11-23"})
        store.create_task("g", milk.id, {"content": "Pick brand"})
        store.create_task("g", None, {"content": "Setup", "status": "done"})

        assert (tmp_path / "g.md").read_text(encoding="utf-8") == (
            "# Groceries\n"
            "\n"
            "## Todo\n"
            "\n"
            "- [ ] Buy milk #due:2025-11-23\n"
            "    - [ ] Pick brand\n"
            "\n"
            "## Done\n"
            "\n"
            "- [x] Setup\n"
        )
        assert store.read_raw("g") == (tmp_path / "g.md").read_text(encoding="utf-8")

    def test_external_edit_keeps_ids(self, tmp_path):
        store = FileTaskStore(tmp_path)
        store.create_project("g", "G")
        a = store.create_task("g", None, {"content": "A"})
        b = store.create_task("g", None, {"content": "B"})

        path = tmp_path / "g.md"
        path.write_text("# G\n\n## Todo\n\n- [ ] A edited\n- [ ] B\n- [ ] New\n", encoding="utf-8")
        future = time.time() + 5
        os.utime(path, (future, future))

        tasks = store.load_project_tasks("g")
        assert [t.id for t in tasks] == [a.id, b.id, "g-3"]
        assert tasks[0].content == "A edited"

    def test_reload_assigns_ids_in_document_order(self, tmp_path):
        (tmp_path / "g.md").write_text("# G\n- [ ] A\n    - [ ] A1\n- [ ] B\n", encoding="utf-8")
        store = FileTaskStore(tmp_path)
        assert _ids(store.load_project_tasks("g")) == ["g-1", "g-2", "g-3"]

    def test_locate_task_in_unloaded_file(self, tmp_path):
        (tmp_path / "g.md").write_text("# G\n- [ ] A\n", encoding="utf-8")
        store = FileTaskStore(tmp_path)
        store.update_task("g-1", {"status": "done"})
        assert "- [x] A" in (tmp_path / "g.md").read_text(encoding="utf-8")

    def test_non_project_files_skipped(self, tmp_path):
        (tmp_path / "not a project.md").write_text("# X\n", encoding="utf-8")
        (tmp_path / "g.md").write_text("# G\n", encoding="utf-8")
        store = FileTaskStore(tmp_path)
        assert [p.id for p in store.list_projects()] == ["g"]

    def test_read_raw_missing(self, tmp_path):
        with pytest.raises(ProjectNotFound):
            FileTaskStore(tmp_path).read_raw("nope")

    def test_no_temp_files_left(self, tmp_path):
        store = FileTaskStore(tmp_path)
        store.create_project("g", "G")
        store.create_task("g", None, {"content": "A"})
        assert sorted(p.name for p in tmp_path.iterdir()) == ["g.md"]

    def test_failed_write_leaves_cache_unchanged(self, tmp_path, monkeypatch):
        store = FileTaskStore(tmp_path)
        store.create_project("g", "G")
        a = store.create_task("g", None, {"content": "A"})

        def boom(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(file_store_module.os, "replace", boom)
        with pytest.raises(OSError):
            store.update_task(a.id, {"content": "B"})
        with pytest.raises(OSError):
            store.create_task("g", None, {"content": "C"})
        monkeypatch.undo()

        assert [t.content for t in store.load_project("g").tasks] == ["A"]
        assert "- [ ] A" in (tmp_path / "g.md").read_text(encoding="utf-8")
        assert sorted(p.name for p in tmp_path.iterdir()) == ["g.md"]


# ---------------------------------------------------------------------------
# SQLite store specifics
# ---------------------------------------------------------------------------

class TestSqliteTaskStore:
    def test_change_set_rolls_back_as_a_whole(self):
        store = SqliteTaskStore()
        store.create_project("g", "G")
        a = store.create_task("g", None, {"content": "A"})
        b = store.create_task("g", None, {"content": "B"})

        changes = ChangeSet(
            to_delete={a.id},
            to_update=[TaskUpdate("g-99", {"content": "ghost"})],
        )
        with pytest.raises(TaskNotFound):
            store.apply_change_set("g", changes)

        assert _ids(store.load_project_tasks("g")) == [a.id, b.id]

    def test_check_constraint_on_status(self):
        store = SqliteTaskStore()
        store.create_project("g", "G")
        with pytest.raises(sqlite3.IntegrityError):
            store.create_task("g", None, {"content": "A", "status": "blocked"})

    def test_persists_to_disk(self, tmp_path):
        db = str(tmp_path / "tasks.db")
        first = SqliteTaskStore(db)
        first.create_project("g", "G")
        first.create_task("g", None, {"content": "A"})
        first.close()

        second = SqliteTaskStore(db)
        assert [t.content for t in second.load_project_tasks("g")] == ["A"]
        assert second.create_task("g", None, {"content": "B"}).id == "g-2"
        second.close()


# ---------------------------------------------------------------------------
# Locks and field checks
# ---------------------------------------------------------------------------

class TestProjectLocks:
    def test_reentrant_in_same_thread(self):
        locks = ProjectLocks(timeout=0.1)
        with locks.hold("g"):
            with locks.hold("g"):
                pass

    def test_timeout_when_held_elsewhere(self):
        locks = ProjectLocks(timeout=0.05)
        acquired = threading.Event()
        release = threading.Event()

        def holder():
            with locks.hold("g"):
                acquired.set()
                release.wait(5)

        thread = threading.Thread(target=holder)
        thread.start()
        try:
            assert acquired.wait(5)
            with pytest.raises(ProjectLockTimeout) as exc_info:
                with locks.hold("g"):
                    pass
            assert exc_info.value.project_id == "g"
        finally:
            release.set()
            thread.join()

    def test_other_projects_not_blocked(self):
        locks = ProjectLocks(timeout=0.05)
        acquired = threading.Event()
        release = threading.Event()

        def holder():
            with locks.hold("a"):
                acquired.set()
                release.wait(5)

        thread = threading.Thread(target=holder)
        thread.start()
        try:
            assert acquired.wait(5)
            with locks.hold("b"):
                pass
        finally:
            release.set()
            thread.join()


class TestCheckFields:
    def test_known_fields(self):
        assert check_fields({"content": "x", "status": "done"}) == {"content": "x", "status": "done"}

    def test_unknown_fields(self):
        with pytest.raises(ValueError, match="id"):
            check_fields({"id": "x"})
