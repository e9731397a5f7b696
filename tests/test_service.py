"""
Tests for service.py: the document save cycle and task operations, run
against both storage backends.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from taskmd.errors import InputValidationError, ParseValidationError, TaskNotFound
from taskmd.service import DocumentService
from taskmd.store.file_store import FileTaskStore


SAMPLE = (
    "# Proj\n"
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


@pytest.fixture
def service(store):
    svc = DocumentService(store, max_title_length=40)
    svc.create_project("proj", "Proj")
    return svc


def _ids(project):
    return [t.id for t in project.all_tasks()]


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

class TestProjects:
    def test_create_trims_title(self, store):
        svc = DocumentService(store)
        project = svc.create_project("home", "  Home  ")
        assert project.title == "Home"

    @pytest.mark.parametrize(
        "title", ["", "   ", "x" * 41, "<script>alert(1)</script>", "two\nlines"]
    )
    def test_rename_rejects(self, service, title):
        with pytest.raises(InputValidationError):
            service.rename_project("proj", title)
        assert service.get_project("proj").title == "Proj"

    def test_rename(self, service):
        service.rename_project("proj", "Renamed")
        assert service.get_raw("proj") == "# Renamed\n"

    def test_bad_project_id(self, service):
        with pytest.raises(InputValidationError):
            service.get_raw("no/slashes")


# ---------------------------------------------------------------------------
# Document save cycle
# ---------------------------------------------------------------------------

class TestSaveRaw:
    def test_initial_save_creates_everything(self, service):
        result = service.save_raw("proj", SAMPLE)
        assert result.to_dict() == {
            "created": 3,
            "updated": 0,
            "deleted": 0,
            "titleUpdated": False,
        }
        assert _ids(service.get_project("proj")) == ["proj-1", "proj-2", "proj-3"]

    def test_round_trip(self, service):
        service.save_raw("proj", SAMPLE)
        assert service.get_raw("proj") == SAMPLE

    def test_resave_is_noop(self, service):
        service.save_raw("proj", SAMPLE)
        result = service.save_raw("proj", service.get_raw("proj"))
        assert (result.created, result.updated, result.deleted) == (0, 0, 0)
        assert not result.title_updated

    def test_edit_keeps_ids(self, service):
        service.save_raw("proj", SAMPLE)
        before = _ids(service.get_project("proj"))

        result = service.save_raw("proj", SAMPLE.replace("Pick brand", "Pick a brand"))
        assert result.updated == 1
        project = service.get_project("proj")
        assert _ids(project) == before
        assert project.tasks[0].subtasks[0].content == "Pick a brand"

    def test_removed_lines_delete_subtree(self, service):
        service.save_raw("proj", SAMPLE)
        result = service.save_raw("proj", "# Proj\n## Done\n- [x] Setup\n")
        # Setup now sits where Buy milk was; Pick brand and the old Setup go
        assert result.deleted == 2
        assert result.updated == 1
        project = service.get_project("proj")
        assert [t.content for t in project.tasks] == ["Setup"]
        assert project.tasks[0].id == "proj-1"

    def test_title_update(self, service):
        service.save_raw("proj", SAMPLE.replace("# Proj", "# Weekend"))
        project = service.get_project("proj")
        assert project.title == "Weekend"

    def test_title_update_flag(self, service):
        result = service.save_raw("proj", "# Weekend\n")
        assert result.title_updated

    def test_missing_h1_keeps_title(self, service):
        result = service.save_raw("proj", "- [ ] A\n")
        assert not result.title_updated
        assert service.get_project("proj").title == "Proj"

    def test_invalid_title_rejected(self, service):
        with pytest.raises(InputValidationError):
            service.save_raw("proj", "# " + "x" * 60 + "\n- [ ] A\n")
        assert service.get_project("proj").tasks == []

    def test_invalid_document_writes_nothing(self, service):
        service.save_raw("proj", SAMPLE)
        before = service.get_raw("proj")

        bad = SAMPLE.replace("- [x] Setup", "- [x] Setup #due:2025-01-01 #due:2025-01-02")
        with pytest.raises(ParseValidationError) as exc_info:
            service.save_raw("proj", bad)
        assert exc_info.value.line_number == 10
        assert service.get_raw("proj") == before

    def test_new_ids_never_reuse_deleted(self, service):
        service.save_raw("proj", SAMPLE)
        service.save_raw("proj", "# Proj\n- [ ] Only\n")
        service.save_raw("proj", "# Proj\n- [ ] Only\n- [ ] Second\n")
        assert _ids(service.get_project("proj")) == ["proj-1", "proj-4"]

    def test_saves_against_canonical_order(self, service):
        service.save_raw("proj", "# Proj\n## Done\n- [x] Z\n## Todo\n- [ ] A\n")
        rendered = service.get_raw("proj")
        assert rendered.index("- [ ] A") < rendered.index("- [x] Z")
        result = service.save_raw("proj", rendered)
        assert (result.created, result.updated, result.deleted) == (0, 0, 0)

    def test_completed_task_then_new_task_keeps_order(self, service):
        service.save_raw("proj", "# Proj\n- [ ] A\n- [ ] B\n")
        service.complete_task("proj", "proj-1")
        service.save_raw("proj", "# Proj\n## Todo\n- [ ] B\n- [ ] C\n## Done\n- [x] A\n")
        assert service.get_raw("proj") == (
            "# Proj\n\n## Todo\n\n- [ ] B\n- [ ] C\n\n## Done\n\n- [x] A\n"
        )

    def test_hand_written_order_file_keeps_order(self, tmp_path):
        (tmp_path / "proj.md").write_text("# Proj\n## Done\n- [x] A\n## Todo\n- [ ] B\n")
        svc = DocumentService(FileTaskStore(tmp_path))
        svc.save_raw("proj", "# Proj\n## Todo\n- [ ] B\n- [ ] C\n## Done\n- [x] A\n")
        assert svc.get_raw("proj") == (
            "# Proj\n\n## Todo\n\n- [ ] B\n- [ ] C\n\n## Done\n\n- [x] A\n"
        )

    def test_markup_in_document_rejected(self, service):
        with pytest.raises(ParseValidationError) as exc_info:
            service.save_raw("proj", "# Proj\n- [ ] ok\n- [ ] <script>x</script>\n")
        assert exc_info.value.line_number == 3
        assert service.get_project("proj").tasks == []


# ---------------------------------------------------------------------------
# Task operations
# ---------------------------------------------------------------------------

class TestTaskOperations:
    def test_add_task_extracts_tags(self, service):
        task = service.add_task("proj", "Gym #repeat:weekly #due:2025-01-06")
        assert task.content == "Gym"
        assert task.due_date == "2025-01-06"
        assert task.repeat_frequency == "weekly"
        assert task.status == "todo"

    def test_add_subtask(self, service):
        parent = service.add_task("proj", "Parent")
        child = service.add_task("proj", "Child", status="doing", parent_id=parent.id)
        project = service.get_project("proj")
        assert project.tasks[0].subtasks[0].id == child.id

    def test_add_task_bad_status(self, service):
        with pytest.raises(InputValidationError):
            service.add_task("proj", "x", status="blocked")

    def test_add_task_bad_tags(self, service):
        with pytest.raises(ParseValidationError):
            service.add_task("proj", "x #due:someday")

    def test_add_task_markup_rejected(self, service):
        with pytest.raises(InputValidationError):
            service.add_task("proj", '<img src=x onerror="boom">')

    def test_complete_non_repeating(self, service):
        task = service.add_task("proj", "Once")
        assert service.complete_task("proj", task.id) is None
        assert service.get_project("proj").find_task(task.id).status == "done"

    def test_complete_repeating_creates_sibling(self, service):
        service.save_raw("proj", "# Chores\n## Todo\n- [ ] Water plants #due:2025-11-23 #repeat:daily\n")
        successor = service.complete_task("proj", "proj-1")

        assert successor.id == "proj-2"
        assert successor.status == "todo"
        assert successor.due_date == "2025-11-24"
        assert successor.repeat_frequency == "daily"
        assert successor.parent_id is None
        assert service.get_raw("proj") == (
            "# Chores\n"
            "\n"
            "## Todo\n"
            "\n"
            "- [ ] Water plants #due:2025-11-24 #repeat:daily\n"
            "\n"
            "## Done\n"
            "\n"
            "- [x] Water plants #due:2025-11-23 #repeat:daily\n"
        )

    def test_complete_repeating_subtask(self, service):
        service.save_raw(
            "proj",
            "# Proj\n- [ ] Parent\n    - [ ] Pay rent #due:2025-01-31 #repeat:monthly\n",
        )
        successor = service.complete_task("proj", "proj-2")
        assert successor.parent_id == "proj-1"
        assert successor.due_date == "2025-02-28"
        parent = service.get_project("proj").tasks[0]
        assert [c.status for c in parent.subtasks] == ["done", "todo"]

    def test_repeating_without_due_date(self, service):
        task = service.add_task("proj", "Review #repeat:weekly")
        successor = service.complete_task("proj", task.id)
        assert successor is not None
        assert successor.due_date is None

    def test_completing_twice_creates_one_successor(self, service):
        task = service.add_task("proj", "Stand-up #due:2025-03-03 #repeat:daily")
        assert service.complete_task("proj", task.id) is not None
        assert service.complete_task("proj", task.id) is None
        assert len(service.get_project("proj").all_tasks()) == 2

    def test_doing_does_not_recur(self, service):
        task = service.add_task("proj", "Stand-up #repeat:daily")
        assert service.set_task_status("proj", task.id, "doing") is None
        assert len(service.get_project("proj").all_tasks()) == 1

    def test_set_status_unknown_task(self, service):
        with pytest.raises(TaskNotFound):
            service.set_task_status("proj", "proj-99", "done")

    def test_delete_task(self, service):
        service.save_raw("proj", SAMPLE)
        service.delete_task("proj", "proj-1")
        assert [t.content for t in service.get_project("proj").tasks] == ["Setup"]

    def test_delete_task_from_other_project(self, service):
        service.create_project("other", "Other")
        task = service.add_task("other", "Elsewhere")
        with pytest.raises(TaskNotFound):
            service.delete_task("proj", task.id)
