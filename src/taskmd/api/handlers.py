"""
Handler functions shared by the MCP tools and the REST API.

Handlers return JSON-serializable dicts using the camelCase field names of the
wire format, and let taskmd errors propagate to the caller.
"""

import logging
from typing import Optional

log = logging.getLogger(__name__)


def task_to_dict(task, include_subtasks: bool = True) -> dict:
    """Serialize a Task to a JSON-serializable dict."""
    d = {
        "id": task.id,
        "content": task.content,
        "status": task.status,
        "dueDate": task.due_date,
        "repeatFrequency": task.repeat_frequency,
        "rawLine": task.raw_line,
        "lineNumber": task.line_number,
        "parentId": task.parent_id,
        "subtasks": [],
    }
    if include_subtasks:
        d["subtasks"] = [task_to_dict(c) for c in task.subtasks]
    return d


def project_to_dict(project, include_tasks: bool = True) -> dict:
    d = {"id": project.id, "title": project.title, "path": project.path}
    if include_tasks:
        d["tasks"] = [task_to_dict(t) for t in project.tasks]
    return d


def handle_project_list(service) -> list[dict]:
    return [project_to_dict(p) for p in service.list_projects()]


def handle_project_create(service, *, project_id: str, title: str) -> dict:
    return project_to_dict(service.create_project(project_id, title))


def handle_project_get(service, *, project_id: str) -> dict:
    return project_to_dict(service.get_project(project_id))


def handle_project_rename(service, *, project_id: str, title: str) -> dict:
    service.rename_project(project_id, title)
    return {"success": True}


def handle_raw_get(service, *, project_id: str) -> dict:
    return {"content": service.get_raw(project_id)}


def handle_raw_save(service, *, project_id: str, content: str) -> dict:
    result = service.save_raw(project_id, content)
    return {"success": True, **result.to_dict()}


def handle_task_add(
    service,
    *,
    project_id: str,
    content: str,
    status: str = "todo",
    parent_id: Optional[str] = None,
) -> dict:
    task = service.add_task(project_id, content, status=status, parent_id=parent_id)
    return task_to_dict(task)


def handle_task_status(service, *, project_id: str, task_id: str, status: str) -> dict:
    successor = service.set_task_status(project_id, task_id, status)
    return {
        "success": True,
        "nextOccurrence": task_to_dict(successor) if successor else None,
    }


def handle_task_complete(service, *, project_id: str, task_id: str) -> dict:
    return handle_task_status(service, project_id=project_id, task_id=task_id, status="done")


def handle_task_delete(service, *, project_id: str, task_id: str) -> dict:
    service.delete_task(project_id, task_id)
    return {"success": True}
