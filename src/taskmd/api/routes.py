"""REST API routes for taskmd."""

import logging
from typing import NoReturn, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ..errors import (
    ParseValidationError,
    ProjectLockTimeout,
    ProjectNotFound,
    TaskmdError,
    TaskNotFound,
)
from .handlers import (
    handle_project_create,
    handle_project_get,
    handle_project_list,
    handle_project_rename,
    handle_raw_get,
    handle_raw_save,
    handle_task_add,
    handle_task_complete,
    handle_task_delete,
    handle_task_status,
)

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Request body models
# ---------------------------------------------------------------------------


class ProjectCreateBody(BaseModel):
    id: str
    title: str


class ProjectTitleBody(BaseModel):
    title: str


class RawContentBody(BaseModel):
    content: str


class TaskAddBody(BaseModel):
    content: str
    status: str = "todo"
    parent_id: Optional[str] = None


class TaskStatusBody(BaseModel):
    status: str


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


def _raise_http(e: Exception) -> NoReturn:
    if isinstance(e, (ProjectNotFound, TaskNotFound)):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ParseValidationError):
        raise HTTPException(
            status_code=400,
            detail={"error": e.reason, "lineNumber": e.line_number},
        )
    if isinstance(e, ProjectLockTimeout):
        log.warning("%s", e)
        raise HTTPException(status_code=503, detail=str(e))
    raise HTTPException(status_code=400, detail=str(e))


# ---------------------------------------------------------------------------
# Route registration
# ---------------------------------------------------------------------------


def register_routes(app_router: APIRouter, service) -> None:
    """Attach all REST routes that use the shared document service."""

    # --- Project routes ---

    @app_router.get("/projects")
    def list_projects():
        return handle_project_list(service)

    @app_router.post("/projects", status_code=201)
    def create_project(body: ProjectCreateBody):
        try:
            return handle_project_create(service, project_id=body.id, title=body.title)
        except (TaskmdError, ValueError) as e:
            _raise_http(e)

    @app_router.get("/projects/{project_id}")
    def get_project(project_id: str):
        try:
            return handle_project_get(service, project_id=project_id)
        except (TaskmdError, ValueError) as e:
            _raise_http(e)

    @app_router.put("/projects/{project_id}")
    def rename_project(project_id: str, body: ProjectTitleBody):
        try:
            return handle_project_rename(service, project_id=project_id, title=body.title)
        except (TaskmdError, ValueError) as e:
            _raise_http(e)

    # --- Raw document routes ---

    @app_router.get("/projects/{project_id}/raw")
    def get_raw(project_id: str):
        try:
            return handle_raw_get(service, project_id=project_id)
        except (TaskmdError, ValueError) as e:
            _raise_http(e)

    @app_router.put("/projects/{project_id}/raw")
    def save_raw(project_id: str, body: RawContentBody):
        try:
            return handle_raw_save(service, project_id=project_id, content=body.content)
        except (TaskmdError, ValueError) as e:
            _raise_http(e)

    # --- Task routes ---

    @app_router.post("/projects/{project_id}/tasks", status_code=201)
    def add_task(project_id: str, body: TaskAddBody):
        try:
            return handle_task_add(service, project_id=project_id, **body.model_dump())
        except (TaskmdError, ValueError) as e:
            _raise_http(e)

    @app_router.patch("/projects/{project_id}/tasks/{task_id}")
    def update_task_status(project_id: str, task_id: str, body: TaskStatusBody):
        try:
            return handle_task_status(
                service, project_id=project_id, task_id=task_id, status=body.status
            )
        except (TaskmdError, ValueError) as e:
            _raise_http(e)

    @app_router.post("/projects/{project_id}/tasks/{task_id}/complete")
    def complete_task(project_id: str, task_id: str):
        try:
            return handle_task_complete(service, project_id=project_id, task_id=task_id)
        except (TaskmdError, ValueError) as e:
            _raise_http(e)

    @app_router.delete("/projects/{project_id}/tasks/{task_id}")
    def delete_task(project_id: str, task_id: str):
        try:
            return handle_task_delete(service, project_id=project_id, task_id=task_id)
        except (TaskmdError, ValueError) as e:
            _raise_http(e)
