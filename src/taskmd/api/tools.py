"""MCP tool registration for taskmd."""

import json
import logging
from typing import Optional

from mcp.server.fastmcp import FastMCP

from ..errors import ParseValidationError, TaskmdError
from .handlers import (
    handle_project_list,
    handle_raw_get,
    handle_raw_save,
    handle_task_add,
    handle_task_complete,
)

log = logging.getLogger(__name__)


def _error(e: Exception) -> str:
    payload = {"error": str(e)}
    if isinstance(e, ParseValidationError):
        payload["lineNumber"] = e.line_number
    return json.dumps(payload)


def register_tools(mcp: FastMCP, service) -> None:
    """Register all MCP tools onto the FastMCP instance."""

    @mcp.tool()
    def project_list() -> str:
        """
        List all projects with their task trees.

        Each task carries id, content, status (todo/doing/done), dueDate,
        repeatFrequency, parentId and nested subtasks.
        """
        return json.dumps(handle_project_list(service), indent=2)

    @mcp.tool()
    def project_get_raw(project_id: str) -> str:
        """
        Return a project as its markdown document.

        Format:
            # Title
            ## Todo | ## Doing | ## Done
            - [ ] task text #due:YYYY-MM-DD #repeat:daily|weekly|monthly
                - [ ] subtask (4 spaces per level)
        """
        try:
            return json.dumps(handle_raw_get(service, project_id=project_id))
        except (TaskmdError, ValueError) as e:
            return _error(e)

    @mcp.tool()
    def project_save_raw(project_id: str, content: str) -> str:
        """
        Replace a project's tasks with an edited markdown document.

        Tasks are matched by position: a task left in place keeps its id even
        if its text changed. Removed lines delete their tasks (and subtasks).
        The H1 line renames the project. Nothing is saved if any task line is
        invalid (e.g. two #due tags); the error names the line.
        """
        try:
            return json.dumps(handle_raw_save(service, project_id=project_id, content=content))
        except (TaskmdError, ValueError) as e:
            return _error(e)

    @mcp.tool()
    def task_add(
        project_id: str,
        content: str,
        status: str = "todo",
        parent_id: Optional[str] = None,
    ) -> str:
        """
        Add a task to a project.

        Args:
            project_id: Target project
            content: Task text; may contain #due:YYYY-MM-DD and #repeat:<freq>
            status: todo, doing or done
            parent_id: Make the task a subtask of this task id
        """
        try:
            return json.dumps(
                handle_task_add(
                    service,
                    project_id=project_id,
                    content=content,
                    status=status,
                    parent_id=parent_id,
                )
            )
        except (TaskmdError, ValueError) as e:
            return _error(e)

    @mcp.tool()
    def task_complete(project_id: str, task_id: str) -> str:
        """
        Mark a task done.

        A task with #repeat gets a new todo sibling due one day, week or month
        later; it is returned as nextOccurrence.
        """
        try:
            return json.dumps(
                handle_task_complete(service, project_id=project_id, task_id=task_id)
            )
        except (TaskmdError, ValueError) as e:
            return _error(e)
