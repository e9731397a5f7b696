"""
taskmd server entry point.

Startup sequence:
1. Load Settings from the environment
2. Open the task store (markdown files or SQLite)
3. Start REST API server in background thread (if API_ENABLED)
4. Register MCP tools
5. Run MCP server (stdio transport)
"""

import logging
import sys
import threading

from mcp.server.fastmcp import FastMCP

from .api.tools import register_tools
from .config import Settings
from .service import DocumentService
from .store.file_store import FileTaskStore
from .store.sqlite_store import SqliteTaskStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    stream=sys.stderr,
)
log = logging.getLogger(__name__)


def build_store(settings: Settings):
    if settings.backend == "sqlite":
        return SqliteTaskStore(settings.db_path, lock_timeout=settings.lock_timeout)
    return FileTaskStore(settings.data_dir, lock_timeout=settings.lock_timeout)


def _start_api_server(service, port: int) -> None:
    """Run the FastAPI/uvicorn server in a daemon thread."""
    import uvicorn

    from .api.app import create_app

    app = create_app(service)
    log.info("Starting REST API on port %d", port)
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="warning")


def main() -> None:
    settings = Settings.from_env()
    problems = settings.problems()
    if problems:
        for problem in problems:
            log.error(problem)
        sys.exit(1)

    store = build_store(settings)
    service = DocumentService(store, max_title_length=settings.max_title_length)
    log.info("Backend: %s", settings.backend)

    if settings.api_enabled:
        api_thread = threading.Thread(
            target=_start_api_server, args=(service, settings.api_port), daemon=True
        )
        api_thread.start()

    mcp = FastMCP("taskmd")
    register_tools(mcp, service)

    log.info("Starting taskmd MCP server")
    try:
        mcp.run(transport="stdio")
    finally:
        close = getattr(store, "close", None)
        if close is not None:
            close()


if __name__ == "__main__":
    main()
