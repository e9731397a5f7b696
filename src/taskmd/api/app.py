"""FastAPI application factory for the taskmd REST API."""

from fastapi import APIRouter, FastAPI

from .routes import register_routes


def create_app(service) -> FastAPI:
    """Build and return a FastAPI app wired to the given DocumentService."""
    app = FastAPI(title="taskmd", docs_url="/api/docs", openapi_url="/api/openapi.json")

    api = APIRouter(prefix="/api")
    register_routes(api, service)
    app.include_router(api)

    return app
