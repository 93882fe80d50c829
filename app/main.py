"""FastAPI application for the Hook Studio workflow service."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.routers import chat, content, hooks, projects
from config.settings import LOG_LEVEL
from execution.errors import WorkflowError
from execution.project_repository import build_repository

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Hook Studio")

# One repository per process; routers reach it through app.dependencies.
app.state.repository = build_repository()

app.include_router(projects.router, prefix="/api")
app.include_router(chat.router, prefix="/api/projects/{project_id}")
app.include_router(hooks.router, prefix="/api/projects/{project_id}")
app.include_router(content.router, prefix="/api/projects/{project_id}")


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    """Render workflow errors as JSON with the status code their type carries."""
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": exc.message},
    )
