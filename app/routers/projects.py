"""Project routes: create, fetch, status bar, inputs, administrative status changes."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.dependencies import get_repository, get_status_info, project_response
from app.models.project import ForceStatusRequest, MergeInputsRequest
from execution import workflow
from execution.project_repository import ProjectRepository

router = APIRouter()


@router.post("/projects")
def create_project(repository: ProjectRepository = Depends(get_repository)):
    """Start a new project in the 'inputting' stage."""
    project = workflow.create_project(repository)
    return project_response(project, status_code=201)


@router.get("/projects/{project_id}")
def get_project(project_id: str, repository: ProjectRepository = Depends(get_repository)):
    return project_response(workflow.get_project(repository, project_id))


@router.get("/projects/{project_id}/progress")
def get_progress(project_id: str, repository: ProjectRepository = Depends(get_repository)):
    """Status-bar data: the stages of the project's flow and where it is."""
    project = workflow.get_project(repository, project_id)
    return JSONResponse(content=get_status_info(project))


@router.post("/projects/{project_id}/inputs")
def merge_inputs(
    project_id: str,
    body: MergeInputsRequest,
    repository: ProjectRepository = Depends(get_repository),
):
    return project_response(workflow.merge_inputs(repository, project_id, body.inputs))


@router.post("/projects/{project_id}/status")
def force_status(
    project_id: str,
    body: ForceStatusRequest,
    repository: ProjectRepository = Depends(get_repository),
):
    """Re-enter a stage directly (the UI's Edit buttons); downstream data is cleared."""
    return project_response(workflow.force_status(repository, project_id, body.status))
