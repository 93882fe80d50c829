"""Hook routes: generate candidates, select one, confirm the channel set."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.dependencies import get_repository, project_response
from app.models.project import HookGenerationRequest, SelectHookRequest
from execution import workflow
from execution.project_repository import ProjectRepository

router = APIRouter()


@router.post("/hooks")
def generate_hooks(
    project_id: str,
    body: HookGenerationRequest,
    repository: ProjectRepository = Depends(get_repository),
):
    """Generate ranked hooks for the single flow or one channel.

    A generation failure answers 200 with an empty list and an error message;
    the project is unchanged.
    """
    result = workflow.request_hooks(
        repository, project_id, inputs=body.inputs, channel=body.channel
    )
    return JSONResponse(content={
        "hooks": [h.model_dump(mode="json", by_alias=True) for h in result.hooks],
        "error": result.error,
        "status": result.project.status.value,
    })


@router.post("/hooks/select")
def select_hook(
    project_id: str,
    body: SelectHookRequest,
    repository: ProjectRepository = Depends(get_repository),
):
    project = workflow.select_hook(repository, project_id, body.hook_id, body.channel)
    return project_response(project)


@router.post("/hooks/confirm")
def confirm_hooks(project_id: str, repository: ProjectRepository = Depends(get_repository)):
    """Confirm the text/verbal/visual selections and move to generation."""
    return project_response(workflow.confirm_hooks(repository, project_id))
