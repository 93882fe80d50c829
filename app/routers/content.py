"""Content generation and agent progress routes."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.dependencies import get_repository, project_response
from app.models.project import AgentsRequest, AgentStatusRequest, ContentGenerationRequest
from execution import workflow
from execution.project_repository import ProjectRepository

router = APIRouter()


@router.post("/content")
def generate_content(
    project_id: str,
    body: ContentGenerationRequest,
    repository: ProjectRepository = Depends(get_repository),
):
    """Generate the script, storyboard, tech specs, b-roll and captions.

    A generation failure answers 502; the project stays in 'generating'.
    """
    result = workflow.request_content(repository, project_id, inputs=body.inputs)
    return JSONResponse(content={
        "output": result.output.model_dump(mode="json", by_alias=True),
        "status": result.project.status.value,
    })


@router.put("/agents")
def update_agents(
    project_id: str,
    body: AgentsRequest,
    repository: ProjectRepository = Depends(get_repository),
):
    return project_response(workflow.update_agents(repository, project_id, body.agents))


@router.patch("/agents/{name}")
def update_agent_status(
    project_id: str,
    name: str,
    body: AgentStatusRequest,
    repository: ProjectRepository = Depends(get_repository),
):
    project = workflow.update_agent_status(repository, project_id, name, body.status, body.task)
    return project_response(project)
