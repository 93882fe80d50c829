"""Chat API routes for the conversational interface."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.chat_engine import seed_transcript, transcript
from app.dependencies import get_repository
from app.models.project import ChatTurnRequest
from execution import workflow
from execution.project_repository import ProjectRepository

router = APIRouter()


@router.post("/chat")
def send_chat_message(
    project_id: str,
    body: ChatTurnRequest,
    repository: ProjectRepository = Depends(get_repository),
):
    """Process a user chat message and return the assistant's reply."""
    result = workflow.submit_chat_turn(
        repository,
        project_id,
        body.message,
        prior_messages=body.messages,
        inputs=body.inputs,
    )
    return JSONResponse(content={
        "message": result.message,
        "extractedInputs": result.extracted_inputs or None,
        "failed": result.failed,
        "status": result.project.status.value,
    })


@router.get("/chat")
def get_chat_history(project_id: str, repository: ProjectRepository = Depends(get_repository)):
    """Return the full chat history for restoring on page load."""
    project = seed_transcript(repository, project_id)
    return JSONResponse(content={"messages": transcript(project)})
