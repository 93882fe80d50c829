"""Shared dependencies for the FastAPI web layer."""

from fastapi import Request
from fastapi.responses import JSONResponse

from config.settings import CHANNEL_FLOW_ORDER, SINGLE_FLOW_ORDER
from execution.project_model import Project, ProjectFlow
from execution.project_repository import ProjectRepository


STATUS_LABELS = {
    "inputting": "Gathering Inputs",
    "hook_selection": "Hook Selection",
    "hook_text": "Text Hook",
    "hook_verbal": "Verbal Hook",
    "hook_visual": "Visual Hook",
    "hook_overview": "Review Hooks",
    "generating": "Generating Content",
    "complete": "Complete",
}


def get_repository(request: Request) -> ProjectRepository:
    """Return the process-wide project repository."""
    return request.app.state.repository


def project_response(project: Project, status_code: int = 200) -> JSONResponse:
    """Serialize a project with camelCase keys."""
    return JSONResponse(status_code=status_code, content=project.to_document())


def get_status_info(project: Project) -> dict:
    """Return status-bar data for the project's flow.

    Before any hooks arrive the flow is unknown; the single flow is shown.
    """
    order = CHANNEL_FLOW_ORDER if project.flow == ProjectFlow.CHANNELS else SINGLE_FLOW_ORDER
    current = project.status.value
    idx = order.index(current) if current in order else 0

    steps = []
    for i, status in enumerate(order):
        steps.append({
            "key": status,
            "label": STATUS_LABELS[status],
            "index": i,
            "is_current": i == idx,
            "is_completed": i < idx,
            "is_pending": i > idx,
        })
    return {
        "current_status": current,
        "current_label": STATUS_LABELS.get(current, current),
        "flow": project.flow.value if project.flow else None,
        "status_index": idx,
        "total_steps": len(order),
        "steps": steps,
    }
