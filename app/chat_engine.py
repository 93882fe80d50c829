"""Chat transcript helpers for the conversational interface.

The assistant's replies come from the generative collaborator; this module
only supplies the scripted welcome line for each stage and seeds an empty
transcript with it.
"""

from execution import state_machine
from execution.project_model import MessageRole, Project, ProjectStatus
from execution.project_repository import ProjectRepository


# ---------------------------------------------------------------------------
# Welcome messages per stage (shown once, before any user input)
# ---------------------------------------------------------------------------

STATUS_WELCOME = {
    ProjectStatus.INPUTTING: (
        "Hey! What's your next video about? Tell me the topic, who it's for "
        "and where you'll post it."
    ),
    ProjectStatus.HOOK_SELECTION: (
        "Your hooks are ready. Pick the opening that best grabs your audience."
    ),
    ProjectStatus.HOOK_TEXT: (
        "Start with the text hook: the words on screen or on the thumbnail."
    ),
    ProjectStatus.HOOK_VERBAL: (
        "Now choose the first words you'll say on camera."
    ),
    ProjectStatus.HOOK_VISUAL: (
        "Last one: pick the opening shot."
    ),
    ProjectStatus.HOOK_OVERVIEW: (
        "Review your three hooks. Edit any of them, or confirm to generate your script."
    ),
    ProjectStatus.GENERATING: (
        "The team is assembling your script, storyboard and captions."
    ),
    ProjectStatus.COMPLETE: (
        "Your content package is ready. Ask me if you want anything tweaked."
    ),
}


def get_welcome_message(project: Project) -> str | None:
    """Return the welcome assistant message for the project's current stage."""
    return STATUS_WELCOME.get(project.status)


def seed_transcript(repository: ProjectRepository, project_id: str) -> Project:
    """Append the stage welcome message if the transcript is still empty.

    The emptiness check runs under the project's lock, so two concurrent page
    loads add the welcome message once.
    """

    def seed(project: Project) -> Project:
        welcome = get_welcome_message(project)
        if project.messages or not welcome:
            return project
        return state_machine.append_message(
            project, {"role": MessageRole.ASSISTANT, "content": welcome}
        )

    return repository.update(project_id, seed)


def transcript(project: Project) -> list[dict]:
    """Return the chat messages in JSON form, oldest first."""
    return project.to_document()["messages"]
