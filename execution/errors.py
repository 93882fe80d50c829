"""Error taxonomy shared by the state machine, repository and workflow API.

Every failure carries a short machine-readable ``code`` and the HTTP status
the web layer should answer with. The messages are meant for the caller:
they name the offending field, id or status so a stale client can fix its
request.
"""


class WorkflowError(Exception):
    """Base class for all project workflow errors."""

    code = "workflow_error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(WorkflowError):
    """Raised when a request is malformed or misses a required field."""

    code = "invalid_input"
    status_code = 400


class NotFound(WorkflowError):
    """Raised for an unknown project id, hook id or agent name."""

    code = "not_found"
    status_code = 404


class InvalidState(WorkflowError):
    """Raised when an operation is not allowed in the project's current status."""

    code = "invalid_state"
    status_code = 409


class CollaboratorFailure(WorkflowError):
    """Raised when the generative collaborator errors, times out or returns garbage."""

    code = "collaborator_failure"
    status_code = 502
