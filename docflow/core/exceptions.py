"""
Platform-wide exception hierarchy.

Services raise these; blueprints register one handler per type and map
them to consistent HTTP status codes.  Every workflow failure is raised
BEFORE any mutation, so a caught exception always means "nothing changed".

Usage:
    from docflow.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Document", resource_id="abc")
    raise ValidationError("Comment is required", details={"comment": "required"})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist within the caller's scope.

    Used for BOTH genuinely missing records AND documents of a project the
    actor cannot see; a 403 would confirm the resource exists.

    Args:
        resource: Human-readable entity name (e.g. "Document", "Project").
        resource_id: The PK that was looked up. Included in logs, not in HTTP response.
        project_id: Optional — the scope that was enforced. For debug logging only.
    """

    def __init__(
        self,
        resource: str,
        resource_id: int | str | None = None,
        project_id: int | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.project_id = project_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        if project_id is not None:
            msg += f" (project={project_id})"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is well-formed but violates a business rule.

    Maps to HTTP 422 in blueprint error handlers.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised on a duplicate unique value or a stale optimistic-concurrency token.

    Maps to HTTP 409.

    Args:
        resource: Model name.
        field: The field in conflict (unique column or ``last_modified``).
        value: The conflicting value (full value in logs).
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        if field == "last_modified":
            msg = f"{resource} was modified by someone else (expected last_modified={value!r})"
        else:
            msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)


class PermissionDeniedError(Exception):
    """Raised when the actor's roles do not allow an operation outright.

    Maps to HTTP 403.  Workflow moves that are merely illegal for the
    document's current state raise InvalidTransitionError instead.
    """

    def __init__(self, action: str, reason: str | None = None) -> None:
        self.action = action
        self.reason = reason
        msg = f"Not allowed to {action}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class InvalidTransitionError(Exception):
    """Raised when a (status, qualification) move is not a legal action.

    Maps to HTTP 409.

    Args:
        document_code: Code of the document that rejected the move.
        current_status: Status the document was in.
        target_status: Requested status.
        target_qualification: Requested qualification.
        reason: Optional extra explanation.
    """

    def __init__(
        self,
        document_code: str,
        current_status: str,
        target_status: str,
        target_qualification: str,
        reason: str | None = None,
    ) -> None:
        msg = (
            f"Cannot move document {document_code} from '{current_status}' "
            f"to '{target_status}/{target_qualification}'"
        )
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
        self.document_code = document_code
        self.current_status = current_status
        self.target_status = target_status
        self.target_qualification = target_qualification
        self.reason = reason


class MixedBatchStatusError(Exception):
    """Raised when a batch selection spans more than one workflow status.

    Maps to HTTP 409.
    """

    def __init__(self, statuses: list[str]) -> None:
        self.statuses = sorted(statuses)
        super().__init__(
            "Batch selection mixes statuses "
            f"({', '.join(self.statuses)}); select documents with the same status"
        )
