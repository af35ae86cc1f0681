"""
Workflow Authorization Policy — which moves a user may make on a document.

The policy is a declarative table keyed by (role, status).  A user's legal
actions are the union of the entries matching each role they hold, in
table order, without duplicates:

    Role            Status             → Target status / qualification
    ──────────────  ─────────────────    ─────────────────────────────────────
    admin, leader   evaluation_lt        analysis_client/approved,
                                         in_review/rejected,
                                         cancelled/cancelled
    admin, leader   moderation_lt        in_review/none, execution/approved
    admin, leader   draft                in_review/none
    admin, leader   execution            in_review/none
    client          analysis_client      approve (execution if the version is
                                         numeric, else moderation_lt),
                                         moderation_lt/approved_with_comments,
                                         moderation_lt/rejected,
                                         as_built/as_built (numeric only)
    designer        in_review, draft     evaluation_lt/none

Batch selections add one admin-only rule (archive from execution / as_built).

Every function here is pure: no database access, no request context.

Usage:
    from docflow.services.workflow_policy import legal_actions

    for action in legal_actions(user, document):
        print(action.label, action.target_status, action.target_qualification)
"""

import re
from dataclasses import dataclass
from typing import Callable

from docflow.core.exceptions import MixedBatchStatusError, ValidationError
from docflow.models.auth import UserRole
from docflow.models.document import Qualification, WorkflowStatus

_NUMERIC_VERSION = re.compile(r"^\d+$")

# Client-facing history hides the contractor-internal steps
_INTERNAL_STATUSES = frozenset({
    WorkflowStatus.DRAFT,
    WorkflowStatus.IN_REVIEW,
    WorkflowStatus.EVALUATION_LT,
})


@dataclass(frozen=True)
class WorkflowAction:
    """A legal move: target (status, qualification) plus a UI label."""
    target_status: WorkflowStatus
    target_qualification: Qualification
    label: str

    def matches(self, status, qualification) -> bool:
        return (
            self.target_status == WorkflowStatus(status)
            and self.target_qualification == Qualification(qualification)
        )

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "target_status": self.target_status.value,
            "target_qualification": self.target_qualification.value,
        }


def is_numeric_version(label: str | None) -> bool:
    """True for purely numeric labels ("00", "01") — post-approval issues."""
    return bool(label) and bool(_NUMERIC_VERSION.match(label))


# ── Rule table ───────────────────────────────────────────────────────────────

def _static(*actions: WorkflowAction) -> Callable:
    return lambda document: actions


def _client_analysis(document) -> tuple:
    numeric = is_numeric_version(document.current_version)
    actions = [
        WorkflowAction(
            WorkflowStatus.EXECUTION if numeric else WorkflowStatus.MODERATION_LT,
            Qualification.APPROVED,
            "Approve",
        ),
        WorkflowAction(
            WorkflowStatus.MODERATION_LT,
            Qualification.APPROVED_WITH_COMMENTS,
            "Approve with comments",
        ),
        WorkflowAction(WorkflowStatus.MODERATION_LT, Qualification.REJECTED, "Reject"),
    ]
    if numeric:
        actions.append(
            WorkflowAction(WorkflowStatus.AS_BUILT, Qualification.AS_BUILT, "As built")
        )
    return tuple(actions)


_LEADER_RULES = {
    WorkflowStatus.EVALUATION_LT: _static(
        WorkflowAction(WorkflowStatus.ANALYSIS_CLIENT, Qualification.APPROVED, "Approve (issue to client)"),
        WorkflowAction(WorkflowStatus.IN_REVIEW, Qualification.REJECTED, "Reject (return)"),
        WorkflowAction(WorkflowStatus.CANCELLED, Qualification.CANCELLED, "Cancel document"),
    ),
    WorkflowStatus.MODERATION_LT: _static(
        WorkflowAction(WorkflowStatus.IN_REVIEW, Qualification.NONE, "Send for revision"),
        WorkflowAction(WorkflowStatus.EXECUTION, Qualification.APPROVED, "Release for execution"),
    ),
    WorkflowStatus.DRAFT: _static(
        WorkflowAction(WorkflowStatus.IN_REVIEW, Qualification.NONE, "Send to designer"),
    ),
    WorkflowStatus.EXECUTION: _static(
        WorkflowAction(WorkflowStatus.IN_REVIEW, Qualification.NONE, "Return for revision"),
    ),
}

_SEND_TO_EVALUATION = _static(
    WorkflowAction(WorkflowStatus.EVALUATION_LT, Qualification.NONE, "Send for leader evaluation"),
)

ROLE_STATUS_RULES: dict[tuple[UserRole, WorkflowStatus], Callable] = {
    **{(UserRole.ADMIN, status): rule for status, rule in _LEADER_RULES.items()},
    **{(UserRole.TECH_LEADER, status): rule for status, rule in _LEADER_RULES.items()},
    (UserRole.CLIENT, WorkflowStatus.ANALYSIS_CLIENT): _client_analysis,
    (UserRole.DESIGNER, WorkflowStatus.IN_REVIEW): _SEND_TO_EVALUATION,
    (UserRole.DESIGNER, WorkflowStatus.DRAFT): _SEND_TO_EVALUATION,
}

# Batch-only extras (list screen); never offered on a single document
BATCH_ONLY_RULES: dict[tuple[UserRole, WorkflowStatus], Callable] = {
    (UserRole.ADMIN, WorkflowStatus.EXECUTION): _static(
        WorkflowAction(WorkflowStatus.ARCHIVED, Qualification.NONE, "Archive"),
    ),
    (UserRole.ADMIN, WorkflowStatus.AS_BUILT): _static(
        WorkflowAction(WorkflowStatus.ARCHIVED, Qualification.NONE, "Archive"),
    ),
}

# Evaluation order of held roles (stable action ordering for the UI)
_ROLE_ORDER = (
    UserRole.ADMIN,
    UserRole.TECH_LEADER,
    UserRole.CLIENT,
    UserRole.DESIGNER,
    UserRole.READER,
)


def _collect(user, document, tables) -> list[WorkflowAction]:
    status = WorkflowStatus(document.current_status)
    held = user.role_set
    actions: list[WorkflowAction] = []
    for table in tables:
        for role in _ROLE_ORDER:
            if role not in held:
                continue
            rule = table.get((role, status))
            if rule is None:
                continue
            for action in rule(document):
                if action not in actions:
                    actions.append(action)
    return actions


# ── Public API ───────────────────────────────────────────────────────────────


def legal_actions(user, document) -> list[WorkflowAction]:
    """Return the actions ``user`` may take on ``document`` right now.

    An unlisted (role, status) pair contributes nothing; a reader, or any
    user facing a terminal status, gets an empty list.
    """
    return _collect(user, document, (ROLE_STATUS_RULES,))


def batch_legal_actions(user, document) -> list[WorkflowAction]:
    """legal_actions plus the batch-only rules (admin archive)."""
    return _collect(user, document, (ROLE_STATUS_RULES, BATCH_ONLY_RULES))


def find_action(actions, status, qualification) -> WorkflowAction | None:
    for action in actions:
        if action.matches(status, qualification):
            return action
    return None


def ensure_homogeneous_status(documents) -> WorkflowStatus:
    """Return the single status shared by ``documents``.

    Raises:
        ValidationError: the selection is empty.
        MixedBatchStatusError: the selection spans more than one status.
    """
    statuses = {WorkflowStatus(d.current_status) for d in documents}
    if not statuses:
        raise ValidationError("No documents selected")
    if len(statuses) > 1:
        raise MixedBatchStatusError([s.value for s in statuses])
    return statuses.pop()


def batch_actions_for_selection(user, documents) -> list[WorkflowAction]:
    """Contextual actions for a homogeneous selection.

    Only actions legal for EVERY selected document are offered (the client
    "approve" target depends on each document's version label).
    """
    if not documents:
        return []
    ensure_homogeneous_status(documents)
    common = batch_legal_actions(user, documents[0])
    for document in documents[1:]:
        allowed = batch_legal_actions(user, document)
        common = [a for a in common if a in allowed]
    return common


def can_edit_metadata(user) -> bool:
    return user.has_role(UserRole.ADMIN, UserRole.TECH_LEADER)


def can_create_documents(user) -> bool:
    return user.has_role(UserRole.ADMIN, UserRole.TECH_LEADER, UserRole.DESIGNER)


def can_reissue(user) -> bool:
    return user.has_role(UserRole.ADMIN, UserRole.TECH_LEADER, UserRole.DESIGNER)


def can_access_project(user, project_id) -> bool:
    """Users bound to a project see only that project; others see all."""
    return user.project_id is None or user.project_id == project_id


def visible_versions(user, document) -> list:
    """History entries ``user`` may see.

    A client who is not also admin / tech leader does not see the
    contractor-internal steps (draft, in_review, evaluation_lt).
    """
    if user.has_role(UserRole.CLIENT) and not user.has_role(UserRole.ADMIN, UserRole.TECH_LEADER):
        return [v for v in document.versions if WorkflowStatus(v.status) not in _INTERNAL_STATUSES]
    return list(document.versions)
