"""
Tests: Workflow Authorization Policy.

Test blocks:
  1. legal_actions per (role, status)
  2. Client approval branching on the version label
  3. Multi-role union and reader / terminal statuses
  4. Batch helpers (homogeneity, selection intersection, admin archive)
  5. Capability checks and history visibility
"""

import pytest

from docflow.core.exceptions import MixedBatchStatusError, ValidationError
from docflow.models.auth import UserRole
from docflow.models.document import Qualification, WorkflowStatus
from docflow.services import workflow_policy as wp


def _targets(actions):
    return [(a.target_status.value, a.target_qualification.value) for a in actions]


# ═══════════════════════════════════════════════════════════════════════════
# 1. legal_actions per (role, status)
# ═══════════════════════════════════════════════════════════════════════════


class TestLegalActions:
    def test_leader_evaluation_has_three_outcomes(self, make_user, make_document):
        leader = make_user(UserRole.TECH_LEADER)
        doc = make_document(status=WorkflowStatus.EVALUATION_LT)

        assert _targets(wp.legal_actions(leader, doc)) == [
            ("analysis_client", "approved"),
            ("in_review", "rejected"),
            ("cancelled", "cancelled"),
        ]

    def test_leader_moderation(self, make_user, make_document):
        leader = make_user(UserRole.TECH_LEADER)
        doc = make_document(status=WorkflowStatus.MODERATION_LT, qualification=Qualification.REJECTED)

        assert _targets(wp.legal_actions(leader, doc)) == [
            ("in_review", "none"),
            ("execution", "approved"),
        ]

    def test_leader_draft_and_execution_send_to_review(self, make_user, make_document):
        leader = make_user(UserRole.TECH_LEADER)

        for status in (WorkflowStatus.DRAFT, WorkflowStatus.EXECUTION):
            doc = make_document(status=status)
            assert _targets(wp.legal_actions(leader, doc)) == [("in_review", "none")]

    def test_admin_mirrors_leader(self, make_user, make_document):
        admin = make_user(UserRole.ADMIN)
        leader = make_user(UserRole.TECH_LEADER)
        for status in WorkflowStatus:
            doc = make_document(status=status)
            assert wp.legal_actions(admin, doc) == wp.legal_actions(leader, doc)

    def test_designer_sends_for_evaluation(self, make_user, make_document):
        designer = make_user(UserRole.DESIGNER)

        for status in (WorkflowStatus.DRAFT, WorkflowStatus.IN_REVIEW):
            doc = make_document(status=status)
            assert _targets(wp.legal_actions(designer, doc)) == [("evaluation_lt", "none")]

    def test_designer_has_nothing_in_evaluation(self, make_user, make_document):
        designer = make_user(UserRole.DESIGNER)
        doc = make_document(status=WorkflowStatus.EVALUATION_LT)

        assert wp.legal_actions(designer, doc) == []

    def test_actions_carry_labels(self, make_user, make_document):
        leader = make_user(UserRole.TECH_LEADER)
        doc = make_document(status=WorkflowStatus.DRAFT)

        action = wp.legal_actions(leader, doc)[0]
        assert action.to_dict() == {
            "label": "Send to designer",
            "target_status": "in_review",
            "target_qualification": "none",
        }


# ═══════════════════════════════════════════════════════════════════════════
# 2. Client approval branching
# ═══════════════════════════════════════════════════════════════════════════


class TestClientAnalysis:
    def test_alphanumeric_version_goes_to_moderation(self, make_user, make_document):
        client = make_user(UserRole.CLIENT)
        doc = make_document(status=WorkflowStatus.ANALYSIS_CLIENT, version="0B")

        assert _targets(wp.legal_actions(client, doc)) == [
            ("moderation_lt", "approved"),
            ("moderation_lt", "approved_with_comments"),
            ("moderation_lt", "rejected"),
        ]

    def test_numeric_version_goes_to_execution_and_offers_as_built(self, make_user, make_document):
        client = make_user(UserRole.CLIENT)
        doc = make_document(status=WorkflowStatus.ANALYSIS_CLIENT, version="01")

        targets = _targets(wp.legal_actions(client, doc))
        assert targets[0] == ("execution", "approved")
        assert ("as_built", "as_built") in targets
        assert ("moderation_lt", "approved") not in targets

    def test_client_outside_analysis_has_no_actions(self, make_user, make_document):
        client = make_user(UserRole.CLIENT)
        for status in WorkflowStatus:
            if status == WorkflowStatus.ANALYSIS_CLIENT:
                continue
            assert wp.legal_actions(client, make_document(status=status)) == []

    @pytest.mark.parametrize("label,expected", [
        ("00", True), ("01", True), ("12", True),
        ("0A", False), ("0B", False), ("", False), (None, False),
    ])
    def test_is_numeric_version(self, label, expected):
        assert wp.is_numeric_version(label) is expected


# ═══════════════════════════════════════════════════════════════════════════
# 3. Multi-role union, readers, terminal statuses
# ═══════════════════════════════════════════════════════════════════════════


class TestRoleUnion:
    def test_leader_and_designer_union_in_draft(self, make_user, make_document):
        user = make_user(UserRole.TECH_LEADER, UserRole.DESIGNER)
        doc = make_document(status=WorkflowStatus.DRAFT)

        assert _targets(wp.legal_actions(user, doc)) == [
            ("in_review", "none"),
            ("evaluation_lt", "none"),
        ]

    def test_admin_and_leader_do_not_duplicate(self, make_user, make_document):
        user = make_user(UserRole.ADMIN, UserRole.TECH_LEADER)
        doc = make_document(status=WorkflowStatus.EVALUATION_LT)

        assert len(wp.legal_actions(user, doc)) == 3

    def test_reader_never_has_actions(self, make_user, make_document):
        reader = make_user(UserRole.READER)
        for status in WorkflowStatus:
            assert wp.legal_actions(reader, make_document(status=status)) == []

    @pytest.mark.parametrize("status", [
        WorkflowStatus.AS_BUILT, WorkflowStatus.ARCHIVED, WorkflowStatus.CANCELLED,
    ])
    def test_terminal_statuses_have_no_single_actions(self, make_user, make_document, status):
        everyone = make_user(*UserRole)
        assert wp.legal_actions(everyone, make_document(status=status)) == []

    def test_no_roles_means_no_actions(self, make_user, make_document):
        nobody = make_user()
        assert wp.legal_actions(nobody, make_document(status=WorkflowStatus.DRAFT)) == []


# ═══════════════════════════════════════════════════════════════════════════
# 4. Batch helpers
# ═══════════════════════════════════════════════════════════════════════════


class TestBatchHelpers:
    def test_homogeneous_selection_returns_status(self, make_document):
        docs = [make_document(status=WorkflowStatus.EVALUATION_LT) for _ in range(3)]
        assert wp.ensure_homogeneous_status(docs) == WorkflowStatus.EVALUATION_LT

    def test_mixed_selection_raises(self, make_document):
        docs = [
            make_document(status=WorkflowStatus.DRAFT),
            make_document(status=WorkflowStatus.EVALUATION_LT),
        ]
        with pytest.raises(MixedBatchStatusError) as exc_info:
            wp.ensure_homogeneous_status(docs)
        assert exc_info.value.statuses == ["draft", "evaluation_lt"]

    def test_empty_selection_raises(self):
        with pytest.raises(ValidationError):
            wp.ensure_homogeneous_status([])

    def test_archive_is_batch_only_for_admin(self, make_user, make_document):
        admin = make_user(UserRole.ADMIN)
        doc = make_document(status=WorkflowStatus.EXECUTION, qualification=Qualification.APPROVED)

        assert ("archived", "none") not in _targets(wp.legal_actions(admin, doc))
        assert ("archived", "none") in _targets(wp.batch_legal_actions(admin, doc))

    def test_leader_cannot_archive(self, make_user, make_document):
        leader = make_user(UserRole.TECH_LEADER)
        doc = make_document(status=WorkflowStatus.AS_BUILT)

        assert wp.batch_legal_actions(leader, doc) == []

    def test_selection_intersection_drops_label_dependent_actions(self, make_user, make_document):
        client = make_user(UserRole.CLIENT)
        docs = [
            make_document(status=WorkflowStatus.ANALYSIS_CLIENT, version="0A"),
            make_document(status=WorkflowStatus.ANALYSIS_CLIENT, version="01"),
        ]

        assert _targets(wp.batch_actions_for_selection(client, docs)) == [
            ("moderation_lt", "approved_with_comments"),
            ("moderation_lt", "rejected"),
        ]

    def test_selection_with_mixed_statuses_raises(self, make_user, make_document):
        leader = make_user(UserRole.TECH_LEADER)
        docs = [
            make_document(status=WorkflowStatus.DRAFT),
            make_document(status=WorkflowStatus.EXECUTION),
        ]
        with pytest.raises(MixedBatchStatusError):
            wp.batch_actions_for_selection(leader, docs)

    def test_empty_selection_offers_nothing(self, make_user):
        assert wp.batch_actions_for_selection(make_user(UserRole.ADMIN), []) == []


# ═══════════════════════════════════════════════════════════════════════════
# 5. Capabilities and history visibility
# ═══════════════════════════════════════════════════════════════════════════


class TestCapabilities:
    @pytest.mark.parametrize("role,expected", [
        (UserRole.ADMIN, True),
        (UserRole.TECH_LEADER, True),
        (UserRole.DESIGNER, False),
        (UserRole.CLIENT, False),
        (UserRole.READER, False),
    ])
    def test_can_edit_metadata(self, make_user, role, expected):
        assert wp.can_edit_metadata(make_user(role)) is expected

    @pytest.mark.parametrize("role,expected", [
        (UserRole.ADMIN, True),
        (UserRole.TECH_LEADER, True),
        (UserRole.DESIGNER, True),
        (UserRole.CLIENT, False),
        (UserRole.READER, False),
    ])
    def test_can_create_and_reissue(self, make_user, role, expected):
        user = make_user(role)
        assert wp.can_create_documents(user) is expected
        assert wp.can_reissue(user) is expected

    def test_project_scope(self, make_user):
        bound = make_user(UserRole.DESIGNER, project_id=1)
        global_user = make_user(UserRole.DESIGNER)

        assert wp.can_access_project(bound, 1)
        assert not wp.can_access_project(bound, 2)
        assert wp.can_access_project(global_user, 2)


class TestVisibleVersions:
    def _walked_document(self, make_user, make_document):
        from docflow.services.document_lifecycle import apply_transition

        leader = make_user(UserRole.TECH_LEADER)
        designer = make_user(UserRole.DESIGNER)
        doc = make_document(status=WorkflowStatus.DRAFT)
        apply_transition(doc, "in_review", "none", "go", leader)
        apply_transition(doc, "evaluation_lt", "none", "done", designer)
        apply_transition(doc, "analysis_client", "approved", "issue", leader)
        return doc

    def test_client_does_not_see_internal_steps(self, make_user, make_document):
        doc = self._walked_document(make_user, make_document)
        client = make_user(UserRole.CLIENT)

        visible = wp.visible_versions(client, doc)
        assert [v.status for v in visible] == ["analysis_client"]

    def test_leader_sees_everything(self, make_user, make_document):
        doc = self._walked_document(make_user, make_document)

        assert len(wp.visible_versions(make_user(UserRole.TECH_LEADER), doc)) == 4

    def test_client_who_is_also_leader_sees_everything(self, make_user, make_document):
        doc = self._walked_document(make_user, make_document)
        user = make_user(UserRole.CLIENT, UserRole.TECH_LEADER)

        assert len(wp.visible_versions(user, doc)) == 4
