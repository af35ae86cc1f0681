"""Tests: Transmittal (GRD) generator and sequential codes."""

import re

import pytest

from docflow.core.exceptions import ValidationError
from docflow.models import db as _db
from docflow.models.auth import UserRole
from docflow.models.catalog import TRANSMITTAL_DISCIPLINE, TRANSMITTAL_NATURE
from docflow.models.document import WorkflowStatus
from docflow.services.code_generator import generate_transmittal_code
from docflow.services.transmittal import (
    GENERATED_COMMENT,
    SYSTEM_ACTOR_NAME,
    generate_transmittal,
    random_transmittal_code,
)


class TestGenerateTransmittal:
    def test_shape(self, make_user, make_document, later):
        leader = make_user(UserRole.TECH_LEADER, name="Lea Leader")
        docs = [make_document(code="GE-VE-EL-001"), make_document(code="GE-VE-CV-015")]

        t = generate_transmittal(docs, leader, 7, code="GRD-0003", now=later())

        assert t.code == "GRD-0003"
        assert t.title == "Transmittal - GE-VE-EL-001, GE-VE-CV-015"
        assert t.type == "transmittal"
        assert t.project_id == 7
        assert t.discipline == TRANSMITTAL_DISCIPLINE
        assert t.nature == TRANSMITTAL_NATURE
        assert t.issuer == "Lea Leader"
        assert t.current_version == "00"
        assert t.current_status == "analysis_client"
        assert t.current_qualification == "none"
        assert t.is_locked is True
        assert t.related_document_ids == [d.id for d in docs]
        assert t.last_modified == later()

    def test_single_system_history_entry(self, make_user, make_document):
        t = generate_transmittal([make_document()], make_user(UserRole.ADMIN), 1)

        assert len(t.versions) == 1
        entry = t.versions[0]
        assert entry.kind == "transmittal"
        assert entry.actor_name == SYSTEM_ACTOR_NAME
        assert entry.actor_role == "admin"
        assert entry.actor_id is None
        assert entry.comments == GENERATED_COMMENT
        assert entry.status == "analysis_client"
        assert entry.version_label == "00"

    def test_random_code_when_none_given(self, make_user, make_document):
        t = generate_transmittal([make_document()], make_user(UserRole.ADMIN), 1)
        assert re.fullmatch(r"GRD-[0-9A-F]{6}", t.code)

    def test_random_codes_differ(self):
        assert random_transmittal_code() != random_transmittal_code()

    def test_empty_selection_rejected(self, make_user):
        with pytest.raises(ValidationError):
            generate_transmittal([], make_user(UserRole.ADMIN), 1)

    def test_project_required(self, make_user, make_document):
        with pytest.raises(ValidationError):
            generate_transmittal([make_document()], make_user(UserRole.ADMIN), None)

    def test_transmittal_awaits_client_analysis(self, make_user, make_document):
        from docflow.services.workflow_policy import legal_actions

        t = generate_transmittal([make_document()], make_user(UserRole.ADMIN), 1)
        client = make_user(UserRole.CLIENT)

        # Transmittal label "00" is numeric: the client sees the usual analysis actions
        assert WorkflowStatus(t.current_status) == WorkflowStatus.ANALYSIS_CLIENT
        assert len(legal_actions(client, t)) == 4


class TestTransmittalCodes:
    def test_sequential_per_project(self, project, other_project, make_user, make_document):
        admin = make_user(UserRole.ADMIN)
        assert generate_transmittal_code(project.id) == "GRD-0001"

        _db.session.add(generate_transmittal([make_document()], admin, project.id, code="GRD-0001"))
        _db.session.add(generate_transmittal([make_document()], admin, project.id, code="GRD-0002"))
        _db.session.commit()

        assert generate_transmittal_code(project.id) == "GRD-0003"
        assert generate_transmittal_code(other_project.id) == "GRD-0001"
