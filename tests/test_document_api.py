"""
Document Workflow API Tests.

Test blocks:
  1. Create / list / get
  2. Single transitions (+ transmittal generation)
  3. Batch transitions
  4. Metadata edits
  5. Re-issue
  6. History visibility & project scoping
  7. Optimistic concurrency
  8. Append-only history at the persistence layer
"""

import pytest

from docflow.models import db as _db
from docflow.models.auth import User
from docflow.models.document import Document, DocumentVersion, VersionImmutableError


# ── Helpers ──────────────────────────────────────────────────────────────────


def _create(client, headers, project_id, **overrides):
    payload = {
        "code": "GE-VE-EL-001",
        "title": "Single-Line Diagram",
        "type": "technical",
        "discipline": "Electrical - EL",
        "nature": "Functional / Logic Diagram - DFL",
        "issuer": "Internal Engineering",
    }
    payload.update(overrides)
    res = client.post(f"/api/v1/projects/{project_id}/documents", json=payload, headers=headers)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


def _move(client, headers, doc_id, status, qualification="none", comment="ok", **extra):
    body = {"status": status, "qualification": qualification, "comment": comment}
    body.update(extra)
    return client.post(f"/api/v1/documents/{doc_id}/transition", json=body, headers=headers)


def _to_evaluation(client, auth_headers, project, leader, designer, code):
    doc = _create(client, auth_headers(designer), project.id, code=code)
    assert _move(client, auth_headers(leader), doc["id"], "in_review").status_code == 200
    assert _move(client, auth_headers(designer), doc["id"], "evaluation_lt").status_code == 200
    return doc


# ═══════════════════════════════════════════════════════════════════════════
# 1. Create / list / get
# ═══════════════════════════════════════════════════════════════════════════


class TestCreateAndList:
    def test_create_returns_draft_with_creation_entry(self, client, project, designer, auth_headers):
        doc = _create(client, auth_headers(designer), project.id)

        assert doc["current_status"] == "draft"
        assert doc["current_version"] == "0A"
        assert len(doc["versions"]) == 1
        assert doc["versions"][0]["comments"] == "Document created."
        assert doc["versions"][0]["actor_name"] == "Dan Designer"

    def test_create_requires_auth(self, client, project):
        res = client.post(f"/api/v1/projects/{project.id}/documents", json={"code": "X"})
        assert res.status_code == 401
        assert res.get_json()["code"] == "ERR_UNAUTHORIZED"

    def test_reader_cannot_create(self, client, project, reader, auth_headers):
        res = client.post(
            f"/api/v1/projects/{project.id}/documents",
            json={"code": "X", "title": "Y", "type": "technical",
                  "discipline": "D", "nature": "N", "issuer": "I"},
            headers=auth_headers(reader),
        )
        assert res.status_code == 403
        assert res.get_json()["code"] == "ERR_FORBIDDEN"

    def test_missing_fields_are_422(self, client, project, designer, auth_headers):
        res = client.post(
            f"/api/v1/projects/{project.id}/documents",
            json={"code": "X"},
            headers=auth_headers(designer),
        )
        assert res.status_code == 422
        assert "title" in res.get_json()["details"]

    def test_bad_forecast_date_is_422(self, client, project, designer, auth_headers):
        res = client.post(
            f"/api/v1/projects/{project.id}/documents",
            json={"code": "X", "title": "Y", "type": "technical", "discipline": "D",
                  "nature": "N", "issuer": "I", "forecast_date": "soon"},
            headers=auth_headers(designer),
        )
        assert res.status_code == 422

    def test_list_filters_and_sorts(self, client, project, designer, auth_headers):
        h = auth_headers(designer)
        _create(client, h, project.id, code="B-002", title="Bay layout")
        _create(client, h, project.id, code="A-001", title="Cable routing", discipline="Civil - CV")

        res = client.get(f"/api/v1/projects/{project.id}/documents", headers=h)
        assert res.status_code == 200
        body = res.get_json()
        assert body["total"] == 2
        assert [d["code"] for d in body["items"]] == ["A-001", "B-002"]

        res = client.get(f"/api/v1/projects/{project.id}/documents",
                         query_string={"discipline": "Civil - CV"}, headers=h)
        assert [d["code"] for d in res.get_json()["items"]] == ["A-001"]

        res = client.get(f"/api/v1/projects/{project.id}/documents?q=bay", headers=h)
        assert [d["code"] for d in res.get_json()["items"]] == ["B-002"]

        res = client.get(f"/api/v1/projects/{project.id}/documents?sort=code&direction=desc", headers=h)
        assert [d["code"] for d in res.get_json()["items"]] == ["B-002", "A-001"]

    def test_list_pagination(self, client, project, designer, auth_headers):
        h = auth_headers(designer)
        for code in ("A-001", "B-002", "C-003"):
            _create(client, h, project.id, code=code)
        url = f"/api/v1/projects/{project.id}/documents"

        body = client.get(url, query_string={"limit": 2, "offset": 1}, headers=h).get_json()

        assert body["total"] == 3
        assert (body["limit"], body["offset"]) == (2, 1)
        assert [d["code"] for d in body["items"]] == ["B-002", "C-003"]

    @pytest.mark.parametrize("params", [{"limit": "abc"}, {"limit": 0}, {"offset": -1}])
    def test_list_rejects_bad_page_params(self, client, project, designer, auth_headers, params):
        res = client.get(f"/api/v1/projects/{project.id}/documents",
                         query_string=params, headers=auth_headers(designer))
        assert res.status_code == 422

    def test_list_rejects_unknown_status(self, client, project, designer, auth_headers):
        res = client.get(f"/api/v1/projects/{project.id}/documents?status=bogus",
                         headers=auth_headers(designer))
        assert res.status_code == 422

    def test_get_unknown_document_is_404(self, client, designer, auth_headers):
        res = client.get("/api/v1/documents/does-not-exist", headers=auth_headers(designer))
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"

    def test_actions_endpoint(self, client, project, designer, leader, auth_headers):
        doc = _create(client, auth_headers(designer), project.id)

        res = client.get(f"/api/v1/documents/{doc['id']}/actions", headers=auth_headers(leader))

        assert res.status_code == 200
        assert res.get_json()["actions"] == [
            {"label": "Send to designer", "target_status": "in_review", "target_qualification": "none"},
        ]


# ═══════════════════════════════════════════════════════════════════════════
# 2. Single transitions
# ═══════════════════════════════════════════════════════════════════════════


class TestTransition:
    def test_full_path_to_client_generates_transmittal(
        self, client, project, designer, leader, auth_headers,
    ):
        doc = _to_evaluation(client, auth_headers, project, leader, designer, "GE-001")

        res = _move(client, auth_headers(leader), doc["id"], "analysis_client", "approved",
                    comment="Issued", attachment="GE-001.pdf")

        assert res.status_code == 200
        body = res.get_json()
        assert body["document"]["current_status"] == "analysis_client"
        assert body["document"]["is_locked"] is True
        assert body["document"]["versions"][0]["comments"] == "Issued [Forwarded attachment: GE-001.pdf]"
        transmittal = body["transmittal"]
        assert transmittal["code"] == "GRD-0001"
        assert transmittal["related_document_ids"] == [doc["id"]]
        assert transmittal["is_locked"] is True

        res = client.get(f"/api/v1/projects/{project.id}/documents?view=transmittals",
                         headers=auth_headers(leader))
        assert res.get_json()["total"] == 2

        res = client.get(f"/api/v1/projects/{project.id}/documents?type=transmittal",
                         headers=auth_headers(leader))
        assert [d["code"] for d in res.get_json()["items"]] == ["GRD-0001"]

    def test_second_transmittal_gets_next_code(self, client, project, designer, leader, auth_headers):
        for code in ("GE-001", "GE-002"):
            doc = _to_evaluation(client, auth_headers, project, leader, designer, code)
            res = _move(client, auth_headers(leader), doc["id"], "analysis_client", "approved")
        assert res.get_json()["transmittal"]["code"] == "GRD-0002"

    def test_upload_attachment_object(self, client, project, designer, leader, auth_headers):
        doc = _create(client, auth_headers(designer), project.id)
        _move(client, auth_headers(leader), doc["id"], "in_review")

        res = _move(client, auth_headers(designer), doc["id"], "evaluation_lt",
                    comment="Done", attachment={"name": "GE.pdf", "url": "/files/GE.pdf"})

        version = res.get_json()["document"]["versions"][0]
        assert version["comments"] == "Done [New attachment]"
        assert version["file_url"] == "/files/GE.pdf"

    def test_blank_comment_is_422_and_changes_nothing(
        self, client, project, designer, leader, auth_headers,
    ):
        doc = _create(client, auth_headers(designer), project.id)

        res = _move(client, auth_headers(leader), doc["id"], "in_review", comment="  ")

        assert res.status_code == 422
        assert res.get_json()["details"] == {"comment": "required"}
        after = client.get(f"/api/v1/documents/{doc['id']}", headers=auth_headers(leader)).get_json()
        assert after["current_status"] == "draft"
        assert after["last_modified"] == doc["last_modified"]

    def test_illegal_move_is_409(self, client, project, designer, auth_headers):
        doc = _create(client, auth_headers(designer), project.id)

        res = _move(client, auth_headers(designer), doc["id"], "analysis_client", "approved")

        assert res.status_code == 409
        body = res.get_json()
        assert body["code"] == "ERR_INVALID_TRANSITION"
        assert body["details"]["current_status"] == "draft"

    def test_missing_status_is_400(self, client, project, designer, auth_headers):
        doc = _create(client, auth_headers(designer), project.id)
        res = client.post(f"/api/v1/documents/{doc['id']}/transition",
                          json={"comment": "x"}, headers=auth_headers(designer))
        assert res.status_code == 400

    @pytest.mark.parametrize("field", ["status", "qualification", "comment"])
    def test_non_string_field_is_422(self, client, project, designer, leader, auth_headers, field):
        doc = _create(client, auth_headers(designer), project.id)
        body = {"status": "in_review", "qualification": "none", "comment": "ok", field: 5}

        res = client.post(f"/api/v1/documents/{doc['id']}/transition",
                          json=body, headers=auth_headers(leader))

        assert res.status_code == 422
        assert res.get_json()["details"] == {field: "invalid"}

    def test_client_rejection_then_revision(
        self, client, project, designer, leader, client_user, auth_headers,
    ):
        doc = _to_evaluation(client, auth_headers, project, leader, designer, "GE-001")
        _move(client, auth_headers(leader), doc["id"], "analysis_client", "approved")

        res = _move(client, auth_headers(client_user), doc["id"], "moderation_lt", "rejected",
                    comment="Fix the rebar")
        assert res.status_code == 200
        assert res.get_json()["document"]["is_locked"] is False
        assert res.get_json()["transmittal"] is None

        res = _move(client, auth_headers(leader), doc["id"], "in_review")
        assert res.get_json()["document"]["current_status"] == "in_review"


# ═══════════════════════════════════════════════════════════════════════════
# 3. Batch transitions
# ═══════════════════════════════════════════════════════════════════════════


class TestBatch:
    def test_batch_to_client_creates_one_transmittal(
        self, client, project, designer, leader, auth_headers,
    ):
        docs = [
            _to_evaluation(client, auth_headers, project, leader, designer, f"GE-00{i}")
            for i in range(1, 4)
        ]
        ids = [d["id"] for d in docs]

        res = client.post("/api/v1/documents/batch-transition", json={
            "document_ids": ids,
            "status": "analysis_client",
            "qualification": "approved",
            "items": [{"id": ids[0], "comment": "Priority", "attachment": "GE-001.pdf"}],
        }, headers=auth_headers(leader))

        assert res.status_code == 200, res.get_json()
        body = res.get_json()
        assert body["count"] == 3
        assert body["transmittal"]["code"] == "GRD-0001"
        assert sorted(body["transmittal"]["related_document_ids"]) == sorted(ids)
        assert body["transmittal"]["title"] == "Transmittal - GE-001, GE-002, GE-003"
        assert {d["id"] for d in body["updated"]} == set(ids)

        history = client.get(f"/api/v1/documents/{ids[0]}/history", headers=auth_headers(leader))
        assert history.get_json()["items"][0]["comments"] == "Priority [Forwarded attachment: GE-001.pdf]"
        history = client.get(f"/api/v1/documents/{ids[1]}/history", headers=auth_headers(leader))
        assert history.get_json()["items"][0]["comments"] == "Batch update"

        listing = client.get(f"/api/v1/projects/{project.id}/documents", headers=auth_headers(leader))
        assert listing.get_json()["total"] == 4

    def test_mixed_batch_is_409_and_changes_nothing(
        self, client, project, designer, leader, auth_headers,
    ):
        evaluated = _to_evaluation(client, auth_headers, project, leader, designer, "GE-001")
        draft = _create(client, auth_headers(designer), project.id, code="GE-002")

        res = client.post("/api/v1/documents/batch-transition", json={
            "document_ids": [evaluated["id"], draft["id"]],
            "status": "analysis_client",
            "qualification": "approved",
        }, headers=auth_headers(leader))

        assert res.status_code == 409
        body = res.get_json()
        assert body["code"] == "ERR_MIXED_BATCH_STATUS"
        assert body["details"]["statuses"] == ["draft", "evaluation_lt"]
        assert Document.query.count() == 2
        assert _db.session.get(Document, evaluated["id"]).current_status == "evaluation_lt"

    def test_batch_size_is_capped(self, client, leader, auth_headers, app):
        too_many = [f"id-{i}" for i in range(app.config["MAX_BATCH_SIZE"] + 1)]
        res = client.post("/api/v1/documents/batch-transition", json={
            "document_ids": too_many, "status": "in_review", "qualification": "none",
        }, headers=auth_headers(leader))
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_CONSTRAINT"

    def test_duplicate_ids_rejected(self, client, project, designer, leader, auth_headers):
        doc = _create(client, auth_headers(designer), project.id)
        res = client.post("/api/v1/documents/batch-transition", json={
            "document_ids": [doc["id"], doc["id"]], "status": "in_review", "qualification": "none",
        }, headers=auth_headers(leader))
        assert res.status_code == 422

    def test_non_string_item_comment_is_422(self, client, project, designer, leader, auth_headers):
        doc = _create(client, auth_headers(designer), project.id)
        res = client.post("/api/v1/documents/batch-transition", json={
            "document_ids": [doc["id"]], "status": "in_review", "qualification": "none",
            "items": [{"id": doc["id"], "comment": 5}],
        }, headers=auth_headers(leader))

        assert res.status_code == 422
        assert _db.session.get(Document, doc["id"]).current_status == "draft"

    def test_batch_actions_for_selection(self, client, project, designer, admin, auth_headers):
        docs = [_create(client, auth_headers(designer), project.id, code=f"GE-00{i}") for i in range(2)]

        res = client.post("/api/v1/documents/batch-actions",
                          json={"document_ids": [d["id"] for d in docs]},
                          headers=auth_headers(admin))

        assert res.status_code == 200
        assert [a["target_status"] for a in res.get_json()["actions"]] == ["in_review"]


# ═══════════════════════════════════════════════════════════════════════════
# 4. Metadata edits
# ═══════════════════════════════════════════════════════════════════════════


class TestMetadata:
    def test_update_then_repeat_is_no_op(self, client, project, designer, leader, auth_headers):
        doc = _create(client, auth_headers(designer), project.id)
        url = f"/api/v1/documents/{doc['id']}/metadata"

        res = client.patch(url, json={"fields": {"title": "New title", "ge_code": "GE-9"}},
                           headers=auth_headers(leader))
        assert res.status_code == 200
        body = res.get_json()
        assert body["changed"] is True
        assert body["version"]["comments"] == (
            'Metadata update. Changes: [ title: "Single-Line Diagram" -> "New title"; '
            'ge_code: "(empty)" -> "GE-9" ]'
        )
        stamp = body["document"]["last_modified"]

        res = client.patch(url, json={"fields": {"title": "New title"}}, headers=auth_headers(leader))
        body = res.get_json()
        assert body["changed"] is False
        assert body["version"] is None
        assert body["document"]["last_modified"] == stamp

        history = client.get(f"/api/v1/documents/{doc['id']}/history", headers=auth_headers(leader))
        assert history.get_json()["total"] == 2

    def test_designer_cannot_edit(self, client, project, designer, auth_headers):
        doc = _create(client, auth_headers(designer), project.id)
        res = client.patch(f"/api/v1/documents/{doc['id']}/metadata",
                           json={"fields": {"title": "Nope"}}, headers=auth_headers(designer))
        assert res.status_code == 403

    def test_workflow_fields_are_not_metadata(self, client, project, designer, leader, auth_headers):
        doc = _create(client, auth_headers(designer), project.id)
        res = client.patch(f"/api/v1/documents/{doc['id']}/metadata",
                           json={"fields": {"current_status": "archived"}}, headers=auth_headers(leader))
        assert res.status_code == 422

    def test_empty_fields_is_400(self, client, project, designer, leader, auth_headers):
        doc = _create(client, auth_headers(designer), project.id)
        res = client.patch(f"/api/v1/documents/{doc['id']}/metadata",
                           json={"fields": {}}, headers=auth_headers(leader))
        assert res.status_code == 400


# ═══════════════════════════════════════════════════════════════════════════
# 5. Re-issue
# ═══════════════════════════════════════════════════════════════════════════


class TestReissue:
    def test_reissue_bumps_label(self, client, project, designer, auth_headers):
        doc = _create(client, auth_headers(designer), project.id)

        res = client.post(f"/api/v1/documents/{doc['id']}/reissue",
                          json={"comment": "Rev B"}, headers=auth_headers(designer))

        assert res.status_code == 200
        body = res.get_json()
        assert body["document"]["current_version"] == "0B"
        assert body["version"]["kind"] == "reissue"
        assert body["version"]["comments"] == "Rev B"

    def test_locked_document_cannot_be_reissued(
        self, client, project, designer, leader, auth_headers,
    ):
        doc = _to_evaluation(client, auth_headers, project, leader, designer, "GE-001")
        _move(client, auth_headers(leader), doc["id"], "analysis_client", "approved")

        res = client.post(f"/api/v1/documents/{doc['id']}/reissue", json={},
                          headers=auth_headers(designer))
        assert res.status_code == 422


# ═══════════════════════════════════════════════════════════════════════════
# 6. History visibility & project scoping
# ═══════════════════════════════════════════════════════════════════════════


class TestVisibility:
    def test_client_history_hides_internal_steps(
        self, client, project, designer, leader, client_user, auth_headers,
    ):
        doc = _to_evaluation(client, auth_headers, project, leader, designer, "GE-001")
        _move(client, auth_headers(leader), doc["id"], "analysis_client", "approved")

        res = client.get(f"/api/v1/documents/{doc['id']}/history", headers=auth_headers(client_user))
        assert [v["status"] for v in res.get_json()["items"]] == ["analysis_client"]

        res = client.get(f"/api/v1/documents/{doc['id']}/history", headers=auth_headers(leader))
        assert res.get_json()["total"] == 4

    def test_client_transition_response_hides_internal_steps(
        self, client, project, designer, leader, client_user, auth_headers,
    ):
        doc = _to_evaluation(client, auth_headers, project, leader, designer, "GE-001")
        _move(client, auth_headers(leader), doc["id"], "analysis_client", "approved")

        res = _move(client, auth_headers(client_user), doc["id"], "moderation_lt", "rejected",
                    comment="Fix the rebar")

        assert res.status_code == 200
        versions = res.get_json()["document"]["versions"]
        assert [v["status"] for v in versions] == ["moderation_lt", "analysis_client"]

    def test_project_bound_user_cannot_see_other_project(
        self, client, project, other_project, designer, auth_headers,
    ):
        doc = _create(client, auth_headers(designer), project.id)
        outsider = User(email="o@test.local", name="Outsider", roles=["tech_leader"],
                        project_id=other_project.id)
        _db.session.add(outsider)
        _db.session.commit()

        res = client.get(f"/api/v1/documents/{doc['id']}", headers=auth_headers(outsider))
        assert res.status_code == 404
        res = client.get(f"/api/v1/projects/{project.id}/documents", headers=auth_headers(outsider))
        assert res.status_code == 404
        res = _move(client, auth_headers(outsider), doc["id"], "in_review")
        assert res.status_code == 404


# ═══════════════════════════════════════════════════════════════════════════
# 7. Optimistic concurrency
# ═══════════════════════════════════════════════════════════════════════════


class TestConcurrency:
    def test_stale_token_is_409(self, client, project, designer, leader, auth_headers):
        doc = _create(client, auth_headers(designer), project.id)
        stale = doc["last_modified"]
        _move(client, auth_headers(leader), doc["id"], "in_review")

        res = _move(client, auth_headers(designer), doc["id"], "evaluation_lt",
                    expected_last_modified=stale)

        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_CONFLICT_STATE"

    def test_fresh_token_is_accepted(self, client, project, designer, leader, auth_headers):
        doc = _create(client, auth_headers(designer), project.id)

        res = _move(client, auth_headers(leader), doc["id"], "in_review",
                    expected_last_modified=doc["last_modified"])

        assert res.status_code == 200

    def test_garbage_token_is_422(self, client, project, designer, leader, auth_headers):
        doc = _create(client, auth_headers(designer), project.id)
        res = _move(client, auth_headers(leader), doc["id"], "in_review",
                    expected_last_modified="yesterday")
        assert res.status_code == 422


# ═══════════════════════════════════════════════════════════════════════════
# 8. Append-only history
# ═══════════════════════════════════════════════════════════════════════════


class TestAppendOnly:
    def test_existing_version_rows_cannot_be_updated(self, client, project, designer, auth_headers):
        doc = _create(client, auth_headers(designer), project.id)
        version = DocumentVersion.query.filter_by(document_id=doc["id"]).one()

        version.comments = "rewritten"
        with pytest.raises(VersionImmutableError):
            _db.session.flush()
        _db.session.rollback()
