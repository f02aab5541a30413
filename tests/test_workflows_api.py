import pytest
from flask.testing import FlaskClient

from mastery.database import db
from mastery.models import Contact, Workflow, WorkflowExecution


def _definition(**overrides):
    body = {
        "name": "Relance inactifs",
        "description": "Relance après 14 jours",
        "status": "active",
        "trigger_type": "inactivity",
        "trigger_config": {"days": 14},
        "actions": [{"type": "add_tag", "config": {"tag": "relance"}}],
    }
    body.update(overrides)
    return body


class TestExecuteEndpoint:
    def test_requires_authentication(self, client: FlaskClient):
        response = client.post("/api/v1/workflows/execute", json={"workflowId": "x"})
        assert response.status_code == 401

    def test_rejects_wrong_internal_token(self, client: FlaskClient):
        response = client.post("/api/v1/workflows/execute", json={"workflowId": "x"},
                               headers={"X-Internal-Token": "wrong"})
        assert response.status_code == 401

    def test_success(self, client: FlaskClient, internal_headers, make_workflow, make_contact):
        contact = make_contact()
        workflow = make_workflow([{"type": "add_tag", "config": {"tag": "vip"}}])

        response = client.post("/api/v1/workflows/execute", json={
            "workflowId": workflow.id, "contactId": contact.id,
        }, headers=internal_headers)

        assert response.status_code == 200
        assert response.json["success"] is True
        assert response.json["actions_completed"] == 1
        assert db.session.get(WorkflowExecution, response.json["execution_id"]) is not None

    def test_admin_jwt_is_accepted(self, client: FlaskClient, admin_headers, make_workflow):
        workflow = make_workflow([])
        response = client.post("/api/v1/workflows/execute", json={"workflowId": workflow.id},
                               headers=admin_headers)
        assert response.status_code == 200

    def test_missing_workflow_id(self, client: FlaskClient, internal_headers):
        response = client.post("/api/v1/workflows/execute", json={}, headers=internal_headers)
        assert response.status_code == 400
        assert response.json["error"] == "validation_error"

    def test_unknown_workflow(self, client: FlaskClient, internal_headers):
        response = client.post("/api/v1/workflows/execute", json={"workflowId": "missing"},
                               headers=internal_headers)
        assert response.status_code == 404
        assert response.json["error"] == "Workflow introuvable ou inactif"

    def test_failed_action(self, client: FlaskClient, internal_headers, make_workflow, make_contact):
        contact = make_contact()
        workflow = make_workflow([{"type": "send_email", "config": {"template_id": "nope"}}])

        response = client.post("/api/v1/workflows/execute", json={
            "workflowId": workflow.id, "contactId": contact.id,
        }, headers=internal_headers)

        assert response.status_code == 500
        assert response.json["error"] == "Action 1 failed"
        assert response.json["details"] == "Template introuvable"
        execution = db.session.get(WorkflowExecution, response.json["execution_id"])
        assert execution.status == "failed"

    def test_waiting_execution_reports_resume_time(self, client: FlaskClient, internal_headers,
                                                   make_workflow, make_contact):
        contact = make_contact()
        workflow = make_workflow([{"type": "add_tag", "config": {"tag": "x"}, "delay_minutes": 10}])

        response = client.post("/api/v1/workflows/execute", json={
            "workflowId": workflow.id, "contactId": contact.id,
        }, headers=internal_headers)

        assert response.status_code == 200
        assert response.json["status"] == "waiting"
        assert response.json["resume_at"]

    def test_trigger_data_creates_contact(self, client: FlaskClient, internal_headers, make_workflow):
        workflow = make_workflow([{"type": "add_tag", "config": {"tag": "web"}}])

        response = client.post("/api/v1/workflows/execute", json={
            "workflowId": workflow.id,
            "triggerData": {"submission_data": {"email": "web@example.com"}},
        }, headers=internal_headers)

        assert response.status_code == 200
        contact = db.session.query(Contact).filter_by(email="web@example.com").one()
        assert contact.tags == ["web"]


class TestWorkflowAdmin:
    def test_requires_admin_role(self, client: FlaskClient, app):
        from flask_jwt_extended import create_access_token
        token = create_access_token(identity="user-1", additional_claims={"role": "student"})
        response = client.get("/api/v1/workflows", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json["code"] == "admin_required"

    def test_internal_token_is_not_admin(self, client: FlaskClient, internal_headers):
        response = client.get("/api/v1/workflows", headers=internal_headers)
        assert response.status_code == 401

    def test_create_and_get(self, client: FlaskClient, admin_headers):
        response = client.post("/api/v1/workflows", json=_definition(), headers=admin_headers)
        assert response.status_code == 201
        workflow_id = response.json["id"]
        assert response.json["trigger_config"] == {"days": 14}

        response = client.get(f"/api/v1/workflows/{workflow_id}", headers=admin_headers)
        assert response.status_code == 200
        assert response.json["name"] == "Relance inactifs"
        assert response.json["actions"] == [{"type": "add_tag", "config": {"tag": "relance"}}]

    def test_create_rejects_invalid_action(self, client: FlaskClient, admin_headers):
        response = client.post("/api/v1/workflows", json=_definition(
            actions=[{"type": "send_email", "config": {}}]), headers=admin_headers)
        assert response.status_code == 400
        assert response.json["error"] == "validation_error"
        assert response.json["details"]

    def test_create_rejects_unknown_trigger(self, client: FlaskClient, admin_headers):
        response = client.post("/api/v1/workflows", json=_definition(trigger_type="birthday"),
                               headers=admin_headers)
        assert response.status_code == 400

    def test_list_filters(self, client: FlaskClient, admin_headers, make_workflow):
        make_workflow([], trigger_type="manual", status="active")
        make_workflow([], trigger_type="manual", status="draft")

        response = client.get("/api/v1/workflows?status=active", headers=admin_headers)

        assert response.status_code == 200
        assert response.json["count"] == 1
        assert response.json["workflows"][0]["status"] == "active"

    def test_update(self, client: FlaskClient, admin_headers, make_workflow):
        workflow = make_workflow([], trigger_type="manual")
        response = client.put(f"/api/v1/workflows/{workflow.id}",
                              json=_definition(name="Renamed", trigger_type="manual", trigger_config={}),
                              headers=admin_headers)
        assert response.status_code == 200
        assert response.json["name"] == "Renamed"
        assert response.json["trigger_type"] == "manual"

    def test_status_change(self, client: FlaskClient, admin_headers, make_workflow):
        workflow = make_workflow([], status="active")

        response = client.post(f"/api/v1/workflows/{workflow.id}/status", json={"status": "inactive"},
                               headers=admin_headers)
        assert response.status_code == 200
        assert response.json["status"] == "inactive"

        response = client.post(f"/api/v1/workflows/{workflow.id}/status", json={"status": "paused"},
                               headers=admin_headers)
        assert response.status_code == 400

    def test_delete(self, client: FlaskClient, admin_headers, make_workflow):
        workflow = make_workflow([])
        workflow_id = workflow.id

        response = client.delete(f"/api/v1/workflows/{workflow_id}", headers=admin_headers)

        assert response.status_code == 200
        db.session.expire_all()
        assert db.session.get(Workflow, workflow_id) is None

    def test_not_found(self, client: FlaskClient, admin_headers):
        response = client.get("/api/v1/workflows/missing", headers=admin_headers)
        assert response.status_code == 404

    def test_executions_history(self, client: FlaskClient, admin_headers, internal_headers, make_workflow):
        workflow = make_workflow([])
        for _ in range(3):
            client.post("/api/v1/workflows/execute", json={"workflowId": workflow.id}, headers=internal_headers)

        response = client.get(f"/api/v1/workflows/{workflow.id}/executions?limit=2", headers=admin_headers)

        assert response.status_code == 200
        assert response.json["count"] == 2
        assert all(e["status"] == "completed" for e in response.json["executions"])
