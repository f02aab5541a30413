"""
Tests for the workflow runner: ordering, fail-fast, auto-contact fallback
and deferred actions.
"""

from datetime import timedelta

import pytest

from mastery.database import db
from mastery.models import Contact, ContactListMember, WorkflowExecution
from mastery.models.base import utcnow
from mastery.services.errors import ActionFailed, ExecutionNotFound, WorkflowNotFound
from mastery.services.workflow_runner import build_runner


@pytest.fixture
def runner(app):
    return build_runner()


def _execution(execution_id):
    db.session.expire_all()
    return db.session.get(WorkflowExecution, execution_id)


class TestExecute:
    def test_add_tag_to_supplied_contact(self, runner, make_contact, make_workflow):
        contact = make_contact(tags=[])
        workflow = make_workflow([{'type': 'add_tag', 'config': {'tag': 'vip'}}])

        result = runner.execute(workflow.id, contact.id)

        assert result.status == 'completed'
        assert result.actions_completed == 1
        db.session.expire_all()
        assert db.session.get(Contact, contact.id).tags == ['vip']

    def test_empty_action_list_completes(self, runner, make_workflow):
        workflow = make_workflow([])

        result = runner.execute(workflow.id)

        execution = _execution(result.execution_id)
        assert result.actions_completed == 0
        assert execution.status == 'completed'
        assert execution.actions_completed == []
        assert execution.completed_at is not None

    def test_unknown_workflow_raises_not_found(self, runner):
        with pytest.raises(WorkflowNotFound) as exc_info:
            runner.execute('does-not-exist')
        assert exc_info.value.message == "Workflow introuvable ou inactif"
        assert db.session.query(WorkflowExecution).count() == 0

    def test_inactive_workflow_raises_not_found(self, runner, make_workflow):
        workflow = make_workflow([], status='draft')
        with pytest.raises(WorkflowNotFound):
            runner.execute(workflow.id)

    def test_trigger_snapshot_is_stored(self, runner, make_workflow):
        workflow = make_workflow([])
        result = runner.execute(workflow.id, trigger_data={'type': 'manual', 'source': 'admin'})
        assert _execution(result.execution_id).trigger_data == {'type': 'manual', 'source': 'admin'}

    def test_actions_run_in_declared_order(self, runner, make_contact, make_workflow):
        contact = make_contact()
        workflow = make_workflow([
            {'type': 'add_tag', 'config': {'tag': 'lead'}},
            {'type': 'add_tag', 'config': {'tag': 'vip'}},
            {'type': 'remove_tag', 'config': {'tag': 'lead'}},
            {'type': 'add_tag', 'config': {'tag': 'client'}},
        ])

        result = runner.execute(workflow.id, contact.id)

        execution = _execution(result.execution_id)
        assert [entry['action'] for entry in execution.actions_completed] == [
            'add_tag', 'add_tag', 'remove_tag', 'add_tag']
        assert all(entry['status'] == 'completed' for entry in execution.actions_completed)
        assert db.session.get(Contact, contact.id).tags == ['vip', 'client']

    def test_unknown_contact_id_is_not_fatal(self, runner, make_workflow):
        workflow = make_workflow([{'type': 'wait'}])

        result = runner.execute(workflow.id, contact_id='missing-contact')

        assert result.status == 'completed'
        assert _execution(result.execution_id).contact_id is None


class TestAutoContact:
    def test_contact_created_from_submission_data(self, runner, make_workflow):
        workflow = make_workflow([{'type': 'add_tag', 'config': {'tag': 'prospect'}}])

        result = runner.execute(workflow.id, trigger_data={
            'submission_data': {'email': 'a@b.com', 'prenom': 'Jean'}})

        contact = db.session.query(Contact).filter_by(email='a@b.com').one()
        assert contact.first_name == 'Jean'
        assert contact.tags == ['prospect']
        assert contact.source == 'workflow_automation'
        assert _execution(result.execution_id).contact_id == contact.id

    def test_failed_fallback_leaves_contact_unset(self, runner, make_workflow):
        workflow = make_workflow([{'type': 'add_tag', 'config': {'tag': 'vip'}}])

        with pytest.raises(ActionFailed) as exc_info:
            runner.execute(workflow.id, trigger_data={'data': {'message': 'no email here'}})

        execution = _execution(exc_info.value.execution_id)
        assert execution.status == 'failed'
        assert "Aucun contact disponible pour ajouter tag" in execution.error_message
        assert db.session.query(Contact).count() == 0

    def test_fallback_skipped_without_form_data(self, runner, make_workflow):
        workflow = make_workflow([{'type': 'wait'}])
        runner.execute(workflow.id, trigger_data={'type': 'manual'})
        assert db.session.query(Contact).count() == 0

    def test_replaying_payload_does_not_duplicate_contact(self, runner, make_workflow):
        workflow = make_workflow([{'type': 'create_contact', 'config': {}}])
        payload = {'submission_data': {'email': 'dup@example.com', 'first_name': 'Ana'}}

        runner.execute(workflow.id, trigger_data=payload)
        runner.execute(workflow.id, trigger_data=payload)

        assert db.session.query(Contact).filter_by(email='dup@example.com').count() == 1


class TestFailFast:
    def test_missing_template_fails_execution(self, runner, make_contact, make_workflow):
        contact = make_contact()
        workflow = make_workflow([{'type': 'send_email', 'config': {'template_id': 'missing'}}])

        with pytest.raises(ActionFailed) as exc_info:
            runner.execute(workflow.id, contact.id)

        execution = _execution(exc_info.value.execution_id)
        assert execution.status == 'failed'
        assert "Template introuvable" in execution.error_message
        assert execution.error_message.startswith("Action 1 failed")
        assert len(execution.actions_completed) == 1
        assert execution.actions_completed[0]['status'] == 'failed'
        assert execution.actions_completed[0]['error'] == "Template introuvable"

    def test_first_failure_stops_remaining_actions(self, runner, make_contact, make_workflow, email_service):
        contact = make_contact()
        workflow = make_workflow([
            {'type': 'add_tag', 'config': {'tag': 'first'}},
            {'type': 'send_email', 'config': {'template_id': 'missing'}},
            {'type': 'add_tag', 'config': {'tag': 'never'}},
        ])

        with pytest.raises(ActionFailed) as exc_info:
            runner.execute(workflow.id, contact.id)

        assert exc_info.value.index == 1
        assert str(exc_info.value) == "Action 2 failed"
        execution = _execution(exc_info.value.execution_id)
        assert [e['status'] for e in execution.actions_completed] == ['completed', 'failed']
        assert db.session.get(Contact, contact.id).tags == ['first']
        email_service.send_email.assert_not_called()

    def test_non_create_action_without_contact(self, runner, make_workflow):
        workflow = make_workflow([
            {'type': 'send_email', 'config': {'template_id': 'x'}},
            {'type': 'create_contact', 'config': {}},
        ])

        with pytest.raises(ActionFailed) as exc_info:
            runner.execute(workflow.id)

        execution = _execution(exc_info.value.execution_id)
        assert "Aucun contact disponible pour envoyer email" in execution.error_message
        assert [e['status'] for e in execution.actions_completed] == ['failed']

    def test_invalid_action_config_is_recorded(self, runner, make_contact, make_workflow):
        contact = make_contact()
        workflow = make_workflow([{'type': 'teleport', 'config': {}}])

        with pytest.raises(ActionFailed) as exc_info:
            runner.execute(workflow.id, contact.id)

        execution = _execution(exc_info.value.execution_id)
        assert execution.actions_completed[0]['action'] == 'teleport'
        assert "type d'action inconnu" in execution.error_message

    def test_email_delivery_failure(self, runner, make_contact, make_workflow, make_template, email_service):
        email_service.send_email.return_value = False
        contact = make_contact()
        template = make_template()
        workflow = make_workflow([{'type': 'send_email', 'config': {'template_id': template.id}}])

        with pytest.raises(ActionFailed) as exc_info:
            runner.execute(workflow.id, contact.id)

        assert "Échec de l'envoi" in exc_info.value.details


class TestActions:
    def test_send_email_renders_template(self, runner, make_contact, make_workflow, make_template, email_service):
        contact = make_contact(email='jean@example.com', first_name='Jean', last_name='<Dupont>')
        template = make_template()
        workflow = make_workflow([{'type': 'send_email', 'config': {'template_id': template.id}}])

        runner.execute(workflow.id, contact.id)

        to_email, subject, html = email_service.send_email.call_args.args
        assert to_email == 'jean@example.com'
        assert subject == 'Bonjour Jean <Dupont>'
        assert html == '<p>Bonjour Jean &lt;Dupont&gt; (jean@example.com)</p>'

    def test_list_membership_is_idempotent(self, runner, make_contact, make_workflow):
        from mastery.models import ContactList
        contact_list = ContactList(name='Newsletter')
        db.session.add(contact_list)
        db.session.commit()
        contact = make_contact()
        workflow = make_workflow([
            {'type': 'add_to_list', 'config': {'list_id': contact_list.id}},
            {'type': 'add_to_list', 'config': {'list_id': contact_list.id}},
        ])

        runner.execute(workflow.id, contact.id)

        assert db.session.query(ContactListMember).filter_by(contact_id=contact.id).count() == 1

    def test_notification_goes_to_admin(self, runner, make_contact, make_workflow, email_service):
        contact = make_contact()
        workflow = make_workflow([{'type': 'send_notification', 'config': {'message': 'Nouveau lead'}}])

        runner.execute(workflow.id, contact.id)

        email_service.send_workflow_notification.assert_called_once()
        args = email_service.send_workflow_notification.call_args.args
        assert args[0].id == contact.id
        assert args[1] == 'Nouveau lead'
        assert args[2] == 'admin@example.com'

    def test_wait_with_cleared_minutes_is_a_no_op(self, runner, make_contact, make_workflow):
        contact = make_contact(tags=[])
        workflow = make_workflow([
            {'type': 'wait', 'config': {'minutes': None}},
            {'type': 'add_tag', 'config': {'tag': 'vip'}},
        ])

        result = runner.execute(workflow.id, contact.id)

        assert result.status == 'completed'
        assert result.actions_completed == 2
        db.session.expire_all()
        assert db.session.get(Contact, contact.id).tags == ['vip']

    def test_create_contact_with_mapping(self, runner, make_workflow):
        workflow = make_workflow([
            {'type': 'create_contact', 'config': {'mapping_config': {'field_1': 'email', 'field_2': 'first_name'}}},
            {'type': 'add_tag', 'config': {'tag': 'mapped'}},
        ])

        runner.execute(workflow.id, trigger_data={'type': 'form_submission', 'form_id': 'f1',
                                                  'data': {'field_1': 'map@example.com', 'field_2': 'Lea'}})

        contact = db.session.query(Contact).filter_by(email='map@example.com').one()
        assert contact.first_name == 'Lea'
        assert contact.tags == ['mapped']


class TestDelays:
    def test_delayed_action_suspends_execution(self, runner, make_contact, make_workflow):
        contact = make_contact()
        workflow = make_workflow([
            {'type': 'add_tag', 'config': {'tag': 'now'}},
            {'type': 'add_tag', 'config': {'tag': 'later'}, 'delay_minutes': 30},
        ])

        before = utcnow()
        result = runner.execute(workflow.id, contact.id)

        assert result.status == 'waiting'
        assert result.actions_completed == 1
        assert result.resume_at >= before + timedelta(minutes=30)
        execution = _execution(result.execution_id)
        assert execution.status == 'waiting'
        assert execution.next_action_index == 1
        assert db.session.get(Contact, contact.id).tags == ['now']

    def test_resume_continues_from_next_action(self, runner, make_contact, make_workflow):
        contact = make_contact()
        workflow = make_workflow([
            {'type': 'add_tag', 'config': {'tag': 'now'}},
            {'type': 'add_tag', 'config': {'tag': 'later'}, 'delay_minutes': 30},
        ])
        waiting = runner.execute(workflow.id, contact.id)

        result = runner.resume(waiting.execution_id)

        assert result.status == 'completed'
        assert result.actions_completed == 2
        execution = _execution(waiting.execution_id)
        assert execution.status == 'completed'
        assert execution.next_action_index is None
        assert db.session.get(Contact, contact.id).tags == ['now', 'later']

    def test_resume_rejects_non_waiting_execution(self, runner, make_workflow):
        workflow = make_workflow([])
        result = runner.execute(workflow.id)
        with pytest.raises(ExecutionNotFound):
            runner.resume(result.execution_id)

    def test_resume_due_only_picks_elapsed_executions(self, runner, make_contact, make_workflow):
        contact = make_contact()
        workflow = make_workflow([{'type': 'wait', 'config': {'minutes': 60}},
                                  {'type': 'add_tag', 'config': {'tag': 'relance'}}])
        waiting = runner.execute(workflow.id, contact.id)

        assert runner.resume_due(utcnow()) == []

        resumed = runner.resume_due(utcnow() + timedelta(minutes=61))
        assert [entry['execution_id'] for entry in resumed] == [waiting.execution_id]
        assert resumed[0]['status'] == 'completed'
        assert db.session.get(Contact, contact.id).tags == ['relance']

    def test_deactivated_workflow_fails_waiting_execution(self, runner, make_contact, make_workflow):
        contact = make_contact()
        workflow = make_workflow([{'type': 'add_tag', 'config': {'tag': 'x'}, 'delay_minutes': 5}])
        waiting = runner.execute(workflow.id, contact.id)
        workflow.status = 'inactive'
        db.session.commit()

        with pytest.raises(WorkflowNotFound):
            runner.resume(waiting.execution_id)

        execution = _execution(waiting.execution_id)
        assert execution.status == 'failed'
        assert execution.error_message == "Workflow introuvable ou inactif"

    def test_delays_ignored_when_disabled(self, app, make_contact, make_workflow):
        app.config['WORKFLOW_DELAYS_ENABLED'] = False
        runner = build_runner()
        contact = make_contact()
        workflow = make_workflow([{'type': 'add_tag', 'config': {'tag': 'x'}, 'delay_minutes': 5}])

        result = runner.execute(workflow.id, contact.id)

        assert result.status == 'completed'
        assert db.session.get(Contact, contact.id).tags == ['x']
