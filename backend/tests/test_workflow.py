"""Tests for the WorkflowEngine — transitions, side effects, audit and atomicity."""
from datetime import date, time, timedelta
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import OperationalError

from event_approvals.errors import InvalidTransition, NotFound, PermissionDenied, PersistenceFailure, ValidationError
from event_approvals.models.audit_log import AuditAction, AuditLog
from event_approvals.models.event import Event
from event_approvals.models.feedback import RequestFeedback
from event_approvals.models.request import RequestStatus
from event_approvals.models.user import Role
from event_approvals.services import workflow_service
from event_approvals.services.event_service import build_event
from event_approvals.services.notification_service import WorkflowEvent
from event_approvals.services.workflow_service import WorkflowEngine
from tests.conftest import create_test_request

RETURN_NOTE = "Please add the room setup details."


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def notify(self, event, request):
        self.sent.append((WorkflowEvent(event), request.request_id))


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def engine(db, notifier):
    return WorkflowEngine(db, notifier=notifier)


def _ids(actors):
    return {name: actor["user_id"] for name, actor in actors.items() if "user_id" in actor}


def _move(engine, request_id, target, actor, role, feedback=None):
    return engine.execute_transition(request_id, target, actor, role, feedback=feedback)


def _audit_actions(db, request_id):
    entries = (
        db.query(AuditLog)
        .filter(AuditLog.resource_id == request_id)
        .order_by(AuditLog.created_at)
        .all()
    )
    return [AuditAction(e.action).value for e in entries]


def _to_ready(engine, request_id, ids):
    _move(engine, request_id, "submitted", ids["lead"], "lead")
    _move(engine, request_id, "under_review", ids["admin"], "admin")
    return _move(engine, request_id, "ready_for_approval", ids["admin"], "admin")


class TestApprovalPath:
    def test_draft_to_approved(self, client, db, actors, engine, notifier):
        """Lead submits, admin claims and forwards, super admin approves."""
        ids = _ids(actors)
        request_id = create_test_request(client, actors["lead"])["request_id"]

        result = _move(engine, request_id, "submitted", ids["lead"], "lead")
        assert result.success
        assert result.message == "Request successfully transitioned to 'submitted'"
        assert result.request.status == RequestStatus.submitted

        result = _move(engine, request_id, "under_review", ids["admin"], "admin")
        assert result.request.assigned_admin_id == ids["admin"]

        _move(engine, request_id, "ready_for_approval", ids["admin"], "admin")
        result = _move(engine, request_id, "approved", ids["superadmin"], "superadmin")

        request = result.request
        assert request.status == RequestStatus.approved
        assert request.assigned_admin_id == ids["admin"]
        assert request.submitted_at <= request.reviewed_at <= request.approved_at
        assert request.version == 5

        assert result.event is not None
        event = db.query(Event).filter(Event.request_id == request_id).one()
        assert event.event_id == result.event.event_id
        assert event.title == "Youth Retreat"

        assert _audit_actions(db, request_id) == [
            "created", "submitted", "claimed", "forwarded", "approved",
        ]
        assert result.audit_entry.changes["event_id"] == event.event_id
        assert [e for e, _ in notifier.sent] == [
            WorkflowEvent.submitted, WorkflowEvent.claimed, WorkflowEvent.forwarded, WorkflowEvent.approved,
        ]

    def test_audit_entry_records_status_change(self, client, db, actors, engine):
        ids = _ids(actors)
        request_id = create_test_request(client, actors["lead"])["request_id"]
        result = _move(engine, request_id, "submitted", ids["lead"], "lead")

        entry = result.audit_entry
        assert entry.user_id == ids["lead"]
        assert entry.user_role == "lead"
        assert entry.changes["status"] == {"from": "draft", "to": "submitted"}

    def test_execute_action_maps_names(self, client, actors, engine):
        ids = _ids(actors)
        request_id = create_test_request(client, actors["lead"])["request_id"]
        result = engine.execute_action("submit", request_id, ids["lead"], Role.lead)
        assert result.to_status == RequestStatus.submitted

        with pytest.raises(InvalidTransition):
            engine.execute_action("publish", request_id, ids["admin"], Role.admin)


class TestRejections:
    def test_illegal_transition_leaves_no_trace(self, client, db, actors, engine, notifier):
        """A refused move writes nothing and notifies nobody."""
        ids = _ids(actors)
        request_id = create_test_request(client, actors["lead"])["request_id"]

        with pytest.raises(InvalidTransition) as exc:
            _move(engine, request_id, "approved", ids["superadmin"], "superadmin")
        assert exc.value.detail["code"] == "INVALID_TRANSITION"
        assert exc.value.detail["retryable"] is False

        assert _audit_actions(db, request_id) == ["created"]
        assert notifier.sent == []
        request = engine.repository.find_by_id(request_id)
        assert request.status == RequestStatus.draft
        assert request.version == 1

    def test_wrong_role_rejected(self, client, actors, engine):
        ids = _ids(actors)
        request_id = create_test_request(client, actors["lead"])["request_id"]
        _move(engine, request_id, "submitted", ids["lead"], "lead")

        with pytest.raises(InvalidTransition) as exc:
            _move(engine, request_id, "under_review", ids["superadmin"], "superadmin")
        assert "not allowed" in exc.value.message

    def test_unknown_status_and_role(self, client, actors, engine):
        ids = _ids(actors)
        request_id = create_test_request(client, actors["lead"])["request_id"]
        with pytest.raises(InvalidTransition):
            _move(engine, request_id, "published", ids["lead"], "lead")
        with pytest.raises(InvalidTransition):
            _move(engine, request_id, "submitted", ids["lead"], "pastor")

    def test_missing_request(self, actors, engine):
        with pytest.raises(NotFound):
            _move(engine, "does-not-exist", "submitted", actors["lead"]["user_id"], "lead")

    def test_terminal_request_cannot_move(self, client, actors, engine):
        ids = _ids(actors)
        request_id = create_test_request(client, actors["lead"])["request_id"]
        _to_ready(engine, request_id, ids)
        _move(engine, request_id, "approved", ids["superadmin"], "superadmin")

        with pytest.raises(InvalidTransition) as exc:
            _move(engine, request_id, "deleted", ids["superadmin"], "superadmin")
        assert "no further transitions" in exc.value.message

    def test_incomplete_draft_cannot_be_submitted(self, client, actors, engine):
        ids = _ids(actors)
        resp = client.post(
            "/api/requests/", json={"title": "Potluck"}, headers={"X-User-Id": ids["lead"]},
        )
        assert resp.status_code == 201
        request_id = resp.json()["request_id"]

        with pytest.raises(ValidationError) as exc:
            _move(engine, request_id, "submitted", ids["lead"], "lead")
        fields = {issue["field"] for issue in exc.value.detail["details"]}
        assert {"event_date", "start_time", "end_time", "location"} <= fields

    def test_past_event_cannot_be_submitted(self, client, actors, engine):
        ids = _ids(actors)
        yesterday = (date.today() - timedelta(days=2)).isoformat()
        request_id = create_test_request(client, actors["lead"], event_date=yesterday)["request_id"]

        with pytest.raises(ValidationError) as exc:
            _move(engine, request_id, "submitted", ids["lead"], "lead")
        assert "past" in exc.value.message


class TestReturns:
    def test_return_requires_feedback(self, client, db, actors, engine):
        ids = _ids(actors)
        request_id = create_test_request(client, actors["lead"])["request_id"]
        _move(engine, request_id, "submitted", ids["lead"], "lead")
        _move(engine, request_id, "under_review", ids["admin"], "admin")

        for note in (None, "   ", "too short"):
            with pytest.raises(ValidationError):
                _move(engine, request_id, "returned", ids["admin"], "admin", feedback=note)
        assert engine.repository.find_by_id(request_id).status == RequestStatus.under_review
        assert "returned" not in _audit_actions(db, request_id)

    def test_feedback_length_capped(self, client, actors, engine):
        ids = _ids(actors)
        request_id = create_test_request(client, actors["lead"])["request_id"]
        _move(engine, request_id, "submitted", ids["lead"], "lead")
        _move(engine, request_id, "under_review", ids["admin"], "admin")
        with pytest.raises(ValidationError):
            _move(engine, request_id, "returned", ids["admin"], "admin", feedback="x" * 1001)

    def test_missing_feedback_reported_before_status(self, client, db, actors, engine, notifier):
        """A draft cannot be returned at all, but the missing feedback is what gets reported."""
        ids = _ids(actors)
        request_id = create_test_request(client, actors["lead"])["request_id"]

        with pytest.raises(ValidationError):
            _move(engine, request_id, "returned", ids["admin"], "admin", feedback=None)
        with pytest.raises(InvalidTransition):
            _move(engine, request_id, "returned", ids["admin"], "admin", feedback=RETURN_NOTE)

        assert _audit_actions(db, request_id) == ["created"]
        assert notifier.sent == []
        assert engine.repository.find_by_id(request_id).status == RequestStatus.draft

    def test_admin_return_goes_to_lead(self, client, db, actors, engine, notifier):
        ids = _ids(actors)
        request_id = create_test_request(client, actors["lead"])["request_id"]
        _move(engine, request_id, "submitted", ids["lead"], "lead")
        _move(engine, request_id, "under_review", ids["admin"], "admin")

        result = _move(engine, request_id, "returned", ids["admin"], "admin", feedback=RETURN_NOTE)
        assert result.request.returned_to == Role.lead
        assert result.feedback.feedback == RETURN_NOTE
        assert result.audit_entry.reason == RETURN_NOTE

        stored = db.query(RequestFeedback).filter(RequestFeedback.request_id == request_id).one()
        assert stored.action == "returned"
        assert stored.user_role == Role.admin

        # Only the lead can pick it back up.
        with pytest.raises(InvalidTransition):
            _move(engine, request_id, "under_review", ids["admin"], "admin")
        result = _move(engine, request_id, "submitted", ids["lead"], "lead")
        assert result.request.assigned_admin_id is None
        assert result.request.returned_to is None
        assert notifier.sent[-2][0] == WorkflowEvent.returned

    def test_superadmin_return_goes_to_admin(self, client, actors, engine):
        ids = _ids(actors)
        request_id = create_test_request(client, actors["lead"])["request_id"]
        _to_ready(engine, request_id, ids)

        result = _move(engine, request_id, "returned", ids["superadmin"], "superadmin", feedback=RETURN_NOTE)
        assert result.request.returned_to == Role.admin
        assert result.request.assigned_admin_id == ids["admin"]

        with pytest.raises(InvalidTransition):
            _move(engine, request_id, "submitted", ids["lead"], "lead")

        result = _move(engine, request_id, "under_review", ids["admin2"], "admin")
        assert result.request.status == RequestStatus.under_review
        assert result.request.assigned_admin_id == ids["admin2"]


class TestAssignment:
    def test_only_claiming_admin_forwards(self, client, db, actors, engine, notifier):
        ids = _ids(actors)
        request_id = create_test_request(client, actors["lead"])["request_id"]
        _move(engine, request_id, "submitted", ids["lead"], "lead")
        _move(engine, request_id, "under_review", ids["admin"], "admin")
        sent = len(notifier.sent)

        with pytest.raises(PermissionDenied) as exc:
            _move(engine, request_id, "ready_for_approval", ids["admin2"], "admin")
        assert exc.value.detail["code"] == "FORBIDDEN"
        with pytest.raises(PermissionDenied):
            _move(engine, request_id, "returned", ids["admin2"], "admin", feedback=RETURN_NOTE)

        request = engine.repository.find_by_id(request_id)
        assert request.status == RequestStatus.under_review
        assert request.assigned_admin_id == ids["admin"]
        assert _audit_actions(db, request_id) == ["created", "submitted", "claimed"]
        assert len(notifier.sent) == sent

        result = _move(engine, request_id, "ready_for_approval", ids["admin"], "admin")
        assert result.request.status == RequestStatus.ready_for_approval

    def test_reclaim_after_return_moves_assignment(self, client, actors, engine):
        ids = _ids(actors)
        request_id = create_test_request(client, actors["lead"])["request_id"]
        _to_ready(engine, request_id, ids)
        _move(engine, request_id, "returned", ids["superadmin"], "superadmin", feedback=RETURN_NOTE)
        _move(engine, request_id, "under_review", ids["admin2"], "admin")

        with pytest.raises(PermissionDenied):
            _move(engine, request_id, "ready_for_approval", ids["admin"], "admin")
        result = _move(engine, request_id, "ready_for_approval", ids["admin2"], "admin")
        assert result.request.assigned_admin_id == ids["admin2"]


class TestDelete:
    def test_delete_keeps_snapshot(self, client, db, actors, engine, notifier):
        ids = _ids(actors)
        request_id = create_test_request(client, actors["lead"])["request_id"]
        _to_ready(engine, request_id, ids)

        result = _move(
            engine, request_id, "deleted", ids["superadmin"], "superadmin",
            feedback="Duplicate of an existing event.",
        )
        assert result.request.status == RequestStatus.deleted
        assert result.request.deleted_at is not None

        snapshot = result.audit_entry.changes["snapshot"]
        assert snapshot["request_id"] == request_id
        assert snapshot["status"] == "ready_for_approval"
        assert snapshot["title"] == "Youth Retreat"
        assert result.audit_entry.reason == "Duplicate of an existing event."
        assert notifier.sent[-1][0] == WorkflowEvent.deleted

    def test_delete_reason_optional_but_capped(self, client, actors, engine):
        ids = _ids(actors)
        request_id = create_test_request(client, actors["lead"])["request_id"]
        _to_ready(engine, request_id, ids)

        with pytest.raises(ValidationError):
            _move(engine, request_id, "deleted", ids["superadmin"], "superadmin", feedback="x" * 501)
        result = _move(engine, request_id, "deleted", ids["superadmin"], "superadmin")
        assert result.feedback is None

    def test_delete_only_from_ready_for_approval(self, client, actors, engine):
        ids = _ids(actors)
        request_id = create_test_request(client, actors["lead"])["request_id"]
        _move(engine, request_id, "submitted", ids["lead"], "lead")
        with pytest.raises(InvalidTransition):
            _move(engine, request_id, "deleted", ids["superadmin"], "superadmin")


class TestAtomicity:
    def test_failed_publish_rolls_back_approval(self, client, db, actors, engine, notifier, monkeypatch):
        """If the event cannot be written, the approval does not happen either."""
        ids = _ids(actors)
        request_id = create_test_request(client, actors["lead"])["request_id"]
        _to_ready(engine, request_id, ids)
        sent_before = list(notifier.sent)

        def _broken_publish(db, request):
            raise OperationalError("INSERT INTO events", {}, Exception("disk I/O error"))

        monkeypatch.setattr(workflow_service, "publish_event", _broken_publish)
        with pytest.raises(PersistenceFailure) as exc:
            _move(engine, request_id, "approved", ids["superadmin"], "superadmin")
        assert exc.value.detail["retryable"] is True

        request = engine.repository.find_by_id(request_id)
        assert request.status == RequestStatus.ready_for_approval
        assert request.approved_at is None
        assert request.version == 4
        assert db.query(Event).count() == 0
        assert "approved" not in _audit_actions(db, request_id)
        assert notifier.sent == sent_before


class TestBuildEvent:
    def test_local_times_converted_to_utc(self):
        request = SimpleNamespace(
            request_id="r1", request_number="REQ-2030-0001", title="Picnic", event_type="local",
            department_id="d1", event_date=date(2030, 7, 4), start_time=time(9, 0), end_time=time(11, 30),
            location="Park", description=None, expected_attendance=None,
        )
        event = build_event(request, tz_name="America/New_York")
        assert event.start_time_utc.hour == 13
        assert event.end_time_utc.hour == 15
        assert event.end_time_utc.minute == 30

    def test_missing_fields_rejected(self):
        request = SimpleNamespace(
            request_number="REQ-2030-0002", event_date=None, start_time=None, end_time=None, location="",
        )
        with pytest.raises(ValidationError):
            build_event(request)
