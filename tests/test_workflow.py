"""Thread status workflow: transition table and the implicit reply hook"""

import pytest

from studio_inbox.domain.messaging.message_log import AppendEvent
from studio_inbox.domain.messaging.workflow import (
    ALLOWED_TRANSITIONS,
    StatusWorkflow,
    allowed_next,
    can_transition,
    parse_status,
)
from studio_inbox.exceptions import ConstraintViolation, InvalidStatusTransition, ValidationError
from studio_inbox.models import Message, Thread, ThreadStatus

CLIENT = "client-1"
STAFF = "staff-1"


def make_thread(status="new", client_id=CLIENT):
    return Thread(id=1, subject="Hi", status=status, client_id=client_id, is_group=False)


def reply(thread, sender_id, initial=False):
    return AppendEvent(
        thread=thread, message=Message(thread_id=thread.id, sender_id=sender_id, body="x"), initial=initial
    )


def test_every_status_has_a_row():
    assert set(ALLOWED_TRANSITIONS) == {s.value for s in ThreadStatus}


def test_resolved_is_terminal():
    assert allowed_next("resolved") == frozenset()
    for status in ThreadStatus:
        if status is not ThreadStatus.RESOLVED:
            assert "resolved" in allowed_next(status.value)


def test_can_transition():
    assert can_transition("new", "pending")
    assert can_transition("pending", "contacted")
    assert can_transition("contacted", "approved")
    assert can_transition("approved", "resolved")
    assert not can_transition("approved", "new")
    assert not can_transition("resolved", "contacted")
    assert not can_transition("contacted", "pending")
    # Re-applying the current status is allowed
    assert can_transition("approved", "approved")


def test_parse_status_accepts_enum_and_text():
    assert parse_status(ThreadStatus.APPROVED) == "approved"
    assert parse_status(" Pending ") == "pending"
    with pytest.raises(ValidationError):
        parse_status("archived")


def test_transition_applies_legal_edge():
    thread = make_thread("new")
    assert StatusWorkflow().transition(thread, "approved") is True
    assert thread.status == "approved"


def test_transition_same_status_is_noop():
    thread = make_thread("contacted")
    assert StatusWorkflow().transition(thread, ThreadStatus.CONTACTED) is False
    assert thread.status == "contacted"


def test_transition_rejects_illegal_edge():
    thread = make_thread("resolved")
    with pytest.raises(InvalidStatusTransition) as excinfo:
        StatusWorkflow().transition(thread, "new")
    assert thread.status == "resolved"
    assert excinfo.value.status_code == 409
    assert excinfo.value.current == "resolved"
    assert excinfo.value.target == "new"
    assert isinstance(excinfo.value, ConstraintViolation)


def test_staff_reply_marks_new_client_thread_contacted():
    thread = make_thread("new")
    StatusWorkflow().on_message_appended(reply(thread, STAFF))
    assert thread.status == "contacted"


def test_client_reply_leaves_status_alone():
    thread = make_thread("new")
    StatusWorkflow().on_message_appended(reply(thread, CLIENT))
    assert thread.status == "new"


def test_initial_message_does_not_trigger_hook():
    thread = make_thread("new")
    StatusWorkflow().on_message_appended(reply(thread, STAFF, initial=True))
    assert thread.status == "new"


def test_hook_ignores_group_threads():
    thread = make_thread("new", client_id=None)
    StatusWorkflow().on_message_appended(reply(thread, STAFF))
    assert thread.status == "new"


@pytest.mark.parametrize("status", ["pending", "contacted", "approved", "rejected", "resolved"])
def test_hook_only_fires_from_new(status):
    thread = make_thread(status)
    StatusWorkflow().on_message_appended(reply(thread, STAFF))
    assert thread.status == status
