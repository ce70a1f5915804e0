"""HTTP surface: auth, permissions and an end-to-end conversation"""

from datetime import timedelta

import pytest

from tests.conftest import ALICE_ID, ASSISTANT_ID, BOB_ID, OWNER_ID


def test_root_and_health(client):
    assert client.get("/").status_code == 200
    assert client.get("/health").json() == {"status": "healthy"}


def test_requests_without_token_are_rejected(client, profiles):
    response = client.get("/messages/threads")
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


def test_malformed_and_expired_tokens_are_rejected(client, profiles, token_factory):
    bad = client.get("/messages/threads", headers={"Authorization": "Bearer not-a-jwt"})
    assert bad.status_code == 401

    expired = token_factory(OWNER_ID, expires_in=timedelta(minutes=-5))
    response = client.get("/messages/threads", headers={"Authorization": f"Bearer {expired}"})
    assert response.status_code == 401


def test_wrong_audience_is_rejected(client, profiles, token_factory):
    token = token_factory(OWNER_ID, aud="someone-else")
    response = client.get("/messages/threads", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_token_for_unknown_profile_is_rejected(client, profiles, headers):
    response = client.get("/messages/threads", headers=headers("ffffffff-0000-4000-8000-000000000000"))
    assert response.status_code == 401


def test_conversation_end_to_end(client, profiles, headers):
    created = client.post(
        "/messages/threads",
        json={"subject": "Lash lift aftercare", "participant_ids": [ALICE_ID], "body": "How are your lashes?"},
        headers=headers(OWNER_ID),
    )
    assert created.status_code == 200
    thread_id = created.json()["thread_id"]

    inbox = client.get("/messages/threads", headers=headers(ALICE_ID)).json()
    assert [row["id"] for row in inbox] == [thread_id]
    assert inbox[0]["unread_count"] == 1
    assert inbox[0]["status"] == "new"

    reply = client.post(
        f"/messages/threads/{thread_id}/messages",
        json={"body": "Great, thank you!"},
        headers=headers(ALICE_ID),
    )
    assert reply.status_code == 200
    assert reply.json()["sender_first_name"] == "Alice"

    read = client.post(f"/messages/threads/{thread_id}/read", headers=headers(ALICE_ID))
    assert read.json() == {"thread_id": thread_id, "marked": 1}

    messages = client.get(f"/messages/threads/{thread_id}/messages", headers=headers(OWNER_ID)).json()
    assert [m["body"] for m in messages] == ["How are your lashes?", "Great, thank you!"]
    assert messages[0]["is_read"] is True
    assert messages[1]["is_read"] is False

    participants = client.get(f"/messages/threads/{thread_id}/participants", headers=headers(ALICE_ID)).json()
    assert {p["id"] for p in participants} == {ALICE_ID, OWNER_ID}


def test_staff_reply_marks_thread_contacted(client, profiles, headers, lash_service):
    request = client.post(
        "/messages/booking-requests",
        json={"service_id": lash_service.id, "message": "Weekend please", "preferred_dates": "Sat"},
        headers=headers(ALICE_ID),
    )
    assert request.status_code == 200
    thread_id = request.json()["thread_id"]
    assert request.json()["booking_id"] > 0

    client.post(
        f"/messages/threads/{thread_id}/messages",
        json={"body": "Saturday 10am works"},
        headers=headers(ASSISTANT_ID),
    )
    options = client.get(f"/messages/threads/{thread_id}/status/options", headers=headers(OWNER_ID)).json()
    assert options["current"] == "contacted"
    assert options["allowed"] == ["approved", "rejected", "resolved"]


def test_status_changes_follow_workflow(client, profiles, headers):
    thread_id = client.post(
        "/messages/threads",
        json={"subject": "Status", "participant_ids": [BOB_ID], "body": "Hi Bob"},
        headers=headers(OWNER_ID),
    ).json()["thread_id"]

    resolved = client.patch(
        f"/messages/threads/{thread_id}/status", json={"status": "resolved"}, headers=headers(OWNER_ID)
    )
    assert resolved.status_code == 200
    assert resolved.json()["status"] == "resolved"

    reopened = client.patch(
        f"/messages/threads/{thread_id}/status", json={"status": "new"}, headers=headers(OWNER_ID)
    )
    assert reopened.status_code == 409

    unknown = client.patch(
        f"/messages/threads/{thread_id}/status", json={"status": "paused"}, headers=headers(OWNER_ID)
    )
    assert unknown.status_code == 422


@pytest.mark.parametrize(
    "method,path,body",
    [
        ("patch", "/status", {"status": "approved"}),
        ("put", "/star", {"starred": True}),
        ("post", "/star/toggle", None),
        ("post", "/archive", None),
        ("post", "/unarchive", None),
        ("put", "/assignee", {"staff_id": ASSISTANT_ID}),
        ("get", "/status/options", None),
    ],
)
def test_clients_cannot_use_staff_actions(client, profiles, headers, method, path, body):
    thread_id = client.post(
        "/messages/threads",
        json={"subject": "Mine", "participant_ids": [ALICE_ID], "body": "Hello"},
        headers=headers(OWNER_ID),
    ).json()["thread_id"]

    kwargs = {"headers": headers(ALICE_ID)}
    if body is not None:
        kwargs["json"] = body
    response = getattr(client, method)(f"/messages/threads/{thread_id}{path}", **kwargs)
    assert response.status_code == 403


def test_clients_cannot_reach_other_threads(client, profiles, headers):
    thread_id = client.post(
        "/messages/threads",
        json={"subject": "Bob only", "participant_ids": [BOB_ID], "body": "Private"},
        headers=headers(OWNER_ID),
    ).json()["thread_id"]

    alice = headers(ALICE_ID)
    assert client.get(f"/messages/threads/{thread_id}/messages", headers=alice).status_code == 404
    assert client.post(
        f"/messages/threads/{thread_id}/messages", json={"body": "hi"}, headers=alice
    ).status_code == 404
    assert client.post(f"/messages/threads/{thread_id}/read", headers=alice).status_code == 404
    assert client.get("/messages/threads", headers=alice).json() == []


def test_star_archive_and_assign(client, profiles, headers):
    owner = headers(OWNER_ID)
    thread_id = client.post(
        "/messages/threads",
        json={"subject": "Flags", "participant_ids": [ALICE_ID], "body": "Hi"},
        headers=owner,
    ).json()["thread_id"]

    assert client.post(f"/messages/threads/{thread_id}/star/toggle", headers=owner).json()["is_starred"] is True
    assert client.put(
        f"/messages/threads/{thread_id}/star", json={"starred": False}, headers=owner
    ).json()["is_starred"] is False

    assert client.post(f"/messages/threads/{thread_id}/archive", headers=owner).json()["is_archived"] is True
    assert client.get("/messages/threads", headers=owner).json() == []
    archived = client.get("/messages/threads", params={"tab": "archived"}, headers=owner).json()
    assert [row["id"] for row in archived] == [thread_id]
    assert client.post(f"/messages/threads/{thread_id}/unarchive", headers=owner).json()["is_archived"] is False

    assigned = client.put(
        f"/messages/threads/{thread_id}/assignee", json={"staff_id": ASSISTANT_ID}, headers=owner
    )
    assert assigned.json()["assigned_staff_id"] == ASSISTANT_ID
    not_staff = client.put(f"/messages/threads/{thread_id}/assignee", json={"staff_id": BOB_ID}, headers=owner)
    assert not_staff.status_code == 409


def test_contacts_and_quick_replies(client, profiles, headers, quick_replies):
    contacts = client.get("/messages/contacts", headers=headers(ALICE_ID)).json()
    assert ALICE_ID not in {c["id"] for c in contacts}
    assert [c["first_name"] for c in contacts] == ["Bob", "Olivia", "Sam"]

    replies = client.get("/messages/quick-replies", headers=headers(ASSISTANT_ID)).json()
    assert [r["label"] for r in replies] == ["Hours", "Thanks"]
    assert client.get("/messages/quick-replies", headers=headers(ALICE_ID)).status_code == 403


def test_invalid_payloads(client, profiles, headers, lash_service):
    owner = headers(OWNER_ID)
    empty_body = client.post(
        "/messages/threads", json={"subject": "Hi", "participant_ids": [ALICE_ID], "body": "  "}, headers=owner
    )
    assert empty_body.status_code == 422

    no_participants = client.post(
        "/messages/threads", json={"subject": "Hi", "participant_ids": [], "body": "Hello"}, headers=owner
    )
    assert no_participants.status_code == 409

    missing_service = client.post(
        "/messages/booking-requests", json={"service_id": 404, "message": ""}, headers=headers(ALICE_ID)
    )
    assert missing_service.status_code == 404
    assert missing_service.json()["detail"] == "Service not found"

    missing_thread = client.post("/messages/threads/9999/messages", json={"body": "hi"}, headers=owner)
    assert missing_thread.status_code == 404
