"""API tests for the doubt forum."""
from datetime import datetime, timedelta, timezone

import pytest

from app.models.doubt import Doubt
from app.services.doubt_service import DoubtService
from app.services.progress_service import ProgressService

PREFIX = "/api/v1"

DOUBT = {"subject": "DSA Visualizer", "title": "Merge sort space", "message": "Why is it O(n)?"}


@pytest.fixture
def mentor(make_user):
    return make_user("mentor", role="mentor")


@pytest.fixture
def alice(make_user):
    return make_user()


def ask(client, headers, **overrides):
    return client.post(f"{PREFIX}/doubt/ask", json={**DOUBT, **overrides}, headers=headers)


class TestSubjects:
    def test_subjects_from_unlocked_topics(self, client, alice, auth_headers):
        response = client.get(f"{PREFIX}/doubt/subjects", headers=auth_headers(alice))
        assert response.status_code == 200
        assert response.json()["subjects"] == ["DSA Visualizer", "Graph Theory"]

    def test_locked_subject_is_hidden_and_rejected(self, client, db_session, alice, auth_headers):
        ProgressService(db_session).lock_topic_globally("graphs")
        db_session.refresh(alice)

        response = client.get(f"{PREFIX}/doubt/subjects", headers=auth_headers(alice))
        assert response.json()["subjects"] == ["DSA Visualizer"]

        response = ask(client, auth_headers(alice), subject="Graph Theory")
        assert response.status_code == 403
        assert response.json()["code"] == "access_denied"

    def test_unknown_subject_is_rejected(self, client, alice, auth_headers):
        assert ask(client, auth_headers(alice), subject="Cooking").status_code == 403


class TestThreads:
    def test_ask_opens_thread(self, client, alice, auth_headers):
        response = ask(client, auth_headers(alice))
        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "open"
        assert body["last_replier_id"] == alice.id
        assert [m["sender_role"] for m in body["messages"]] == ["user"]
        assert body["messages"][0]["sender_username"] == "alice"

    def test_missing_fields_rejected(self, client, alice, auth_headers):
        response = client.post(f"{PREFIX}/doubt/ask", json={"subject": "DSA Visualizer"}, headers=auth_headers(alice))
        assert response.status_code == 422

    def test_conversation_with_mentor(self, client, alice, mentor, auth_headers):
        doubt_id = ask(client, auth_headers(alice)).json()["id"]

        response = client.post(
            f"{PREFIX}/mentor/doubts/{doubt_id}/reply",
            json={"message": "The merge buffer."},
            headers=auth_headers(mentor),
        )
        assert response.status_code == 201
        assert response.json()["sender_role"] == "mentor"

        response = client.post(
            f"{PREFIX}/doubt/reply/{doubt_id}", json={"message": "Thanks!"}, headers=auth_headers(alice)
        )
        assert response.status_code == 201

        thread = client.get(f"{PREFIX}/doubt/thread/{doubt_id}", headers=auth_headers(alice)).json()
        assert [m["sender_role"] for m in thread["messages"]] == ["user", "mentor", "user"]
        assert thread["last_replier_id"] == alice.id

    def test_other_users_cannot_read_or_reply(self, client, alice, make_user, auth_headers):
        doubt_id = ask(client, auth_headers(alice)).json()["id"]
        bob = make_user("bob")

        assert client.get(f"{PREFIX}/doubt/thread/{doubt_id}", headers=auth_headers(bob)).status_code == 403
        response = client.post(f"{PREFIX}/doubt/reply/{doubt_id}", json={"message": "me too"}, headers=auth_headers(bob))
        assert response.status_code == 403

    def test_missing_thread(self, client, alice, auth_headers):
        assert client.get(f"{PREFIX}/doubt/thread/999", headers=auth_headers(alice)).status_code == 404

    def test_my_doubts_lists_open_first(self, client, alice, auth_headers):
        headers = auth_headers(alice)
        first = ask(client, headers, title="first").json()["id"]
        second = ask(client, headers, title="second").json()["id"]
        client.post(f"{PREFIX}/doubt/close/{second}", headers=headers)

        response = client.get(f"{PREFIX}/doubt/my-doubts", headers=headers)
        assert response.status_code == 200
        assert [(d["id"], d["status"]) for d in response.json()] == [(first, "open"), (second, "closed")]
        assert "messages" not in response.json()[0]


class TestClose:
    def test_close_sets_expiry(self, client, db_session, alice, auth_headers):
        doubt_id = ask(client, auth_headers(alice)).json()["id"]

        response = client.post(f"{PREFIX}/doubt/close/{doubt_id}", headers=auth_headers(alice))
        assert response.status_code == 200
        assert "24 hours" in response.json()["message"]

        doubt = db_session.get(Doubt, doubt_id)
        assert doubt.status == "closed"
        assert doubt.closed_at is not None
        assert doubt.expire_at is not None

    def test_closed_doubt_takes_no_replies(self, client, alice, mentor, auth_headers):
        doubt_id = ask(client, auth_headers(alice)).json()["id"]
        client.post(f"{PREFIX}/doubt/close/{doubt_id}", headers=auth_headers(alice))

        response = client.post(f"{PREFIX}/doubt/reply/{doubt_id}", json={"message": "again"}, headers=auth_headers(alice))
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_state"

        response = client.post(
            f"{PREFIX}/mentor/doubts/{doubt_id}/reply", json={"message": "late"}, headers=auth_headers(mentor)
        )
        assert response.status_code == 400

    def test_only_owner_closes(self, client, alice, mentor, auth_headers):
        doubt_id = ask(client, auth_headers(alice)).json()["id"]
        assert client.post(f"{PREFIX}/doubt/close/{doubt_id}", headers=auth_headers(mentor)).status_code == 403

    def test_expired_doubts_are_purged(self, client, db_session, alice, auth_headers):
        doubt_id = ask(client, auth_headers(alice)).json()["id"]
        client.post(f"{PREFIX}/doubt/close/{doubt_id}", headers=auth_headers(alice))

        service = DoubtService(db_session)
        assert service.purge_expired(datetime.now(timezone.utc)) == 0
        assert service.purge_expired(datetime.now(timezone.utc) + timedelta(hours=25)) == 1
        assert client.get(f"{PREFIX}/doubt/thread/{doubt_id}", headers=auth_headers(alice)).status_code == 404


class TestMentorQueue:
    def test_open_doubts_filtered_by_subject(self, client, alice, mentor, auth_headers):
        ask(client, auth_headers(alice))
        ask(client, auth_headers(alice), subject="Graph Theory", title="BFS")

        response = client.get(f"{PREFIX}/mentor/doubts", params={"subject": "Graph Theory"}, headers=auth_headers(mentor))
        assert response.status_code == 200
        assert [d["title"] for d in response.json()] == ["BFS"]

        response = client.get(f"{PREFIX}/mentor/doubts", headers=auth_headers(mentor))
        assert len(response.json()) == 2

    def test_mentor_reads_any_thread(self, client, alice, mentor, auth_headers):
        doubt_id = ask(client, auth_headers(alice)).json()["id"]
        response = client.get(f"{PREFIX}/mentor/doubts/{doubt_id}", headers=auth_headers(mentor))
        assert response.status_code == 200
        assert response.json()["messages"][0]["message"] == DOUBT["message"]

    def test_learners_cannot_use_mentor_queue(self, client, alice, auth_headers):
        assert client.get(f"{PREFIX}/mentor/doubts", headers=auth_headers(alice)).status_code == 403
