"""API tests for daily problems and mentor review."""
import pytest

from app.core.exceptions import ExternalServiceError

PREFIX = "/api/v1"

PROBLEM = {
    "subject": "DSA Visualizer",
    "title": "Echo",
    "description": "Print the input back.",
    "solution_code": "print(input())",
    "language": "python",
    "test_cases": [
        {"input": "3", "expected_output": "3"},
        {"input": "hello", "expected_output": "hello"},
    ],
    "is_active": True,
}


@pytest.fixture
def mentor(make_user):
    return make_user("mentor", role="mentor")


@pytest.fixture
def problem_id(client, mentor, auth_headers):
    response = client.post(f"{PREFIX}/mentor/daily-problems", json=PROBLEM, headers=auth_headers(mentor))
    assert response.status_code == 201
    return response.json()["id"]


def submit(client, headers, problem_id, code="print(input())"):
    return client.post(
        f"{PREFIX}/daily-problem/submit",
        json={"problem_id": problem_id, "submitted_code": code},
        headers=headers,
    )


class TestLookup:
    def test_active_problem_by_subject(self, client, make_user, problem_id, auth_headers):
        user = make_user()
        response = client.get(f"{PREFIX}/daily-problem/active/DSA Visualizer", headers=auth_headers(user))
        assert response.status_code == 200
        assert response.json()["id"] == problem_id

    def test_no_active_problem(self, client, make_user, auth_headers):
        user = make_user()
        response = client.get(f"{PREFIX}/daily-problem/active/Nothing", headers=auth_headers(user))
        assert response.status_code == 404

    def test_solution_hidden_until_locked(self, client, make_user, problem_id, auth_headers):
        user = make_user()
        response = client.get(f"{PREFIX}/daily-problem/{problem_id}", headers=auth_headers(user))
        assert response.status_code == 200
        assert response.json()["solution_code"] is None

    def test_empty_attempt(self, client, make_user, problem_id, auth_headers):
        user = make_user()
        response = client.get(f"{PREFIX}/daily-problem/{problem_id}/my-attempt", headers=auth_headers(user))
        assert response.json()["run_count"] == 0
        assert response.json()["is_locked"] is False


class TestSubmit:
    def test_first_run_pass(self, client, db_session, executor, make_user, problem_id, auth_headers):
        user = make_user()
        response = submit(client, auth_headers(user), problem_id)

        assert response.status_code == 200
        body = response.json()
        assert body["passed"] is True
        assert body["is_locked"] is True
        assert body["points_awarded"] == 20
        assert body["solution_code"] == PROBLEM["solution_code"]
        assert body["last_results"].startswith("[2 / 2 Test Cases Passed]")
        assert executor.calls[0]["file"] == "main.py"

        db_session.refresh(user)
        assert user.stats["daily_problem_points"] == 20
        assert user.stats["rank"]["points"] == 20

        details = client.get(f"{PREFIX}/daily-problem/{problem_id}", headers=auth_headers(user))
        assert details.json()["solution_code"] == PROBLEM["solution_code"]

    def test_resubmission_after_lock_is_rejected(self, client, db_session, make_user, problem_id, auth_headers):
        user = make_user()
        submit(client, auth_headers(user), problem_id)

        response = submit(client, auth_headers(user), problem_id)

        assert response.status_code == 403
        assert response.json()["code"] == "already_terminal"
        db_session.refresh(user)
        assert user.stats["daily_problem_points"] == 20

    def test_two_failures_lock_with_consolation(self, client, db_session, executor, make_user, problem_id, auth_headers):
        user = make_user()
        executor.solve = lambda stdin: "wrong"

        first = submit(client, auth_headers(user), problem_id).json()
        assert first["is_locked"] is False
        assert first["solution_code"] is None

        second = submit(client, auth_headers(user), problem_id).json()
        assert second["is_locked"] is True
        assert second["passed"] is False
        assert second["points_awarded"] == 10
        assert 'Expected: "3"' in second["last_results"]

    def test_execution_failure_is_retryable(self, client, executor, make_user, problem_id, auth_headers):
        user = make_user()
        executor.error = ExternalServiceError("Code execution service timed out.", kind="timeout")

        response = submit(client, auth_headers(user), problem_id)

        assert response.status_code == 503
        assert response.json()["code"] == "execution_service_timeout"
        attempt = client.get(f"{PREFIX}/daily-problem/{problem_id}/my-attempt", headers=auth_headers(user)).json()
        assert attempt["run_count"] == 0

        executor.error = None
        retry = submit(client, auth_headers(user), problem_id)
        assert retry.json()["points_awarded"] == 20

    def test_inactive_problem(self, client, mentor, make_user, problem_id, auth_headers):
        client.post(f"{PREFIX}/mentor/daily-problems/{problem_id}/toggle", headers=auth_headers(mentor))
        user = make_user()
        assert submit(client, auth_headers(user), problem_id).status_code == 404

    def test_empty_code_is_invalid(self, client, make_user, problem_id, auth_headers):
        user = make_user()
        assert submit(client, auth_headers(user), problem_id, code="").status_code == 422


class TestMentor:
    def test_users_cannot_author(self, client, make_user, auth_headers):
        user = make_user()
        response = client.post(f"{PREFIX}/mentor/daily-problems", json=PROBLEM, headers=auth_headers(user))
        assert response.status_code == 403

    def test_activating_deactivates_siblings(self, client, mentor, problem_id, auth_headers):
        headers = auth_headers(mentor)
        second = client.post(f"{PREFIX}/mentor/daily-problems", json=PROBLEM, headers=headers).json()

        first = client.get(f"{PREFIX}/daily-problem/{problem_id}", headers=headers).json()
        assert first["is_active"] is False
        assert second["is_active"] is True

    def test_review_and_feedback(self, client, db_session, mentor, make_user, problem_id, auth_headers):
        user = make_user()
        submit(client, auth_headers(user), problem_id, code="print(input())  # mine")

        attempts = client.get(
            f"{PREFIX}/mentor/daily-problems/{problem_id}/attempts", headers=auth_headers(mentor)
        ).json()
        assert len(attempts) == 1
        assert attempts[0]["username"] == "alice"
        assert attempts[0]["last_submitted_code"] == "print(input())  # mine"

        response = client.post(
            f"{PREFIX}/mentor/daily-problems/{problem_id}/attempts/{user.id}/feedback",
            json={"feedback": "Nice and short."},
            headers=auth_headers(mentor),
        )
        assert response.status_code == 200

        mine = client.get(f"{PREFIX}/daily-problem/{problem_id}/my-attempt", headers=auth_headers(user)).json()
        assert mine["mentor_feedback"] == "Nice and short."
        assert mine["feedback_read"] is False

        read = client.post(f"{PREFIX}/daily-problem/{problem_id}/feedback-read", headers=auth_headers(user))
        assert read.json()["feedback_read"] is True

    def test_feedback_on_missing_attempt(self, client, mentor, problem_id, auth_headers):
        response = client.post(
            f"{PREFIX}/mentor/daily-problems/{problem_id}/attempts/999/feedback",
            json={"feedback": "?"},
            headers=auth_headers(mentor),
        )
        assert response.status_code == 404
