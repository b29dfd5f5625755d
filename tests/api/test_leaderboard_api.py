"""API tests for leaderboards."""
from datetime import datetime, timedelta, timezone

from app.models.activity import LeaderboardSnapshot
from app.services.leaderboard import ALL_TIME, LeaderboardService

PREFIX = "/api/v1"


def give_points(db_session, user, rank_points, daily_points=0):
    stats = dict(user.stats or {})
    stats["rank"] = {"level": "Bronze", "points": rank_points}
    stats["daily_problem_points"] = daily_points
    user.stats = stats
    db_session.commit()


class TestLeaderboard:
    def test_all_time_ordering(self, client, db_session, make_user, auth_headers):
        alice, bob = make_user("alice"), make_user("bob")
        give_points(db_session, alice, 40)
        give_points(db_session, bob, 700)

        response = client.get(f"{PREFIX}/leaderboard", headers=auth_headers(alice))

        assert response.status_code == 200
        rankings = response.json()["rankings"]
        assert [r["username"] for r in rankings] == ["bob", "alice"]
        assert rankings[0]["position"] == 1
        assert rankings[0]["score"] == 700

    def test_daily_practice_ordering(self, client, db_session, make_user, auth_headers):
        alice, bob = make_user("alice"), make_user("bob")
        give_points(db_session, alice, 900, daily_points=35)
        give_points(db_session, bob, 10, daily_points=15)

        rankings = client.get(f"{PREFIX}/leaderboard/daily-practice", headers=auth_headers(bob)).json()["rankings"]

        assert [r["username"] for r in rankings] == ["alice", "bob"]
        assert rankings[0]["metrics"] == {"attempted": 0, "solved": 0}

    def test_fresh_snapshot_is_served_from_cache(self, db_session, make_user):
        alice = make_user("alice")
        service = LeaderboardService(db_session)
        service.get_snapshot(ALL_TIME)
        give_points(db_session, alice, 5000)

        cached = service.get_leaderboard(ALL_TIME)
        assert cached.rankings[0].score == 0

        snapshot = db_session.query(LeaderboardSnapshot).filter(LeaderboardSnapshot.type == ALL_TIME).one()
        snapshot.last_updated = datetime.now(timezone.utc) - timedelta(minutes=30)
        db_session.commit()

        refreshed = service.get_leaderboard(ALL_TIME)
        assert refreshed.rankings[0].score == 5000

    def test_my_rank(self, client, db_session, make_user, auth_headers):
        alice, bob = make_user("alice"), make_user("bob")
        give_points(db_session, alice, 40, daily_points=20)
        give_points(db_session, bob, 700)

        body = client.get(f"{PREFIX}/leaderboard/my-rank", headers=auth_headers(alice)).json()

        assert body == {"level": "Bronze", "points": 40, "daily_problem_points": 20, "position": 2}

    def test_admin_regenerate(self, client, make_user, auth_headers):
        admin = make_user("root", role="admin")
        response = client.post(f"{PREFIX}/admin/leaderboard/regenerate", headers=auth_headers(admin))
        assert response.status_code == 200
        assert [board["type"] for board in response.json()] == ["all-time", "daily-practice"]
