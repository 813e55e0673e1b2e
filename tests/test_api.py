"""Tests for the HTTP layer: status codes, error bodies and authentication."""

import pytest
from fastapi.testclient import TestClient

from okrkeeper.api.deps import get_service_context
from okrkeeper.api.main import create_app, engine_options
from okrkeeper.core.config import Settings


@pytest.fixture
def client(ctx):
    app = create_app()
    app.dependency_overrides[get_service_context] = lambda: ctx
    return TestClient(app)


def signup(client: TestClient, name: str) -> dict:
    email = f"{name}@example.com"
    response = client.post(
        "/api/auth/register",
        json={"email": email, "display_name": name.title(), "password": "s3cret-pass"},
    )
    assert response.status_code == 201, response.text
    login = client.post("/api/auth/login", json={"email": email, "password": "s3cret-pass"})
    assert login.status_code == 200, login.text
    body = login.json()
    return {
        "id": body["user"]["id"],
        "email": email,
        "headers": {"Authorization": f"Bearer {body['access_token']}"},
    }


def create_team(client: TestClient, admin: dict, name: str = "Platform") -> dict:
    response = client.post("/api/teams", json={"name": name}, headers=admin["headers"])
    assert response.status_code == 201, response.text
    return response.json()


class TestAuth:
    def test_register_response_has_no_password(self, client) -> None:
        response = client.post(
            "/api/auth/register",
            json={"email": "alice@example.com", "display_name": "Alice", "password": "s3cret-pass"},
        )
        assert response.status_code == 201
        assert "hashed_password" not in response.json()

    def test_bad_login_is_401(self, client) -> None:
        signup(client, "alice")
        response = client.post(
            "/api/auth/login", json={"email": "alice@example.com", "password": "wrong"}
        )
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid email or password"

    def test_duplicate_registration_is_403(self, client) -> None:
        signup(client, "alice")
        response = client.post(
            "/api/auth/register",
            json={"email": "alice@example.com", "display_name": "Alice", "password": "s3cret-pass"},
        )
        assert response.status_code == 403

    def test_missing_token(self, client) -> None:
        response = client.get("/api/teams")
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_me_and_logout(self, client) -> None:
        alice = signup(client, "alice")
        me = client.get("/api/auth/me", headers=alice["headers"])
        assert me.json()["email"] == "alice@example.com"

        assert client.post("/api/auth/logout", headers=alice["headers"]).status_code == 200
        assert client.get("/api/auth/me", headers=alice["headers"]).status_code == 401

    def test_update_profile_and_teammates(self, client) -> None:
        alice = signup(client, "alice")
        bob = signup(client, "bob")
        team = create_team(client, alice)
        invitation = client.post(
            f"/api/teams/{team['id']}/invitations",
            json={"email": bob["email"]},
            headers=alice["headers"],
        ).json()
        client.post(f"/api/invitations/{invitation['id']}/accept", headers=bob["headers"])

        renamed = client.patch(
            "/api/auth/me", json={"display_name": "Alice L."}, headers=alice["headers"]
        )
        assert renamed.status_code == 200
        assert renamed.json()["display_name"] == "Alice L."

        teammates = client.get("/api/auth/me/teammates", headers=bob["headers"]).json()
        assert {(p["id"], p["display_name"]) for p in teammates} == {
            (alice["id"], "Alice L."),
            (bob["id"], "Bob"),
        }

    def test_blank_display_name_is_422(self, client) -> None:
        alice = signup(client, "alice")
        response = client.patch("/api/auth/me", json={"display_name": ""}, headers=alice["headers"])
        assert response.status_code == 422


class TestErrorMapping:
    def test_invalid_input_is_422(self, client) -> None:
        alice = signup(client, "alice")
        response = client.post("/api/teams", json={"name": ""}, headers=alice["headers"])
        assert response.status_code == 422
        body = response.json()
        assert body["error"].startswith("Invalid input")
        assert body["details"]["errors"]

    def test_malformed_id_is_422(self, client) -> None:
        alice = signup(client, "alice")
        response = client.get("/api/teams/not-a-uuid", headers=alice["headers"])
        assert response.status_code == 422

    def test_missing_team_is_404(self, client) -> None:
        alice = signup(client, "alice")
        response = client.get(
            "/api/teams/00000000-0000-0000-0000-000000000000", headers=alice["headers"]
        )
        assert response.status_code == 404
        assert response.json()["error"] == "Team not found"

    def test_denied_is_403(self, client) -> None:
        alice = signup(client, "alice")
        mallory = signup(client, "mallory")
        team = create_team(client, alice)
        response = client.get(f"/api/teams/{team['id']}", headers=mallory["headers"])
        assert response.status_code == 403

    def test_last_admin_is_409(self, client) -> None:
        alice = signup(client, "alice")
        team = create_team(client, alice)
        response = client.patch(
            f"/api/teams/{team['id']}/members/{alice['id']}",
            json={"role": "member"},
            headers=alice["headers"],
        )
        assert response.status_code == 409
        assert response.json()["error"] == "Cannot remove the last admin from the team"

    def test_storage_failure_is_500_with_stable_message(self, client, store) -> None:
        alice = signup(client, "alice")
        store.fail("teams.create", "password=hunter2 host=db.internal")
        response = client.post("/api/teams", json={"name": "Platform"}, headers=alice["headers"])
        assert response.status_code == 500
        assert response.json()["error"] == "Failed to create team"
        assert "hunter2" not in response.text


class TestTeamFlow:
    def test_invite_accept_and_track_okr(self, client) -> None:
        alice = signup(client, "alice")
        bob = signup(client, "bob")
        team = create_team(client, alice)

        invite = client.post(
            f"/api/teams/{team['id']}/invitations",
            json={"email": bob["email"], "role": "member"},
            headers=alice["headers"],
        )
        assert invite.status_code == 201
        duplicate = client.post(
            f"/api/teams/{team['id']}/invitations",
            json={"email": bob["email"]},
            headers=alice["headers"],
        )
        assert duplicate.status_code == 409

        mine = client.get("/api/invitations", headers=bob["headers"]).json()
        assert [i["id"] for i in mine] == [invite.json()["id"]]

        accepted = client.post(
            f"/api/invitations/{invite.json()['id']}/accept", headers=bob["headers"]
        )
        assert accepted.status_code == 200
        assert accepted.json()["role"] == "member"
        again = client.post(f"/api/invitations/{invite.json()['id']}/accept", headers=bob["headers"])
        assert again.status_code == 409

        okr = client.post(
            f"/api/teams/{team['id']}/okrs",
            json={
                "title": "Learn the codebase",
                "type": "personal",
                "quarter": {"year": 2024, "quarter": 2},
                "key_results": [{"title": "Merged PRs", "target_value": 4}],
            },
            headers=bob["headers"],
        )
        assert okr.status_code == 201, okr.text
        key_result_id = okr.json()["key_results"][0]["id"]

        progress = client.put(
            f"/api/key-results/{key_result_id}/progress",
            json={"current_value": 2},
            headers=bob["headers"],
        )
        assert progress.status_code == 200

        fetched = client.get(f"/api/okrs/{okr.json()['id']}", headers=alice["headers"])
        assert fetched.json()["progress"] == 50.0

        review = client.post(
            f"/api/okrs/{okr.json()['id']}/reviews",
            json={"type": "progress", "content": "Halfway"},
            headers=bob["headers"],
        )
        assert review.status_code == 201
        overruled = client.patch(
            f"/api/reviews/{review.json()['id']}",
            json={"content": "Rewritten"},
            headers=alice["headers"],
        )
        assert overruled.status_code == 403

        listed = client.get(f"/api/teams/{team['id']}/okrs", headers=alice["headers"])
        assert listed.json()["count"] == 1

        not_empty = client.delete(f"/api/teams/{team['id']}", headers=alice["headers"])
        assert not_empty.status_code == 409

        removed = client.delete(
            f"/api/teams/{team['id']}/members/{bob['id']}", headers=alice["headers"]
        )
        assert removed.status_code == 204
        assert client.delete(f"/api/teams/{team['id']}", headers=alice["headers"]).status_code == 204


class TestHealthEndpoints:
    def test_live(self, client) -> None:
        assert client.get("/api/live").json() == {"alive": True}

    def test_health_degraded_before_startup(self, client) -> None:
        """Without the lifespan no engine exists and no context is wired."""
        body = client.get("/api/health").json()
        assert body["status"] == "degraded"
        assert body["database"] == "not initialized"
        assert body["services"] is False


class TestEngineOptions:
    def test_sqlite_has_no_pool_sizing(self, settings) -> None:
        assert engine_options(settings) == {"echo": False}

    def test_postgres_pool_sizing(self) -> None:
        pg = Settings(database_url="postgresql://u:p@db/okr", database_pool_size=3)
        assert pg.async_database_url == "postgresql+asyncpg://u:p@db/okr"
        assert engine_options(pg) == {"echo": False, "pool_size": 3, "max_overflow": 10}
