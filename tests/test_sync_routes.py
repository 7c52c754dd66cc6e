"""Route tests for /api/sync (offline pull and push)."""

from fastapi.testclient import TestClient

from app.adapters.repository.in_memory import InMemoryRepository
from app.schemas.user import User

FUTURE = "2030-01-01T00:00:00Z"
PAST = "2020-01-01T00:00:00Z"


def _create_project(client: TestClient, headers: dict, title: str = "កំណត់ត្រា") -> dict:
    response = client.post("/api/projects", json={"title": title}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def _push(client: TestClient, headers: dict, projects: list[dict]) -> dict:
    response = client.post("/api/sync", json={"projects": projects}, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


class TestPullChanges:
    def test_requires_session(self, client: TestClient) -> None:
        assert client.get("/api/sync").status_code == 401

    def test_returns_all_projects_with_children(self, client: TestClient, auth_headers: dict) -> None:
        project = _create_project(client, auth_headers)
        client.post("/api/tasks", json={"text": "Draft", "projectId": project["id"]}, headers=auth_headers)

        body = client.get("/api/sync", headers=auth_headers).json()

        assert [p["id"] for p in body["projects"]] == [project["id"]]
        assert [t["text"] for t in body["projects"][0]["tasks"]] == ["Draft"]
        assert body["syncedAt"]
        assert "results" not in body

    def test_since_filters_by_update_time(self, client: TestClient, auth_headers: dict) -> None:
        _create_project(client, auth_headers, title="Old")
        newer = _create_project(client, auth_headers, title="New")

        response = client.get("/api/sync", params={"since": newer["updatedAt"]}, headers=auth_headers)

        assert response.status_code == 200
        assert [p["title"] for p in response.json()["projects"]] == ["New"]

    def test_invalid_since_is_rejected(self, client: TestClient, auth_headers: dict) -> None:
        response = client.get("/api/sync", params={"since": "yesterday"}, headers=auth_headers)

        assert response.status_code == 400

    def test_only_own_projects(self, client: TestClient, auth_headers: dict, other_auth_headers: dict) -> None:
        _create_project(client, other_auth_headers)

        assert client.get("/api/sync", headers=auth_headers).json()["projects"] == []


class TestPushChanges:
    def test_empty_push_returns_current_projects(self, client: TestClient, auth_headers: dict) -> None:
        project = _create_project(client, auth_headers)

        body = _push(client, auth_headers, [])

        assert [p["id"] for p in body["projects"]] == [project["id"]]
        assert body["results"] == {"created": [], "updated": [], "deleted": []}

    def test_temporary_project_is_created_with_children(
        self, client: TestClient, auth_headers: dict, user: User
    ) -> None:
        body = _push(
            client,
            auth_headers,
            [
                {
                    "id": "temp-1700000000000",
                    "title": "Offline page",
                    "updatedAt": FUTURE,
                    "tasks": [
                        {"id": "temp-a", "text": "Keep"},
                        {"id": "temp-b", "text": "Dropped", "_deleted": True},
                    ],
                    "kanbanCards": [{"id": "temp-c", "text": "Card", "column": "DONE"}],
                }
            ],
        )

        [created_id] = body["results"]["created"]
        [project] = body["projects"]
        assert project["id"] == created_id
        assert project["title"] == "Offline page"
        assert project["userId"] == user.id
        assert [t["text"] for t in project["tasks"]] == ["Keep"]
        assert [(c["text"], c["column"]) for c in project["kanbanCards"]] == [("Card", "DONE")]

    def test_new_flag_creates_even_without_temp_prefix(self, client: TestClient, auth_headers: dict) -> None:
        body = _push(
            client,
            auth_headers,
            [{"id": "local-1", "title": "Fresh", "updatedAt": FUTURE, "_isNew": True}],
        )

        assert len(body["results"]["created"]) == 1
        assert body["results"]["created"][0] != "local-1"

    def test_newer_client_copy_wins(self, client: TestClient, auth_headers: dict) -> None:
        project = _create_project(client, auth_headers)
        task = client.post(
            "/api/tasks", json={"text": "Old task", "projectId": project["id"]}, headers=auth_headers
        ).json()
        card = client.post(
            "/api/kanban", json={"text": "Card", "projectId": project["id"]}, headers=auth_headers
        ).json()

        body = _push(
            client,
            auth_headers,
            [
                {
                    "id": project["id"],
                    "title": "Renamed offline",
                    "isFavorite": True,
                    "updatedAt": FUTURE,
                    "tasks": [
                        {"id": task["id"], "text": "Old task", "_deleted": True},
                        {"id": "temp-new", "text": "New task", "order": 1},
                    ],
                    "kanbanCards": [{"id": card["id"], "text": "Card", "column": "PROGRESS"}],
                }
            ],
        )

        assert body["results"]["updated"] == [project["id"]]
        [synced] = body["projects"]
        assert synced["title"] == "Renamed offline"
        assert synced["isFavorite"] is True
        assert [t["text"] for t in synced["tasks"]] == ["New task"]
        assert synced["kanbanCards"][0]["column"] == "PROGRESS"

    def test_stale_client_copy_is_ignored(self, client: TestClient, auth_headers: dict) -> None:
        project = _create_project(client, auth_headers, title="Server title")

        body = _push(
            client,
            auth_headers,
            [{"id": project["id"], "title": "Stale title", "updatedAt": PAST}],
        )

        assert body["results"]["updated"] == []
        assert body["projects"][0]["title"] == "Server title"

    def test_deletes_own_project_only(
        self, client: TestClient, auth_headers: dict, other_auth_headers: dict
    ) -> None:
        mine = _create_project(client, auth_headers)
        theirs = _create_project(client, other_auth_headers)

        body = _push(
            client,
            auth_headers,
            [
                {"id": mine["id"], "title": "x", "updatedAt": FUTURE, "_deleted": True},
                {"id": theirs["id"], "title": "x", "updatedAt": FUTURE, "_deleted": True},
            ],
        )

        assert body["results"]["deleted"] == [mine["id"]]
        assert body["projects"] == []
        assert client.get(f"/api/projects/{theirs['id']}", headers=other_auth_headers).status_code == 200

    def test_foreign_project_is_not_updated(
        self,
        client: TestClient,
        auth_headers: dict,
        other_auth_headers: dict,
        repository: InMemoryRepository,
    ) -> None:
        theirs = _create_project(client, other_auth_headers, title="Theirs")

        body = _push(client, auth_headers, [{"id": theirs["id"], "title": "Hijacked", "updatedAt": FUTURE}])

        assert body["results"]["updated"] == []
        assert repository.get_project(theirs["id"]).title == "Theirs"

    def test_push_refreshes_cached_project_list(self, client: TestClient, auth_headers: dict) -> None:
        project = _create_project(client, auth_headers)
        assert client.get("/api/projects", headers=auth_headers).json()[0]["title"] == "កំណត់ត្រា"

        _push(client, auth_headers, [{"id": project["id"], "title": "Synced", "updatedAt": FUTURE}])

        assert client.get("/api/projects", headers=auth_headers).json()[0]["title"] == "Synced"

    def test_updated_at_is_required(self, client: TestClient, auth_headers: dict) -> None:
        response = client.post(
            "/api/sync",
            json={"projects": [{"id": "temp-1", "title": "No timestamp"}]},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert "error" in response.json()

    def test_push_uses_heavy_budget(self, client: TestClient, auth_headers: dict) -> None:
        statuses = [
            client.post("/api/sync", json={"projects": []}, headers=auth_headers).status_code
            for _ in range(11)
        ]

        assert statuses[:10] == [200] * 10
        assert statuses[10] == 429
