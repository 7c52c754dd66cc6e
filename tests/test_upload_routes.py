"""Route tests for /api/upload and the served blobs."""

from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from app.core.errors import StorageAppError


def test_requires_session(client: TestClient) -> None:
    response = client.post("/api/upload", params={"filename": "a.txt"}, content=b"hi")

    assert response.status_code == 401


def test_filename_is_required(client: TestClient, auth_headers: dict) -> None:
    response = client.post("/api/upload", content=b"hi", headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["error"] == "Filename is required"


def test_body_is_required(client: TestClient, auth_headers: dict) -> None:
    response = client.post("/api/upload", params={"filename": "a.txt"}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["error"] == "File body is required"


def test_traversal_only_filename_is_rejected(client: TestClient, auth_headers: dict) -> None:
    response = client.post(
        "/api/upload", params={"filename": "../.."}, content=b"hi", headers=auth_headers
    )

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_filename"


def test_upload_stores_and_serves_blob(client: TestClient, auth_headers: dict) -> None:
    response = client.post(
        "/api/upload",
        params={"filename": "../notes/ថ្ងៃនេះ.txt"},
        content="សួស្តី".encode(),
        headers={**auth_headers, "Content-Type": "text/plain"},
    )

    assert response.status_code == 200
    blob = response.json()
    assert blob["pathname"].startswith("notes/")
    assert blob["pathname"].endswith(".txt")
    assert blob["contentType"] == "text/plain"
    assert blob["url"].startswith("/uploads/notes/")
    assert blob["downloadUrl"] == f"{blob['url']}?download=1"

    served = client.get(blob["url"])
    assert served.status_code == 200
    assert served.content == "សួស្តី".encode()


def test_storage_failure_is_500(client: TestClient, app, auth_headers: dict) -> None:
    app.state.blob_store.put = AsyncMock(
        side_effect=StorageAppError(code="blob_write_failed", message="disk full")
    )

    response = client.post(
        "/api/upload", params={"filename": "a.txt"}, content=b"hi", headers=auth_headers
    )

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to upload file"}
