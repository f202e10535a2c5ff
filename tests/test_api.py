"""Tests for the REST layer backed by an in-memory store."""

from unittest.mock import MagicMock, patch

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

import api.main as api_main
from api.main import app, get_store
from api.models import ArticleCreateRequest
from articles_store import ArticleStore


@pytest.fixture
def client(store: ArticleStore):
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _create(client: TestClient, **overrides) -> dict:
    body = {
        "title": "What is a chatbot?",
        "content": "<p>A chatbot is a program.</p>",
        "url": "https://example.com/blogs/what-is-a-chatbot/",
    }
    body.update(overrides)
    response = client.post("/api/articles", json=body)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["success"] is True


def test_create_and_get_article(client: TestClient) -> None:
    created = _create(client)

    response = client.get(f"/api/articles/{created['id']}")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["title"] == "What is a chatbot?"
    assert data["author"] == "Unknown"
    assert data["isUpdated"] is False
    assert data["metadata"]["wordCount"] == 5


def test_create_validation_errors(client: TestClient) -> None:
    missing = client.post("/api/articles", json={"title": "No content", "url": "https://example.com/x"})
    too_long = client.post("/api/articles", json={"title": "t" * 501, "content": "c", "url": "https://example.com/x"})
    bad_url = client.post("/api/articles", json={"title": "t", "content": "c", "url": "not a url"})

    for response in (missing, too_long, bad_url):
        assert response.status_code == 400
        assert response.json()["success"] is False
        assert response.json()["error"]


def test_enhanced_article_requires_original_id(client: TestClient) -> None:
    response = client.post(
        "/api/articles",
        json={"title": "t", "content": "c", "url": "https://example.com/x-enhanced", "isUpdated": True},
    )

    assert response.status_code == 400


def test_list_filters_and_paginates(client: TestClient) -> None:
    original = _create(client)
    for i in range(2):
        _create(client, title=f"Other {i}", url=f"https://example.com/blogs/other-{i}/")
    _create(
        client,
        title="What is a chatbot? (enhanced)",
        url=original["url"] + "-enhanced",
        isUpdated=True,
        originalArticleId=original["id"],
    )

    originals = client.get("/api/articles", params={"isUpdated": "false", "limit": 2, "page": 1}).json()
    enhanced = client.get("/api/articles", params={"isUpdated": "true"}).json()

    assert originals["success"] is True
    assert (originals["count"], originals["total"], originals["pages"]) == (2, 3, 2)
    assert enhanced["total"] == 1
    assert enhanced["data"][0]["originalArticleId"] == original["id"]


def test_list_rejects_bad_query(client: TestClient) -> None:
    assert client.get("/api/articles", params={"limit": 500}).status_code == 400
    assert client.get("/api/articles", params={"sortBy": "content"}).status_code == 400


def test_update_article(client: TestClient) -> None:
    created = _create(client)

    response = client.put(f"/api/articles/{created['id']}", json={"content": "<p>one two three</p>"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["metadata"]["wordCount"] == 3
    assert data["metadata"]["readingTimeMinutes"] == 1


def test_update_requires_a_field(client: TestClient) -> None:
    created = _create(client)

    response = client.put(f"/api/articles/{created['id']}", json={})

    assert response.status_code == 400


def test_delete_article(client: TestClient) -> None:
    created = _create(client)

    assert client.delete(f"/api/articles/{created['id']}").status_code == 200
    assert client.get(f"/api/articles/{created['id']}").status_code == 404


def test_invalid_and_missing_ids(client: TestClient) -> None:
    invalid = client.get("/api/articles/not-an-id")
    missing = client.get(f"/api/articles/{ObjectId()}")

    assert invalid.status_code == 400
    assert invalid.json() == {"success": False, "error": invalid.json()["error"]}
    assert missing.status_code == 404
    assert client.delete(f"/api/articles/{ObjectId()}").status_code == 404


def test_comparison_from_either_side(client: TestClient) -> None:
    original = _create(client)
    enhanced = _create(
        client,
        content="<h2>Better</h2><p>A chatbot is a helpful program.</p>",
        url=original["url"] + "-enhanced",
        isUpdated=True,
        originalArticleId=original["id"],
    )

    for article_id in (original["id"], enhanced["id"]):
        data = client.get(f"/api/articles/{article_id}/comparison").json()["data"]
        assert data["original"]["id"] == original["id"]
        assert data["enhanced"]["id"] == enhanced["id"]

    detail = client.get(f"/api/articles/{enhanced['id']}").json()["data"]
    assert detail["originalArticle"]["id"] == original["id"]


def test_update_rejects_broken_back_reference(client: TestClient) -> None:
    created = _create(client)

    response = client.put(f"/api/articles/{created['id']}", json={"isUpdated": True})

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert client.get(f"/api/articles/{created['id']}").json()["data"]["isUpdated"] is False


def test_shutdown_closes_lazily_opened_store() -> None:
    store = MagicMock()
    with patch.object(api_main, "_store", store):
        with TestClient(app):
            pass
        assert api_main._store is None
    store.close.assert_called_once()


def test_create_model_publishes_schema_example() -> None:
    schema = ArticleCreateRequest.model_json_schema()

    assert schema["example"]["url"].startswith("https://")
