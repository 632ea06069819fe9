"""Tests for the single-page app example."""

from perch.testing import TestClient


class TestSpaApp:
    async def test_root_serves_index(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.get("/")
            assert response.status == 200
            assert response.content_type.startswith("text/html")
            assert "Perch SPA" in response.text
            assert response.header("cache-control") == "public, max-age=300"

    async def test_asset(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.get("/app.css")
            assert "text/css" in response.content_type

    async def test_client_route_falls_back_to_index(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.get("/todos/42/edit")
            assert response.status == 200
            assert "Perch SPA" in response.text

    async def test_api_list_and_create(self, example_app) -> None:
        async with TestClient(example_app) as client:
            created = await client.post("/api/todos", json={"title": "Ship it"})
            listing = await client.get("/api/todos")
            assert created.status == 201
            assert created.json()["title"] == "Ship it"
            assert [t["title"] for t in listing.json()] == ["Write docs", "Ship it"]

    async def test_api_missing_todo_is_json_404(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.get("/api/todos/99")
            assert response.status == 404
            assert response.json() == {"error": "No todo 99"}

    async def test_api_rejects_non_json(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.post("/api/todos", form={"title": "x"})
            assert response.status == 400
            assert response.json() == {"error": "Expected a JSON object"}

    async def test_delete_unknown_path_is_404(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.delete("/nothing")
            assert response.status == 404
