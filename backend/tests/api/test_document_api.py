"""API tests for document endpoints."""

from typing import Any, Dict

import pytest
from httpx import AsyncClient

from helpers import API, document_payload


async def create(client: AsyncClient, headers: Dict[str, str], **overrides: Any) -> Dict[str, Any]:
    response = await client.post(f"{API}/documents", json=document_payload(**overrides), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestDocumentAPI:
    """API tests for archive reads and writes."""

    @pytest.mark.asyncio
    async def test_create_document_success(self, client: AsyncClient, auth_headers: Dict[str, str]):
        response = await client.post(f"{API}/documents", json=document_payload(), headers=auth_headers)

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Document created"
        data = body["data"]
        assert data["title"] == "War Diary, June 1944"
        assert data["document_type"] == "diary_entry"
        assert {e["name"] for e in data["entities"]} == {"Caen", "2nd Battalion"}
        assert "id" in data
        assert "created_at" in data

    @pytest.mark.asyncio
    async def test_create_document_requires_auth(self, client: AsyncClient):
        response = await client.post(f"{API}/documents", json=document_payload())

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_create_document_validation_errors(self, client: AsyncClient, auth_headers: Dict[str, str]):
        missing_title = document_payload()
        del missing_title["title"]

        response = await client.post(f"{API}/documents", json=missing_title, headers=auth_headers)
        assert response.status_code == 422
        assert response.json()["details"][0]["field"] == "title"

        response = await client.post(
            f"{API}/documents", json=document_payload(document_type="postcard"), headers=auth_headers
        )
        assert response.status_code == 422

        response = await client.post(
            f"{API}/documents",
            json=document_payload(entities=[{"name": "X", "type": "city"}]),
            headers=auth_headers,
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_get_document(self, client: AsyncClient, auth_headers: Dict[str, str]):
        created = await create(client, auth_headers)

        response = await client.get(f"{API}/documents/{created['id']}")

        assert response.status_code == 200
        assert response.json()["data"] == created

    @pytest.mark.asyncio
    async def test_get_document_not_found(self, client: AsyncClient):
        response = await client.get(f"{API}/documents/99999")

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Document not found"
        assert body["statusCode"] == 404

    @pytest.mark.asyncio
    async def test_list_documents_empty(self, client: AsyncClient):
        response = await client.get(f"{API}/documents")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data == {"items": [], "total": 0, "page": 1, "limit": 10, "total_pages": 0}

    @pytest.mark.asyncio
    async def test_list_documents_with_filters(self, client: AsyncClient, auth_headers: Dict[str, str]):
        await create(client, auth_headers, title="Orders for Caen", document_type="report")
        await create(client, auth_headers, title="Letter home", document_type="letter", entities=[])

        reports = await client.get(f"{API}/documents", params={"documentType": "report"})
        by_entity = await client.get(f"{API}/documents", params={"entity": "battalion"})
        by_title = await client.get(f"{API}/documents", params={"sortBy": "title", "sortOrder": "asc"})

        assert [d["title"] for d in reports.json()["data"]["items"]] == ["Orders for Caen"]
        assert [d["title"] for d in by_entity.json()["data"]["items"]] == ["Orders for Caen"]
        assert [d["title"] for d in by_title.json()["data"]["items"]] == ["Letter home", "Orders for Caen"]

    @pytest.mark.asyncio
    async def test_list_documents_search_ignores_filters(self, client: AsyncClient, auth_headers: Dict[str, str]):
        await create(client, auth_headers, title="Orders for Caen", document_type="report")

        response = await client.get(f"{API}/documents", params={"q": "caen", "documentType": "letter"})

        assert response.json()["data"]["total"] == 1

    @pytest.mark.asyncio
    async def test_single_character_query_lists(self, client: AsyncClient, auth_headers: Dict[str, str]):
        await create(client, auth_headers)

        response = await client.get(f"{API}/documents", params={"q": "x"})

        assert response.status_code == 200
        assert response.json()["data"]["total"] == 1

    @pytest.mark.asyncio
    async def test_invalid_date_range(self, client: AsyncClient):
        response = await client.get(f"{API}/documents", params={"startDate": "1945-01-01", "endDate": "1944-01-01"})

        assert response.status_code == 422
        assert response.json()["error"] == "Invalid document filters"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("params", [{"page": 0}, {"limit": 0}, {"limit": 101}])
    async def test_invalid_pagination(self, client: AsyncClient, params: Dict[str, int]):
        response = await client.get(f"{API}/documents", params=params)

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_search_documents(self, client: AsyncClient, auth_headers: Dict[str, str]):
        await create(client, auth_headers)

        found = await client.get(f"{API}/documents/search", params={"q": "shelling"})
        too_short = await client.get(f"{API}/documents/search", params={"q": " a "})

        assert found.json()["data"]["total"] == 1
        assert too_short.status_code == 422

    @pytest.mark.asyncio
    async def test_pagination_metadata(self, client: AsyncClient, auth_headers: Dict[str, str]):
        for index in range(3):
            await create(client, auth_headers, title=f"Diary page {index}")

        response = await client.get(f"{API}/documents", params={"page": 2, "limit": 2})

        data = response.json()["data"]
        assert data["total"] == 3
        assert data["total_pages"] == 2
        assert len(data["items"]) == 1

    @pytest.mark.asyncio
    async def test_update_document(self, client: AsyncClient, auth_headers: Dict[str, str]):
        created = await create(client, auth_headers)

        response = await client.put(
            f"{API}/documents/{created['id']}",
            json={"title": "Corrected title", "entities": [{"name": "Bayeux", "type": "location"}]},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["title"] == "Corrected title"
        assert [e["name"] for e in data["entities"]] == ["Bayeux"]

        fetched = await client.get(f"{API}/documents/{created['id']}")
        assert fetched.json()["data"]["title"] == "Corrected title"

    @pytest.mark.asyncio
    async def test_update_requires_auth(self, client: AsyncClient, auth_headers: Dict[str, str]):
        created = await create(client, auth_headers)

        response = await client.put(f"{API}/documents/{created['id']}", json={"title": "x"})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_delete_document(self, client: AsyncClient, auth_headers: Dict[str, str]):
        created = await create(client, auth_headers)

        response = await client.delete(f"{API}/documents/{created['id']}", headers=auth_headers)
        assert response.status_code == 200

        assert (await client.get(f"{API}/documents/{created['id']}")).status_code == 404
        assert (await client.delete(f"{API}/documents/{created['id']}", headers=auth_headers)).status_code == 404

        entities = await client.get(f"{API}/entities", params={"keyword": "Caen"})
        assert entities.json()["data"]["items"][0]["document_count"] == 0

    @pytest.mark.asyncio
    async def test_stats(self, client: AsyncClient, auth_headers: Dict[str, str]):
        await create(client, auth_headers)
        await create(client, auth_headers, title="Letter", document_type="letter")

        response = await client.get(f"{API}/documents/stats", params={"recent": 1})

        data = response.json()["data"]
        assert data["total_documents"] == 2
        assert data["counts_by_type"]["letter"] == 1
        assert data["counts_by_type"]["diary_entry"] == 1
        assert len(data["recent_documents"]) == 1

    @pytest.mark.asyncio
    async def test_stats_reflect_writes_immediately(self, client: AsyncClient, auth_headers: Dict[str, str]):
        """Cached statistics are dropped by a write through the API."""
        before = await client.get(f"{API}/documents/stats")
        assert before.json()["data"]["total_documents"] == 0

        await create(client, auth_headers)

        after = await client.get(f"{API}/documents/stats")
        assert after.json()["data"]["total_documents"] == 1

    @pytest.mark.asyncio
    async def test_documents_by_entity(self, client: AsyncClient, auth_headers: Dict[str, str]):
        created = await create(client, auth_headers)
        entity_id = created["entities"][0]["id"]

        response = await client.get(f"{API}/documents/entity/{entity_id}")
        missing = await client.get(f"{API}/documents/entity/99999")

        assert [d["id"] for d in response.json()["data"]["items"]] == [created["id"]]
        assert missing.status_code == 404
