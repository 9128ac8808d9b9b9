"""End-to-end archive flow: log in, browse, analyze a storage file, commit it, read it back."""

import pytest
from httpx import AsyncClient

from docarchive.infrastructure.analysis import Extraction
from docarchive.modules.document.models import DocumentType
from docarchive.modules.entity.models import EntityType
from docarchive.modules.entity.schemas import EntitySpec
from helpers import ADMIN_CREDENTIALS, API, FakeAnalysis, FakeStorage, document_payload

FIELD_REPORT = Extraction(
    title="Situation report, 12 June",
    content="Alice reports the London office has received the dispatches.",
    document_type=DocumentType.REPORT,
    entities=[
        EntitySpec(name="Alice", type=EntityType.PERSON),
        EntitySpec(name="London", type=EntityType.LOCATION),
    ],
)


@pytest.mark.asyncio
async def test_archive_flow(client: AsyncClient, fake_storage: FakeStorage, fake_analysis: FakeAnalysis):
    fake_storage.add("driveFileX", "sitrep.png", "image/png", b"\x89PNG\r\n\x1a\n")
    fake_analysis.extraction = FIELD_REPORT

    login = await client.post(f"{API}/auth/login", json=ADMIN_CREDENTIALS)
    assert login.status_code == 200
    token = login.json()["data"]["token"]
    headers = {"Authorization": f"Bearer {token}"}

    await client.post(f"{API}/documents", json=document_payload(document_type="letter"), headers=headers)
    await client.post(f"{API}/documents", json=document_payload(document_type="map", title="Map"), headers=headers)

    letters = await client.get(f"{API}/documents", params={"documentType": "letter", "page": 1, "limit": 10})
    assert letters.status_code == 200
    assert letters.json()["data"]["total"] == 1
    assert all(d["document_type"] == "letter" for d in letters.json()["data"]["items"])

    analyzed = await client.post(f"{API}/documents/analyze/driveFileX", headers=headers)
    assert analyzed.status_code == 200
    result = analyzed.json()["data"]
    assert result["document_type"] == "report"

    processed = await client.post(f"{API}/documents/process/driveFileX", headers=headers)
    assert processed.status_code == 201
    new_id = processed.json()["data"]["id"]
    assert processed.json()["data"]["document_type"] == result["document_type"]

    fetched = (await client.get(f"{API}/documents/{new_id}")).json()["data"]
    assert fetched["title"] == result["title"]
    assert fetched["content"] == result["content"]
    assert fetched["document_type"] == result["document_type"]
    assert {(e["name"], e["type"]) for e in fetched["entities"]} == {
        (e["name"], e["type"]) for e in result["entities"]
    }
    assert fake_analysis.calls == 1


@pytest.mark.asyncio
async def test_deleted_document_disappears_everywhere(
    client: AsyncClient, fake_storage: FakeStorage, fake_analysis: FakeAnalysis
):
    fake_storage.add("driveFileX", "sitrep.png", "image/png", b"\x89PNG\r\n\x1a\n")
    fake_analysis.extraction = FIELD_REPORT
    login = await client.post(f"{API}/auth/login", json=ADMIN_CREDENTIALS)
    headers = {"Authorization": f"Bearer {login.json()['data']['token']}"}

    document = (await client.post(f"{API}/documents/process/driveFileX", headers=headers)).json()["data"]
    alice = next(e for e in document["entities"] if e["name"] == "Alice")
    assert (await client.get(f"{API}/documents", params={"q": "dispatches"})).json()["data"]["total"] == 1

    await client.delete(f"{API}/documents/{document['id']}", headers=headers)

    assert (await client.get(f"{API}/documents", params={"q": "dispatches"})).json()["data"]["total"] == 0
    assert (await client.get(f"{API}/documents")).json()["data"]["total"] == 0
    entity = await client.get(f"{API}/entities/{alice['id']}")
    assert entity.status_code == 200
    assert entity.json()["data"]["document_count"] == 0
    assert entity.json()["data"]["documents"] == []
