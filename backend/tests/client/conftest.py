"""Fixtures for the client SDK tests."""

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from docarchive.client import ArchiveClient
from docarchive.interfaces.main import app
from helpers import API


@pytest_asyncio.fixture
async def archive_client(client: AsyncClient):
    """SDK client talking to the app in-process, with the same overrides as ``client``."""
    async with ArchiveClient(f"http://test{API}", transport=ASGITransport(app=app)) as archive:
        yield archive
