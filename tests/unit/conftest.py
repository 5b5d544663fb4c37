"""Unit test conftest: every external API is mocked."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest


@pytest.fixture
def telegram_client() -> MagicMock:
    client = MagicMock()
    client.send_message = AsyncMock()
    client.send_action = AsyncMock()
    client.send_photo = AsyncMock()
    client.resolve_file_url = AsyncMock(return_value="https://api.telegram.org/file/botTEST/photos/file_1.jpg")
    client.register_webhook = AsyncMock()
    return client


@pytest.fixture
def openai_client() -> MagicMock:
    client = MagicMock()
    client.responses.create = AsyncMock()
    return client


@pytest.fixture
def sheets_client() -> MagicMock:
    client = MagicMock()
    client.get_headers = AsyncMock(return_value=["Timestamp", "Full Name", "Mobile"])
    client.append_row = AsyncMock()
    return client


@pytest.fixture
def ctx(telegram_client: MagicMock, openai_client: MagicMock, sheets_client: MagicMock) -> MagicMock:
    """Stand-in for AppContext handing out the mocked clients."""
    context = MagicMock()
    context.telegram = AsyncMock(return_value=telegram_client)
    context.openai = AsyncMock(return_value=openai_client)
    context.sheets = AsyncMock(return_value=sheets_client)
    context.aclose = AsyncMock()
    return context
