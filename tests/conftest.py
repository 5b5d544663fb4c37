"""Shared test fixtures for the namecard-bot test suite."""

from __future__ import annotations

import pytest


@pytest.fixture
def chat_id() -> int:
    return 424242


@pytest.fixture
def user_id() -> int:
    return 777


@pytest.fixture
def photo_update(chat_id: int, user_id: int) -> dict:
    """A Telegram update carrying two photo sizes and a caption."""
    return {
        "update_id": 1001,
        "message": {
            "message_id": 5,
            "chat": {"id": chat_id, "type": "private"},
            "from": {"id": user_id, "is_bot": False, "first_name": "Wei"},
            "photo": [
                {"file_id": "small-id", "file_unique_id": "s", "width": 90, "height": 60},
                {"file_id": "large-id", "file_unique_id": "l", "width": 1280, "height": 853},
            ],
            "caption": "Met at the expo",
        },
    }


@pytest.fixture
def text_update(chat_id: int, user_id: int) -> dict:
    return {
        "update_id": 1002,
        "message": {
            "message_id": 6,
            "chat": {"id": chat_id, "type": "private"},
            "from": {"id": user_id, "is_bot": False},
            "text": "hello",
        },
    }
