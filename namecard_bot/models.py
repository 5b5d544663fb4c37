"""Pydantic schemas for inbound Telegram updates and bot responses."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

# -- Telegram update ----------------------------------------------------------


class TelegramUser(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    is_bot: bool | None = None
    first_name: str | None = None
    username: str | None = None


class TelegramChat(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    type: str | None = None


class PhotoSize(BaseModel):
    model_config = ConfigDict(extra="ignore")

    file_id: str
    file_unique_id: str | None = None
    width: int | None = None
    height: int | None = None
    file_size: int | None = None


class TelegramMessage(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    message_id: int | None = None
    chat: TelegramChat | None = None
    from_user: TelegramUser | None = Field(None, alias="from")
    photo: list[PhotoSize] | None = None  # ascending resolution
    caption: str | None = None
    text: str | None = None

    @property
    def chat_id(self) -> int | None:
        """Reply destination: the chat, falling back to the sender."""
        if self.chat is not None:
            return self.chat.id
        if self.from_user is not None:
            return self.from_user.id
        return None


class TelegramUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    update_id: int | None = None
    message: TelegramMessage | None = None


# -- Extraction ---------------------------------------------------------------


class ExtractionResult(BaseModel):
    success: bool
    message: str
    raw_data: dict[str, str] | None = None
    error: str | None = None


class AppendResult(BaseModel):
    success: bool
    error: str | None = None


# -- HTTP routes --------------------------------------------------------------


class SetupWebhookResponse(BaseModel):
    success: bool
    message: str


class StatusResponse(BaseModel):
    status: str
    message: str
    setup: str


class HealthResponse(BaseModel):
    status: str
