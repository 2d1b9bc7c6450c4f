from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from services.identifiers import generate_identifier
from utils.snowflake import MAX_IDENTIFIER_LENGTH, decode_timestamp, parse_identifier


def _identifier_field(description: str):
    return Field(
        default_factory=generate_identifier,
        description=description,
        pattern=r"^[0-9]+$",
        max_length=MAX_IDENTIFIER_LENGTH,
        examples=["512389598412800000"],
    )


class SnowflakeEntity(BaseModel):
    """Base model for entities keyed by a Snowflake identifier.

    Args:
        id (str): Snowflake identifier, generated on creation when omitted.
    """

    id: str = _identifier_field("Snowflake identifier of the entity")

    @field_validator("id")
    @classmethod
    def validate_id(cls, value: str) -> str:
        """Reject identifiers the decode path would refuse, e.g. above 64 bits."""
        parse_identifier(value)
        return value

    @property
    def created_at(self) -> datetime:
        return decode_timestamp(self.id)


class EditHistoryEntry(BaseModel):
    content: str
    edited_at: datetime


class Message(SnowflakeEntity):
    """A chat message.

    Args:
        author (str): Sender user ID.
        content (str): Message body.
        chat_id (str): Identifier of the chat the message was sent in.
        edited (bool): Whether the message was edited.
        edit_history (list[EditHistoryEntry]): Previous contents, admins only.
        deleted (bool): Whether the message was deleted.
        attachments (list[str]): Attachment IDs.
    """

    author: str = Field(..., description="Sender user ID")
    content: str = Field(..., description="Message body")
    chat_id: str = Field(..., description="Chat the message was sent in")
    edited: bool = False
    edit_history: list[EditHistoryEntry] = Field(default_factory=list)
    deleted: bool = False
    attachments: list[str] = Field(default_factory=list)


class Chat(SnowflakeEntity):
    """A direct or group chat.

    Args:
        is_group (bool): Whether the chat is a group chat.
        name (Optional[str]): Display name for group chats.
        archived (bool): Whether the chat is archived.
    """

    is_group: bool = False
    name: Optional[str] = Field(None, description="Chat name (group chats only)")
    archived: bool = False


class Announcement(SnowflakeEntity):
    """An announcement, optionally directed at subteams or roles.

    Args:
        author (str): Author user ID.
        content (str): Announcement body.
        directed_to_subteams (list[str]): Target subteams, empty for everyone.
        directed_to_roles (list[str]): Target roles, empty for everyone.
        attachments (list[str]): Attachment IDs.
        edited (bool): Whether the announcement was edited.
        deleted (bool): Whether the announcement was deleted.
    """

    author: str = Field(..., description="Author user ID")
    content: str = Field(..., description="Announcement body")
    directed_to_subteams: list[str] = Field(default_factory=list)
    directed_to_roles: list[str] = Field(default_factory=list)
    attachments: list[str] = Field(default_factory=list)
    edited: bool = False
    deleted: bool = False
