from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from core.config import settings
from models.schema import Message
from services.identifiers import snowflake_to_datetime


def is_tail_message(messages: Sequence[Message], index: int) -> bool:
    """Check whether a message closes a visual group in a chat.

    Consecutive messages from the same author are grouped together unless
    they were sent more than MESSAGE_GROUP_WINDOW_MINUTES apart.

    Args:
        messages (Sequence[Message]): Messages of one chat in send order.
        index (int): Position of the message to check.

    Returns:
        bool: True if the next message starts a new group.
    """
    if index >= len(messages) - 1:
        return True

    current = messages[index]
    following = messages[index + 1]
    if following.author != current.author:
        return True

    current_ts = snowflake_to_datetime(current.id)
    following_ts = snowflake_to_datetime(following.id)
    if current_ts is None or following_ts is None:
        return False

    window = timedelta(minutes=settings.MESSAGE_GROUP_WINDOW_MINUTES)
    return following_ts - current_ts > window


def format_message_timestamp(
    created_at: datetime, now: Optional[datetime] = None
) -> str:
    """Format a message time: "HH:MM" today, "MM/DD/YYYY, HH:MM" otherwise."""
    if now is None:
        now = datetime.now(timezone.utc)
    if created_at.tzinfo is not None and now.tzinfo is not None:
        created_at = created_at.astimezone(now.tzinfo)

    if created_at.date() == now.date():
        return created_at.strftime("%H:%M")
    return created_at.strftime("%m/%d/%Y, %H:%M")
