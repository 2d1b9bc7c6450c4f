from datetime import datetime, timedelta, timezone

from models.schema import Message
from services import messages as messages_service
from services.messages import format_message_timestamp, is_tail_message
from utils.snowflake import compose

BASE_MS = 1700000000000
MINUTE_MS = 60 * 1000


def make_message(author: str, offset_minutes: int, sequence: int = 0) -> Message:
    return Message(
        id=compose(BASE_MS + offset_minutes * MINUTE_MS, sequence=sequence),
        author=author,
        content="hi",
        chat_id="1",
    )


class TestIsTailMessage:
    def test_last_message_is_tail(self):
        chat = [make_message("alice", 0), make_message("alice", 1)]

        assert is_tail_message(chat, 1) is True

    def test_author_change_is_tail(self):
        chat = [make_message("alice", 0), make_message("bob", 0, sequence=1)]

        assert is_tail_message(chat, 0) is True

    def test_same_author_within_window_is_grouped(self):
        chat = [make_message("alice", 0), make_message("alice", 60)]

        assert is_tail_message(chat, 0) is False

    def test_same_author_after_window_is_tail(self):
        chat = [make_message("alice", 0), make_message("alice", 61)]

        assert is_tail_message(chat, 0) is True

    def test_window_comes_from_settings(self, monkeypatch):
        monkeypatch.setattr(
            messages_service.settings, "MESSAGE_GROUP_WINDOW_MINUTES", 5
        )
        chat = [make_message("alice", 0), make_message("alice", 6)]

        assert is_tail_message(chat, 0) is True

    def test_undecodable_id_falls_back_to_author(self):
        chat = [
            Message.model_construct(id="bad", author="alice", content="", chat_id="1"),
            make_message("alice", 600),
        ]

        assert is_tail_message(chat, 0) is False


class TestFormatMessageTimestamp:
    NOW = datetime(2024, 3, 5, 18, 30, tzinfo=timezone.utc)

    def test_same_day_shows_time(self):
        created_at = self.NOW - timedelta(hours=2, minutes=5)

        assert format_message_timestamp(created_at, now=self.NOW) == "16:25"

    def test_other_day_shows_date_and_time(self):
        created_at = datetime(2024, 3, 4, 9, 7, tzinfo=timezone.utc)

        assert format_message_timestamp(created_at, now=self.NOW) == "03/04/2024, 09:07"

    def test_defaults_to_current_time(self):
        created_at = datetime.now(timezone.utc) - timedelta(days=400)

        assert "," in format_message_timestamp(created_at)
