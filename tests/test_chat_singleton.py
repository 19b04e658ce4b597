# Tests for the chat manager singleton and its teardown
# Created: 2026-10-12

import json

import pytest

from portalchat.chat.manager import get_chat_manager, reset_chat_manager
from portalchat.config import get_settings


@pytest.fixture(autouse=True)
def config_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("PORTALCHAT_CONFIG_DIR", str(tmp_path))
    get_settings.cache_clear()
    reset_chat_manager()
    yield tmp_path
    reset_chat_manager()
    get_settings.cache_clear()


class TestChatManagerSingleton:
    def test_singleton_uses_file_storage(self, config_dir):
        manager = get_chat_manager()
        assert get_chat_manager() is manager
        assert (config_dir / "storage").is_dir()

    def test_reset_gives_fresh_instance(self):
        first = get_chat_manager()
        reset_chat_manager()
        assert get_chat_manager() is not first

    def test_reset_without_instance_is_noop(self):
        reset_chat_manager()
        reset_chat_manager()

    @pytest.mark.asyncio
    async def test_reset_stops_reply_and_keeps_history(self, config_dir):
        manager = get_chat_manager()
        manager.thinking_delay = 0
        manager.send_user_message("Exam timetable?")
        assert manager.is_streaming

        reset_chat_manager()

        assert not manager.is_streaming
        stored = json.loads((config_dir / "storage" / "chat_history.json").read_text())
        assert stored["sessions"][0]["title"] == "Exam timetable?"
