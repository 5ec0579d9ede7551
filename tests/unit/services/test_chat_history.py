from unittest.mock import AsyncMock, MagicMock

import pytest

from guideline_rag.schemas.query import GuidelineSource
from guideline_rag.services.query.chat_history import ChatHistoryRecorder

SOURCES = [
    GuidelineSource(
        carrier_name="Acme Life",
        product_type="Term Life",
        document_type="full_guidelines",
        file_name="acme_term.pdf",
    )
]


@pytest.fixture
def message_repo():
    repo = MagicMock()
    repo.create_message = AsyncMock()
    repo.get_by_chat_id = AsyncMock(return_value=[])
    return repo


class TestChatHistoryRecorder:

    @pytest.mark.asyncio
    async def test_records_both_turns(self, message_repo):
        recorder = ChatHistoryRecorder(message_repo)

        saved = await recorder.record_exchange("s-1", "Q?", "A.", SOURCES)

        assert saved is True
        user_call, assistant_call = message_repo.create_message.call_args_list
        assert user_call.kwargs == {"chat_id": "s-1", "role": "user", "content": "Q?"}
        assert assistant_call.kwargs["role"] == "assistant"
        assert assistant_call.kwargs["sources"] == [SOURCES[0].model_dump(mode="json")]

    @pytest.mark.asyncio
    async def test_user_turn_failure_skips_assistant_turn(self, message_repo):
        message_repo.create_message.side_effect = RuntimeError("connection reset")
        recorder = ChatHistoryRecorder(message_repo)

        saved = await recorder.record_exchange("s-1", "Q?", "A.", SOURCES)

        assert saved is False
        assert message_repo.create_message.await_count == 1

    @pytest.mark.asyncio
    async def test_assistant_turn_failure_is_swallowed(self, message_repo):
        message_repo.create_message.side_effect = [None, RuntimeError("constraint")]
        recorder = ChatHistoryRecorder(message_repo)

        saved = await recorder.record_exchange("s-1", "Q?", "A.", SOURCES)

        assert saved is False
        assert message_repo.create_message.await_count == 2

    @pytest.mark.asyncio
    async def test_history(self, message_repo):
        message_repo.get_by_chat_id.return_value = ("turn-1", "turn-2")
        recorder = ChatHistoryRecorder(message_repo)

        assert await recorder.history("s-1") == ["turn-1", "turn-2"]
        message_repo.get_by_chat_id.assert_awaited_once_with("s-1")
