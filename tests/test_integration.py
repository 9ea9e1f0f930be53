"""
Halapi SDK - Live API Tests

Run against a real deployment with:
    RUN_INTEGRATION=1 HALAPI_URL=... HALAPI_TOKEN=... pytest -m integration
"""

import pytest

from halapi import AsyncHalapi, EventType, env_config


@pytest.mark.integration
@pytest.mark.asyncio
async def test_chat_stream_round_trip():
    async with AsyncHalapi(env_config()) as client:
        stream = await client.chat_stream("Recommend one classic novel", external_user_id="sdk-integration")
        async with stream:
            types = [event.type async for event in stream]

        assert EventType.DONE in types or EventType.ERROR in types
        assert stream.result.conversation_id

        detail = await client.get_conversation(stream.result.conversation_id)
        assert detail.conversation.id == stream.result.conversation_id


@pytest.mark.integration
@pytest.mark.asyncio
async def test_list_conversations():
    async with AsyncHalapi(env_config()) as client:
        response = await client.get_conversations(external_user_id="sdk-integration", limit=1)

    assert response.success
