"""
Halapi Python SDK - Streaming Example

Demonstrates streaming a chat reply and reacting to each event type.

Run with HALAPI_URL and HALAPI_TOKEN set.
"""

import asyncio
import sys

from halapi import AsyncHalapi, EventType, env_config
from halapi.errors import HalapiError


async def main():
    async with AsyncHalapi(env_config()) as client:
        # ============================================================
        # Streaming a reply
        # ============================================================
        print("=== Streaming ===\n")

        stream = await client.chat_stream("Recommend a novel about the sea")
        async with stream:
            async for event in stream:
                if event.type is EventType.TEXT_DELTA:
                    sys.stdout.write(event.delta)
                    sys.stdout.flush()
                elif event.type is EventType.TOOL_CALL:
                    print(f"\n[tool: {event.as_tool_call().tool_name}]")
                elif event.type is EventType.ARTIFACTS:
                    artifacts = event.as_artifacts()
                    for book in artifacts.books:
                        print(f"\n- {book.title} by {book.author}")
                    for music in artifacts.music:
                        print(f"\n- ({music.type}) {music.title}")
                elif event.type is EventType.COST:
                    print(f"\n[cost: {event.as_cost().total.with_margin}]")
                elif event.type is EventType.DONE:
                    done = event.as_done()
                    print(f"\n[done in {done.execution_time_ms} ms, {done.total_tokens.total} tokens]")
                elif event.type is EventType.ERROR:
                    print(f"\n[error: {event.as_error().message}]")

        conversation_id = stream.result.conversation_id
        print(f"\nConversation: {conversation_id}\n")

        # ============================================================
        # Continuing the conversation, with a timeout
        # ============================================================
        print("=== Follow-up with cancellation ===\n")

        signal = asyncio.Event()
        asyncio.get_running_loop().call_later(5.0, signal.set)

        stream = await client.chat_stream(
            "And something similar but shorter?",
            conversation_id=conversation_id,
            signal=signal,
        )
        async with stream:
            async for event in stream:
                if event.type is EventType.TEXT_DELTA:
                    sys.stdout.write(event.delta)
                    sys.stdout.flush()

        if stream.interrupted:
            print("\n[Stopped after 5 seconds]")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except HalapiError as e:
        print(f"Request failed: {e.message} (status={e.status_code})")
