"""
Halapi Python SDK - History Example

Demonstrates listing conversations and fetching stored artifacts.
"""

import asyncio

from halapi import AsyncHalapi, env_config
from halapi.errors import HalapiError, InvalidRequestError


async def main():
    async with AsyncHalapi(env_config()) as client:
        listing = await client.get_conversations(limit=5)
        print(f"{len(listing.conversations)} conversations")

        for conversation in listing.conversations:
            detail = await client.get_conversation(conversation.id)
            print(f"\n=== {conversation.id} ({conversation.message_count} messages) ===")

            for message in detail.messages:
                print(f"{message.role}: {message.content[:80]}")
                if message.role != "assistant":
                    continue

                books = await client.get_book_artifacts(message.id)
                music = await client.get_music_artifacts(message.id)
                print(f"  {len(books.books)} books, {len(music.music)} music items")

                isbns = [book.isbn for book in books.books if book.isbn]
                try:
                    presentations = await client.get_book_presentations(isbns)
                    print(f"  presentations: {presentations.data}")
                except InvalidRequestError as e:
                    print(f"  skipped presentations: {e.message}")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except HalapiError as e:
        print(f"Request failed: {e.message} (status={e.status_code})")
