"""Entrypoint: python -m chat_sync

Headless runner: logs in as CHAT_USER_ID and logs presence and pushes.
"""
from __future__ import annotations

import asyncio
import logging

from chat_sync.config import settings
from chat_sync.domain.entities.user import UserRef
from chat_sync.domain.value_objects.enums import ChangeTopic
from chat_sync.domain.value_objects.ids import UserId
from chat_sync.infrastructure.http.client import HttpChatApi
from chat_sync.services.chat_engine import ChatEngine

logger = logging.getLogger("chat_sync")


async def run() -> None:
    if not settings.CHAT_USER_ID:
        raise SystemExit("CHAT_USER_ID must be set")
    user = UserRef(
        id=UserId(settings.CHAT_USER_ID),
        display_name=settings.CHAT_USER_NAME or settings.CHAT_USER_ID,
    )

    async with HttpChatApi(
        base_url=settings.API_BASE_URL,
        timeout_seconds=settings.HTTP_TIMEOUT_SECONDS,
    ) as api:
        engine: ChatEngine

        def on_change(topic: ChangeTopic) -> None:
            if topic == ChangeTopic.PRESENCE:
                logger.info("Online: %s", ", ".join(sorted(engine.presence.online)) or "-")
            elif topic == ChangeTopic.MESSAGES and engine.messages:
                last = engine.messages[-1]
                logger.info("[%s] %s: %s", last.created_at.isoformat(), last.sender.display_name, last.text)
            elif topic == ChangeTopic.TYPING:
                logger.info("Peer typing: %s", engine.peer_typing)
            elif topic == ChangeTopic.LOAD_FAILED:
                logger.warning("A snapshot fetch failed; showing previous state")

        engine = ChatEngine.from_settings(api, settings, on_change=on_change)
        conversations = await engine.login(user)
        logger.info("%d conversation(s)", len(conversations))
        for conversation in conversations:
            peer = conversation.other_participant(user.id)
            last = conversation.last_message
            logger.info(
                "  %s with %s: %s",
                conversation.id,
                peer.display_name if peer else "?",
                last.text if last else "No messages yet",
            )
        if conversations:
            await engine.open_conversation(conversations[0])

        try:
            await asyncio.Event().wait()
        finally:
            await engine.logout()


def main() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
