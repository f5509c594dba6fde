"""Single ingress for inbound channel events."""
from __future__ import annotations

import logging
from typing import Any, Callable, TypeVar

from chat_sync.domain.events.inbound import CONVERSATION_SCOPED, InboundEvent
from chat_sync.domain.value_objects.ids import ConversationId

logger = logging.getLogger(__name__)

E = TypeVar("E")
Handler = Callable[[Any], None]


class Subscriptions:
    """One generation of handlers bound to a single open conversation.

    A generation is dropped as a whole when the open conversation changes,
    so a late event for the previous conversation has nowhere to land.
    """

    def __init__(self, conversation_id: ConversationId) -> None:
        self.conversation_id = conversation_id
        self.active = True
        self._handlers: dict[type, list[Handler]] = {}

    def on(self, event_type: type[E], handler: Callable[[E], None]) -> None:
        if not self.active:
            raise RuntimeError(f"subscriptions for {self.conversation_id} were dropped")
        self._handlers.setdefault(event_type, []).append(handler)

    def handlers_for(self, event_type: type) -> list[Handler]:
        return list(self._handlers.get(event_type, ()))

    def drop(self) -> None:
        self.active = False
        self._handlers.clear()


class EventRouter:
    """Fans inbound events out to session-wide and per-conversation handlers.

    Dispatch is synchronous; handlers schedule async work instead of awaiting
    it so that later events are never reordered behind a suspension.
    """

    def __init__(self) -> None:
        self._session_handlers: dict[type, list[Handler]] = {}
        self._generation: Subscriptions | None = None

    @property
    def generation(self) -> Subscriptions | None:
        return self._generation

    def on(self, event_type: type[E], handler: Callable[[E], None]) -> None:
        """Register a handler that lives for the whole session."""
        self._session_handlers.setdefault(event_type, []).append(handler)

    def begin_generation(self, conversation_id: ConversationId) -> Subscriptions:
        self.end_generation()
        self._generation = Subscriptions(conversation_id)
        return self._generation

    def end_generation(self) -> None:
        if self._generation is not None:
            self._generation.drop()
            self._generation = None

    def clear(self) -> None:
        self.end_generation()
        self._session_handlers.clear()

    def dispatch(self, event: InboundEvent) -> None:
        event_type = type(event)
        for handler in list(self._session_handlers.get(event_type, ())):
            self._call(handler, event)

        if not isinstance(event, CONVERSATION_SCOPED):
            return

        generation = self._generation
        if generation is None:
            logger.debug("Dropping %s: no open conversation", event_type.__name__)
            return
        # Untagged pushes are attributed to the open conversation; the room of a
        # previous conversation is never left on the wire, and userTyping carries
        # no sender to check against.
        conversation_id = event.conversation_id
        if conversation_id is not None and conversation_id != generation.conversation_id:
            logger.debug(
                "Dropping stale %s for %s (open: %s)",
                event_type.__name__, conversation_id, generation.conversation_id,
            )
            return
        for handler in generation.handlers_for(event_type):
            if not generation.active:
                break
            self._call(handler, event)

    @staticmethod
    def _call(handler: Handler, event: InboundEvent) -> None:
        try:
            handler(event)
        except Exception:
            logger.exception("Error processing %s event", type(event).__name__)
