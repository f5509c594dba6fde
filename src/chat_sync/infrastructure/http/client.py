"""REST snapshot client over httpx."""
from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from chat_sync.application.exceptions import TransientNetworkError
from chat_sync.domain.entities.conversation import Conversation
from chat_sync.domain.entities.message import Message
from chat_sync.domain.entities.user import UserRef
from chat_sync.domain.value_objects.ids import ConversationId, UserId
from chat_sync.infrastructure.http.mappers import (
    conversation_to_entity,
    message_to_entity,
    user_to_entity,
)
from chat_sync.infrastructure.http.schemas import (
    ConversationResponse,
    FindOrCreateConversationRequest,
    MessageResponse,
    UserResponse,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class HttpChatApi:
    """Implements application.ports.api.ChatApi.

    Every failure surfaces as TransientNetworkError; no retry happens here.
    """

    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpChatApi":
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        payload: dict[str, Any] | None = None,
    ) -> Any:
        try:
            response = await self._client.request(method, path, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            body_preview = (exc.response.text or "").strip().replace("\n", " ")[:200]
            logger.warning(
                "%s %s failed with HTTP %d: %s", method, path, status_code, body_preview,
            )
            raise TransientNetworkError(
                f"{method} {path} failed with HTTP {status_code}",
                status_code=status_code,
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise TransientNetworkError(f"{method} {path} failed: {exc}") from exc

        try:
            return response.json()
        except ValueError as exc:
            raise TransientNetworkError(f"{method} {path} returned invalid JSON") from exc

    @staticmethod
    def _decode(model: type[T], data: Any, path: str) -> T:
        try:
            return model.model_validate(data)
        except PydanticValidationError as exc:
            raise TransientNetworkError(f"unexpected payload from {path}") from exc

    @staticmethod
    def _decode_list(model: type[T], data: Any, path: str) -> list[T]:
        try:
            return TypeAdapter(list[model]).validate_python(data)  # type: ignore[valid-type]
        except PydanticValidationError as exc:
            raise TransientNetworkError(f"unexpected payload from {path}") from exc

    async def list_conversations(self, user_id: UserId) -> list[Conversation]:
        path = f"/api/conversations/{user_id}"
        data = await self._request("GET", path)
        return [
            conversation_to_entity(c)
            for c in self._decode_list(ConversationResponse, data, path)
        ]

    async def find_or_create_conversation(
        self, sender_id: UserId, receiver_id: UserId
    ) -> Conversation:
        path = "/api/conversations"
        body = FindOrCreateConversationRequest(senderId=sender_id, receiverId=receiver_id)
        data = await self._request("POST", path, payload=body.model_dump())
        return conversation_to_entity(self._decode(ConversationResponse, data, path))

    async def list_messages(self, conversation_id: ConversationId) -> list[Message]:
        path = f"/api/messages/{conversation_id}"
        data = await self._request("GET", path)
        return [message_to_entity(m) for m in self._decode_list(MessageResponse, data, path)]

    async def list_users(self, excluding_user_id: UserId) -> list[UserRef]:
        path = f"/api/users/{excluding_user_id}"
        data = await self._request("GET", path)
        return [user_to_entity(u) for u in self._decode_list(UserResponse, data, path)]
