from __future__ import annotations

import logging
from typing import Iterable

from chat_sync.domain.value_objects.ids import UserId

logger = logging.getLogger(__name__)


class PresenceTracker:
    """Set of online user ids, replaced wholesale on every presence snapshot."""

    def __init__(self) -> None:
        self._online: frozenset[UserId] = frozenset()

    @property
    def online(self) -> frozenset[UserId]:
        return self._online

    def is_online(self, user_id: UserId) -> bool:
        return user_id in self._online

    def replace(self, user_ids: Iterable[UserId]) -> None:
        self._online = frozenset(user_ids)
        logger.debug("Presence updated: %d online", len(self._online))

    def clear(self) -> None:
        self._online = frozenset()
