from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ChannelConnected:
    reconnected: bool = False


@dataclass(frozen=True, slots=True)
class ChannelDisconnected:
    reason: str = ""
