from __future__ import annotations

from typing import Callable

# Polled: True while the consuming surface is actively being viewed.
VisibilitySignal = Callable[[], bool]


def always_visible() -> bool:
    return True
