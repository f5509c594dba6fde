"""Root conftest: points settings at .env.test before chat_sync is imported."""
from __future__ import annotations

import os
from pathlib import Path

_ENV_TEST = Path(__file__).resolve().parent / ".env.test"

if _ENV_TEST.exists():
    for raw in _ENV_TEST.read_text().splitlines():
        key, sep, value = raw.partition("=")
        if sep and not raw.lstrip().startswith("#"):
            os.environ.setdefault(key.strip(), value.strip())
