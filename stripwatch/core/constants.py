from __future__ import annotations

from typing import Final

MISSING_CHECKSUM: Final[str] = ""
MISSING_TITLE: Final[str] = "No strip available"

TRIGGER_TICK: Final[str] = "tick"
TRIGGER_MANUAL: Final[str] = "manual"

IMAGE_SUFFIXES: Final[tuple[str, ...]] = (".png", ".gif", ".jpg", ".jpeg", ".webp")
