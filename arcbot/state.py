from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .api import ArcApi
    from .assets import AssetCache
    from .bindings import BindingRegistry
    from .rooms import RoomBoard


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class BindingRecord:
    platform: str
    user_id: str
    external_id: str
    external_name: str


@dataclass(frozen=True)
class RoomEntry:
    source: str
    room_code: str
    description: str
    publisher_id: str
    created_at: datetime

    def age_minutes(self, now: Optional[datetime] = None) -> int:
        """Whole minutes elapsed since publication, never negative."""
        delta = (now or utcnow()) - self.created_at
        return max(0, int(delta.total_seconds() // 60))


@dataclass(frozen=True)
class Caller:
    platform: str
    user_id: str
    display_name: str = ""


@dataclass
class Reply:
    text: Optional[str] = None
    image: Optional[Path] = None
    caption: Optional[str] = None

    @property
    def is_image(self) -> bool:
        return self.image is not None


@dataclass
class BotContext:
    """Handles shared by every command handler, built once at startup."""

    config: Any
    registry: "BindingRegistry"
    board: "RoomBoard"
    assets: "AssetCache"
    api: "ArcApi"
    started_at: datetime = field(default_factory=utcnow)
