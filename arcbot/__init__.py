"""Arcaea helper bot package.

Modules:
- config: environment, logging and constants
- errors: failure kinds surfaced to command handlers
- state: records and the shared BotContext
- storage: sqlite schema and transactions
- bindings: chat identity -> Arcaea account registry
- rooms: shared Link Play room board
- assets: rendered image cache and scratch files
- http / api: BotArcAPI client
- charts: score image rendering
- formatting: message building utilities
- commands: command handlers and telegram adapters
- app: application bootstrap and wiring
"""

from .config import Config, VERSION
from .errors import (
    ArcBotError,
    ArcApiError,
    AlreadyBoundError,
    NotBoundError,
    ExternalLookupFailedError,
    InvalidRoomCodeError,
    DuplicateRoomError,
    RoomNotFoundError,
    NotRoomOwnerError,
    ProductionFailedError,
    StorageUnavailableError,
)
from .state import BindingRecord, RoomEntry, Caller, Reply, BotContext
from .storage import open_database
from .bindings import BindingRegistry
from .rooms import RoomBoard, ROOM_CODE_FORMATS
from .assets import AssetCache
from .http import make_session, fetch_json, build_headers
from .api import ArcApi
from .app import main, build_context, startup_health_check

__all__ = [
    "Config", "VERSION",
    "ArcBotError", "ArcApiError", "AlreadyBoundError", "NotBoundError", "ExternalLookupFailedError",
    "InvalidRoomCodeError", "DuplicateRoomError", "RoomNotFoundError", "NotRoomOwnerError",
    "ProductionFailedError", "StorageUnavailableError",
    "BindingRecord", "RoomEntry", "Caller", "Reply", "BotContext",
    "open_database", "BindingRegistry", "RoomBoard", "ROOM_CODE_FORMATS", "AssetCache",
    "make_session", "fetch_json", "build_headers", "ArcApi",
    "main", "build_context", "startup_health_check",
]
