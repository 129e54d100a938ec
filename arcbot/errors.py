from __future__ import annotations

from typing import Any, Optional


class ArcBotError(Exception):
    """Base class for user-facing failures of the local state layer."""


class AlreadyBoundError(ArcBotError):
    def __init__(self, record: Optional[Any] = None):
        self.record = record
        super().__init__("Account already bound")


class NotBoundError(ArcBotError):
    def __init__(self, platform: str, user_id: str):
        self.platform = platform
        self.user_id = user_id
        super().__init__(f"No account bound for {platform}:{user_id}")


class ExternalLookupFailedError(ArcBotError):
    def __init__(self, external_id: str, reason: str):
        self.external_id = external_id
        self.reason = reason
        super().__init__(f"Could not resolve account {external_id}: {reason}")


class InvalidRoomCodeError(ArcBotError):
    def __init__(self, source: str, room_code: str):
        self.source = source
        self.room_code = room_code
        super().__init__(f"Invalid room code for {source}: {room_code!r}")


class DuplicateRoomError(ArcBotError):
    def __init__(self, existing: Optional[Any] = None):
        self.existing = existing
        super().__init__("Room already listed")


class RoomNotFoundError(ArcBotError):
    def __init__(self, source: str, room_code: str):
        self.source = source
        self.room_code = room_code
        super().__init__(f"Room {room_code} is not listed for {source}")


class NotRoomOwnerError(ArcBotError):
    def __init__(self, entry: Any):
        self.entry = entry
        super().__init__("Only the publisher can withdraw this room")


class ProductionFailedError(ArcBotError):
    """Raised when an asset producer fails; the cause is chained."""

    def __init__(self, namespace: str, key: str, cause: BaseException):
        self.namespace = namespace
        self.key = key
        self.cause = cause
        super().__init__(f"Could not produce {namespace}/{key}: {cause}")


class StorageUnavailableError(ArcBotError):
    pass


class ArcApiError(Exception):
    """Error returned by BotArcAPI, either a negative status or an HTTP failure."""

    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(message)
