"""Binding registry: one Arcaea account per chat identity."""
from __future__ import annotations

import sqlite3
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from .config import logger
from .errors import (
    AlreadyBoundError,
    ExternalLookupFailedError,
    NotBoundError,
    StorageUnavailableError,
)
from .state import BindingRecord
from .storage import transaction

# external_id -> account info dict with at least a "name" key
AccountResolver = Callable[[str], Awaitable[Dict[str, Any]]]


def _row_to_record(row: sqlite3.Row) -> BindingRecord:
    return BindingRecord(
        platform=row["platform"],
        user_id=row["user_id"],
        external_id=row["external_id"],
        external_name=row["external_name"],
    )


class BindingRegistry:
    def __init__(self, con: sqlite3.Connection, resolve_account: AccountResolver):
        self._con = con
        self._resolve_account = resolve_account

    def lookup(self, platform: str, user_id: str) -> Optional[BindingRecord]:
        try:
            row = self._con.execute(
                "SELECT platform, user_id, external_id, external_name FROM bindings "
                "WHERE platform = ? AND user_id = ?",
                (platform, user_id),
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageUnavailableError(f"Database unavailable: {e}") from e
        return _row_to_record(row) if row else None

    def require(self, platform: str, user_id: str) -> BindingRecord:
        record = self.lookup(platform, user_id)
        if record is None:
            raise NotBoundError(platform, user_id)
        return record

    async def bind(self, platform: str, user_id: str, external_id: str) -> BindingRecord:
        record, _ = await self.bind_account(platform, user_id, external_id)
        return record

    async def bind_account(self, platform: str, user_id: str, external_id: str) -> Tuple[BindingRecord, Dict[str, Any]]:
        """Bind and also return the account info fetched for the name."""
        existing = self.lookup(platform, user_id)
        if existing is not None:
            raise AlreadyBoundError(existing)

        # Other handlers may run while we wait on the remote lookup; the
        # UNIQUE(platform, user_id) constraint settles any race below.
        try:
            account = await self._resolve_account(external_id)
        except Exception as e:
            logger.warning(f"Account lookup failed for {external_id}: {e}")
            raise ExternalLookupFailedError(external_id, str(e)) from e

        name = (account or {}).get("name")
        if not name:
            raise ExternalLookupFailedError(external_id, "account has no name")

        record = BindingRecord(platform, user_id, external_id, name)
        try:
            with transaction(self._con) as con:
                con.execute(
                    "INSERT INTO bindings (platform, user_id, external_id, external_name) "
                    "VALUES (?, ?, ?, ?)",
                    (record.platform, record.user_id, record.external_id, record.external_name),
                )
        except sqlite3.IntegrityError as e:
            logger.info(f"Concurrent bind rejected for {platform}:{user_id}")
            raise AlreadyBoundError(self.lookup(platform, user_id)) from e

        logger.info(f"Bound {platform}:{user_id} to account {name} [{external_id}]")
        return record, account

    def unbind(self, platform: str, user_id: str) -> BindingRecord:
        record = self.lookup(platform, user_id)
        if record is None:
            raise NotBoundError(platform, user_id)
        with transaction(self._con) as con:
            cur = con.execute(
                "DELETE FROM bindings WHERE platform = ? AND user_id = ?",
                (platform, user_id),
            )
        if cur.rowcount == 0:
            raise NotBoundError(platform, user_id)
        logger.info(f"Unbound {platform}:{user_id} from account {record.external_name}")
        return record
