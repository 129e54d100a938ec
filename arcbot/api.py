from __future__ import annotations

from typing import Any, Callable, Dict, Optional

import aiohttp

from .config import logger
from .errors import ArcApiError
from .http import fetch_json, make_session


def unwrap(data: Any) -> Dict[str, Any]:
    """Return the ``content`` of a BotArcAPI response or raise ArcApiError."""
    if not isinstance(data, dict) or "status" not in data:
        raise ArcApiError(-1, "Malformed API response")
    status = int(data.get("status", -1))
    if status < 0:
        raise ArcApiError(status, str(data.get("message") or f"API status {status}"))
    return data.get("content") or {}


class ArcApi:
    """Thin BotArcAPI v5 client; opens a session per call like the rest of the bot."""

    def __init__(self, base_url: str, session_factory: Callable[[], aiohttp.ClientSession] = make_session):
        self.base_url = base_url.rstrip("/")
        self._session_factory = session_factory

    async def _get(self, path: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        async with self._session_factory() as session:
            data = await fetch_json(session, f"{self.base_url}{path}", params=params)
        return unwrap(data)

    async def user_info(self, usercode: str, recent: int = 0, with_song_info: bool = False) -> Dict[str, Any]:
        params = {"usercode": usercode}
        if recent:
            params["recent"] = str(recent)
        if with_song_info:
            params["withsonginfo"] = "true"
        return await self._get("/user/info", params)

    async def account_info(self, usercode: str) -> Dict[str, Any]:
        """Account metadata (name, rating, code); used to resolve bindings."""
        content = await self.user_info(usercode)
        account = content.get("account_info")
        if not account:
            raise ArcApiError(-3, f"User {usercode} not found")
        return account

    async def best30(self, usercode: str, overflow: int = 9, with_song_info: bool = True) -> Dict[str, Any]:
        params = {
            "usercode": usercode,
            "withrecent": "false",
            "overflow": str(overflow),
        }
        if with_song_info:
            params["withsonginfo"] = "true"
        logger.debug(f"Fetching best30 for {usercode}")
        return await self._get("/user/best30", params)

    async def connect(self) -> str:
        content = await self._get("/connect")
        return str(content.get("key", ""))
