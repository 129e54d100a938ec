from __future__ import annotations

import asyncio

import aiohttp
from typing import Any, Dict

from .config import Config, logger
from .errors import ArcApiError


def build_headers() -> Dict[str, str]:
    return {
        "accept": "application/json",
        "user-agent": Config.ARC_USER_AGENT,
    }


def make_session() -> aiohttp.ClientSession:
    timeout = aiohttp.ClientTimeout(total=Config.ARC_API_TIMEOUT)
    return aiohttp.ClientSession(
        timeout=timeout,
        headers=build_headers(),
        trust_env=True,
    )


async def fetch_json(session: aiohttp.ClientSession, url: str, params: Dict[str, str] | None = None) -> Any:
    logger.debug(f"API request: {url}")
    try:
        async with session.get(url, params=params) as r:
            if r.status != 200:
                txt = await r.text()
                logger.error(f"API error for {url}: {r.status}")
                raise ArcApiError(-r.status, f"HTTP {r.status} for {url} :: {txt[:300]}")
            logger.debug(f"API success: {url}")
            return await r.json(content_type=None)
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        logger.error(f"API request failed for {url}: {e!r}")
        raise ArcApiError(-1, f"Request failed for {url}: {str(e) or type(e).__name__}") from e
