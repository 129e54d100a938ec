from __future__ import annotations

import hashlib
import json
import platform
import sys
from datetime import datetime
from typing import Any, List

from .state import RoomEntry, utcnow

BIND_HINT = "请使用 /bind &lt;你的ArcaeaID&gt; 绑定你的账号"


def _escape_html(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def format_ptt(rating: Any) -> str:
    """Ratings come as integers scaled by 100; negative means hidden."""
    try:
        value = int(rating)
    except (TypeError, ValueError):
        return "?"
    if value < 0:
        return "?"
    return f"{value / 100:.2f}"


def format_score(score: Any) -> str:
    s = f"{int(score or 0):08d}"
    return f"{s[:-6]}'{s[-6:-3]}'{s[-3:]}"


def hash_payload(payload: Any) -> str:
    if not isinstance(payload, str):
        payload = json.dumps(payload, sort_keys=True, ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def fmt_room_list(entries: List[RoomEntry], now: datetime | None = None) -> str:
    now = now or utcnow()
    lines = ["找到的车车："]
    for entry in entries:
        desc = f" {_escape_html(entry.description)}" if entry.description else ""
        lines.append(f"<code>{_escape_html(entry.room_code)}</code>{desc} {entry.age_minutes(now)}分钟前")
    return "\n".join(lines)


def format_uptime(seconds: float) -> str:
    seconds = int(seconds)
    minutes, secs = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    days, hours = divmod(hours, 24)
    out = ""
    if days:
        out += f"{days}d"
    if days or hours:
        out += f"{hours}h"
    if days or hours or minutes:
        out += f"{minutes}m"
    return out + f"{secs}s"


def fmt_status(started_at: datetime, version: str, feedback: str = "", now: datetime | None = None) -> str:
    uptime = ((now or utcnow()) - started_at).total_seconds()
    message = (
        f"🤖 <b>arcbot</b> ver.{_escape_html(version)}\n"
        f"Powered by python-telegram-bot\n\n"
        f"运行时间：{format_uptime(uptime)}\n"
        f"运行平台：{_escape_html(platform.system())} {_escape_html(platform.release())} {_escape_html(platform.machine())}\n"
        f"Python版本：{sys.version.split()[0]}"
    )
    if feedback:
        message += f"\n\nBot反馈：{_escape_html(feedback)}"
    return message
