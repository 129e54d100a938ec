"""
Score image rendering for the Arcaea bot.

Both renderers are pure: score data in, PNG bytes out. Errors propagate to
the caller (the asset cache wraps them).
"""
import io
from typing import Any, Dict, List, Tuple

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import seaborn as sns  # noqa: E402

from .config import logger  # noqa: E402
from .formatting import format_ptt, format_score  # noqa: E402

DIFFICULTY_NAMES = ["PST", "PRS", "FTR", "BYD", "ETR"]


def _difficulty(index: Any) -> str:
    try:
        return DIFFICULTY_NAMES[int(index)]
    except (TypeError, ValueError, IndexError):
        return "?"


def _song_title(record: Dict[str, Any], songinfo: Dict[str, Any] | None) -> str:
    if songinfo:
        names = songinfo.get("title_localized") or {}
        title = names.get("en") or songinfo.get("name_en")
        if title:
            return title
    return str(record.get("song_id", "?"))


def _pair_with_songinfo(records: List[Dict[str, Any]], songinfo: List[Dict[str, Any]] | None) -> List[Tuple[Dict[str, Any], Dict[str, Any] | None]]:
    songinfo = songinfo or []
    return [(r, songinfo[i] if i < len(songinfo) else None) for i, r in enumerate(records)]


def _score_lines(records: List[Tuple[Dict[str, Any], Dict[str, Any] | None]], numbered: bool) -> List[str]:
    lines: List[str] = []
    for i, (record, info) in enumerate(records, start=1):
        prefix = f"#{i:<2} " if numbered else ""
        lines.append(
            f"{prefix}{_song_title(record, info)} [{_difficulty(record.get('difficulty'))}]  "
            f"{format_score(record.get('score', 0))}  "
            f"PTT {float(record.get('rating', 0.0)):.3f}  "
            f"P{record.get('perfect_count', 0)}(+{record.get('shiny_perfect_count', 0)}) "
            f"F{record.get('near_count', 0)} L{record.get('miss_count', 0)}"
        )
    return lines


def _render_text_card(title: str, subtitle: str, lines: List[str]) -> bytes:
    sns.set_theme(style="white")
    height = max(3.0, 1.6 + 0.32 * len(lines))
    fig = plt.figure(figsize=(9, height))
    try:
        fig.patch.set_facecolor("#1f1b2e")
        fig.text(0.04, 1 - 0.45 / height, title, fontsize=18, fontweight="bold", color="white", va="top")
        fig.text(0.04, 1 - 0.95 / height, subtitle, fontsize=12, color="#c9c3e6", va="top")
        palette = sns.color_palette("husl", max(len(lines), 1))
        for i, line in enumerate(lines):
            y = 1 - (1.45 + 0.32 * i) / height
            fig.text(0.04, y, line, fontsize=10, family="monospace", color=palette[i], va="top")

        buffer = io.BytesIO()
        fig.savefig(buffer, format="png", dpi=150, facecolor=fig.get_facecolor())
        return buffer.getvalue()
    finally:
        plt.close(fig)


def render_best30(best30: Dict[str, Any]) -> bytes:
    """Render a Best30 snapshot (the ``content`` of /user/best30)."""
    account = best30.get("account_info") or {}
    records = _pair_with_songinfo(best30.get("best30_list") or [], best30.get("best30_songinfo"))
    overflow = _pair_with_songinfo(best30.get("best30_overflow") or [], best30.get("best30_overflow_songinfo"))

    subtitle = (
        f"PTT {format_ptt(account.get('rating', -1))}  ·  "
        f"B30 {float(best30.get('best30_avg', 0.0)):.4f}  ·  "
        f"R10 {float(best30.get('recent10_avg', 0.0)):.4f}"
    )
    lines = _score_lines(records, numbered=True)
    if overflow:
        lines.append("")
        lines.append("Overflow")
        lines.extend(_score_lines(overflow, numbered=False))

    png = _render_text_card(f"{account.get('name', '?')} · Best30", subtitle, lines)
    logger.info(f"Rendered best30 image for {account.get('name', '?')} ({len(records)} records)")
    return png


def render_recent(user_info: Dict[str, Any], count: int) -> bytes:
    """Render the latest ``count`` plays (the ``content`` of /user/info with recent)."""
    account = user_info.get("account_info") or {}
    records = _pair_with_songinfo((user_info.get("recent_score") or [])[:count], user_info.get("songinfo"))
    subtitle = f"PTT {format_ptt(account.get('rating', -1))}  ·  last {count} plays"
    png = _render_text_card(f"{account.get('name', '?')} · Recent", subtitle, _score_lines(records, numbered=True))
    logger.info(f"Rendered recent image for {account.get('name', '?')} ({len(records)} records)")
    return png
