from __future__ import annotations

from typing import Awaitable, Callable, List, Optional

from telegram import Update
from telegram.ext import ContextTypes

from .charts import render_best30, render_recent
from .config import VERSION, logger
from .errors import (
    AlreadyBoundError,
    ArcApiError,
    ArcBotError,
    DuplicateRoomError,
    ExternalLookupFailedError,
    InvalidRoomCodeError,
    NotBoundError,
    NotRoomOwnerError,
    ProductionFailedError,
    RoomNotFoundError,
    StorageUnavailableError,
)
from .formatting import (
    BIND_HINT,
    _escape_html,
    fmt_room_list,
    fmt_status,
    format_ptt,
    hash_payload,
)
from .state import BotContext, Caller, Reply

PLATFORM = "telegram"
ROOM_SOURCE = "arc"
RECENT_MIN, RECENT_MAX = 1, 7

Notify = Optional[Callable[[str], Awaitable[None]]]

HELP_TEXT = (
    "🎵 <b>Arcaea Bot</b>\n\n"
    "/bind &lt;ArcaeaID&gt; - 绑定 Arcaea 账号\n"
    "/unbind - 取消绑定\n"
    "/b30 [ArcaeaID] - 查询 Best30\n"
    "/recent [数量] - 查询最近成绩 (1 ~ 7)\n"
    "/ycm [房间号] [描述] - 查询/添加 Link Play 车车\n"
    "/ycmdel &lt;房间号&gt; - 撤下自己发的车车\n"
    "/connect - 查询当前的连接代码\n"
    "/status - 查询Bot运行状态"
)


def describe_error(e: Exception) -> str:
    """User-facing text for the failures handlers are expected to hit."""
    if isinstance(e, AlreadyBoundError):
        return "数据库中已存在您的绑定信息！如需更换请先使用 /unbind"
    if isinstance(e, NotBoundError):
        return f"数据库中没有您的绑定信息，{BIND_HINT}"
    if isinstance(e, ExternalLookupFailedError):
        return f"无法查询到该账号：{_escape_html(e.reason)}"
    if isinstance(e, InvalidRoomCodeError):
        return "请输入正确的Link Play房间号！"
    if isinstance(e, DuplicateRoomError):
        return "该车车已存在！"
    if isinstance(e, RoomNotFoundError):
        return "没有找到这个车车。"
    if isinstance(e, NotRoomOwnerError):
        return "只能撤下自己发的车车。"
    if isinstance(e, ProductionFailedError):
        return f"图片生成失败：{_escape_html(str(e.cause))}"
    if isinstance(e, StorageUnavailableError):
        return "存储暂时不可用，请稍后再试。"
    if isinstance(e, ArcApiError):
        return f"发生错误：{_escape_html(e.message)}"
    return f"发生错误：{_escape_html(str(e))}"


async def _notify(notify: Notify, text: str) -> None:
    if notify is not None:
        await notify(text)


async def handle_start(ctx: BotContext, caller: Caller, args: List[str], notify: Notify = None) -> Reply:
    return Reply(text=HELP_TEXT)


async def handle_bind(ctx: BotContext, caller: Caller, args: List[str], notify: Notify = None) -> Reply:
    if not args or not args[0].strip():
        return Reply(text="请输入需要绑定的用户ID")
    usercode = args[0].strip()
    try:
        record, account = await ctx.registry.bind_account(caller.platform, caller.user_id, usercode)
    except ArcBotError as e:
        return Reply(text=describe_error(e))
    rating = format_ptt(account.get("rating", -1))
    return Reply(text=f"已为您绑定 Arcaea 账号 {_escape_html(record.external_name)} ({rating})")


async def handle_unbind(ctx: BotContext, caller: Caller, args: List[str], notify: Notify = None) -> Reply:
    try:
        record = ctx.registry.unbind(caller.platform, caller.user_id)
    except ArcBotError as e:
        return Reply(text=describe_error(e))
    return Reply(text=f"已为您取消绑定 Arcaea 账号 {_escape_html(record.external_name)}")


async def handle_b30(ctx: BotContext, caller: Caller, args: List[str], notify: Notify = None) -> Reply:
    if args and args[0].strip():
        usercode, name = args[0].strip(), ""
    else:
        try:
            record = ctx.registry.require(caller.platform, caller.user_id)
        except ArcBotError as e:
            return Reply(text=describe_error(e) + "，或在命令后接需要查询用户的ID")
        usercode, name = record.external_id, record.external_name

    logger.info(f"Querying best30 for {name} [{usercode}]")
    await _notify(notify, f"正在查询用户 {_escape_html(name)} [{_escape_html(usercode)}] 的 Best30 成绩...")
    try:
        best30 = await ctx.api.best30(usercode)
        # Identical score data renders to identical bytes, so key on the data
        key = f"{hash_payload(best30)}.png"
        path = await ctx.assets.get_or_create("best30", key, lambda: render_best30(best30))
    except (ArcBotError, ArcApiError) as e:
        logger.error(f"Best30 for {caller.platform}:{name} [{usercode}] failed: {e}")
        return Reply(text=describe_error(e))
    return Reply(image=path)


async def handle_recent(ctx: BotContext, caller: Caller, args: List[str], notify: Notify = None) -> Reply:
    raw = args[0].strip() if args else "1"
    try:
        count = int(raw)
    except ValueError:
        count = 0
    if count < RECENT_MIN or count > RECENT_MAX:
        return Reply(text=f"请输入正确的数量，范围为 {RECENT_MIN} ~ {RECENT_MAX}")

    try:
        record = ctx.registry.require(caller.platform, caller.user_id)
    except ArcBotError as e:
        return Reply(text=describe_error(e))

    name, usercode = record.external_name, record.external_id
    logger.info(f"Querying {count} recent scores for {name} [{usercode}]")
    await _notify(notify, f"正在查询用户 {_escape_html(name)} [{_escape_html(usercode)}] 的最近 {count} 条成绩...")
    try:
        info = await ctx.api.user_info(usercode, recent=count, with_song_info=True)
        try:
            png = render_recent(info, count)
        except Exception as e:
            raise ProductionFailedError("recent", usercode, e) from e
        # The count is not part of any cache key, so every render is one-shot
        path = ctx.assets.write_scratch("recent", "png", png)
    except (ArcBotError, ArcApiError) as e:
        logger.error(f"Recent for {caller.platform}:{name} [{usercode}] failed: {e}")
        return Reply(text=describe_error(e))
    return Reply(image=path)


async def handle_ycm(ctx: BotContext, caller: Caller, args: List[str], notify: Notify = None) -> Reply:
    publisher = f"{caller.platform}:{caller.user_id}"
    try:
        if args:
            room_code = args[0].strip()
            description = " ".join(args[1:]).strip()
            ctx.board.publish(ROOM_SOURCE, room_code, publisher, description)
            return Reply(text="发车成功！")
        entries = ctx.board.list(ROOM_SOURCE)
    except ArcBotError as e:
        return Reply(text=describe_error(e))
    if not entries:
        return Reply(text="myc")
    return Reply(text=fmt_room_list(entries))


async def handle_ycmdel(ctx: BotContext, caller: Caller, args: List[str], notify: Notify = None) -> Reply:
    if not args:
        return Reply(text="Usage: /ycmdel &lt;房间号&gt;")
    publisher = f"{caller.platform}:{caller.user_id}"
    try:
        entry = ctx.board.withdraw(ROOM_SOURCE, args[0].strip(), publisher)
    except ArcBotError as e:
        return Reply(text=describe_error(e))
    return Reply(text=f"已撤下车车 <code>{_escape_html(entry.room_code)}</code>")


async def handle_connect(ctx: BotContext, caller: Caller, args: List[str], notify: Notify = None) -> Reply:
    try:
        code = await ctx.api.connect()
    except ArcApiError as e:
        return Reply(text=describe_error(e))
    return Reply(
        text=f"当前的连接代码为：<code>{_escape_html(code)}</code>\n"
        "风暴的解锁方法可以参照 http://wiki.arcaea.cn/index.php/Tempestissimo 中的“解禁方法”部分。"
    )


async def handle_status(ctx: BotContext, caller: Caller, args: List[str], notify: Notify = None) -> Reply:
    feedback = getattr(ctx.config, "FEEDBACK_CONTACT", "")
    return Reply(text=fmt_status(ctx.started_at, VERSION, feedback))


# Telegram adapters


def caller_from_update(update: Update) -> Caller:
    user = update.effective_user
    return Caller(PLATFORM, str(user.id), user.full_name or "")


async def send_reply(update: Update, reply: Reply) -> None:
    if reply.is_image:
        with open(reply.image, "rb") as f:
            await update.message.reply_photo(photo=f, caption=reply.caption, parse_mode="HTML")
    else:
        await update.message.reply_text(reply.text or "", parse_mode="HTML")


def telegram_command(handler):
    async def callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
        if not update.effective_user or not update.message:
            return
        ctx: BotContext = context.bot_data["ctx"]
        caller = caller_from_update(update)

        async def notify(text: str) -> None:
            await update.message.reply_text(text, parse_mode="HTML")

        try:
            reply = await handler(ctx, caller, list(context.args or []), notify=notify)
        except Exception as e:
            logger.exception(f"{handler.__name__} failed for {caller.platform}:{caller.user_id}")
            await update.message.reply_text(f"❌ Error: {_escape_html(str(e))}")
            return
        await send_reply(update, reply)

    callback.__name__ = handler.__name__.replace("handle_", "") + "_cmd"
    return callback


start_cmd = telegram_command(handle_start)
bind_cmd = telegram_command(handle_bind)
unbind_cmd = telegram_command(handle_unbind)
b30_cmd = telegram_command(handle_b30)
recent_cmd = telegram_command(handle_recent)
ycm_cmd = telegram_command(handle_ycm)
ycmdel_cmd = telegram_command(handle_ycmdel)
connect_cmd = telegram_command(handle_connect)
status_cmd = telegram_command(handle_status)
