from __future__ import annotations

from telegram import BotCommand
from telegram.ext import Application, CommandHandler
from telegram.request import HTTPXRequest

from .api import ArcApi
from .assets import AssetCache
from .bindings import BindingRegistry
from .config import Config, logger
from .rooms import RoomBoard
from .state import BotContext
from .storage import open_database
from .commands import (
    start_cmd,
    bind_cmd,
    unbind_cmd,
    b30_cmd,
    recent_cmd,
    ycm_cmd,
    ycmdel_cmd,
    connect_cmd,
    status_cmd,
)


def build_context(config=Config) -> BotContext:
    """Wire the local state layer and the API client together."""
    api = ArcApi(config.get_api_base_url())
    con = open_database(config.DB_PATH)
    return BotContext(
        config=config,
        registry=BindingRegistry(con, api.account_info),
        board=RoomBoard(con),
        assets=AssetCache(config.CACHE_DIR, config.TEMP_DIR),
        api=api,
    )


async def startup_health_check(ctx: BotContext) -> bool:
    """Check that BotArcAPI answers before we start taking commands."""
    logger.info("🏥 Running startup health check...")
    try:
        code = await ctx.api.connect()
        logger.info(f"✅ BotArcAPI reachable (connect code {code})")
        return True
    except Exception as e:
        logger.error(f"❌ BotArcAPI health check failed: {e}")
        return False


def main():
    try:
        Config.validate_config()
    except ValueError as e:
        raise SystemExit(f"❌ {e}. Check your .env file.")

    ctx = build_context()

    # Configure request with longer timeout to prevent startup failures
    request = HTTPXRequest(
        connection_pool_size=8,
        connect_timeout=30.0,
        read_timeout=30.0,
        write_timeout=30.0,
        pool_timeout=30.0,
    )

    app = Application.builder().token(Config.BOT_TOKEN).request(request).build()
    app.bot_data["ctx"] = ctx

    commands = [
        BotCommand("start", "显示帮助"),
        BotCommand("bind", "绑定 Arcaea 账号"),
        BotCommand("unbind", "取消绑定"),
        BotCommand("b30", "查询 Best30"),
        BotCommand("recent", "查询最近成绩"),
        BotCommand("ycm", "查询/添加 Link Play 车车"),
        BotCommand("ycmdel", "撤下自己发的车车"),
        BotCommand("connect", "查询当前的连接代码"),
        BotCommand("status", "查询Bot运行状态"),
    ]

    async def post_init(application: Application) -> None:
        try:
            logger.info("🔧 Setting up bot commands...")
            await application.bot.set_my_commands(commands)
            logger.info("✅ Bot commands configured successfully")
        except Exception as e:
            logger.error(f"❌ Failed to set bot commands: {e}")
            logger.warning("⚠️ Bot will continue but commands may not be visible in Telegram")
        await startup_health_check(ctx)

    app.post_init = post_init

    app.add_handler(CommandHandler("start", start_cmd))
    app.add_handler(CommandHandler("help", start_cmd))
    app.add_handler(CommandHandler("bind", bind_cmd))
    app.add_handler(CommandHandler("unbind", unbind_cmd))
    app.add_handler(CommandHandler("b30", b30_cmd))
    app.add_handler(CommandHandler("recent", recent_cmd))
    app.add_handler(CommandHandler("ycm", ycm_cmd))
    app.add_handler(CommandHandler("ycmdel", ycmdel_cmd))
    app.add_handler(CommandHandler("connect", connect_cmd))
    app.add_handler(CommandHandler("status", status_cmd))

    app.run_polling(drop_pending_updates=True)
