import os
import logging

from dotenv import load_dotenv


# Load env early
load_dotenv()

# Logging configuration
log_level = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, log_level, logging.INFO),
)
logger = logging.getLogger("arcbot")

# Reduce noisy libraries
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("telegram.ext.ExtBot").setLevel(logging.WARNING)
logging.getLogger("telegram.ext.Updater").setLevel(logging.WARNING)
logging.getLogger("telegram.ext.Application").setLevel(logging.WARNING)
logging.getLogger("telegram.bot").setLevel(logging.WARNING)
logging.getLogger("asyncio").setLevel(logging.WARNING)
logging.getLogger("matplotlib").setLevel(logging.WARNING)
logging.getLogger("matplotlib.font_manager").setLevel(logging.WARNING)


VERSION = "1.0.0"


class Config:
    """Application configuration read from the environment."""

    # Telegram Bot Configuration
    BOT_TOKEN: str | None = os.getenv("BOT_TOKEN")

    # BotArcAPI Configuration
    ARC_API_URL: str = os.getenv("ARC_API_URL", "").strip().rstrip("/")
    ARC_USER_AGENT: str = os.getenv("ARC_USER_AGENT", "arcbot/1.0").strip()
    ARC_API_TIMEOUT: float = float(os.getenv("ARC_API_TIMEOUT", "60"))

    # Local state
    DB_PATH: str = os.getenv("DB_PATH", "arcbot.db")
    CACHE_DIR: str = os.getenv("CACHE_DIR", "cache")
    TEMP_DIR: str = os.getenv("TEMP_DIR", "temp")

    # Shown at the bottom of /status
    FEEDBACK_CONTACT: str = os.getenv("FEEDBACK_CONTACT", "").strip()

    @classmethod
    def validate_config(cls) -> None:
        if not cls.BOT_TOKEN:
            raise ValueError("BOT_TOKEN environment variable is required")
        if not cls.ARC_API_URL:
            raise ValueError("ARC_API_URL environment variable is required")
        if cls.ARC_API_TIMEOUT <= 0:
            raise ValueError("ARC_API_TIMEOUT must be positive")

    @classmethod
    def get_api_base_url(cls) -> str:
        logger.info(f"Using API endpoint: {cls.ARC_API_URL}")
        return cls.ARC_API_URL
