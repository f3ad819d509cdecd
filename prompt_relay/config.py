# prompt_relay/config.py
import logging
import os

from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

load_dotenv()

logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

logger = logging.getLogger("prompt_relay")

# --- Configuration ---
DATABASE_URL          = os.getenv("DATABASE_URL", "sqlite:///prompt_relay.db")
DB_CONNECT_TIMEOUT    = int(os.getenv("DB_CONNECT_TIMEOUT", "10"))
FOLLOW_UP_TOOLS_PATH  = os.getenv("FOLLOW_UP_TOOLS_PATH", "./follow_up_tools.jsonc")
SCHEDULER_RECEIVER_ID = os.getenv("SCHEDULER_RECEIVER_ID", "ai_scheduler")
SLACK_BOT_TOKEN       = os.getenv("SLACK_BOT_TOKEN")
SLACK_SIGNING_SECRET  = os.getenv("SLACK_SIGNING_SECRET")


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


AI_COPILOT_ENABLED = _env_flag("AI_COPILOT_ENABLED", True)


def get_db_engine(url: str | None = None):
    url = url or DATABASE_URL

    if url.startswith("sqlite"):
        logger.info("[DB] Using SQLite URL: %s", url)
        # listener threads share the engine
        return create_engine(url, connect_args={"check_same_thread": False})

    logger.info("[DB] Connecting to %s", url.split("@")[-1])

    # pg8000 supports 'timeout' in seconds
    return create_engine(
        url,
        pool_pre_ping=True,
        connect_args={"timeout": DB_CONNECT_TIMEOUT},  # fail fast instead of hanging forever
    )


def create_session_factory(engine=None) -> sessionmaker:
    engine = engine or get_db_engine()
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(engine) -> None:
    from prompt_relay.entities import Base

    Base.metadata.create_all(engine)
