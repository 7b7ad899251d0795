# app/config/database.py

from sqlalchemy import create_engine, pool
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import sessionmaker
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    database_url: str = "sqlite:///./clinic.db"

    api_version: str = "1.0.0"
    api_title: str = "Therapy Clinic Scheduling System"
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    debug: bool = True
    log_level: str = "info"

    # Scheduling
    timezone: str = "Asia/Kolkata"
    reminders_enabled: bool = True
    reminder_hour: int = 11
    reminder_minute: int = 55
    phone_country_code: str = "91"

    # Slot locks: "local" (single process) or "redis" (shared across workers)
    lock_backend: str = "local"
    lock_timeout_seconds: int = 10
    lock_wait_seconds: float = 5.0

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra='ignore'
    )

settings = Settings()


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # One shared connection so in-memory databases survive across sessions
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": pool.StaticPool,
        }
    return {
        "poolclass": pool.QueuePool,
        "pool_size": 20,
        "max_overflow": 40,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }


engine = create_engine(
    settings.database_url,
    echo=False,
    **_engine_options(settings.database_url)
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
