import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    # Application
    app_name: str = os.getenv("APP_NAME", "Library Desk")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    debug: bool = _flag("DEBUG", "False")
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # API
    api_host: str = os.getenv("API_HOST", "127.0.0.1")
    api_port: int = int(os.getenv("API_PORT", "8000"))

    # Circulation rules
    loan_period_days: int = int(os.getenv("LOAN_PERIOD_DAYS", "14"))
    late_fee_per_day: float = float(os.getenv("LATE_FEE_PER_DAY", "0.50"))
    recent_activity_limit: int = int(os.getenv("RECENT_ACTIVITY_LIMIT", "5"))

    # Session
    seed_demo_data: bool = _flag("SEED_DEMO_DATA", "True")
    id_strategy: str = os.getenv("ID_STRATEGY", "counter").lower()  # counter | uuid


settings = Settings()
