# backend/hotel_concierge/core/config_loader.py

from pathlib import Path
from typing import List

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


PACKAGE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    OPENAI_API_KEY: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_max_tokens: int = 500
    openai_temperature: float = 0.7
    transcription_model: str = "whisper-1"
    speech_model: str = "tts-1"

    environment: str = "development"
    db_path: str = "data.sqlite3"
    hotels_path: str = str(PACKAGE_DIR / "data" / "hotels.json")

    log_dir: str = str(PACKAGE_DIR.parent / "logs")
    log_level: str = "INFO"
    log_max_bytes: int = 5 * 1024 * 1024  # 5 MB
    log_backup_count: int = 5

    frontend_url: str = "http://localhost:5500"
    allowed_origins: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:5500",
        "http://localhost:5500",
        "http://127.0.0.1:3000",
    ]

    timezone: str = "Africa/Lagos"
    day_first_dates: bool = False
    history_limit: int = 100

    # completion defaults used when a booking is materialized from partial info
    default_location: str = "Lagos"
    fallback_hotel_id: str = "LAG001"
    fallback_hotel_name: str = "Marriott Hotel {location}"
    default_price_per_night: float = 500
    default_guest_name: str = "Guest"
    default_guest_email: str = "guest@example.com"
    default_total_rooms: int = 100

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


settings = Settings()
