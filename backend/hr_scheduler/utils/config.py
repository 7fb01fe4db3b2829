from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    environment: str = "development"
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    log_format: str = "text"  # "text" or "json"

    default_timezone: str = "America/New_York"
    work_start_hour: int = 9
    work_end_hour: int = 17
    slot_duration_minutes: int = 30
    step_minutes: int = 30
    days_ahead: int = 7

    recommendation_count: int = 3
    morning_bonus: float = 2.0
    early_week_bonus: float = 1.0
    day_penalty: float = 0.5

    default_reminder_minutes: int = 15
    calendar_timeout_seconds: float = 10.0
    calendar_max_results: int = 250

    database_url: str = "sqlite:///./bookings.db"
    token_dir: str = "./tokens"
    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None
    oauth_redirect_uri: str = "http://localhost:8000/auth/callback"
    cors_origins: List[str] = ["http://localhost:3000"]
    booking_created_by: str = "hr-assistant"

    class Config:
        env_file = ".env"
        case_sensitive = False

settings = Settings()
