from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    data_dir: Path = Path.home() / ".studyvault" / "data"
    sqlite_filename: str = "studyvault.db"
    initial_interval_days: int = 0  # interval stored on newly created cards
    upcoming_days: int = 7          # window of the upcoming-reviews forecast
    host: str = "127.0.0.1"
    port: int = 0                   # 0 = pick a free port
    log_level: str = "warning"
    cors_origins: list[str] = ["*"]

    model_config = {"env_prefix": "STUDYVAULT_"}


settings = Settings()
