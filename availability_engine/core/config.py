from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    STORE_PROVIDER: str | None = None  # "memory" | "json"; None derives from ENV
    DATA_DIR: str = "./data/schedule"

    SERVICE_TIMEZONE: str = "UTC"

    SLOT_HORIZON_DAYS: int = 30
    SLOT_BATCH_SIZE: int = 10
    SLOT_RETENTION_DAYS: int = 30
    SLOT_PURGE_ENABLED: bool = True
    REGENERATION_WINDOW_DAYS: int = 30

    RECURRENCE_MAX_OCCURRENCES: int = 100
    RECURRENCE_HARD_CAP: int = 1000
    RECURRENCE_STEP_MODE: str = "approximate"  # "approximate" | "calendar"

    SCHEDULER_ENABLED: bool = True
    SLOT_GENERATOR_CRON_HOUR: int = 2
    SLOT_GENERATOR_CRON_MINUTE: int = 0

    SLOT_CLEANUP_ENABLED: bool = True
    SLOT_CLEANUP_RETENTION_DAYS: int = 7  # blocked slots are kept twice as long
    SLOT_CLEANUP_CRON_HOUR: int = 3
    SLOT_CLEANUP_CRON_MINUTE: int = 0


settings = Settings()
