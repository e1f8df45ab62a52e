from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    STORE_PROVIDER: str = "memory"  # "memory" | "json"
    BOOKINGS_DATA_PATH: str = "./data/bookings.json"
    VENUES_DATA_PATH: str = "./data/venues.json"

    DEFAULT_TIMEZONE: str = "Europe/Berlin"
    DEFAULT_HOURLY_RATE: float = 50.0
    FALLBACK_TIME_STEP: int = 15

    PEAK_HOURS_START: str = "17:00"
    PEAK_HOURS_END: str = "21:00"

    HOLD_INACTIVITY_MINUTES: int = 8
    HOLD_MAX_AGE_MINUTES: int = 30


settings = Settings()
