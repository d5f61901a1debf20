from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    ENV: str = "local"
    DB_URL: str | None = None          # full override, e.g. sqlite for local runs
    DB_HOST: str = "db"
    DB_PORT: int = 5432
    DB_USER: str = "postgres"
    DB_PASSWORD: str = "postgres"
    DB_NAME: str = "rehab"

    ALLOW_ORIGINS: str = "*"

    # Timer engine
    PREPARE_SECONDS: int = 3
    HOLD_CUE_DELAY_SECONDS: int = 5
    HOLD_CUE_MIN_HOLD_SECONDS: int = 10
    PROGRESS_TTL_HOURS: int = 24
    COMPLETION_EXIT_DELAY_SECONDS: float = 2.0
    DUAL_SCHEME_EXERCISES: list[str] = ["bird_dog"]

    # Fallbacks when an exercise has no usable settings
    DEFAULT_HOLD_TIME: int = 7
    DEFAULT_REPS_SCHEMA: list[int] = [3, 2, 1]
    DEFAULT_REST_TIME: int = 15
    DEFAULT_WALK_DURATION: int = 5
    DEFAULT_WALK_SESSIONS: int = 3
    DEFAULT_DYNAMIC_REPS: int = 10
    DEFAULT_DYNAMIC_SETS: int = 2
    DEFAULT_ROLLING_DURATION: int = 60
    DEFAULT_ROLLING_SESSIONS: int = 2
    DEFAULT_ROLLING_REST_TIME: int = 30

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def DATABASE_URL(self) -> str:
        if self.DB_URL:
            return self.DB_URL
        return (
            f"postgresql+psycopg://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

@lru_cache
def get_settings() -> Settings:
    return Settings()
