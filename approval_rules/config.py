from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Persistence adapter
    database_url: str = "sqlite:///./approval_rules.sqlite3"

    # Pending actions
    pending_ttl_seconds: int = 300
    sweep_interval_seconds: float = 60.0

    # Analyzer
    suggestion_limit: int = 5

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_prefix = "APPROVAL_RULES_"


settings = Settings()
