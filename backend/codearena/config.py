from pydantic import ConfigDict, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Database (user directory)
    database_url: str = "sqlite:///./codearena.db"

    # Sessions
    session_secret: str = "fallback-secret"
    session_cookie: str = "codearena_session"

    # Codeforces API
    codeforces_api_base: str = "https://codeforces.com/api"
    codeforces_problem_base: str = "https://codeforces.com/problemset/problem"
    codeforces_timeout_seconds: float = 10.0

    # Handle verification
    verification_window_seconds: int = 150
    max_challenge_rating: int = 1200
    submission_lookback: int = 10
    challenge_verdict: str = "COMPILATION_ERROR"

    # Redirect targets
    login_path: str = "/login"
    home_path: str = "/"

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"  # "console" or "json"

    # Alerts
    discord_alerts_webhook_url: str | None = None

    # CORS
    cors_origins: list[str] | str = ["http://localhost:3000", "http://127.0.0.1:3000"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v


settings = Settings()
