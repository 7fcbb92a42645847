from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_env: str = "dev"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    log_level: str = "INFO"

    # All business routes hang off this prefix; /health and /metrics do not.
    api_prefix: str = "/make-server-c3da9688"
    cors_allow_origins: list[str] = ["*"]

    kv_backend: str = "memory"
    redis_url: str = "redis://localhost:6379/0"
    kv_key_prefix: str = "cabinet"

    session_ttl_hours: int = 24
    session_purge_grace_hours: int = 24
    profile_lock_timeout_seconds: float = 5.0
    profile_lock_lease_seconds: float = 15.0

    password_min_length: int = 12
    onboarding_enforce_transitions: bool = False
    expose_login_failure_reason: bool = False

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings = Settings()
