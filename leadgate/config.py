"""
Application configuration using pydantic-settings.
All config is validated at startup - fail fast if anything is missing.
"""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Application
    app_env: str = "development"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_secret_key: str
    log_level: str = "INFO"
    # Comma-separated; "*" lets quiz widgets post from any site
    cors_origins: str = "*"

    # Database
    database_url: str
    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Redis (geolocation cache, task wake-ups, worker heartbeats)
    redis_url: str = "redis://localhost:6379/0"

    # Encryption of lead contacts (Fernet key)
    encryption_key: str = ""

    # Sentry
    sentry_dsn: str = ""

    # API auth (JWT bearer for lead management routes)
    jwt_secret: str = ""

    # Intake
    fingerprint_header: str = "X-Client-Fingerprint"
    default_external_system: str = "example_system"
    default_external_entity: str = "lead"

    # Test lead limiting (per fingerprint)
    test_lead_limit: int = 20
    test_lead_window_minutes: int = 10

    # Phone verification: "greensms" or "twilio"
    phone_verification_provider: str = "greensms"
    phone_verification_ttl_minutes: int = 10
    phone_verification_timeout_seconds: float = 5.0
    greensms_base_url: str = "https://api3.greensms.ru"
    greensms_login: str = ""
    greensms_password: str = ""
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""

    # IP geolocation
    geolocation_timeout_seconds: float = 5.0
    geolocation_cache_ttl_seconds: int = 24 * 60 * 60

    # Lead maintenance
    lead_cleanup_enabled: bool = False
    lead_cleanup_interval_seconds: int = 24 * 60 * 60
    lead_retention_years: int = 2

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
