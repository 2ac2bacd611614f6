from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Hard bounds for a single impersonation session, in minutes
MIN_SESSION_DURATION_MINUTES = 5
MAX_SESSION_DURATION_MINUTES = 480

# Width of the impersonation_sessions.reason column
REASON_COLUMN_LENGTH = 500


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "Booking Console API"
    app_env: str = "development"  # development, testing, production
    debug: bool = False
    enable_openapi: bool = True  # Set to False in production

    # Security
    log_employee_emails: bool = False  # Set to False in production for GDPR compliance
    trusted_proxy_ips: list[str] = []  # Proxies allowed to set X-Forwarded-For
    location_header: str = "cf-ipcountry"  # Coarse client location set by the CDN

    # Database
    database_url: str
    database_migrations_url: str | None = None
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_ssl_mode: str = "prefer"  # disable, prefer, require, verify-ca, verify-full
    database_statement_cache_size: int = 100

    # Auth (tokens are issued by the identity provider, verified here)
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    @field_validator("jwt_secret_key")
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        if v == "change-this-to-a-secure-random-string":
            raise ValueError(
                "JWT_SECRET_KEY must be changed from default value. "
                "Generate a secure secret with: openssl rand -hex 32"
            )
        if len(v) < 32:
            raise ValueError("JWT_SECRET_KEY must be at least 32 characters")
        return v

    @field_validator("cors_origins")
    @classmethod
    def validate_cors_origins(cls, v: list[str]) -> list[str]:
        """Validate CORS origins - reject wildcards when credentials are used."""
        for origin in v:
            if origin == "*":
                raise ValueError(
                    "CORS wildcard '*' is not allowed when allow_credentials=True. "
                    "Specify explicit origins instead."
                )
        return v

    @field_validator("impersonation_max_session_minutes")
    @classmethod
    def validate_max_session_minutes(cls, v: int) -> int:
        if not MIN_SESSION_DURATION_MINUTES <= v <= MAX_SESSION_DURATION_MINUTES:
            raise ValueError(
                "IMPERSONATION_MAX_SESSION_MINUTES must be between "
                f"{MIN_SESSION_DURATION_MINUTES} and {MAX_SESSION_DURATION_MINUTES}"
            )
        return v

    @field_validator("impersonation_max_reason_length")
    @classmethod
    def validate_max_reason_length(cls, v: int) -> int:
        if not 1 <= v <= REASON_COLUMN_LENGTH:
            raise ValueError(
                f"IMPERSONATION_MAX_REASON_LENGTH must be between 1 and {REASON_COLUMN_LENGTH}"
            )
        return v

    # Temporal
    temporal_host: str = "localhost:7233"
    temporal_namespace: str = "default"
    temporal_task_queue: str = "console-jobs"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    # Metrics
    metrics_api_key: str | None = None  # If set, /metrics requires this key

    # Email (Resend)
    resend_api_key: str | None = None  # If not set, emails are logged but not sent
    email_from: str = "noreply@example.com"
    email_send_timeout_seconds: int = 10  # Timeout for email API calls
    app_url: str = "http://localhost:3000"  # Admin console URL for links in emails

    # Redis (optional - app works without it)
    redis_url: str | None = None  # e.g., "redis://localhost:6379/0"
    redis_pool_size: int = 10

    # Rate limiting (sliding window per employee)
    impersonation_starts_per_hour: int = 10
    audit_exports_per_hour: int = 5

    # Impersonation policy
    impersonation_allowed_roles: list[str] = ["SUPER_ADMIN", "ADMIN", "SUPPORT"]
    impersonation_session_admin_roles: list[str] = ["SUPER_ADMIN"]  # May end others' sessions
    impersonation_audit_viewer_roles: list[str] = ["SUPER_ADMIN", "ADMIN"]
    impersonation_max_session_minutes: int = 120
    impersonation_min_reason_length: int = 10
    impersonation_max_reason_length: int = 500
    impersonation_action_limit: int = 50
    impersonation_restricted_resources: list[str] = ["financial_data"]
    impersonation_approval_required_actions: list[str] = ["delete"]
    impersonation_allow_concurrent_sessions: bool = False

    # Audit
    audit_retention_days: int = 90
    audit_write_max_attempts: int = 3
    audit_write_retry_backoff_seconds: float = 0.2

    # Notifications
    impersonation_notify_on_start: bool = True
    impersonation_notify_on_end: bool = True
    impersonation_notify_on_failure: bool = True
    impersonation_notification_recipients: list[str] = []
    alert_recipients: list[str] = []  # Operational alerts (audit write failures)

    # Maintenance (Temporal scheduled workflow)
    maintenance_schedule: str | None = None  # Cron syntax, e.g., "*/5 * * * *"


@lru_cache
def get_settings() -> Settings:
    return Settings()
