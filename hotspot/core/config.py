"""
Application configuration.
All settings are loaded from environment variables.
Use env.example as a reference for required variables.
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    IMPORTANT: Credentials have no defaults - they MUST be set in .env file.
    """

    # ===========================================
    # APPLICATION
    # ===========================================
    port: int = 10000
    uvicorn_workers: int = 2
    # Hard deadline for a single request (seconds); exceeded -> 504
    request_timeout_seconds: float = 30.0

    # ===========================================
    # DATABASE (PostgreSQL)
    # ===========================================
    database_url: str  # Required, no default
    db_pool_size: int = 10
    db_max_overflow: int = 20

    # ===========================================
    # REDIS & CELERY
    # ===========================================
    redis_url: str  # Required, no default
    celery_broker_url: str  # Required, no default
    celery_result_backend: str  # Required, no default

    # ===========================================
    # PAYMENT GATEWAY (Monnify)
    # ===========================================
    monnify_api_key: str  # Required, no default
    monnify_secret_key: str  # Required, no default
    monnify_contract_code: str  # Required, no default
    monnify_base_url: str = "https://sandbox.monnify.com"
    monnify_currency: str = "NGN"
    monnify_payment_methods: str = "CARD,ACCOUNT_TRANSFER"
    # Where the gateway sends the browser after checkout (customer success page)
    payment_redirect_url: str = "http://localhost:10000/success"
    gateway_timeout: float = 30.0
    # Seconds shaved off the gateway token lifetime before it is refreshed
    gateway_token_leeway: int = 60

    # ===========================================
    # ROUTER BRIDGE
    # ===========================================
    router_api_key: str  # Required, no default
    pending_batch_size: int = 5
    expired_batch_size: int = 50

    # ===========================================
    # QUEUE LIFECYCLE
    # ===========================================
    expiry_grace_minutes: int = 10
    sweep_interval_seconds: int = 120
    sweep_batch_size: int = 50
    retention_days: int = 90
    reference_max_attempts: int = 5
    credential_max_attempts: int = 5

    # ===========================================
    # ADMIN API
    # ===========================================
    admin_api_key: str | None = None  # Optional; admin API disabled when empty

    # ===========================================
    # CIRCUIT BREAKER
    # ===========================================
    cb_failure_threshold: int = 5
    cb_open_seconds: int = 30

    # ===========================================
    # LOGGING
    # ===========================================
    log_level: str = "INFO"
    request_id_header: str = "X-Request-Id"
    log_file: str | None = None
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    @field_validator("router_api_key")
    @classmethod
    def validate_router_key(cls, v: str) -> str:
        """The router key is the only thing guarding the credential feed."""
        if len(v) < 16:
            raise ValueError("router_api_key must be at least 16 characters")
        return v

    @field_validator("monnify_base_url")
    @classmethod
    def strip_base_url(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def payment_methods_list(self) -> list[str]:
        return [m.strip() for m in self.monnify_payment_methods.split(",") if m.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
