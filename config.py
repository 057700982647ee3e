from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Letter Portal API"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 3005

    database_url: str = "sqlite+aiosqlite:///./letter_portal.db"
    cors_origins: str = "http://localhost:5173,http://127.0.0.1:5173"

    log_level: str = "INFO"
    log_format: str = "text"

    # Public links (doctor review portal) are built from this
    public_base_url: str = "http://localhost:5173"

    review_token_ttl_days: int = 7
    call_queue_minutes_per_caller: int = 5
    # None keeps the admin rework loop unbounded
    max_rework_cycles: Optional[int] = None

    authorizenet_api_login_id: str = ""
    authorizenet_transaction_key: str = ""
    authorizenet_sandbox: bool = True
    payment_timeout_seconds: float = 30.0

    smtp_server: Optional[str] = None
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_from_email: str = "noreply@letterportal.local"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def authorizenet_configured(self) -> bool:
        return bool(self.authorizenet_api_login_id and self.authorizenet_transaction_key)

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_server)


settings = Settings()
