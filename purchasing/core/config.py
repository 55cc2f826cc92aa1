from pydantic import Field
from pydantic_settings import BaseSettings

_PLACEHOLDER_SMTP_PASSWORDS = {"", "your_smtp_password_here", "changeme"}


class Settings(BaseSettings):
    """Application configuration loaded from environment variables / .env file."""

    app_name: str = "Purchase Order API"
    app_env: str = "development"
    app_port: int = 8000
    frontend_url: str = "http://localhost:5173"
    max_upload_size_mb: int = 10
    upload_dir: str = Field(default="./uploads", alias="UPLOAD_DIR")

    # Database (any SQLAlchemy async URL; SQLite for local dev)
    database_url: str = Field(
        default="sqlite+aiosqlite:///./purchasing_dev.db",
        alias="DATABASE_URL",
    )
    auto_create_tables: bool = Field(default=True, alias="AUTO_CREATE_TABLES")
    sql_echo: bool = Field(default=False, alias="SQL_ECHO")

    # Multi-tenancy default
    default_client_id: str = Field(default="default", alias="DEFAULT_CLIENT_ID")

    # Sessions
    session_secret: str = Field(default="dev-session-secret", alias="SESSION_SECRET")
    session_max_age: int = Field(default=60 * 60 * 24, alias="SESSION_MAX_AGE")

    # SMTP
    smtp_host: str = Field(default="smtp.naver.com", alias="SMTP_HOST")
    smtp_port: int = Field(default=587, alias="SMTP_PORT")
    smtp_user: str | None = Field(default=None, alias="SMTP_USER")
    smtp_pass: str | None = Field(default=None, alias="SMTP_PASS")
    smtp_sender_name: str = Field(default="발주 시스템", alias="SMTP_SENDER_NAME")
    smtp_timeout: int = Field(default=30, alias="SMTP_TIMEOUT")

    # Excel template
    input_sheet_prefix: str = Field(default="Input", alias="INPUT_SHEET_PREFIX")
    extract_sheet_names: list[str] = Field(
        default_factory=lambda: ["갑지", "을지"], alias="EXTRACT_SHEET_NAMES",
    )
    vat_rate: float = Field(default=0.1, alias="VAT_RATE")

    # Auditing
    audit_enabled: bool = Field(default=True, alias="AUDIT_ENABLED")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "populate_by_name": True,
    }

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    @property
    def email_test_mode(self) -> bool:
        """Emails are simulated unless real SMTP credentials are configured."""
        return (
            (self.smtp_pass or "") in _PLACEHOLDER_SMTP_PASSWORDS
            or self.app_env == "test"
        )

settings = Settings()
