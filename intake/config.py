from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # Storage
    database_url: str = "sqlite:///./intake_drafts.db"

    # Draft Backend Client
    api_base_url: str = "http://localhost:8000"
    request_timeout_seconds: float = 10.0
    identity_store_path: str = ".intake_identity.json"

    # Intake Behaviour
    signature_sentinel: str = "SIGNED_VIA_CHECKBOX_CONSENT"
    block_navigation_on_commit_failure: bool = False

    # Application Settings
    app_name: str = "Guided Intake Drafts"
    app_version: str = "0.1.0"

    # Logging Configuration
    log_level: str = "INFO"
    log_format: str = "json"

    # Feature Flags
    enable_rate_limiting: bool = True
    max_requests_per_minute: int = 60
    rate_limit_by_ip: bool = True

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


# Create a global settings instance
settings = Settings()
