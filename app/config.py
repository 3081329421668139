from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """MSP core gateway settings loaded from the environment and `.env`."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Service Configuration
    SERVICE_NAME: str = "msp-core-gateway"
    SERVICE_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    # Backend Configuration
    BACKEND: str = "memory"  # memory or supabase
    SUPABASE_URL: Optional[str] = None
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = None
    SUPABASE_TIMEOUT: int = 10
    SEED_FILE: Optional[str] = None

    # Security Configuration
    JWT_SECRET_KEY: str = "your-secret-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: Optional[str] = None

    # Rate Limiting Configuration
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_DEFAULT_PER_MINUTE: int = 60
    RATE_LIMIT_WINDOW_SECONDS: int = 60

    # Request Logging Configuration
    REQUEST_LOG_BACKGROUND: bool = True

    # Contract Lifecycle Configuration
    APPROVAL_TIMEOUT_HOURS: int = 48

    # Pricing Configuration
    SUPPORTED_CURRENCIES: List[str] = ["USD", "EUR", "GBP"]
    MAX_DISCOUNT_RATIO: float = 0.95

    # Logging Configuration
    LOG_LEVEL: str = "INFO"

    # OpenAPI Configuration
    OPENAPI_TITLE: str = "MSP Core Gateway"
    OPENAPI_DESCRIPTION: str = (
        "API gateway, contract lifecycle and pricing engine for the MSP platform"
    )


def get_settings() -> Settings:
    return Settings()


settings = get_settings()
