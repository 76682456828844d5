from typing import Optional, Literal
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Environment Configuration
    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development"
    )

    # Transport Configuration
    TRANSPORT_MODE: Optional[Literal["http", "stdio"]] = Field(default="http")

    # Backend API Configuration
    API_BASE_URL: str = Field(default="http://localhost:8000/api/v1")

    PORT: Optional[int] = Field(default=None)

    # Authentication
    API_KEY: Optional[str] = Field(default=None)

    # Logging
    LOG_LEVEL: str = Field(default="INFO")

    # Rate Limiting
    RATE_LIMIT_PER_MINUTE: int = Field(default=60)

    # Retry Configuration
    MAX_RETRIES: int = Field(default=3, ge=1)
    RETRY_DELAY: float = Field(default=1.0)

    # Connection Configuration
    CONNECTION_TIMEOUT: int = Field(default=30)
    REQUEST_TIMEOUT: int = Field(default=30)

    # CORS Configuration (for HTTP transport)
    CORS_ORIGINS: str = Field(default="*")
    CORS_METHODS: str = Field(default="GET,POST,OPTIONS")
    CORS_HEADERS: str = Field(default="Content-Type,Authorization")

    # Discovery
    DEFAULT_LATITUDE: float = Field(default=20.5937, ge=-90, le=90)
    DEFAULT_LONGITUDE: float = Field(default=78.9629, ge=-180, le=180)
    GEOLOCATION_TIMEOUT: float = Field(default=10.0, gt=0)
    DEFAULT_PAGE_SIZE: int = Field(default=50, ge=1, le=100)
    MAX_SESSIONS: int = Field(default=500, ge=1)

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def set_log_level(cls, v, info):
        """Auto-adjust log level based on environment if not explicitly set"""
        if v != "INFO":
            return v.upper()

        environment = info.data.get("ENVIRONMENT", "development")
        if environment == "production":
            return "INFO"
        return "DEBUG"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def default_coordinate(self) -> dict:
        return {"latitude": self.DEFAULT_LATITUDE, "longitude": self.DEFAULT_LONGITUDE}

    @property
    def server_info(self) -> dict:
        """Get server configuration info"""
        return {
            "environment": self.ENVIRONMENT,
            "transport_mode": self.TRANSPORT_MODE,
            "mcp_port": self.PORT,
            "api_base_url": self.API_BASE_URL,
            "log_level": self.LOG_LEVEL,
            "default_location": self.default_coordinate,
        }


settings = Settings()
