import os
from typing import Optional
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    environment: str = "development"
    port: int = 9000
    log_level: Optional[str] = None

    # Merchant identity handed to the code generator
    pix_key: Optional[str] = None
    pix_name: Optional[str] = None
    pix_city: Optional[str] = None

    webhook_url: Optional[str] = None
    webhook_timeout: float = Field(default=10.0, gt=0)
    api_token: Optional[str] = None

    data_file: str = "data.json"
    database_url: Optional[str] = None
    strict_persistence: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("pix_key", "pix_name", "pix_city", "webhook_url", "api_token", "database_url", mode="before")
    @classmethod
    def blank_is_unset(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def default_log_level(self) -> "Settings":
        if not self.log_level:
            self.log_level = "INFO" if self.environment == "production" else "DEBUG"
        return self

    @classmethod
    def from_env(cls) -> "Settings":
        # .env is a development convenience; production reads the real environment only
        if os.getenv("ENVIRONMENT") == "production":
            return cls(_env_file=None)
        return cls()
