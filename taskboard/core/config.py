"""
Application configuration settings
"""

import os
from typing import Any, Literal, cast

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def coerce_comma_separated_to_list(v: Any, *, filter_empty: bool = False) -> Any:
    """
    Coerce values that may be a comma-separated string or list into a list.
    - If v is a non-JSON-looking string (doesn't start with '['), split by comma and strip items.
    - If v is already a list or a string (e.g., JSON array string), return as-is.
    - Optionally filter out empty items after stripping.
    """
    if isinstance(v, str) and not v.startswith("["):
        items = [i.strip() for i in v.split(",")]
        if filter_empty:
            items = [i for i in items if i]
        return items
    if isinstance(v, (list, str)):
        return cast(Any, v)
    raise ValueError(f"Invalid type for list coercion: {type(v)}")


class Settings(BaseSettings):
    """Application settings"""

    # API Configuration
    PROJECT_NAME: str = "Taskboard API Server"
    DESCRIPTION: str = "Taskboard API Server - task quadrant board, teams and daily reports"
    VERSION: str = "0.1.0"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"

    # Server Configuration
    HOST: str = "0.0.0.0"
    PORT: int = 33001

    # CORS Configuration
    BACKEND_CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Any) -> Any:
        try:
            return coerce_comma_separated_to_list(v, filter_empty=True)
        except ValueError:
            raise ValueError(f"Invalid type for CORS origins: {type(v)}")

    # API Key Configuration (up to 99 keys: API_KEY1 to API_KEY99)
    # Format: name,enabled,type,key (e.g., "taskboard-web-1,true,user,a1b2c3d4e5f6g7h8i9j0k1l2m3n4o5p6").
    # "admin" keys may call the privileged /functions endpoints.
    api_keys: dict[str, dict[str, str | bool | Literal["user", "admin"]]] = {}

    @model_validator(mode="before")
    @classmethod
    def parse_api_keys(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Parse API_KEY1 through API_KEY99 from environment variables"""

        api_keys = {}
        for i in range(1, 100):
            key_name = f"API_KEY{i}"
            raw_value = os.environ.get(key_name) or values.get(key_name)
            if raw_value:
                parts = [p.strip() for p in raw_value.split(",")]
                if len(parts) == 4:
                    name, enabled_str, key_type, key = parts
                    enabled = enabled_str.lower() in ("true", "1", "yes")
                    api_keys[key] = {
                        "name": name,
                        "enabled": enabled,
                        "type": key_type.lower(),  # "user" or "admin"
                    }
        values["api_keys"] = api_keys
        return values

    # Database Configuration
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "taskboard"
    POSTGRES_URL: str | None = None

    @property
    def postgres_url(self) -> str:
        """Construct database URL"""
        if self.POSTGRES_URL:
            return self.POSTGRES_URL
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    # Redis Configuration
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str | None = None
    REDIS_URL: str | None = None

    @property
    def redis_url(self) -> str:
        """Construct Redis URL"""
        if self.REDIS_URL:
            return self.REDIS_URL
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    # Realtime change feed (Redis Streams, one stream per table)
    REALTIME_ENABLED: bool = True
    REALTIME_STREAM_MAXLEN: int = 10_000
    REALTIME_STREAM_TTL_SECONDS: int = 3600 if ENVIRONMENT == "development" else 300

    # Audit trail: "log_and_continue" keeps the task update when an audit row cannot be written,
    # "raise" turns the audit failure into a 500 after the task update has been committed.
    AUDIT_WRITE_FAILURE_POLICY: Literal["log_and_continue", "raise"] = "log_and_continue"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="allow",
    )


settings = Settings()
