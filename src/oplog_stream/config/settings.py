"""
Pydantic Settings Models for oplog stream configuration
"""

from typing import Any, Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MongoSettings(BaseSettings):
    """MongoDB source configuration"""

    uri: str = Field(
        default="mongodb://localhost:27017/?directConnection=true",
        description="Connection string of a replica set member",
    )
    database: str = Field(default="local", description="Database holding the oplog")
    collection: str = Field(default="oplog.rs", description="Oplog collection name")
    server_selection_timeout_ms: int = Field(default=30000, ge=100, le=600000)

    model_config = SettingsConfigDict(env_prefix="OPLOG_MONGO_")


class StreamSettings(BaseSettings):
    """Oplog stream tuning parameters"""

    filter: Optional[Dict[str, Any]] = Field(
        default=None, description="Query restricting which oplog entries are returned"
    )
    max_await_time_ms: Optional[int] = Field(
        default=1000, ge=1, le=3600000, description="Server-side await window per empty read"
    )
    strict: bool = Field(default=False, description="Raise the error that ends the stream")

    model_config = SettingsConfigDict(env_prefix="OPLOG_STREAM_")

    @field_validator("filter")
    @classmethod
    def validate_filter(cls, v: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        """Treat an empty filter as no filter"""
        return v or None


class ObservabilitySettings(BaseSettings):
    """Metrics and logging configuration"""

    metrics_enabled: bool = Field(default=False)
    metrics_port: int = Field(default=9090, ge=1024, le=65535)
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    log_format: str = Field(default="json", pattern="^(json|console)$")

    model_config = SettingsConfigDict(env_prefix="OPLOG_")


class OplogSettings(BaseSettings):
    """Complete oplog tailer configuration"""

    mongo: MongoSettings = Field(default_factory=MongoSettings)
    stream: StreamSettings = Field(default_factory=StreamSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    model_config = SettingsConfigDict(
        env_prefix="OPLOG_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
