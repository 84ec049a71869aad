from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional, TypeVar

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

T = TypeVar("T")


class BuildInfo(BaseModel):
    branch: str = Field(default="dev")
    hash: str = Field(default="dev")


class ServerSettings(BaseModel):
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO"
    )

    @field_validator("port")
    @classmethod
    def validate_port(cls, value: int) -> int:
        if not (1 <= value <= 65535):
            raise ValueError("DEMO_WEB_PORT must be between 1 and 65535")
        return value


class TracingSettings(BaseModel):
    service_name: str = Field(default="demo-web")
    service_version: str = Field(default="1.0.0")
    # eg, http://localhost:4318/v1/traces; empty disables export
    endpoint: str = Field(default="")
    protocol: Literal["grpc", "http/protobuf"] = Field(default="http/protobuf")
    shutdown_timeout_seconds: float = Field(default=5.0, gt=0)


class FeatureSettings(BaseModel):
    enable_random_result: bool = Field(default=True)
    enable_metrics: bool = Field(default=True)
    health_check_interval_seconds: float = Field(default=15.0, gt=0)


class Settings(BaseSettings):
    """
    Top-level settings loaded from environment.

    Service knobs use the DEMO_WEB_ prefix. Build identification and the
    trace collector keep their deployment-wide names:
      GIT_BRANCH, GIT_HASH, JAEGER_TRACE_URL
    """

    model_config = SettingsConfigDict(
        env_prefix="DEMO_WEB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Build
    git_branch: str = Field(
        default="dev", validation_alias=AliasChoices("GIT_BRANCH", "git_branch")
    )
    git_hash: str = Field(
        default="dev", validation_alias=AliasChoices("GIT_HASH", "git_hash")
    )

    # Server
    host: Optional[str] = None
    port: Optional[int] = None
    log_level: Optional[str] = None

    # Tracing
    jaeger_trace_url: str = Field(
        default="",
        validation_alias=AliasChoices("JAEGER_TRACE_URL", "jaeger_trace_url"),
    )
    service_name: Optional[str] = None
    service_version: Optional[str] = None
    trace_protocol: Optional[str] = None
    shutdown_timeout_seconds: Optional[float] = None

    # Features
    enable_random_result: bool = True
    enable_metrics: bool = True
    health_check_interval_seconds: Optional[float] = None

    @property
    def build(self) -> BuildInfo:
        return BuildInfo(branch=self.git_branch, hash=self.git_hash)

    @property
    def server(self) -> ServerSettings:
        return ServerSettings(
            host=self.host or ServerSettings().host,
            port=_default(self.port, ServerSettings().port),
            log_level=(self.log_level or ServerSettings().log_level).upper(),
        )

    @property
    def tracing(self) -> TracingSettings:
        return TracingSettings(
            service_name=self.service_name or TracingSettings().service_name,
            service_version=self.service_version or TracingSettings().service_version,
            endpoint=self.jaeger_trace_url,
            protocol=self.trace_protocol or TracingSettings().protocol,
            shutdown_timeout_seconds=_default(
                self.shutdown_timeout_seconds, TracingSettings().shutdown_timeout_seconds
            ),
        )

    @property
    def features(self) -> FeatureSettings:
        return FeatureSettings(
            enable_random_result=self.enable_random_result,
            enable_metrics=self.enable_metrics,
            health_check_interval_seconds=_default(
                self.health_check_interval_seconds,
                FeatureSettings().health_check_interval_seconds,
            ),
        )


def _default(value: Optional[T], fallback: T) -> T:
    # Explicit zeros must reach the validators, so only None falls back.
    return fallback if value is None else value


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings instance to avoid re-parsing env on every import.

    Usage:
        from demo_web.app.core.config import get_settings
        settings = get_settings()
        settings.server.port, settings.build.hash, ...
    """
    return Settings()
