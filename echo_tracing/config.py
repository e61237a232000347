from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    listen_host: str = Field(default="0.0.0.0", alias="LISTEN_HOST")
    listen_port: int = Field(default=8080, alias="LISTEN_PORT")
    shutdown_timeout_seconds: float = Field(default=5.0, alias="SHUTDOWN_TIMEOUT_SECONDS")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Exporter selection follows the OpenTelemetry environment conventions;
    # endpoint, headers and credentials are read by the exporters themselves.
    traces_exporter: str = Field(default="otlp", alias="OTEL_TRACES_EXPORTER")
    otlp_protocol: str = Field(
        default="http/protobuf",
        validation_alias=AliasChoices("OTEL_EXPORTER_OTLP_TRACES_PROTOCOL", "OTEL_EXPORTER_OTLP_PROTOCOL"),
    )

    @property
    def listen_address(self) -> str:
        return f"{self.listen_host}:{self.listen_port}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
