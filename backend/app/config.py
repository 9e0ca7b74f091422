from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


DEFAULT_WHIP_GATEWAY_URL = "https://eyevinnlab-livevibe.eyevinn-smb-whip-bridge.auto.prod.osaas.io"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = Field(default="Join Live", description="Human readable service name")
    environment: str = Field(default="development", description="Deployment environment name")
    debug: bool = Field(default=False, description="Enable debug mode")

    cors_origins: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: [
            "http://localhost",
            "http://localhost:3000",
            "http://127.0.0.1",
            "http://127.0.0.1:3000",
        ],
        description="List of allowed CORS origins",
    )
    cors_allow_origin_regex: str | None = Field(
        default=r"^https?://(localhost|127\.0\.0\.1|\[::1\])(:\d+)?$",
        description="Optional regular expression that matches allowed CORS origins",
    )

    whip_gateway_url: str = Field(
        default=DEFAULT_WHIP_GATEWAY_URL,
        description="Base URL of the media ingest gateway used by participants",
    )
    whip_endpoint_path: str = Field(
        default="/api/v2/whip/sfu-broadcaster",
        description="Path appended to the ingest gateway base URL",
    )
    whep_gateway_url: str | None = Field(
        default=None,
        description="Base URL of the playback gateway; defaults to the ingest gateway",
    )
    whip_auth_key: str | None = Field(default=None, description="Optional ingest gateway key")
    whep_auth_key: str | None = Field(
        default=None,
        description="Optional playback gateway key; defaults to the ingest key",
    )

    countdown_default_seconds: int = Field(
        default=5, ge=1, description="Countdown length used when the editor does not pick one"
    )
    countdown_max_seconds: int = Field(
        default=60, ge=1, description="Upper bound for a requested countdown length"
    )
    countdown_tick_seconds: float = Field(
        default=1.0, gt=0, description="Interval between countdown broadcasts"
    )

    message_name_max_length: int = Field(default=64, ge=1)
    message_max_length: int = Field(default=500, ge=1)
    published_history_limit: int = Field(
        default=200,
        ge=0,
        description="Number of published messages kept in memory (0 keeps all)",
    )

    websocket_keepalive_timeout_seconds: float = Field(
        default=30,
        description="Idle period after which the server checks the websocket with a ping",
    )
    websocket_keepalive_ping_interval_seconds: float = Field(
        default=30,
        description="Minimum interval between keepalive pings on an idle websocket",
    )

    live_ws_url: str | None = Field(
        default=None,
        description="Public websocket URL advertised to clients; derived from the request when unset",
    )
    client_reconnect_delay_seconds: float = Field(
        default=3.0, gt=0, description="Fixed backoff used by clients after a dropped connection"
    )

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parents[2] / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Any) -> Any:
        if v in (None, "", Ellipsis):
            return []
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        if isinstance(v, (list, tuple, set)):
            return [str(origin) for origin in v]
        return v

    @field_validator("whip_gateway_url", mode="before")
    @classmethod
    def normalize_whip_gateway(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().rstrip("/") or DEFAULT_WHIP_GATEWAY_URL
        return value

    @field_validator("whep_gateway_url", mode="before")
    @classmethod
    def normalize_whep_gateway(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().rstrip("/") or None
        return value

    @field_validator("whip_auth_key", "whep_auth_key", mode="before")
    @classmethod
    def blank_key_is_unset(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def whip_ingest_url(self) -> str:
        return self.whip_gateway_url + self.whip_endpoint_path

    @property
    def whep_gateway_base(self) -> str:
        return self.whep_gateway_url or self.whip_gateway_url

    @property
    def whep_key(self) -> str | None:
        return self.whep_auth_key or self.whip_auth_key


@lru_cache
def get_settings() -> Settings:
    return Settings()
