"""Configuration models with validation for the lock-pick client."""

from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings

from .core.consumption import BROKEN_SUFFIX, DEFAULT_REPLACEMENT_SLUGS, DEFAULT_TOOL_SLUGS
from .core.models import MAX_REQUIRED_ATTEMPTS, MIN_REQUIRED_ATTEMPTS


class ClientConfig(BaseModel):
    """Identity of the local client."""

    user_id: str = "gm"
    user_name: str = "Game Master"
    is_gm: bool = True


class ChannelConfig(BaseModel):
    """Relay connection settings."""

    uri: str = "ws://localhost:8765"
    # Reconnection settings (exponential backoff)
    reconnect_base_delay: float = Field(default=1.0, ge=0.5, le=10.0)
    reconnect_max_delay: float = Field(default=30.0, ge=5.0, le=300.0)
    reconnect_jitter: float = Field(default=0.1, ge=0.0, le=0.5)
    # Heartbeat settings (ping/pong for dead connection detection)
    ping_interval: float = Field(default=10.0, ge=5.0, le=60.0)
    ping_timeout: float = Field(default=5.0, ge=2.0, le=30.0)
    send_queue_max_size: int = Field(default=100, ge=10, le=1000)


class RelayConfig(BaseModel):
    """Relay server settings."""

    host: str = "localhost"
    port: int = Field(default=8765, ge=1, le=65535)


class ChallengeConfig(BaseModel):
    """Challenge defaults and item classification."""

    default_dc: int = Field(default=20, gt=0)
    default_required_attempts: int = Field(
        default=MIN_REQUIRED_ATTEMPTS, ge=MIN_REQUIRED_ATTEMPTS, le=MAX_REQUIRED_ATTEMPTS
    )
    tool_slugs: list[str] = Field(default_factory=lambda: list(DEFAULT_TOOL_SLUGS))
    replacement_slugs: list[str] = Field(default_factory=lambda: list(DEFAULT_REPLACEMENT_SLUGS))
    broken_suffix: str = Field(default=BROKEN_SUFFIX, min_length=1)
    item_kind: str = "equipment"

    @model_validator(mode="after")
    def check_slugs_disjoint(self) -> "ChallengeConfig":
        overlap = set(self.tool_slugs) & set(self.replacement_slugs)
        if overlap:
            raise ValueError(f"Slugs cannot be both tools and replacement picks: {sorted(overlap)}")
        return self


class LocalizationConfig(BaseModel):
    """String catalog settings."""

    language: str = "en"
    catalog_dir: Path | None = None


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = Field(default="INFO")
    format: str = Field(default="%(asctime)s | %(name)s | %(levelname)s | %(message)s")
    json_mode: bool = Field(default=False)

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid}")
        return v.upper()


class LockPickConfig(BaseSettings):
    """Root configuration for a lock-pick client.

    Loads from config.yaml with environment variable overrides.
    Environment variables use LOCKPICK_ prefix (e.g., LOCKPICK_CHANNEL__URI).
    """

    client: ClientConfig = Field(default_factory=ClientConfig)
    channel: ChannelConfig = Field(default_factory=ChannelConfig)
    relay: RelayConfig = Field(default_factory=RelayConfig)
    challenge: ChallengeConfig = Field(default_factory=ChallengeConfig)
    localization: LocalizationConfig = Field(default_factory=LocalizationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {
        "env_prefix": "LOCKPICK_",
        "env_nested_delimiter": "__",
    }

    @classmethod
    def load(cls, config_path: Path | None = None) -> "LockPickConfig":
        """Load configuration from YAML file with env overrides.

        Args:
            config_path: Path to config.yaml. If None, uses defaults.

        Returns:
            Validated LockPickConfig instance.
        """
        import os

        import yaml

        config_data = {}

        if config_path and config_path.exists():
            with open(config_path) as f:
                config_data = yaml.safe_load(f) or {}

        # Identity overrides so several clients can share one config file
        if os.getenv("LOCKPICK_USER_ID"):
            config_data.setdefault("client", {})["user_id"] = os.getenv("LOCKPICK_USER_ID")
        if os.getenv("LOCKPICK_USER_NAME"):
            config_data.setdefault("client", {})["user_name"] = os.getenv("LOCKPICK_USER_NAME")
        if os.getenv("LOCKPICK_IS_GM"):
            config_data.setdefault("client", {})["is_gm"] = os.getenv("LOCKPICK_IS_GM").lower() in ("1", "true", "yes")

        if os.getenv("LOCKPICK_RELAY_URI"):
            config_data.setdefault("channel", {})["uri"] = os.getenv("LOCKPICK_RELAY_URI")

        return cls(**config_data)
