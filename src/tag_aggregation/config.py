"""
Configuration management for tag aggregation.

Uses Pydantic for validation and pydantic-settings for environment variable support.
A ``Config`` value is built once by the caller and passed explicitly to each
component; there is no process-wide configuration instance.
"""

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

IN_MEMORY_DATABASE = ":memory:"


class DatabaseConfig(BaseSettings):
    """Database configuration.

    The store is an embedded SQLite database. ``path`` may be a file path,
    a ``sqlite://`` URL, or ``:memory:`` for a throwaway database shared by
    every thread of the process.

    Environment variables: DB_PATH, DB_ECHO, DB_POOL_SIZE, DB_MAX_OVERFLOW.
    """

    model_config = SettingsConfigDict(env_prefix="DB_")

    path: str = Field(default=IN_MEMORY_DATABASE, description="Database file path (default in-memory)")
    echo: bool = Field(default=False, description="Echo SQL statements")
    pool_size: int = Field(default=5, ge=1, le=100, description="Connection pool size")
    max_overflow: int = Field(default=10, ge=0, description="Max overflow connections")

    @property
    def in_memory(self) -> bool:
        """Whether the database lives only in process memory."""
        return self.path in ("", IN_MEMORY_DATABASE, "sqlite://", "sqlite:///:memory:")


class CollectorConfig(BaseSettings):
    """Collector polling configuration."""

    model_config = SettingsConfigDict(env_prefix="COLLECTOR_")

    poll_interval_seconds: int = Field(default=60, ge=1, description="Seconds between collection cycles")
    stop_grace_seconds: float = Field(default=1.0, gt=0, description="Maximum wait for a graceful stop")
    error_policy: str = Field(default="continue", description="Source failure policy: continue or abort")
    timezone: str = Field(default="UTC", description="Scheduler timezone")
    misfire_grace_time: int = Field(default=30, ge=1, description="Misfire grace time in seconds")

    @field_validator("error_policy")
    @classmethod
    def validate_error_policy(cls, v: str) -> str:
        """Validate error policy."""
        v = v.lower().strip()
        valid_policies = ["continue", "abort"]
        if v not in valid_policies:
            raise ValueError(f"Invalid error policy: {v!r}. Must be one of {valid_policies}")
        return v


class SourceConfig(BaseSettings):
    """Mastodon hashtag timeline source configuration."""

    model_config = SettingsConfigDict(env_prefix="SOURCE_")

    servers: list[str] = Field(default_factory=lambda: ["mastodon.social"], description="Servers to poll")
    access_token: Optional[str] = Field(default=None, description="Bearer token (anonymous when unset)")

    # HTTP settings
    timeout_seconds: int = Field(default=30, ge=1, le=300, description="Request timeout")
    user_agent: str = Field(
        default="tag-aggregation/0.1.0",
        description="User-Agent header"
    )
    page_limit: int = Field(default=20, ge=1, le=40, description="Statuses requested per timeline page")

    # Retry settings
    max_retries: int = Field(default=2, ge=0, le=10)
    retry_delay_seconds: float = Field(default=1.0, ge=0)

    @field_validator("servers")
    @classmethod
    def strip_servers(cls, v: list[str]) -> list[str]:
        """Drop scheme prefixes and trailing slashes from server names."""
        cleaned = []
        for server in v:
            server = server.strip().removeprefix("https://").removeprefix("http://").rstrip("/")
            if server:
                cleaned.append(server)
        return cleaned


class ReportConfig(BaseSettings):
    """Report configuration."""

    model_config = SettingsConfigDict(env_prefix="REPORT_")

    window_hours: int = Field(default=48, ge=1, description="Trailing report window in hours")
    tags: list[str] = Field(default_factory=list, description="Default tags to collect and report")


class WebConfig(BaseSettings):
    """Stats service configuration."""

    model_config = SettingsConfigDict(env_prefix="WEB_")

    host: str = Field(default="127.0.0.1", description="Web server host")
    port: int = Field(default=8080, ge=0, le=65535, description="Web server port (0 picks a free port)")
    shutdown_grace_seconds: float = Field(default=1.0, gt=0, description="Maximum wait for in-flight requests")
    debug: bool = Field(default=False, description="Debug mode")


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(
        default="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        description="Log format"
    )

    # File logging
    file_enabled: bool = Field(default=False, description="Enable file logging")
    file_path: str = Field(default="logs/tag_aggregation.log", description="Log file path")
    rotation: str = Field(default="100 MB", description="Log rotation size")
    retention: str = Field(default="30 days", description="Log retention period")

    # Console logging
    console_enabled: bool = Field(default=True, description="Enable console logging")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v


class Config(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="TAGAGG_",
        case_sensitive=False,
        extra="ignore",
    )

    # Sub-configurations
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    collector: CollectorConfig = Field(default_factory=CollectorConfig)
    source: SourceConfig = Field(default_factory=SourceConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)
    web: WebConfig = Field(default_factory=WebConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


_SECTION_CLASSES: dict[str, type[BaseSettings]] = {
    "database": DatabaseConfig,
    "collector": CollectorConfig,
    "source": SourceConfig,
    "report": ReportConfig,
    "web": WebConfig,
    "logging": LoggingConfig,
}


def load_config_from_yaml(yaml_path: str) -> Config:
    """Load configuration from a YAML file.

    Nested sections are built from their YAML mapping; sections missing from
    the file still read their environment variables.

    Args:
        yaml_path: Path to the YAML configuration file.

    Returns:
        Config instance loaded from the file.
    """
    import yaml

    yaml_file = Path(yaml_path)
    if not yaml_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

    with yaml_file.open("r", encoding="utf-8") as f:
        config_dict = yaml.safe_load(f) or {}

    if not isinstance(config_dict, dict):
        raise ValueError(f"Configuration file must contain a mapping: {yaml_path}")

    main_config = {}
    for key, value in config_dict.items():
        if key not in _SECTION_CLASSES:
            main_config[key] = value

    for key, config_class in _SECTION_CLASSES.items():
        main_config[key] = config_class(**(config_dict.get(key) or {}))

    return Config(**main_config)
