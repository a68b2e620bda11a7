"""
Configuration settings for the Slack toolkit
"""
import os
import logging
from typing import List, Optional
from pydantic import BaseModel, Field
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_bool(key: str, default: str) -> bool:
    return os.getenv(key, default).lower() == "true"


class SlackSettings(BaseModel):
    """Slack workspace credentials and HTTP client configuration"""
    xoxc_token: str = Field(default="")
    xoxd_token: str = Field(default="")
    team_domain: str = Field(default="")
    base_url: str = Field(default="https://slack.com/api")
    timeout: float = Field(default=30.0)
    user_agent: str = Field(
        default="Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
                "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )

    @property
    def has_credentials(self) -> bool:
        return bool(self.xoxc_token and self.xoxd_token and self.team_domain)


class RegistrySettings(BaseModel):
    """Tool registry and execution pipeline configuration"""
    enable_metrics: bool = Field(default=True)
    enable_tracing: bool = Field(default=True)
    enable_rate_limits: bool = Field(default=True)
    default_timeout_seconds: float = Field(default=30.0)
    max_concurrent_executions: int = Field(default=10)


class CollectionSettings(BaseModel):
    """Thread collection tuning"""
    max_history_pages: int = Field(default=20)
    history_page_size: int = Field(default=999)
    replies_page_size: int = Field(default=999)
    fetch_batch_size: int = Field(default=5)
    inter_batch_delay_seconds: float = Field(default=0.2)


class ServerSettings(BaseModel):
    """FastAPI server configuration"""
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8002)
    reload: bool = Field(default=False)


class LoggingSettings(BaseModel):
    """Logging configuration"""
    level: str = Field(default="INFO")
    format: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    file_path: Optional[str] = Field(default=None)


class Settings(BaseModel):
    """Main application settings"""
    app_name: str = "Slack Toolkit"
    app_version: str = "0.1.0"
    environment: str = "development"

    # Sub-configurations
    slack: SlackSettings = Field(default_factory=SlackSettings)
    registry: RegistrySettings = Field(default_factory=RegistrySettings)
    collection: CollectionSettings = Field(default_factory=CollectionSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    def __init__(self, **kwargs):
        # Load environment variables with defaults
        env_data = {
            "slack": {
                "xoxc_token": os.getenv("SLACK_XOXC_TOKEN", ""),
                "xoxd_token": os.getenv("SLACK_XOXD_TOKEN", ""),
                "team_domain": os.getenv("SLACK_TEAM_DOMAIN", ""),
                "base_url": os.getenv("SLACK_API_BASE_URL", "https://slack.com/api"),
                "timeout": float(os.getenv("SLACK_API_TIMEOUT", "30")),
            },
            "registry": {
                "enable_metrics": _env_bool("TOOLS_ENABLE_METRICS", "true"),
                "enable_tracing": _env_bool("TOOLS_ENABLE_TRACING", "true"),
                "enable_rate_limits": _env_bool("TOOLS_ENABLE_RATE_LIMITS", "true"),
                "default_timeout_seconds": float(os.getenv("TOOLS_DEFAULT_TIMEOUT", "30")),
                "max_concurrent_executions": int(os.getenv("TOOLS_MAX_CONCURRENT", "10")),
            },
            "collection": {
                "max_history_pages": int(os.getenv("COLLECTION_MAX_HISTORY_PAGES", "20")),
                "history_page_size": int(os.getenv("COLLECTION_HISTORY_PAGE_SIZE", "999")),
                "replies_page_size": int(os.getenv("COLLECTION_REPLIES_PAGE_SIZE", "999")),
                "fetch_batch_size": int(os.getenv("COLLECTION_FETCH_BATCH_SIZE", "5")),
                "inter_batch_delay_seconds": float(os.getenv("COLLECTION_BATCH_DELAY", "0.2")),
            },
            "server": {
                "host": os.getenv("SERVER_HOST", "127.0.0.1"),
                "port": int(os.getenv("SERVER_PORT", "8002")),
                "reload": _env_bool("SERVER_RELOAD", "false"),
            },
            "logging": {
                "level": os.getenv("LOG_LEVEL", "INFO").upper(),
                "format": os.getenv("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
                "file_path": os.getenv("LOG_FILE_PATH"),
            },
        }

        # Merge with any provided kwargs
        for key in list(kwargs.keys()):
            if key not in env_data:
                continue
            value = kwargs.pop(key)
            if isinstance(value, dict):
                env_data[key].update(value)
            else:
                env_data[key] = value

        kwargs.setdefault("environment", os.getenv("APP_ENV", "development"))
        super().__init__(**env_data, **kwargs)

    def is_production(self) -> bool:
        return self.environment == "production"


def configure_logging(logging_settings: Optional[LoggingSettings] = None) -> None:
    """Apply logging configuration; handlers write to stderr"""
    logging_settings = logging_settings or settings.logging
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if logging_settings.file_path:
        handlers.append(logging.FileHandler(logging_settings.file_path))

    logging.basicConfig(
        level=getattr(logging, logging_settings.level, logging.INFO),
        format=logging_settings.format,
        handlers=handlers,
        force=True,
    )


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the global settings instance"""
    return settings
