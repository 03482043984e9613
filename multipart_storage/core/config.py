"""Unified configuration management: environment variables, .env files, optional YAML file."""
import json
import os
import socket
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from multipart_storage.core.exceptions import ConfigurationException

ENV_PREFIX = "MULTIPART_"

DEFAULT_ACCEPT_SUFFIXES = ".jpg,.jpeg,.png,.zip,.csv,.json,.atlas,.xls,.xlsx"


class Environment(Enum):
    """Runtime environment."""
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(Enum):
    """Log level."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class RedisConfig:
    """Redis configuration."""
    url: str = "redis://localhost:6379/0"
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None
    max_connections: int = 20
    connection_pool_timeout: int = 5
    key_prefix: str = "platform:multipart_storage"


@dataclass
class StorageConfig:
    """Staging, publishing and validation limits for uploaded files."""
    upload_path: str
    root_path: str
    download_path: str
    delay_delete_duration: str = "10m"
    delay_job_interval: float = 30.0
    upload_max_size: int = 5 * 1024 * 1024
    upload_accept_suffixes: str = DEFAULT_ACCEPT_SUFFIXES
    upload_type_max_size: Dict[int, int] = field(default_factory=dict)
    upload_type_accept_suffixes: Dict[int, str] = field(default_factory=dict)
    check_size_enabled: bool = False
    check_size_max: int = 10 * 1024 * 1024
    type_check_size_max: Dict[int, int] = field(default_factory=dict)
    check_content_enabled: bool = False

    def accept_suffixes(self, resource_type: int) -> List[str]:
        """Accepted extensions for a resource type; an empty list accepts everything."""
        raw = self.upload_type_accept_suffixes.get(int(resource_type), self.upload_accept_suffixes)
        return [suffix.strip() for suffix in raw.split(",") if suffix.strip()]

    def max_upload_size(self, resource_type: int) -> int:
        return self.upload_type_max_size.get(int(resource_type), self.upload_max_size)

    def max_chunk_size(self, resource_type: int) -> int:
        return self.type_check_size_max.get(int(resource_type), self.check_size_max)


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: LogLevel = LogLevel.INFO
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: str = "logs"
    max_file_size: int = 10 * 1024 * 1024
    backup_count: int = 10
    enable_console: bool = True
    enable_file: bool = True


class Settings(BaseSettings):
    """Application settings backed by pydantic-settings."""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=[".env.dev", ".env", ".env.local"],
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    app_name: str = Field(default="Multipart Storage API", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")
    environment: Environment = Field(default=Environment.DEVELOPMENT, description="Runtime environment")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000, ge=1, le=65535)
    hostname: str = Field(default_factory=socket.gethostname, description="Suffix for generated upload ids")

    # Filesystem layout
    upload_path: str = Field(default="/tmp/multipart_storage/upload", description="Staging directory")
    upload_root_path: str = Field(default="/tmp/multipart_storage/cdn", description="Publish (CDN) directory")
    upload_download_path: str = Field(default="/tmp/multipart_storage/download",
                                      description="Publish directory for documents and agent control files")

    # Single-file upload limits
    upload_max_size: int = Field(default=5 * 1024 * 1024, ge=1)
    upload_accept_suffixes: str = Field(default=DEFAULT_ACCEPT_SUFFIXES)
    upload_type_max_size: Dict[int, int] = Field(default_factory=dict)
    upload_type_accept_suffixes: Dict[int, str] = Field(default_factory=dict)

    # Multipart upload validation
    multipart_check_size_enabled: bool = Field(default=False)
    multipart_check_size_max: int = Field(default=10 * 1024 * 1024, ge=1)
    multipart_type_check_size_max: Dict[int, int] = Field(default_factory=dict)
    multipart_check_content_enabled: bool = Field(default=False)

    # Deferred deletion; the duration is parsed leniently by the delay job
    storage_delay_delete_duration: str = Field(default="10m")
    storage_delay_job_interval: float = Field(default=30.0, gt=0)

    # Redis
    redis_url: str = Field(default="redis://localhost:6379/0")
    redis_host: str = Field(default="localhost")
    redis_port: int = Field(default=6379, ge=1, le=65535)
    redis_db: int = Field(default=0, ge=0, le=15)
    redis_password: Optional[str] = Field(default=None)
    redis_max_connections: int = Field(default=20, ge=1, le=100)
    redis_connection_pool_timeout: int = Field(default=5, ge=1, le=60)
    redis_key_prefix: str = Field(default="platform:multipart_storage")

    # Logging
    log_level: LogLevel = Field(default=LogLevel.INFO)
    log_format: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s")
    log_dir: str = Field(default="logs")
    log_max_file_size: int = Field(default=10 * 1024 * 1024, ge=1024, le=1024 * 1024 * 1024)
    log_backup_count: int = Field(default=10, ge=1, le=50)
    log_enable_console: bool = Field(default=True)
    log_enable_file: bool = Field(default=True)

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v):
        if isinstance(v, str):
            return Environment(v.lower())
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v):
        if isinstance(v, str):
            return LogLevel(v.upper())
        return v

    @field_validator("redis_key_prefix")
    @classmethod
    def validate_key_prefix(cls, v):
        """Keys are joined with ':' so a trailing separator would double it."""
        v = v.strip().rstrip(":")
        if not v:
            raise ValueError("redis_key_prefix must not be empty")
        return v

    @model_validator(mode="after")
    def validate_dependencies(self):
        """Production deployments must keep an on-disk log trail."""
        if self.environment == Environment.PRODUCTION:
            if self.debug:
                raise ValueError("Debug mode should be disabled in production")
            if not self.log_enable_file:
                raise ValueError("Production environment requires file logging enabled")
        return self

    def get_redis_config(self) -> RedisConfig:
        return RedisConfig(
            url=self.redis_url,
            host=self.redis_host,
            port=self.redis_port,
            db=self.redis_db,
            password=self.redis_password,
            max_connections=self.redis_max_connections,
            connection_pool_timeout=self.redis_connection_pool_timeout,
            key_prefix=self.redis_key_prefix
        )

    def get_storage_config(self) -> StorageConfig:
        return StorageConfig(
            upload_path=self.upload_path,
            root_path=self.upload_root_path,
            download_path=self.upload_download_path,
            delay_delete_duration=self.storage_delay_delete_duration,
            delay_job_interval=self.storage_delay_job_interval,
            upload_max_size=self.upload_max_size,
            upload_accept_suffixes=self.upload_accept_suffixes,
            upload_type_max_size=dict(self.upload_type_max_size),
            upload_type_accept_suffixes=dict(self.upload_type_accept_suffixes),
            check_size_enabled=self.multipart_check_size_enabled,
            check_size_max=self.multipart_check_size_max,
            type_check_size_max=dict(self.multipart_type_check_size_max),
            check_content_enabled=self.multipart_check_content_enabled
        )

    def get_logging_config(self) -> LoggingConfig:
        return LoggingConfig(
            level=self.log_level,
            format=self.log_format,
            dir=self.log_dir,
            max_file_size=self.log_max_file_size,
            backup_count=self.log_backup_count,
            enable_console=self.log_enable_console,
            enable_file=self.log_enable_file
        )


class ConfigManager:
    """Configuration manager (singleton)."""

    _instance: Optional['ConfigManager'] = None
    _settings: Optional[Settings] = None
    _config_cache: Dict[str, Any] = {}

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super(ConfigManager, cls).__new__(cls)
        return cls._instance

    def __init__(self, config_file: Optional[str] = None):
        if hasattr(self, '_initialized'):
            return

        self._initialized = True
        self.config_file = config_file

        self._load_settings()

    def _load_settings(self):
        """Load settings, exporting YAML file entries as prefixed environment variables first."""
        try:
            if self.config_file and Path(self.config_file).exists():
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    config_data = yaml.safe_load(f) or {}

                for key, value in config_data.items():
                    env_key = f"{ENV_PREFIX}{key.upper()}"
                    if isinstance(value, (dict, list)):
                        os.environ[env_key] = json.dumps(value)
                    else:
                        os.environ[env_key] = str(value)

            self._settings = Settings()

            self._config_cache = {
                "redis": self._settings.get_redis_config(),
                "storage": self._settings.get_storage_config(),
                "logging": self._settings.get_logging_config()
            }

        except Exception as e:
            raise ConfigurationException(f"Failed to load settings: {str(e)}")

    @property
    def settings(self) -> Settings:
        if not self._settings:
            raise ConfigurationException("Settings not initialized")
        return self._settings

    def get(self, key: str, default: Any = None) -> Any:
        return getattr(self.settings, key, default)

    def get_typed_config(self, config_type: str) -> Any:
        """Return the cached typed config ('redis', 'storage' or 'logging')."""
        if config_type not in self._config_cache:
            raise ConfigurationException(f"Unknown config type: {config_type}", config_key=config_type)
        return self._config_cache[config_type]

    def reload(self):
        self._load_settings()

    def export_config(self, format: Literal['yaml', 'json', 'env'] = 'yaml') -> str:
        """Export the effective configuration; the Redis password is masked."""
        config_dict = self.settings.model_dump(mode="json")
        if config_dict.get("redis_password"):
            config_dict["redis_password"] = "***"

        if format == 'json':
            return json.dumps(config_dict, indent=2, ensure_ascii=False)
        elif format == 'env':
            lines = []
            for key, value in config_dict.items():
                env_key = f"{ENV_PREFIX}{key.upper()}"
                if isinstance(value, (dict, list)):
                    lines.append(f"{env_key}='{json.dumps(value)}'")
                else:
                    lines.append(f"{env_key}={value}")
            return "\n".join(lines)
        else:
            return yaml.dump(config_dict, default_flow_style=False, allow_unicode=True)


config_manager = ConfigManager(os.getenv(f"{ENV_PREFIX}CONFIG_FILE"))
