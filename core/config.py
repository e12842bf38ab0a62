import logging
import logging.config
from pathlib import Path
from typing import Dict, List, Literal, Optional

import yaml
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class LoggingConfig(BaseSettings):
    """Logging configuration that supports both simple and dictConfig formats"""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None
    # For dictConfig support
    use_dict_config: bool = False
    dict_config_path: Optional[str] = None
    dict_config: Optional[Dict] = None


class SecurityConfig(BaseSettings):
    cors_origins: List[str] = ["*"]


class IdentityConfig(BaseSettings):
    """Mojang identity provider endpoints"""

    profile_url: str = "https://api.mojang.com/users/profiles/minecraft"
    session_url: str = "https://sessionserver.mojang.com/session/minecraft/profile"
    timeout_seconds: float = 10.0
    # When False, provider outages are reported exactly like unknown usernames
    report_provider_errors: bool = False


class UploadConfig(BaseSettings):
    """Skin upload intake limits and storage location"""

    upload_dir: str = "uploads"
    public_prefix: str = "/uploads"
    max_size_bytes: int = 2 * 1024 * 1024
    content_type_token: str = "png"
    verify_image: bool = True

    @field_validator("public_prefix")
    def normalize_prefix(cls, v):
        """Public prefix always starts with a slash and never ends with one"""
        return "/" + v.strip("/")

    @field_validator("max_size_bytes")
    def positive_size(cls, v):
        if v <= 0:
            raise ValueError("max_size_bytes must be positive")
        return v


class Settings(BaseSettings):
    """Main settings class

    Environment variables:
        SKINVIEW_DEBUG: Enable debug mode (default: False)
        SKINVIEW_CATALOG_BACKEND: "memory" or "redis" (default: memory)
        SKINVIEW_UPLOAD__MAX_SIZE_BYTES: Upload size ceiling in bytes
    """

    logging: LoggingConfig = LoggingConfig()
    security: SecurityConfig = SecurityConfig()
    identity: IdentityConfig = IdentityConfig()
    upload: UploadConfig = UploadConfig()

    # Front-end bundle served at "/" when the directory exists
    public_dir: str = "public"

    # Environment
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 3000

    # Catalog storage
    catalog_backend: Literal["memory", "redis"] = "memory"
    redis_url: str = "redis://localhost:6379"
    redis_key_prefix: str = "skinview"

    model_config = SettingsConfigDict(
        env_prefix="SKINVIEW_", env_nested_delimiter="__", case_sensitive=False
    )


def load_config_from_file(config_path: str) -> Settings:
    """Load configuration from YAML file"""
    config_file = Path(config_path)

    if not config_file.exists():
        logger.warning(f"Config file {config_path} not found, using defaults")
        return Settings()

    try:
        with open(config_file, "r") as f:
            config_data = yaml.safe_load(f) or {}

        settings = Settings()

        # Update configurations if they exist in the file
        if "logging" in config_data:
            settings.logging = LoggingConfig(**config_data["logging"])
        if "security" in config_data:
            settings.security = SecurityConfig(**config_data["security"])
        if "identity" in config_data:
            settings.identity = IdentityConfig(**config_data["identity"])
        if "upload" in config_data:
            settings.upload = UploadConfig(**config_data["upload"])

        # Update other settings
        for key in (
            "public_dir",
            "environment",
            "debug",
            "host",
            "port",
            "catalog_backend",
            "redis_url",
            "redis_key_prefix",
        ):
            if key in config_data:
                setattr(settings, key, config_data[key])

        # Re-validate
        settings = Settings(**settings.model_dump())

        logger.info(f"Successfully loaded configuration from {config_path}")
        return settings

    except Exception as e:
        logger.error(f"Error loading config from {config_path}: {str(e)}")
        logger.info("Using default configuration")
        return Settings()


def load_logging_dict_config(config_path: str) -> Optional[Dict]:
    """Load logging configuration from YAML file in dictConfig format"""
    config_file = Path(config_path)

    if not config_file.exists():
        logger.warning(f"Logging config file {config_path} not found")
        return None

    try:
        with open(config_file, "r") as f:
            logging_config = yaml.safe_load(f)

        # Ensure logs directory exists
        logs_dir = Path("logs")
        logs_dir.mkdir(exist_ok=True)

        return logging_config
    except Exception as e:
        logger.error(f"Error loading logging config from {config_path}: {str(e)}")
        return None


# Global settings instance
settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get global settings instance"""
    global settings
    if settings is None:
        config_dir = Path(__file__).parent.parent / "config"
        settings = load_config_from_file(str(config_dir / "system.yaml"))

    return settings


def setup_logging(config: LoggingConfig):
    """Setup logging configuration with support for both simple and dictConfig formats"""

    if config.use_dict_config:
        dict_config = config.dict_config
        if dict_config is None:
            config_dir = Path(__file__).parent.parent / "config"
            logging_yaml_path = Path(config.dict_config_path or config_dir / "logging.yaml")
            dict_config = load_logging_dict_config(str(logging_yaml_path))

        if dict_config:
            try:
                logging.config.dictConfig(dict_config)
                logger.info("Logging configured from dictConfig")
                return
            except Exception as e:
                logger.error(f"Failed to configure logging from dictConfig: {str(e)}")
                logger.info("Falling back to simple logging configuration")

    # Fallback to simple configuration
    level = getattr(logging, config.level.upper(), logging.INFO)

    handlers: List[logging.Handler] = [logging.StreamHandler()]

    # Add file handler if specified
    if config.file:
        file_path = Path(config.file)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(config.file))

    # Configure root logger
    logging.basicConfig(
        level=level,
        format=config.format,
        handlers=handlers,
        force=True,  # Override any existing configuration
    )

    # Configure uvicorn logger
    uvicorn_logger = logging.getLogger("uvicorn")
    uvicorn_logger.setLevel(level)

    logger.info(
        f"Logging configured: level={config.level}, file={config.file or 'stderr only'}"
    )
