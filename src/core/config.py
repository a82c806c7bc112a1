"""
Application Configuration Module
"""
import sys
from pathlib import Path
from pydantic_settings import BaseSettings
from pydantic import Field

# Determine BASE_DIR in a packaging-aware way (works for dev and PyInstaller 'frozen' exe)
if getattr(sys, "frozen", False):
    _BASE_DIR = Path(sys.executable).parent
else:
    _BASE_DIR = Path(__file__).resolve().parent.parent.parent


class AppConfig(BaseSettings):
    """Application configuration settings"""

    # Application Info
    APP_NAME: str = "Blind Alarm Dashboard"
    APP_VERSION: str = "0.1.0"

    # Paths
    BASE_DIR: Path = _BASE_DIR
    LOGS_DIR: Path = BASE_DIR / "logs"

    # Device API
    # Android emulator: http://10.0.2.2:3000, physical device: LAN address of the server
    API_BASE_URL: str = Field(
        default="http://192.168.15.6:3000",
        description="Base URL of the device configuration server"
    )
    DEVICE_ID: str = Field(
        default="despertador01",
        description="Identifier of the ESP32 controller"
    )
    REQUEST_TIMEOUT: float = Field(
        default=10.0,
        description="HTTP request timeout in seconds"
    )
    HISTORY_LIMIT: int = Field(
        default=50,
        description="Number of log entries fetched for the history view"
    )

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
    LOG_ROTATION: str = "10 MB"
    LOG_RETENTION: str = "1 month"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "allow"


# Global configuration instance
config = AppConfig()


def get_config() -> AppConfig:
    """Get application configuration instance"""
    return config


def ensure_directories() -> None:
    """Create necessary directories if they don't exist"""
    config.LOGS_DIR.mkdir(parents=True, exist_ok=True)
