"""Application configuration."""
import os
from dataclasses import dataclass
from typing import Optional


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


@dataclass
class AcumaticaApiConfig:
    """Acumatica REST API settings."""

    api_version: str = "24.200.001"
    timeout: float = 30.0  # seconds, per request
    max_retries: int = 3
    retry_base_delay: float = 1.0  # seconds
    session_duration: float = 20 * 60  # seconds a login cookie stays valid
    session_refresh_margin: float = 60.0  # reuse a cached session only with this much left

    @classmethod
    def from_env(cls) -> "AcumaticaApiConfig":
        """Load config from environment variables."""
        return cls(
            api_version=os.getenv("ACUMATICA_API_VERSION", "24.200.001"),
            timeout=_env_float("ACUMATICA_TIMEOUT", 30.0),
            max_retries=_env_int("ACUMATICA_MAX_RETRIES", 3),
            retry_base_delay=_env_float("ACUMATICA_RETRY_BASE_DELAY", 1.0),
        )


@dataclass
class ImportConfig:
    """Import processor settings."""

    batch_size: int = 10
    batch_delay: float = 0.5  # seconds between batches
    data_dir: str = "./data"
    database_url: Optional[str] = None  # defaults to SQLite under data_dir

    @classmethod
    def from_env(cls) -> "ImportConfig":
        """Load config from environment variables."""
        return cls(
            batch_size=_env_int("ACUIMPORT_BATCH_SIZE", 10),
            batch_delay=_env_float("ACUIMPORT_BATCH_DELAY", 0.5),
            data_dir=os.getenv("ACUIMPORT_DATA_DIR", "./data"),
            database_url=os.getenv("ACUIMPORT_DATABASE_URL"),
        )


@dataclass
class AppConfig:
    """Application configuration."""

    acumatica: AcumaticaApiConfig = None
    imports: ImportConfig = None

    def __post_init__(self):
        """Fill in defaults."""
        if self.acumatica is None:
            self.acumatica = AcumaticaApiConfig.from_env()
        if self.imports is None:
            self.imports = ImportConfig.from_env()

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Load config from environment variables."""
        return cls(
            acumatica=AcumaticaApiConfig.from_env(),
            imports=ImportConfig.from_env(),
        )


# Global instance
app_config = AppConfig()
