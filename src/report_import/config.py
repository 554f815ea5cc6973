from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
import yaml

from report_import.exceptions import ConfigError


class AppSettings(BaseSettings):
    name: str = "Report Import"
    version: str = "1.0.0"


class StorageSettings(BaseSettings):
    """
    Runtime persistence selection:
    - sqlite (local/dev default)
    - rest (hosted database behind a PostgREST-style gateway)
    """
    backend: str = "sqlite"  # sqlite|rest
    db_path: Path = Path("./data/reports.db")
    rest_url: Optional[str] = None
    rest_api_key: Optional[str] = None
    rest_schema: str = "neta_ops"
    timeout_seconds: float = 15.0


class ImportSettings(BaseSettings):
    link_assets: bool = True
    cache_schemas: bool = True  # per-batch cache of describe() results
    augment_job_info: bool = True
    importer_config_path: Path = Path("./config/importers.yaml")
    asset_name_prefix: str = "Imported"


class SecuritySettings(BaseSettings):
    """
    Optional auth and request guardrails.
    """
    api_token: Optional[str] = None  # Bearer token or X-API-Key
    max_upload_mb: int = 15  # Hard cap for uploads (Content-Length guard)


class LoggingSettings(BaseSettings):
    log_requests: bool = True
    format: str = "console"  # console | json
    level: str = "INFO"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_nested_delimiter="__", env_file=".env", extra="ignore")
    app: AppSettings = AppSettings()
    storage: StorageSettings = StorageSettings()
    imports: ImportSettings = ImportSettings()
    security: SecuritySettings = SecuritySettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Settings":
        # Load from default path if exists
        default_path = Path("config/settings.yaml")
        path = config_path or (default_path if default_path.exists() else None)

        if not path:
            return cls()

        try:
            with open(path, "r") as f:
                config_data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Failed to read settings from {path}: {exc}") from exc

        return cls(**config_data)


settings = Settings.load()
