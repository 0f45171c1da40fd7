from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    # App
    app_name: str = "Clearance"
    debug: bool = False

    # Database
    database_url: str = "sqlite:///./clearance.db"
    database_echo: bool = False

    # Catalog
    catalog_file: Optional[str] = None  # YAML seed overriding the built-in defaults
    seed_on_startup: bool = True
    unassigned_department: str = "Unassigned"
    default_role: str = "basic_user_1"

    # Resolution
    resolve_cache_enabled: bool = True

    # Logging
    log_level: str = "INFO"
    log_dir: str = "/var/log/clearance"
    log_to_file: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="CLEARANCE_",
        case_sensitive=False,
        extra="ignore"  # Allow extra env vars without raising validation errors
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
