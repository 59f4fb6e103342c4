"""
Application Settings.

Centraliza toda configuração via .env / variáveis de ambiente.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Configurações carregadas de variáveis de ambiente."""

    # --- App ---
    env: str = "development"
    debug: bool = True
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"
    app_base_url: str = "http://localhost:8000"

    # --- Database ---
    database_url: str = "sqlite:///owner_verification.db"

    # --- Verification ---
    verification_validity_days: int = 365
    certificate_validity_days: int = 365
    expiry_warning_days: int = 30

    # --- Storage ---
    storage_backend: str = "local"          # "local" | "minio"
    storage_root: str = "storage"
    storage_signing_key: str = "change-me"
    signed_url_ttl_seconds: int = 3600
    minio_endpoint: str = "localhost:9000"
    minio_access_key: str = ""
    minio_secret_key: str = ""
    minio_bucket: str = "verification-certificates"
    minio_secure: bool = False

    # --- Certificates ---
    certificate_font_path: str = ""          # empty: bundled Lato
    certificate_fallback_fonts: list[str] = []

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    """Singleton de settings."""
    return Settings()
