from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "localhost"
    db_port: int = 5432
    db_database: str = "docshare"
    db_username: str = "docshare"
    db_password: str = "secret"
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10

    # 5 minutes; links are meant to be used right after they are generated
    download_token_ttl_seconds: int = 300
    download_token_max_ttl_seconds: int = 7 * 24 * 60 * 60
    download_token_bytes: int = 32

    # False: READ, WRITE and DELETE grants are independent of each other
    permission_hierarchy: bool = False

    max_version_attempts: int = 3

    storage_backend: str = "local"
    files_root: str = "/app/files"

    sweep_interval_seconds: int = 60
