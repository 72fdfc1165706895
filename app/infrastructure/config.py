"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    api_version: str = "1.0.0"
    api_prefix: str = "/api"
    debug: bool = False

    # Database
    database_url: str = "postgresql+asyncpg://catalog:catalog_dev_password@db:5432/catalog"
    catalog_store: str = "database"  # "database" or "memory"

    # Authentication
    admin_api_key: str = "dev-admin-key-change-in-production"
    customer_api_keys: list[str] = []

    # CORS
    allowed_origins: list[str] = ["http://localhost:3000"]
    frontend_url: str | None = None

    # Catalog
    default_page_size: int = 10
    max_page_size: int | None = None
    search_limit: int = 20
    max_upload_files: int = 10

    # Media hosting
    media_cloud_name: str = "demo"
    media_api_key: str = "dev-media-key"
    media_api_secret: str = "dev-media-secret"
    media_base_url: str = "https://api.cloudinary.com/v1_1"
    media_products_folder: str = "products"
    media_size_chart_folder: str = "size-charts"
    media_timeout: float = 30.0
    media_max_file_size: int = 5 * 1024 * 1024

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    class Config:
        """Pydantic configuration."""

        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def cors_origins(self) -> list[str]:
        """Allowed CORS origins including the configured frontend."""
        origins = list(self.allowed_origins)
        if self.frontend_url and self.frontend_url not in origins:
            origins.append(self.frontend_url)
        return origins


settings = Settings()
