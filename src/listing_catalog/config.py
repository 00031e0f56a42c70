"""Configuration management."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


_PROJECT_ROOT = Path(__file__).parent.parent.parent


class Config(BaseSettings):
    """Application configuration.

    Every field can be overridden by a ``LISTING_CATALOG_<FIELD>`` environment
    variable, e.g. ``LISTING_CATALOG_PAGE_SIZE=25``. Scripts call
    ``dotenv.load_dotenv()`` first so values may also live in a .env file.
    """

    # config.py is at src/listing_catalog/config.py, so 3 parents up
    project_root: Path = _PROJECT_ROOT
    data_dir: Path = _PROJECT_ROOT / "data"
    db_path: Path = _PROJECT_ROOT / "data" / "listing_catalog.db"

    # Catalog paging
    default_page_size: int = Field(default=10, ge=1, validation_alias="LISTING_CATALOG_PAGE_SIZE")
    max_page_size: int = Field(default=100, ge=1)

    # Dashboard statistics
    recent_window_hours: int = Field(default=24, ge=1)

    # Export formatting. Amounts are stored as plain numbers, no conversion.
    currency: str = "INR"

    model_config = SettingsConfigDict(env_prefix="LISTING_CATALOG_", extra="ignore", populate_by_name=True)

    def ensure_dirs(self) -> None:
        """Ensure required directories exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)


# Global config instance
config = Config()
