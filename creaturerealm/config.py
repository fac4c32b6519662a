"""
Configuration management for the CreatureRealm extraction toolkit.
Handles environment variables and scraper settings.
"""
import os
from typing import Dict, List
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Application configuration loaded from environment variables."""

    # Server settings
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "json")  # json or console

    # Request settings
    REQUEST_TIMEOUT: int = int(os.getenv("REQUEST_TIMEOUT", "30"))
    USER_AGENT: str = os.getenv(
        "USER_AGENT",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    )

    # Source site
    SITE_BASE_URL: str = os.getenv("SITE_BASE_URL", "https://paldb.cc").rstrip("/")
    CDN_BASE_URL: str = os.getenv("CDN_BASE_URL", "https://cdn.paldb.cc").rstrip("/")
    SITE_LOCALE: str = os.getenv("SITE_LOCALE", "en")

    # Cache lifetimes (milliseconds)
    INDEX_TTL_MS: int = int(os.getenv("INDEX_TTL_MS", str(10 * 60 * 1000)))
    DETAIL_TTL_MS: int = int(os.getenv("DETAIL_TTL_MS", str(10 * 60 * 1000)))

    # Extraction guards
    MAX_INDEX_PAGES: int = int(os.getenv("MAX_INDEX_PAGES", "20"))
    MAX_TREE_DEPTH: int = int(os.getenv("MAX_TREE_DEPTH", "32"))

    # Logical category -> index page path on the source site
    CATEGORY_PATHS: Dict[str, str] = {
        "material": "Material",
        "armor": "Armor",
        "ingredient": "Ingredient",
        "glider": "Glider",
        "schematic": "Schematic",
        "sphere": "Sphere",
        "sphere_module": "Sphere_Module",
        "key_item": "Key_Items",
        "consumable": "Consumable",
        "ammo": "Ammo",
        "accessory": "Accessory",
    }

    @classmethod
    def known_categories(cls) -> List[str]:
        """Return the category names the catalog layer can scrape."""
        return sorted(cls.CATEGORY_PATHS.keys())

    @classmethod
    def index_url(cls, category: str) -> str:
        """
        Build the index (list) page URL for a logical category.

        Raises:
            KeyError: if the category is not configured
        """
        path = cls.CATEGORY_PATHS[category.strip().lower()]
        return f"{cls.SITE_BASE_URL}/{cls.SITE_LOCALE}/{path}"

    @classmethod
    def detail_url(cls, slug: str) -> str:
        """Build the detail page URL for a bare slug."""
        return f"{cls.SITE_BASE_URL}/{cls.SITE_LOCALE}/{slug}"


config = Config()
