"""
Centralized settings for the segment discount service.
"""
import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv


def get_project_root() -> Path:
    """Get the project root directory (where pyproject.toml lives)."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'pyproject.toml').exists():
            return parent
    # Fallback to 3 levels up from this file
    return Path(__file__).resolve().parent.parent.parent.parent


def parse_token_map(raw: str) -> dict[str, str]:
    """Parse 'shop-a.myshopify.com=tok1,shop-b.myshopify.com=tok2'."""
    tokens = {}
    for pair in raw.split(','):
        if '=' not in pair:
            continue
        shop, token = pair.split('=', 1)
        if shop.strip() and token.strip():
            tokens[shop.strip()] = token.strip()
    return tokens


@dataclass
class Settings:
    """Application settings with sensible defaults."""

    project_root: Path
    database_url: str = "sqlite:///segment_discounts.db"

    # Default shop for the read-only offer path
    default_shop: Optional[str] = None
    # shop domain -> admin access token
    access_tokens: dict[str, str] = field(default_factory=dict)
    api_version: str = "2024-04"

    upstream_timeout: float = 10.0
    membership_max_workers: int = 8
    segment_page_size: int = 50

    # "best" (single best plan) or "merge" (per-collection max across plans)
    plan_selection_strategy: str = "best"

    @classmethod
    def load(cls, project_root: Optional[Path] = None) -> 'Settings':
        """Load settings from the environment and an optional .env file."""
        root = project_root or get_project_root()
        env_file = root / '.env'
        if env_file.exists():
            load_dotenv(env_file)

        default_shop = os.environ.get("SHOPIFY_SHOP") or None
        tokens = parse_token_map(os.environ.get("SHOP_ACCESS_TOKENS", ""))
        admin_token = os.environ.get("SHOPIFY_ADMIN_TOKEN")
        if default_shop and admin_token:
            tokens.setdefault(default_shop, admin_token)

        return cls(
            project_root=root,
            database_url=os.environ.get("DATABASE_URL", "sqlite:///segment_discounts.db"),
            default_shop=default_shop,
            access_tokens=tokens,
            api_version=os.environ.get("SHOPIFY_API_VERSION", "2024-04"),
            upstream_timeout=float(os.environ.get("UPSTREAM_TIMEOUT_SECONDS", "10")),
            membership_max_workers=int(os.environ.get("MEMBERSHIP_MAX_WORKERS", "8")),
            segment_page_size=int(os.environ.get("SEGMENT_PAGE_SIZE", "50")),
            plan_selection_strategy=os.environ.get("PLAN_SELECTION_STRATEGY", "best").lower(),
        )

    def access_token_for(self, shop: Optional[str]) -> Optional[str]:
        """Return the admin token for a shop, or None if the shop is unknown."""
        if not shop:
            return None
        return self.access_tokens.get(shop)


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings
