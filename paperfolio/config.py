"""Configuration loading for paperfolio.

Settings live in ``~/.config/paperfolio/config.toml``:

    [portfolio]
    starting_cash = 100000.0
    db_path = "~/.config/paperfolio/paperfolio.db"

    [marketstack]
    access_key = "..."
    base_url = "https://api.marketstack.com/v2"
    timeout = 10

    [offline.prices]
    AAPL = 150.0
"""

import logging
import os
from pathlib import Path
from typing import Optional

import toml

from paperfolio.db.store import DEFAULT_STARTING_CASH

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "paperfolio"


def get_config_path() -> Path:
    """Get the config file path, honouring PAPERFOLIO_CONFIG."""
    override = os.environ.get("PAPERFOLIO_CONFIG")
    if override:
        return Path(override).expanduser()
    return CONFIG_DIR / "config.toml"


def load_config(config_path: Optional[Path] = None) -> dict:
    """Load configuration from TOML.

    Args:
        config_path: Optional explicit path to the config file.

    Returns:
        The parsed config, or an empty dict if the file is missing or
        unreadable.
    """
    config_path = config_path or get_config_path()

    if not config_path.exists():
        return {}

    try:
        return toml.load(config_path)
    except (OSError, toml.TomlDecodeError) as e:
        logger.warning("Ignoring unreadable config %s: %s", config_path, e)
        return {}


def get_db_path(config: dict) -> Path:
    """Get the database path."""
    db_path = config.get("portfolio", {}).get("db_path")
    if db_path:
        return Path(db_path).expanduser()
    return CONFIG_DIR / "paperfolio.db"


def get_starting_cash(config: dict) -> float:
    """Get the starting cash for a newly created portfolio."""
    return float(config.get("portfolio", {}).get("starting_cash", DEFAULT_STARTING_CASH))


def get_marketstack_settings(config: dict) -> dict:
    """Get Marketstack connection settings.

    The MARKETSTACK_ACCESS_KEY environment variable takes precedence
    over the config file.
    """
    section = config.get("marketstack", {})
    settings = {
        "access_key": os.environ.get("MARKETSTACK_ACCESS_KEY") or section.get("access_key", ""),
    }
    if "base_url" in section:
        settings["base_url"] = section["base_url"]
    if "timeout" in section:
        settings["timeout"] = float(section["timeout"])
    return settings


def get_offline_prices(config: dict) -> dict[str, float]:
    """Get the price table used by offline mode."""
    return dict(config.get("offline", {}).get("prices", {}))
