# core/config.py
import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List

from .errors import ConfigError
from .logger import get_logger

logger = get_logger(__name__)

CONFIG_PATH = os.getenv("CONFIG_PATH", "config.json")
CACHE_DIR = os.getenv("CACHE_DIR", ".cache")
OUTPUT_DIR = os.getenv("OUTPUT_DIR", "dist")

DEFAULT_BASE_URI = "https://api.discogs.com"
DEFAULT_PAGE_SIZE = 100
DEFAULT_LIMITER_TIME = 1000
DEFAULT_MAX_RELEASES = 20
DEFAULT_MAX_PAGES = 200
DEFAULT_USER_AGENT = "DiscogsCatalogReport/1.0"


@dataclass
class Settings:
    auth_token: str
    folder_name: str
    base_uri: str = DEFAULT_BASE_URI
    page_size: int = DEFAULT_PAGE_SIZE
    limiter_time: int = DEFAULT_LIMITER_TIME
    debug: bool = False
    include_conditions: List[str] = field(default_factory=list)
    currency: str = "EUR"
    max_releases: int = DEFAULT_MAX_RELEASES
    max_pages: int = DEFAULT_MAX_PAGES
    flush_each_item: bool = False
    request_timeout: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT
    cache_dir: str = CACHE_DIR
    output_dir: str = OUTPUT_DIR

    @property
    def images_dir(self) -> str:
        return os.path.join(self.cache_dir, "images")

    @property
    def cache_db_path(self) -> str:
        return os.path.join(self.cache_dir, "releases.sqlite3")

    def redacted(self) -> Dict[str, Any]:
        """Settings as a dict with the token masked, for debug logging."""
        data = dict(self.__dict__)
        if data.get("auth_token"):
            data["auth_token"] = "***"
        return data


def _require_str(cfg: Dict[str, Any], key: str) -> str:
    val = cfg.get(key)
    if not isinstance(val, str) or not val.strip():
        logger.error("config.json '%s' must be a non-empty string.", key)
        raise ConfigError(f"Missing or invalid '{key}'")
    return val.strip()


def _positive_int(cfg: Dict[str, Any], key: str, default: int) -> int:
    val = cfg.get(key)
    if val is None:
        return default
    try:
        num = int(val)
    except (TypeError, ValueError):
        logger.error("config.json '%s' must be an integer, got %r.", key, val)
        raise ConfigError(f"Invalid '{key}': {val!r}")
    if num < 1:
        logger.error("config.json '%s' must be >= 1, got %d.", key, num)
        raise ConfigError(f"Invalid '{key}': {num}")
    return num


def _flag(cfg: Dict[str, Any], key: str) -> bool:
    val = cfg.get(key, False)
    if not isinstance(val, bool):
        logger.error("config.json '%s' must be true or false, got %r.", key, val)
        raise ConfigError(f"Invalid '{key}': {val!r}")
    return val


def parse_config(cfg: Any) -> Settings:
    if not isinstance(cfg, dict):
        logger.error("config.json must be a JSON object.")
        raise ConfigError("Configuration must be a JSON object")

    cfg = dict(cfg)
    env_token = os.getenv("DISCOGS_TOKEN", "").strip()
    if env_token:
        cfg["auth_token"] = env_token

    conditions = cfg.get("include_conditions", [])
    if not isinstance(conditions, list) or not all(isinstance(c, str) for c in conditions):
        logger.error("config.json 'include_conditions' must be a list of strings.")
        raise ConfigError("Invalid 'include_conditions'")
    if not conditions:
        logger.warning("No include_conditions configured; every average price will be 0.")

    base_uri = cfg.get("base_uri") or DEFAULT_BASE_URI
    if not isinstance(base_uri, str):
        raise ConfigError(f"Invalid 'base_uri': {base_uri!r}")

    try:
        timeout = float(cfg.get("request_timeout", 30))
    except (TypeError, ValueError):
        logger.error("config.json 'request_timeout' must be a number.")
        raise ConfigError("Invalid 'request_timeout'")
    if timeout <= 0:
        logger.error("config.json 'request_timeout' must be > 0, got %s.", timeout)
        raise ConfigError(f"Invalid 'request_timeout': {timeout}")

    return Settings(
        auth_token=_require_str(cfg, "auth_token"),
        folder_name=_require_str(cfg, "folder_name"),
        base_uri=base_uri.rstrip("/"),
        page_size=_positive_int(cfg, "page_size", DEFAULT_PAGE_SIZE),
        limiter_time=_positive_int(cfg, "limiter_time", DEFAULT_LIMITER_TIME),
        debug=_flag(cfg, "debug"),
        include_conditions=list(conditions),
        currency=str(cfg.get("currency") or "EUR"),
        max_releases=_positive_int(cfg, "max_releases", DEFAULT_MAX_RELEASES),
        max_pages=_positive_int(cfg, "max_pages", DEFAULT_MAX_PAGES),
        flush_each_item=_flag(cfg, "flush_each_item"),
        request_timeout=timeout,
        user_agent=str(cfg.get("user_agent") or DEFAULT_USER_AGENT),
        cache_dir=os.getenv("CACHE_DIR", CACHE_DIR),
        output_dir=os.getenv("OUTPUT_DIR", OUTPUT_DIR),
    )


def load_config(path: str | None = None) -> Settings:
    path = path or os.getenv("CONFIG_PATH", CONFIG_PATH)
    if not os.path.exists(path):
        logger.error("Config file not found at %s", path)
        raise ConfigError(f"Config file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            cfg = json.load(f)
    except (OSError, ValueError) as e:
        logger.error("Failed to load config.json at %s: %s", path, e)
        raise ConfigError(f"Unreadable config file {path}: {e}") from e

    return parse_config(cfg)
