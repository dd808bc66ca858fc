import logging
import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from dotenv import load_dotenv

from .data_fetchers.bromley_bin_data import BASE_URL
from .data_models import parse_property_id

logger = logging.getLogger(__name__)


def env_int(env: Mapping[str, str], name: str, default: int) -> int:
    value = (env.get(name) or "").strip()
    if value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer: {value}") from None


def parse_bin_ids(value: Optional[str]) -> List[int]:
    """Parses a comma-separated list of bin IDs, dropping invalid ones."""
    bin_ids = []
    for raw in (value or "").split(','):
        if not raw.strip():
            continue
        bin_id = parse_property_id(raw)
        if bin_id is None:
            logger.warning(f"Ignoring invalid bin ID in PREWARM_BIN_IDS: {raw!r}")
            continue
        bin_ids.append(bin_id)
    return bin_ids


@dataclass(frozen=True)
class Settings:
    port: int = 3004
    bromley_url: str = BASE_URL
    prewarm_bin_ids: List[int] = field(default_factory=list)
    browser_executable_path: Optional[str] = None
    cache_max_age_minutes: int = 60
    prewarm_interval_seconds: int = 450
    fetch_attempts: int = 3
    fetch_timeout_ms: int = 120000
    log_level: str = "INFO"


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Reads settings from the environment, loading a .env file first when reading os.environ."""
    if env is None:
        load_dotenv()
        env = os.environ
    return Settings(
        port=env_int(env, "PORT", 3004),
        bromley_url=env.get("BROMLEY_URL") or BASE_URL,
        prewarm_bin_ids=parse_bin_ids(env.get("PREWARM_BIN_IDS")),
        browser_executable_path=env.get("BROWSER_EXECUTABLE_PATH") or None,
        cache_max_age_minutes=env_int(env, "CACHE_MAX_AGE_MINUTES", 60),
        prewarm_interval_seconds=env_int(env, "PREWARM_INTERVAL_SECONDS", 450),
        fetch_attempts=env_int(env, "FETCH_ATTEMPTS", 3),
        fetch_timeout_ms=env_int(env, "FETCH_TIMEOUT_MS", 120000),
        log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
    )


def configure_logging(level_name: str) -> None:
    log_level = getattr(logging, level_name.upper(), logging.INFO)
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(level=log_level, format='%(asctime)s - %(levelname)s - %(name)s - %(message)s')
    else:
        logging.getLogger().setLevel(log_level)
