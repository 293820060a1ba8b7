import os
from dataclasses import dataclass
from typing import Optional

_ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

MANIFEST_PATH = "/.well-known/adagents.json"
DEFAULT_USER_AGENT = "AdCP-Registry/1.0"


@dataclass(frozen=True)
class Settings:
    registry_dir: str
    cache_ttl_minutes: float = 15.0
    validator_timeout: float = 5.0
    publisher_timeout: float = 10.0
    agent_timeout: float = 10.0
    crawl_interval_minutes: float = 60.0
    crawl_on_startup: bool = True
    crawl_max_concurrency: int = 0
    user_agent: str = DEFAULT_USER_AGENT


def _load_env_from_file(root_dir: str = _ROOT_DIR) -> None:
    """Load environment variables from a .env file at the project root if present.

    Only sets variables that aren't already present in the process environment.
    """
    env_path = os.path.join(root_dir, ".env")
    if not os.path.isfile(env_path):
        return
    with open(env_path, "r", encoding="utf-8") as f:
        for line in f:
            s = line.strip()
            if not s or s.startswith("#"):
                continue
            if "=" not in s:
                continue
            key, val = s.split("=", 1)
            key = key.strip()
            val = val.strip().strip('"').strip("'")
            if key and (key not in os.environ or not os.environ[key]):
                os.environ[key] = val


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise RuntimeError(
            f"Environment variable {name} must be a number, got {raw!r}.\n"
            f"Define it in your environment or in a .env file at the project root."
        ) from exc
    if value < 0:
        raise RuntimeError(f"Environment variable {name} must not be negative, got {raw!r}.")
    return value


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def get_settings(env_file_root: Optional[str] = _ROOT_DIR) -> Settings:
    """Build settings from the environment, loading .env first when a root is given."""
    if env_file_root:
        _load_env_from_file(env_file_root)

    return Settings(
        registry_dir=os.getenv("REGISTRY_DIR") or os.path.join(_ROOT_DIR, "registry"),
        cache_ttl_minutes=_env_float("CACHE_TTL_MINUTES", 15.0),
        validator_timeout=_env_float("VALIDATOR_TIMEOUT", 5.0),
        publisher_timeout=_env_float("PUBLISHER_TIMEOUT", 10.0),
        agent_timeout=_env_float("AGENT_TIMEOUT", 10.0),
        crawl_interval_minutes=_env_float("CRAWL_INTERVAL_MINUTES", 60.0),
        crawl_on_startup=_env_bool("CRAWL_ON_STARTUP", True),
        crawl_max_concurrency=int(_env_float("CRAWL_MAX_CONCURRENCY", 0)),
        user_agent=os.getenv("REGISTRY_USER_AGENT") or DEFAULT_USER_AGENT,
    )
