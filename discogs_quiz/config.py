"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed static defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local secrets and env overrides (gitignored)
  4. Environment variables        — ``DISCOGS_*`` / ``DISCOGS_QUIZ_*``

Entry point: ``load_config(config_path=None) -> AppConfig``

The auth flow, fetchers, and CLI commands receive an ``AppConfig`` (or one of
its sections) — never raw dicts or env var lookups scattered through the code.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlparse

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from discogs_quiz.errors import ConfigError

_PLACEHOLDER_VALUES = frozenset({"", "YOUR_CONSUMER_KEY", "YOUR_CONSUMER_SECRET"})

# ── Sub-config models ─────────────────────────────────────────────────────────


class DiscogsConfig(BaseModel):
    """Discogs application credentials and endpoints.

    PLAINTEXT signatures put the consumer and token secrets in the
    ``Authorization`` header verbatim, so every endpoint must be ``https``
    unless ``allow_insecure`` is set (local test servers only); otherwise
    construction raises ``ConfigError``.
    """

    model_config = ConfigDict(frozen=True)

    consumer_key: str = ""
    consumer_secret: str = ""
    base_url: str = "https://api.discogs.com"
    authorize_url: str = "https://www.discogs.com/oauth/authorize"
    request_token_url: str = "https://api.discogs.com/oauth/request_token"
    access_token_url: str = "https://api.discogs.com/oauth/access_token"
    callback_url: str = "discogsquizapp://oauth/callback"
    proxy_url: Optional[str] = None
    user_agent: str = "DiscogsQuizApp/1.0"
    timeout_s: float = 30.0
    allow_insecure: bool = False

    @model_validator(mode="after")
    def validate_transport(self) -> "DiscogsConfig":
        if self.allow_insecure:
            return self
        urls = [self.base_url, self.authorize_url, self.request_token_url,
                self.access_token_url]
        if self.proxy_url:
            urls.append(self.proxy_url)
        for url in urls:
            if urlparse(url).scheme != "https":
                # ConfigError is not a ValueError, so pydantic re-raises it as-is
                raise ConfigError(
                    f"PLAINTEXT OAuth requires https endpoints, got '{url}'."
                )
        return self

    @field_validator("timeout_s")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"timeout_s must be positive, got {v}.")
        return v

    @property
    def has_credentials(self) -> bool:
        return (
            self.consumer_key not in _PLACEHOLDER_VALUES
            and self.consumer_secret not in _PLACEHOLDER_VALUES
        )

    def require_credentials(self) -> None:
        """Raise ``ConfigError`` if the consumer key or secret is unset.

        Raises:
            ConfigError: Before any network call when credentials are missing.
        """
        if self.consumer_key in _PLACEHOLDER_VALUES:
            raise ConfigError(
                "Discogs consumer key is not configured. "
                "Set DISCOGS_CONSUMER_KEY in .env or the environment."
            )
        if self.consumer_secret in _PLACEHOLDER_VALUES:
            raise ConfigError(
                "Discogs consumer secret is not configured. "
                "Set DISCOGS_CONSUMER_SECRET in .env or the environment."
            )


class CollectionConfig(BaseModel):
    """Collection listing parameters."""

    model_config = ConfigDict(frozen=True)

    per_page: int = 100
    folder_id: int = 0   # 0 = "All" folder

    @field_validator("per_page")
    @classmethod
    def validate_per_page(cls, v: int) -> int:
        if not 1 <= v <= 100:
            raise ValueError(f"per_page must be in [1, 100], got {v}.")
        return v


class DetailsConfig(BaseModel):
    """Release-detail fetch pacing.

    Discogs allows 60 authenticated requests per minute; 1.1 s spacing keeps
    the fetcher near 55/minute.
    """

    model_config = ConfigDict(frozen=True)

    min_interval_s: float = 1.1
    top_n: int = 10

    @field_validator("min_interval_s")
    @classmethod
    def validate_interval(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"min_interval_s must be >= 0, got {v}.")
        return v


class RecommendConfig(BaseModel):
    """Ranking parameters."""

    model_config = ConfigDict(frozen=True)

    close_match_margin: int = 5


class StorageConfig(BaseModel):
    """Local token database settings."""

    model_config = ConfigDict(frozen=True)

    token_db_path: str = "data/db/discogs_tokens.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: Optional[str] = None
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration — the single source of truth."""

    model_config = ConfigDict(frozen=True)

    discogs: DiscogsConfig = DiscogsConfig()
    collection: CollectionConfig = CollectionConfig()
    details: DetailsConfig = DetailsConfig()
    recommend: RecommendConfig = RecommendConfig()
    storage: StorageConfig = StorageConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the specified ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
        ConfigError: If a Discogs endpoint is not https (and
            ``allow_insecure`` is off).
    """
    root = _find_project_root()

    # 1. Load .env file (silently skip if missing)
    load_dotenv(dotenv_path=root / ".env", override=False)

    # 2. Load TOML config
    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    # 3. Environment overrides
    raw = _apply_env_overrides(raw)

    # 4. Build and validate
    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variables to the raw config dict.

    Supported overrides:
      DISCOGS_CONSUMER_KEY     → raw["discogs"]["consumer_key"]
      DISCOGS_CONSUMER_SECRET  → raw["discogs"]["consumer_secret"]
      DISCOGS_PROXY_URL        → raw["discogs"]["proxy_url"]
      DISCOGS_CALLBACK_URL     → raw["discogs"]["callback_url"]
      DISCOGS_QUIZ_TOKEN_DB    → raw["storage"]["token_db_path"]
      DISCOGS_QUIZ_LOG_LEVEL   → raw["logging"]["level"]
      DISCOGS_QUIZ_DEBUG       → raw["debug"]
    """
    if key := os.environ.get("DISCOGS_CONSUMER_KEY"):
        raw.setdefault("discogs", {})["consumer_key"] = key

    if secret := os.environ.get("DISCOGS_CONSUMER_SECRET"):
        raw.setdefault("discogs", {})["consumer_secret"] = secret

    if proxy_url := os.environ.get("DISCOGS_PROXY_URL"):
        raw.setdefault("discogs", {})["proxy_url"] = proxy_url

    if callback_url := os.environ.get("DISCOGS_CALLBACK_URL"):
        raw.setdefault("discogs", {})["callback_url"] = callback_url

    if db_path := os.environ.get("DISCOGS_QUIZ_TOKEN_DB"):
        raw.setdefault("storage", {})["token_db_path"] = db_path

    if log_level := os.environ.get("DISCOGS_QUIZ_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if debug := os.environ.get("DISCOGS_QUIZ_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        discogs=DiscogsConfig(**raw.get("discogs", {})),
        collection=CollectionConfig(**raw.get("collection", {})),
        details=DetailsConfig(**raw.get("details", {})),
        recommend=RecommendConfig(**raw.get("recommend", {})),
        storage=StorageConfig(**raw.get("storage", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
