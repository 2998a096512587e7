"""
Configuration Management for the BotHunter harvester

This module provides centralized configuration management with:
- Environment variable loading
- Type validation
- Sensible defaults
- Per-mode readiness overrides
"""

import os
from pathlib import Path
from typing import List, Optional
from dotenv import load_dotenv


DEFAULT_BASE_URL = "https://bot.targethunter.ru"

# Segment keywords used when LISTS_FILTER is not set
DEFAULT_LIST_FILTERS = [
    "в работе",
    "отказ",
    "одобрен",
    "клик по офферу",
    "клик по оффер",
    "клик",
]

_TRUTHY = {"1", "true", "True", "yes"}


def _split_csv(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [s.strip() for s in raw.split(",") if s.strip()]


class Config:
    """
    Application configuration loaded from environment variables.

    All configuration is read from configs/.env file or environment variables.
    See configs/.env.example for documentation of all settings.
    """

    def __init__(self, env_path: Optional[Path] = None):
        """
        Initialize configuration from environment.

        Args:
            env_path: Path to .env file (default: configs/.env)
        """
        if env_path is None:
            env_path = Path("configs/.env")

        load_dotenv(dotenv_path=env_path, override=True)

        # === Console ===
        self.base_url: str = os.getenv("BASE_URL", DEFAULT_BASE_URL).rstrip("/")
        self.headless: bool = os.getenv("HEADLESS", "false") in _TRUTHY
        self.mode: str = os.getenv("MODE", "single")
        self.session_path: Path = Path(os.getenv("SESSION_PATH", "./browser-session"))
        self.markup_file: Optional[Path] = (
            Path(os.environ["MARKUP_FILE"]) if os.getenv("MARKUP_FILE") else None
        )

        # === Navigation ===
        self.nav_timeout_ms: int = int(os.getenv("NAV_TIMEOUT_MS", "45000"))
        self.nav_max_retries: int = int(os.getenv("NAV_MAX_RETRIES", "3"))
        self.login_timeout_ms: int = int(os.getenv("LOGIN_TIMEOUT_MS", "120000"))
        self.wait_after_switch_ms: int = int(os.getenv("WAIT_AFTER_SWITCH_MS", "3000"))

        # === Traversal ===
        self.max_pages: int = int(os.getenv("MAX_PAGES", "10000"))
        self.advance_timeout_ms: int = int(os.getenv("ADVANCE_TIMEOUT_MS", "3000"))
        self.page_delay_min_ms: int = int(os.getenv("PAGE_DELAY_MIN_MS", "1000"))
        self.page_delay_max_ms: int = int(os.getenv("PAGE_DELAY_MAX_MS", "2000"))

        # === Readiness (contacts / segments views) ===
        self.ready_timeout_ms: int = int(os.getenv("READY_TIMEOUT_MS", "20000"))
        self.ready_stable_ms: int = int(os.getenv("READY_STABLE_MS", "1500"))
        self.post_ready_delay_ms: int = int(os.getenv("POST_READY_DELAY_MS", "1000"))

        # === Readiness overrides for bots-and-steps ===
        self.bots_ready_timeout_ms: int = int(os.getenv("BOTS_READY_TIMEOUT_MS", "30000"))
        self.bots_stable_ms: int = int(os.getenv("BOTS_STABLE_MS", "3000"))
        self.bots_post_ready_delay_ms: int = int(os.getenv("BOTS_POST_READY_DELAY_MS", "2000"))
        self.bots_max_attempts: int = int(os.getenv("BOTS_MAX_ATTEMPTS", "3"))

        # === Segment filters ===
        filters = _split_csv(os.getenv("LISTS_FILTER"))
        self.list_filters: List[str] = filters or list(DEFAULT_LIST_FILTERS)

        # === Logging Configuration ===
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO")
        self.log_dir: Path = Path(os.getenv("LOG_DIR", "logs"))

        # === Output Paths ===
        self.output_dir: Path = Path(os.getenv("OUTPUT_DIR", "out"))
        self.output_file: str = os.getenv("OUTPUT_FILE", "bothunter_results.json")

    @property
    def state_file(self) -> Path:
        """Location of the persisted browser storage state."""
        return self.session_path / "state.json"

    def url(self, path: str) -> str:
        """Join a site-relative path onto the base endpoint."""
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: If configuration is invalid
        """
        errors = []

        if not self.base_url.startswith(("http://", "https://")):
            errors.append(f"BASE_URL must be an http(s) URL, got {self.base_url!r}")

        if self.max_pages <= 0:
            errors.append(f"MAX_PAGES must be positive, got {self.max_pages}")

        if self.nav_timeout_ms <= 0:
            errors.append(f"NAV_TIMEOUT_MS must be positive, got {self.nav_timeout_ms}")

        if self.nav_max_retries < 0:
            errors.append(f"NAV_MAX_RETRIES must be non-negative, got {self.nav_max_retries}")

        if self.bots_max_attempts <= 0:
            errors.append(f"BOTS_MAX_ATTEMPTS must be positive, got {self.bots_max_attempts}")

        for name in ("wait_after_switch_ms", "advance_timeout_ms", "ready_timeout_ms",
                     "ready_stable_ms", "post_ready_delay_ms", "bots_ready_timeout_ms",
                     "bots_stable_ms", "bots_post_ready_delay_ms"):
            if getattr(self, name) < 0:
                errors.append(f"{name.upper()} must be non-negative, got {getattr(self, name)}")

        if self.page_delay_min_ms > self.page_delay_max_ms:
            errors.append(
                f"PAGE_DELAY_MIN_MS ({self.page_delay_min_ms}) cannot be greater than "
                f"PAGE_DELAY_MAX_MS ({self.page_delay_max_ms})"
            )

        if self.markup_file is not None and not self.markup_file.exists():
            errors.append(f"Markup file not found: {self.markup_file}")

        if errors:
            raise ValueError(f"Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors))

    def __repr__(self) -> str:
        """Return string representation of config."""
        return (
            f"Config(\n"
            f"  base_url={self.base_url},\n"
            f"  mode={self.mode},\n"
            f"  headless={self.headless},\n"
            f"  max_pages={self.max_pages},\n"
            f"  session_path={self.session_path},\n"
            f"  list_filters={self.list_filters},\n"
            f"  wait_after_switch_ms={self.wait_after_switch_ms},\n"
            f"  log_level={self.log_level}\n"
            f")"
        )


# Global configuration instance (lazy-loaded)
_config: Optional[Config] = None


def get_config(env_path: Optional[Path] = None) -> Config:
    """
    Get the global configuration instance.

    Args:
        env_path: Optional path to .env file (only used on first call)

    Returns:
        Global Config instance
    """
    global _config
    if _config is None:
        _config = Config(env_path=env_path)
    return _config


def validate_config(env_path: Optional[Path] = None) -> None:
    """
    Validate configuration and raise error if invalid.

    This should be called at application startup to fail fast
    if configuration is incorrect.

    Raises:
        ValueError: If configuration is invalid
    """
    config = get_config(env_path=env_path)
    config.validate()
