"""Runtime settings read from the environment (and an optional ``.env`` file)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .errors import ConfigurationError

DEFAULT_API_URL = "http://localhost:5000/api/v1"
DEFAULT_TIMEOUT = 30.0
DEFAULT_EXPORT_DIR = Path("exports")
TIE_BREAK_CHOICES = ("first", "last", "reject")


@dataclass(slots=True, frozen=True)
class Settings:
    api_url: str = DEFAULT_API_URL
    timeout: float = DEFAULT_TIMEOUT
    export_dir: Path = DEFAULT_EXPORT_DIR
    log_level: str = "INFO"
    tie_break: str = "first"


def load_settings(*, env_file: str | Path | None = None) -> Settings:
    """
    Build :class:`Settings` from ``PM_*`` environment variables.

    Values already present in the environment win over the ``.env`` file.
    """

    load_dotenv(env_file, override=False)

    api_url = os.getenv("PM_API_URL", DEFAULT_API_URL).strip() or DEFAULT_API_URL
    raw_timeout = os.getenv("PM_API_TIMEOUT", str(DEFAULT_TIMEOUT))
    try:
        timeout = float(raw_timeout)
    except ValueError as exc:
        raise ConfigurationError(f"PM_API_TIMEOUT must be a number, got {raw_timeout!r}") from exc
    if timeout <= 0:
        raise ConfigurationError("PM_API_TIMEOUT must be positive")

    tie_break = os.getenv("PM_TIE_BREAK", "first").strip().lower()
    if tie_break not in TIE_BREAK_CHOICES:
        raise ConfigurationError(
            f"PM_TIE_BREAK must be one of {', '.join(TIE_BREAK_CHOICES)}; got {tie_break!r}"
        )

    return Settings(
        api_url=api_url.rstrip("/"),
        timeout=timeout,
        export_dir=Path(os.getenv("PM_EXPORT_DIR", str(DEFAULT_EXPORT_DIR))),
        log_level=os.getenv("PM_LOG_LEVEL", "INFO").upper(),
        tie_break=tie_break,
    )
