"""
Runtime configuration.

Settings are read from the environment once, at start. A `.env` file in the
project root is loaded first so operators can keep credentials out of the shell.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from gigledger.core.exceptions import ConfigurationError

# backend/gigledger/core/config.py -> project root
ENV_PATH = Path(__file__).resolve().parents[3] / ".env"

TRUTHY_VALUES = {"1", "true", "yes", "on"}
FALSY_VALUES = {"0", "false", "no", "off"}

DEFAULT_BATCH_SIZE = 500

REQUIRED_VARIABLES = (
    "FIREBASE_CREDENTIALS",
    "SUPABASE_URL",
    "SUPABASE_SERVICE_ROLE_KEY",
)


@dataclass(frozen=True)
class Settings:
    """Resolved configuration for a migration run."""

    firebase_credentials: str
    supabase_url: str
    supabase_service_role_key: str
    dry_run: bool = True
    transactions_batch_size: int = DEFAULT_BATCH_SIZE
    log_level: str = "INFO"

    @property
    def mode_label(self) -> str:
        return "DRY RUN (no writes)" if self.dry_run else "COMMIT (writing to Supabase)"


def parse_bool(value: Optional[str], default: bool) -> bool:
    """Parse an environment flag; unset or empty values use the default."""
    if value is None or not value.strip():
        return default
    normalized = value.strip().lower()
    if normalized in TRUTHY_VALUES:
        return True
    if normalized in FALSY_VALUES:
        return False
    raise ConfigurationError(
        f"Invalid boolean value: {value!r}",
        details={"accepted": sorted(TRUTHY_VALUES | FALSY_VALUES)},
    )


def _parse_batch_size(value: Optional[str]) -> int:
    if value is None or not value.strip():
        return DEFAULT_BATCH_SIZE
    try:
        batch_size = int(value)
    except ValueError:
        raise ConfigurationError(f"MIGRATION_BATCH_SIZE must be an integer, got {value!r}")
    if batch_size <= 0:
        raise ConfigurationError(f"MIGRATION_BATCH_SIZE must be positive, got {batch_size}")
    return batch_size


def load_settings(
    env: Optional[Mapping[str, str]] = None,
    dry_run: Optional[bool] = None,
    batch_size: Optional[int] = None,
) -> Settings:
    """
    Build Settings from the environment.

    Args:
        env: Mapping to read instead of os.environ (the .env file is only
             loaded when reading the real environment)
        dry_run: Explicit run mode; overrides MIGRATION_DRY_RUN when given
        batch_size: Explicit transaction batch size; overrides MIGRATION_BATCH_SIZE

    Raises:
        ConfigurationError: If a required variable is missing or a value is invalid
    """
    if env is None:
        load_dotenv(ENV_PATH)
        env = os.environ

    missing = [name for name in REQUIRED_VARIABLES if not env.get(name)]
    if missing:
        raise ConfigurationError(
            f"Missing required environment variables: {', '.join(missing)}",
            details={"missing": missing},
        )

    resolved_dry_run = (
        dry_run if dry_run is not None else parse_bool(env.get("MIGRATION_DRY_RUN"), default=True)
    )

    if batch_size is not None:
        if batch_size <= 0:
            raise ConfigurationError(f"Batch size must be positive, got {batch_size}")
        resolved_batch_size = batch_size
    else:
        resolved_batch_size = _parse_batch_size(env.get("MIGRATION_BATCH_SIZE"))

    return Settings(
        firebase_credentials=env["FIREBASE_CREDENTIALS"],
        supabase_url=env["SUPABASE_URL"],
        supabase_service_role_key=env["SUPABASE_SERVICE_ROLE_KEY"],
        dry_run=resolved_dry_run,
        transactions_batch_size=resolved_batch_size,
        log_level=env.get("LOG_LEVEL", "INFO") or "INFO",
    )
