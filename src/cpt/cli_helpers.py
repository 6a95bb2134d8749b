"""CLI helper functions for settings and database resolution."""

import os
from pathlib import Path
from typing import TYPE_CHECKING

from cpt.contracts.errors import ConfigurationError
from cpt.core.config import DATABASE_URL_ENV, DEFAULT_SETTINGS_FILE, has_settings_overrides, normalize_database_url

if TYPE_CHECKING:
    from cpt.core.config import CptSettings


def resolve_settings(settings_path: Path | None) -> "CptSettings | None":
    """Load settings from an explicit path or ./cpt.yaml.

    CPT_* environment variables override the file, and are honored on
    their own when no settings file is given or present.

    Returns:
        Loaded settings, or None when there is neither a settings file
        nor a CPT_* variable.

    Raises:
        ConfigurationError: If the explicit file is missing or any file is invalid.
    """
    from cpt.core.config import load_settings

    path: Path | None
    if settings_path is not None:
        if not settings_path.exists():
            raise ConfigurationError(f"Settings file not found: {settings_path}")
        path = settings_path
    elif DEFAULT_SETTINGS_FILE.exists():
        path = DEFAULT_SETTINGS_FILE
    elif has_settings_overrides():
        path = None
    else:
        return None

    # Don't silently fall through - the operator should know why settings failed
    try:
        return load_settings(path)
    except Exception as e:
        source = path if path is not None else "CPT_* environment variables"
        raise ConfigurationError(f"Error loading settings from {source}: {e}") from e


def resolve_database_url(
    database: str | None,
    settings: "CptSettings | None",
) -> tuple[str, bool]:
    """Resolve the database URL for a command.

    Priority: --database > DATABASE_URL environment variable > settings database.url

    Args:
        database: Explicit URL from the --database option (optional)
        settings: Loaded settings (optional)

    Returns:
        Tuple of (database_url, echo_sql)

    Raises:
        ConfigurationError: If no URL is configured anywhere.
    """
    echo = settings.database.echo if settings is not None else False

    if database:
        return normalize_database_url(database), echo

    env_url = os.environ.get(DATABASE_URL_ENV)
    if env_url:
        return normalize_database_url(env_url), echo

    if settings is not None and settings.database.url:
        return settings.database.url, echo

    raise ConfigurationError(
        f"No database configured. Make sure that the {DATABASE_URL_ENV} environment variable is set, "
        "or provide --database or a settings file with database.url."
    )
