"""
Centralized environment variable loading for Conti.

Ensures .env is loaded once and consistently across the engine, and resolves
the environment variables the engine understands.

Usage:
    from conti.core.env_loader import ensure_env_loaded
    ensure_env_loaded()
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

CONFIG_PATH_ENV = "CONTI_CONFIG_PATH"
LOG_LEVEL_ENV = "CONTI_LOG_LEVEL"

_env_loaded = False


def get_project_root() -> Path:
    """Get the project root directory (where .env is located)."""
    # This file is at conti/core/env_loader.py
    return Path(__file__).parent.parent.parent


def ensure_env_loaded(env_path: Optional[Path] = None) -> bool:
    """
    Ensure environment variables from .env are loaded.

    Args:
        env_path: Explicit .env location; defaults to the project root

    Returns:
        True if .env was loaded, False if already loaded or file not found
    """
    global _env_loaded

    if _env_loaded:
        return False

    env_path = Path(env_path) if env_path else get_project_root() / ".env"
    if not env_path.exists():
        return False

    # Values already set in the process environment win over .env
    load_dotenv(env_path, override=False)
    _env_loaded = True
    return True


def get_env(key_name: str, default: Optional[str] = None) -> Optional[str]:
    """Get an environment value after making sure .env has been read."""
    ensure_env_loaded()
    value = os.getenv(key_name)
    return value if value else default


def get_config_path() -> Optional[Path]:
    """Config file path from CONTI_CONFIG_PATH, if set."""
    value = get_env(CONFIG_PATH_ENV)
    return Path(value) if value else None


def get_log_level_name() -> Optional[str]:
    """Log level name from CONTI_LOG_LEVEL, if set."""
    return get_env(LOG_LEVEL_ENV)
