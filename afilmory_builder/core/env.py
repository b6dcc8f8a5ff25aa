from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"


def load_dotenv_if_present(path: str | Path = ".env") -> bool:
    """Load builder settings from a .env file; existing env vars win."""
    dotenv_path = Path(path)
    if not dotenv_path.exists():
        return False
    return load_dotenv(dotenv_path=dotenv_path, override=False)


def configure_logging(default_level: str = "INFO") -> int:
    """Configure root logging from LOG_LEVEL (default INFO) and return the level."""
    level_name = os.getenv("LOG_LEVEL", default_level).upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    return level


def env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    """Return a stripped env value, treating blank strings as unset."""
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()
