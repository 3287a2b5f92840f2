"""
Runtime configuration for PhysLab.

Values come from the environment, with a project-level .env file loaded
first. Every setting has a default suitable for local development.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).parent.parent
load_dotenv(PROJECT_ROOT / ".env")


DEFAULT_CLASSROOM_DB = PROJECT_ROOT / "data" / "classroom.db"
DEFAULT_PROGRESS_DIR = Path.home() / ".physlab"
DEFAULT_PROGRESS_DB = DEFAULT_PROGRESS_DIR / "progress.db"
DEFAULT_COURSES_DIR = PROJECT_ROOT / "courses"

DEFAULT_PUBLIC_IP_URL = "https://api.ipify.org?format=json"
DEFAULT_IP_LOOKUP_TIMEOUT = 2.0  # seconds
FALLBACK_IP = "127.0.0.1"


def _path_from_env(name: str, default: Path) -> Path:
    value = os.environ.get(name)
    return Path(value).expanduser() if value else default


def classroom_db_path() -> Path:
    return _path_from_env("PHYSLAB_CLASSROOM_DB", DEFAULT_CLASSROOM_DB)


def progress_db_path() -> Path:
    return _path_from_env("PHYSLAB_PROGRESS_DB", DEFAULT_PROGRESS_DB)


def courses_dir() -> Path:
    return _path_from_env("PHYSLAB_COURSES_DIR", DEFAULT_COURSES_DIR)


def public_ip_url() -> str:
    return os.environ.get("PHYSLAB_PUBLIC_IP_URL") or DEFAULT_PUBLIC_IP_URL


def ip_lookup_timeout() -> float:
    """Timeout for the public address lookup; invalid values fall back to the default."""
    raw = os.environ.get("PHYSLAB_IP_LOOKUP_TIMEOUT")
    if not raw:
        return DEFAULT_IP_LOOKUP_TIMEOUT
    try:
        return float(raw)
    except ValueError:
        return DEFAULT_IP_LOOKUP_TIMEOUT
