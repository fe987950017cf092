# Common utilities and shared modules
"""
Shared components used by the generator and the publisher:
- Data models and errors (Pydantic schemas)
- Supabase datastore
- Logging configuration
- Project configuration
"""

from .config import Credentials, PROJECT_ROOT, DATA_DIR, settings
from .logging import setup_logging

__all__ = [
    "Credentials",
    "settings",
    "PROJECT_ROOT",
    "DATA_DIR",
    "setup_logging",
]
