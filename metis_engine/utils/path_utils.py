"""Path utilities for user and project space.

USER_SPACE is read from ``METIS_USER_SPACE`` and defaults to the home
directory. METIS_DIR (.metis/) is appended by the helpers below.
"""

import os
from pathlib import Path
from typing import Optional

from metis_engine.constants import METIS_DIR


def get_user_space() -> Path:
    """Get user space base directory from env var or default to home directory.

    Returns the base path (home dir or $METIS_USER_SPACE), not including .metis.
    """
    user_space = os.getenv("METIS_USER_SPACE")
    if user_space:
        return Path(user_space).expanduser()
    return Path.home()


def get_user_metis_path() -> Path:
    """Get .metis directory in user space (e.g., ~/.metis)."""
    return get_user_space() / METIS_DIR


def get_project_metis_path(project_path: Optional[Path]) -> Optional[Path]:
    if project_path is None:
        return None
    return Path(project_path) / METIS_DIR

