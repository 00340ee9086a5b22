"""Centralized path definitions for the mailsync engine.

This module provides a single source of truth for all application paths,
so log and database locations are configured in one place.
"""

import os
from pathlib import Path

# Base application directory
MAILSYNC_DIR = Path(os.getenv("MAILSYNC_HOME", str(Path.home() / ".mailsync")))

# Subdirectories
DATA_DIR = MAILSYNC_DIR / "data"
LOGS_DIR = MAILSYNC_DIR / "logs"

# Specific files
DATABASE_PATH = DATA_DIR / "mailsync.db"
