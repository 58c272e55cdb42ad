"""Root conftest — shared test configuration."""

import os

# Ensure tests never touch a real document database file
os.environ.setdefault("WTLIBS_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("WTLIBS_DEFAULT_DATA_STORAGE", "json")
