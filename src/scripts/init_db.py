#!/usr/bin/env python3
"""
Create the pto-import SQLite database: employees, PTO entries, import runs
and the API request log.

Usage:
    uv run python src/scripts/init_db.py
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.database import init_database


if __name__ == "__main__":
    print(f"Database ready at: {init_database()}")
