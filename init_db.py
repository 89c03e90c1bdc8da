#!/usr/bin/env python3
"""Create the account tables for a fresh Parley deployment.

Chat data lives in the key-value store and needs no setup.
"""

import sys
from pathlib import Path

# Make src/ importable when run from a checkout.
sys.path.insert(0, str(Path(__file__).resolve().parent / "src"))

from parley_stage.db.session import create_tables  # noqa: E402

if __name__ == "__main__":
    create_tables()
    print("Database tables created.")
