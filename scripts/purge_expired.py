#!/usr/bin/env python3
"""
Erase audit entries past their retention window and expired refresh tokens.
Run from project root: python scripts/purge_expired.py
"""
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from scrapdesk.db import SessionLocal
from scrapdesk.logging import setup_logging
from scrapdesk.services.maintenance import purge_expired


def run():
    setup_logging()
    db = SessionLocal()
    try:
        result = purge_expired(db)
    finally:
        db.close()
    print(f"Deleted {result['audit_logs']} audit logs and {result['refresh_tokens']} refresh tokens")


if __name__ == "__main__":
    run()
