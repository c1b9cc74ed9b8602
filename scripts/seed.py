#!/usr/bin/env python3
"""
Seed development user accounts.

Usage:
    python scripts/seed.py
    python scripts/seed.py --admin-email admin@example.com --admin-password 'a-strong-password'
"""

from biokey_auth.seed import run

if __name__ == "__main__":
    run()
