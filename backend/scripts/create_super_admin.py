#!/usr/bin/env python3
"""
Bootstrap a platform super admin.

- Uses DATABASE_URL from the environment / .env (same as the API)
- Creates the "platform" tenant on first run
- Re-running with the same email resets that user's password

Usage:
  python scripts/create_super_admin.py --email ops@example.com --password 'S3cret!'
"""

import argparse
import os
import sys

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if BASE_DIR not in sys.path:
    sys.path.insert(0, BASE_DIR)

from garagehub.core.config import SessionLocal  # noqa: E402
from garagehub.services.tenants import ensure_super_admin  # noqa: E402


def main() -> int:
    ap = argparse.ArgumentParser(description="Create or reset a super admin user")
    ap.add_argument("--email", required=True)
    ap.add_argument("--password", required=True)
    args = ap.parse_args()

    if len(args.password) < 6:
        print("[error] password must be at least 6 characters")
        return 1

    db = SessionLocal()
    try:
        user = ensure_super_admin(db, args.email, args.password)
        db.commit()
        print(f"[✓] super admin ready: id={user.id} email={user.email} tenant_id={user.tenant_id}")
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
