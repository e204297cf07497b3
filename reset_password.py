#!/usr/bin/env python3
"""
Reset a user's password in the platform's SQLite database.

This script does not read or reveal any existing password.  It sets a
new PBKDF2 hash for the given email and can optionally change the
user's subscription tier at the same time.

Usage:
    python reset_password.py --db ./zoom_event_platform/zoom_event_platform.db --email host@ex.com --password "NewStrongPass!234"

If --password is omitted, you will be prompted to enter it securely.
"""

import argparse
import getpass
import os
import sqlite3
import sys

from zoom_event_platform.app.core.security import hash_password
from zoom_event_platform.app.services.subscription_limits import SubscriptionTier


def main():
    ap = argparse.ArgumentParser(description="Reset a platform user's password (SQLite).")
    ap.add_argument("--db", required=True, help="Path to SQLite DB file")
    ap.add_argument("--email", required=True, help="User email to update")
    ap.add_argument("--password", help="New password. If omitted, you'll be prompted securely.")
    ap.add_argument("--tier", choices=[tier.value for tier in SubscriptionTier], help="Also set the subscription tier")
    args = ap.parse_args()

    if not os.path.exists(args.db):
        print(f"[!] DB not found: {args.db}", file=sys.stderr)
        sys.exit(1)

    new_password = args.password or getpass.getpass("Enter NEW password: ")
    if not new_password:
        print("[!] Empty password is not allowed.", file=sys.stderr)
        sys.exit(1)

    email = args.email.strip().lower()
    conn = sqlite3.connect(args.db)
    try:
        cur = conn.cursor()
        cur.execute("SELECT id FROM users WHERE email = ?", (email,))
        if not cur.fetchone():
            print(f"[!] No user found with email: {email}", file=sys.stderr)
            sys.exit(2)

        cur.execute(
            "UPDATE users SET password = ?, updated_at = CURRENT_TIMESTAMP WHERE email = ?",
            (hash_password(new_password), email),
        )
        if args.tier:
            cur.execute("UPDATE users SET subscription_tier = ? WHERE email = ?", (args.tier, email))
        conn.commit()
        print(f"[+] Password updated for user: {email}")
    finally:
        conn.close()


if __name__ == "__main__":
    main()
