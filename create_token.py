"""Issue a long-lived access token for an existing user.

Usage:
    python create_token.py host@example.com --days 365
"""
import argparse

from zoom_event_platform.app.core.security import create_access_token


def main() -> None:
    ap = argparse.ArgumentParser(description="Create an API access token for a user.")
    ap.add_argument("email", help="Email of the user the token is issued for")
    ap.add_argument("--days", type=int, default=365, help="Token lifetime in days")
    args = ap.parse_args()
    print(create_access_token({"sub": args.email.strip().lower()}, expires_delta=args.days * 24 * 60 * 60))


if __name__ == "__main__":
    main()
