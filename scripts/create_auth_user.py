"""
Create a login entry for AUTH_USERS.

Hashes the password with bcrypt, generates a TOTP secret and prints the JSON
entry to paste into AUTH_USERS, plus the otpauth:// URI to enrol the
authenticator app (or use GET /api/auth/qr-code once the entry is loaded).

Usage:
    python scripts/create_auth_user.py admin@example.com "Ana"
"""

import argparse
import getpass
import json
import sys
from pathlib import Path

# Add parent directory to path so we can import app modules
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.core.config import settings
from app.core.security import generate_totp_secret, hash_password, totp_provisioning_uri


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("email")
    parser.add_argument("name", help="Display name, also used as the calendar person id")
    args = parser.parse_args()

    password = getpass.getpass("Password: ")
    if not password or password != getpass.getpass("Repeat password: "):
        print("❌ Passwords are empty or do not match.")
        sys.exit(1)

    secret = generate_totp_secret()
    entry = {
        "email": args.email,
        "name": args.name,
        "password_hash": hash_password(password),
        "totp_secret": secret,
    }

    print("\n✓ AUTH_USERS entry:")
    print(json.dumps(entry, ensure_ascii=False))
    print("\n✓ Authenticator URI:")
    print(totp_provisioning_uri(secret, args.email, settings.TOTP_ISSUER))


if __name__ == "__main__":
    main()
