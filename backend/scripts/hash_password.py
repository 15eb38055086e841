"""
Produce an ADMIN_PASSWORD_HASH value.

Prompts for the admin password (twice) and prints its bcrypt hash, so the
plaintext never has to be stored in the environment.

Usage:
    python scripts/hash_password.py
    python scripts/hash_password.py --stdin < password.txt
"""

import argparse
import getpass
import sys
from pathlib import Path

# Add backend directory to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from quizfest.core.security import BCRYPT_MAX_BYTES, get_password_hash  # noqa: E402


def read_password(from_stdin: bool) -> str:
    if from_stdin:
        return sys.stdin.readline().rstrip("\n")

    password = getpass.getpass("Admin password: ")
    confirm = getpass.getpass("Repeat password: ")
    if password != confirm:
        print("Passwords do not match.", file=sys.stderr)
        sys.exit(1)
    return password


def main() -> None:
    parser = argparse.ArgumentParser(description="Hash the admin password with bcrypt")
    parser.add_argument("--stdin", action="store_true", help="Read the password from stdin")
    args = parser.parse_args()

    password = read_password(args.stdin)
    if len(password) < 12:
        print("Password must be at least 12 characters.", file=sys.stderr)
        sys.exit(1)
    if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        print(f"Warning: only the first {BCRYPT_MAX_BYTES} bytes are used.", file=sys.stderr)

    print(f"ADMIN_PASSWORD_HASH={get_password_hash(password)}")


if __name__ == "__main__":
    main()
