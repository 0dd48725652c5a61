"""
Print an ADMIN_PASSWORD_HASH value for the admin login.
"""

from __future__ import annotations

import argparse
import getpass
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from photosite.auth import DEFAULT_ITERATIONS, hash_password


def main() -> int:
    parser = argparse.ArgumentParser(description="Hash the admin password")
    parser.add_argument(
        "--iterations",
        type=int,
        default=DEFAULT_ITERATIONS,
        help="PBKDF2 iteration count",
    )
    parser.add_argument(
        "--stdin",
        action="store_true",
        help="Read the password from stdin instead of prompting",
    )
    args = parser.parse_args()

    if args.stdin:
        password = sys.stdin.readline().rstrip("\n")
    else:
        password = getpass.getpass("Admin password: ")
        if password != getpass.getpass("Repeat password: "):
            print("Passwords do not match", file=sys.stderr)
            return 1
    if not password:
        print("Password must not be empty", file=sys.stderr)
        return 1

    print(f"ADMIN_PASSWORD_HASH={hash_password(password, iterations=args.iterations)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
