from __future__ import annotations

import sys

from hms.auth_service import delete_account
from hms.db import init_db


def main() -> None:
    if len(sys.argv) < 2:
        print("Usage: python -m hms.tools.reset_account <username>")
        raise SystemExit(2)

    username = sys.argv[1].strip().upper()
    if not username:
        print("Invalid username.")
        raise SystemExit(2)

    init_db()
    if delete_account(username):
        print(f"OK: account '{username}' deleted; `hms init` recreates it with the default password.")
    else:
        print(f"No account '{username}'.")


if __name__ == "__main__":
    main()
