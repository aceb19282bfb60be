from __future__ import annotations

from hms import config
from hms.db import engine


def main() -> None:
    print("DATA DIR  :", config.DATA_DIR)
    print("OUTPUT DIR:", config.OUTPUT_DIR)
    print("ENGINE URL:", engine.url)
    print("DB FILE   :", engine.url.database)


if __name__ == "__main__":
    main()
