#!/usr/bin/env python3
"""Download the published task sheet to a local CSV.

No credentials required: the sheet is published to the web. Set
SNL_TASKS_CSV_URL to fetch a different sheet.
"""

import sys
import urllib.request
from pathlib import Path

from snl_session.config import TASKS_CSV_URL

DEST = Path("results/tasks.csv")


def main() -> None:
    DEST.parent.mkdir(parents=True, exist_ok=True)

    if DEST.exists():
        print(f"{DEST} already exists. Overwrite? [y/N] ", end="", flush=True)
        if input().strip().lower() != "y":
            print("Aborted.")
            sys.exit(0)

    print(f"Downloading from {TASKS_CSV_URL} ...")
    urllib.request.urlretrieve(TASKS_CSV_URL, DEST)
    size_kb = DEST.stat().st_size / 1024
    print(f"Saved to {DEST} ({size_kb:.1f} KB)")


if __name__ == "__main__":
    main()
