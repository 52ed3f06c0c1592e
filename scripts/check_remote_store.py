#!/usr/bin/env python3
"""
Check connectivity to the configured remote store (REST or SQL) and report
which tables answer. Reads the same environment as the API.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv
load_dotenv()

from fittings_portal.config import load_config
from fittings_portal.database.models import TABLES
from fittings_portal.portal import make_remote_store


async def _check() -> int:
    config = load_config()
    store = make_remote_store(config)
    if not store.is_configured():
        print("Remote store is not configured (set REMOTE_STORE_URL/REMOTE_STORE_ANON_KEY or DATABASE_URL)", file=sys.stderr)
        return 1

    failures = 0
    for table in TABLES:
        status = await store.check_connection(table)
        if status["connected"]:
            print(f"{table}: OK")
        else:
            failures += 1
            print(f"{table}: {status['error']}", file=sys.stderr)
    return 0 if failures == 0 else 2


def main() -> int:
    return asyncio.run(_check())


if __name__ == "__main__":
    sys.exit(main())
