#!/usr/bin/env python3
"""
Create the portal tables (products, categories, quotation_requests, follow_ups,
customers, visitor_sessions, admin_users) in the SQL remote store.

Uses DATABASE_URL environment variable. Does NOT drop existing tables.
Pass --seed-catalog to insert the built-in example products when the
products table is empty.
"""

from __future__ import annotations
import argparse
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
load_dotenv()

sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import inspect, select, text
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from fittings_portal.cache.products import SEED_CATALOG
from fittings_portal.database.models import Base, Product
from fittings_portal.database.remote_store_sql import SqlRemoteStore


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--seed-catalog", action="store_true", help="Insert example products into an empty catalog")
    args = parser.parse_args()

    url = os.environ.get("DATABASE_URL")
    if not url:
        print("DATABASE_URL is not set", file=sys.stderr)
        return 1

    store = SqlRemoteStore(url)
    try:
        with store.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("✅ Database connection OK")

        # Create all tables (only missing ones will be added)
        store.create_tables()
        tables = inspect(store.engine).get_table_names()
        print("✅ Portal tables now exist:", sorted(tables))

        if args.seed_catalog:
            with store._session() as s:
                if s.execute(select(Product.id).limit(1)).first() is None:
                    for item in SEED_CATALOG:
                        s.add(Product(**{k: v for k, v in item.items() if k != "id"}))
                    print(f"✅ Seeded {len(SEED_CATALOG)} example products")
                else:
                    print("Catalog already has products; skipping seed")
        return 0

    except OperationalError as e:
        print(f"❌ Failed to connect to database: {e}", file=sys.stderr)
        return 2
    except SQLAlchemyError as e:
        print(f"❌ Database error: {e}", file=sys.stderr)
        return 3


if __name__ == "__main__":
    sys.exit(main())
