#!/usr/bin/env python
"""Seed the sample inventory (Milk, Eggs, Bread) for a user."""

import argparse
import asyncio
import logging
import sys

from homestock.catalog import demo_inventory
from homestock.database.crud import create_user, get_user
from homestock.database.engine import AsyncSessionLocal, close_db, init_db
from homestock.database.store import InventoryStore
from homestock.inventory import InventoryAdapter

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


async def seed(user_id: str | None) -> int:
    await init_db()
    try:
        async with AsyncSessionLocal() as session:
            if user_id is None:
                user = await create_user(session, is_anonymous=True)
                user_id = user.id
                print(f"Created anonymous user {user_id}")
            elif await get_user(session, user_id) is None:
                print(f"ERROR: user {user_id} not found", file=sys.stderr)
                return 1

        adapter = InventoryAdapter(InventoryStore(), user_id)
        await adapter.start()
        failures = 0
        for item in demo_inventory():
            result = await adapter.add_item(item)
            print(f"  {item.name}: {result.status.value}")
            if not result.ok:
                failures += 1
        seeded = len(adapter.items)
        adapter.stop()

        print(f"\nDone. {seeded} item(s) in inventory for {user_id}.")
        return 1 if failures else 0
    finally:
        await close_db()


def main():
    parser = argparse.ArgumentParser(description="Seed the sample inventory for a user")
    parser.add_argument("--user-id", help="Existing user id (default: create an anonymous user)")
    args = parser.parse_args()
    sys.exit(asyncio.run(seed(args.user_id)))


if __name__ == "__main__":
    main()
