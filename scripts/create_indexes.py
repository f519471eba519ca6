#!/usr/bin/env python3
"""
Create MongoDB indexes for the MegaJobNepal collections.

Usage:
    python scripts/create_indexes.py
    python scripts/create_indexes.py --list
"""

import argparse
import asyncio
import sys
from pathlib import Path

from motor.motor_asyncio import AsyncIOMotorClient

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from megajob.config import settings  # noqa: E402
from megajob.db.mongo import COLLECTIONS, create_indexes  # noqa: E402


async def main(list_only: bool) -> int:
    print("🔧 MegaJobNepal index setup")
    print("=" * 60)

    print(f"\n📡 Connecting to MongoDB ({settings.MONGODB_DB_NAME})...")
    client = AsyncIOMotorClient(
        settings.MONGODB_URI,
        serverSelectionTimeoutMS=settings.MONGODB_SERVER_SELECTION_TIMEOUT_MS,
    )
    db = client[settings.MONGODB_DB_NAME]

    try:
        await client.admin.command("ping")
        print("✅ MongoDB connected")
    except Exception as e:
        print(f"❌ MongoDB connection failed: {e}")
        client.close()
        return 1

    try:
        if not list_only:
            print("\n🔨 Creating indexes...")
            await create_indexes(db)

        print("\n📋 Indexes:")
        for name in COLLECTIONS:
            indexes = await db[name].list_indexes().to_list(length=None)
            print(f"   {name}")
            for idx in indexes:
                unique = " (unique)" if idx.get("unique") else ""
                print(f"     - {idx['name']}: {dict(idx.get('key', {}))}{unique}")
    finally:
        client.close()

    print("\n✅ Done")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create MegaJobNepal MongoDB indexes")
    parser.add_argument("--list", action="store_true", help="Only list existing indexes")
    args = parser.parse_args()
    sys.exit(asyncio.run(main(args.list)))
