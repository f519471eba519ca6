#!/usr/bin/env python3
"""
Create the three demo accounts in MongoDB so the demo credentials also
work against the real API.

Usage:
    python scripts/seed_demo_accounts.py
    python scripts/seed_demo_accounts.py --reset-passwords
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
from megajob.core.security import get_password_hash  # noqa: E402
from megajob.db.mongo import create_indexes  # noqa: E402
from megajob.services.account_service import new_user_document  # noqa: E402
from megajob.utils import helpers  # noqa: E402
from megajob.utils.constants import DEMO_ACCOUNTS  # noqa: E402


async def seed(reset_passwords: bool) -> int:
    print("🌱 Seeding demo accounts")
    print("=" * 60)

    client = AsyncIOMotorClient(
        settings.MONGODB_URI,
        serverSelectionTimeoutMS=settings.MONGODB_SERVER_SELECTION_TIMEOUT_MS,
    )
    db = client[settings.MONGODB_DB_NAME]

    try:
        await client.admin.command("ping")
    except Exception as e:
        print(f"❌ MongoDB connection failed: {e}")
        client.close()
        return 1

    created = updated = skipped = 0
    try:
        await create_indexes(db)

        for role, account in DEMO_ACCOUNTS.items():
            existing = await db.users.find_one({"email": account["email"]})
            if existing:
                if reset_passwords:
                    await db.users.update_one(
                        {"_id": existing["_id"]},
                        {"$set": {
                            "password_hash": get_password_hash(account["password"]),
                            "is_active": True,
                            "updated_at": helpers.utcnow(),
                        }},
                    )
                    print(f"🔁 {role:<11} {account['email']} (password reset)")
                    updated += 1
                else:
                    print(f"⏭️  {role:<11} {account['email']} already exists")
                    skipped += 1
                continue

            profile = account["user"]
            user = new_user_document(
                email=account["email"],
                password_hash=get_password_hash(account["password"]),
                role=profile["role"],
                first_name=profile.get("first_name"),
                last_name=profile.get("last_name"),
                phone=profile.get("phone"),
                is_verified=True,
            )
            await db.users.insert_one(user)
            print(f"✅ {role:<11} {account['email']}")
            created += 1
    finally:
        client.close()

    print(f"\n📊 created={created} updated={updated} skipped={skipped}")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed MegaJobNepal demo accounts")
    parser.add_argument(
        "--reset-passwords",
        action="store_true",
        help="Reset passwords of demo accounts that already exist",
    )
    args = parser.parse_args()
    sys.exit(asyncio.run(seed(args.reset_passwords)))
