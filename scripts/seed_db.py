"""
Create the schema (tables and usage triggers) and seed initial data.

Seeds the tier quota policy and, when the database is empty, a demo admin
account owned by ``DEMO_OWNER_ID``.
"""

import asyncio
import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from storage_gateway.core.database import db_manager
from storage_gateway.features.storage.quota import TIER_QUOTAS, format_bytes
from storage_gateway.models import Admin, StorageQuota

DEMO_OWNER_ID = os.environ.get("DEMO_OWNER_ID", "00000000-0000-0000-0000-000000000001")


async def seed_data() -> None:
    """Create schema, tier quotas and a demo admin."""
    print("🌱 Seeding database...")

    db_manager.init()
    await db_manager.create_schema()
    print("✅ Schema and usage triggers in place")

    async for db in db_manager.get_session():
        for tier, quota_bytes in TIER_QUOTAS.items():
            existing = await db.get(StorageQuota, tier)
            if existing is None:
                db.add(StorageQuota(tier=tier, quota_bytes=quota_bytes))
            else:
                existing.quota_bytes = quota_bytes
            print(f"✅ Tier {tier}: {format_bytes(quota_bytes)}")

        result = await db.execute(select(Admin).where(Admin.owner_id == DEMO_OWNER_ID))
        if result.scalar_one_or_none():
            print("⚠️  Demo admin already exists. Skipping.")
        else:
            admin = Admin(
                owner_id=DEMO_OWNER_ID,
                company_name="Acme Property Inspections",
                subscription_tier="starter",
            )
            db.add(admin)
            print(f"✅ Created admin: {admin.company_name} (owner: {DEMO_OWNER_ID})")

        await db.commit()

    await db_manager.close()
    print("🎉 Seeding complete!")


if __name__ == "__main__":
    asyncio.run(seed_data())
