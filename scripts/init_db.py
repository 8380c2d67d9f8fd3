"""
Database initialization script for SecondHome

Creates collections and indexes, and ensures the admin account
when ADMIN_EMAIL / ADMIN_PASSWORD are set:
    python scripts/init_db.py
    python scripts/init_db.py --skip-admin
"""

import argparse
import asyncio
import sys
from pathlib import Path
from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load environment variables
load_dotenv()

import logging

from app.core.config import settings
from app.core.exceptions import SecondHomeError
from app.db.mongo import connect_to_mongo, close_mongo_connection
from app.db.indexes import create_indexes
from app.services.moderation_service import bootstrap_admin

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)


async def ensure_admin():
    if not settings.ADMIN_EMAIL or not settings.ADMIN_PASSWORD:
        logger.info("ℹ️  ADMIN_EMAIL / ADMIN_PASSWORD not set, skipping admin account")
        return

    try:
        result = await bootstrap_admin(settings.ADMIN_SEED_TOKEN)
        logger.info(f"✅ Admin account ready: {result['email']}")
    except SecondHomeError as e:
        logger.error(f"❌ Admin bootstrap failed: {e.message}")


async def main(skip_admin: bool = False):
    """Main initialization"""
    logger.info("=" * 60)
    logger.info("  SecondHome Database Setup")
    logger.info("=" * 60 + "\n")

    logger.info(f"🔌 Connecting to MongoDB: {settings.MONGODB_DB_NAME}")
    await connect_to_mongo()

    try:
        await create_indexes()
        logger.info("✅ Indexes created")

        if not skip_admin:
            await ensure_admin()
    finally:
        await close_mongo_connection()

    logger.info("\n" + "=" * 60)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Initialize the SecondHome database")
    parser.add_argument("--skip-admin", action="store_true", help="Only create indexes")
    args = parser.parse_args()

    asyncio.run(main(skip_admin=args.skip_admin))
