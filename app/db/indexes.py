"""
app/db/indexes.py

Purpose: Database index management

- Creates unique and performance indexes
- Geo indexes for "near me" listing searches
- TTL indexes for automatic OTP cleanup
"""

from pymongo import ASCENDING, DESCENDING, GEOSPHERE

from app.db.mongo import (
    get_users_collection,
    get_properties_collection,
    get_messes_collection,
    get_bookings_collection,
    get_notifications_collection,
    get_otps_collection,
    get_mess_subscriptions_collection,
    get_blog_posts_collection,
    get_newsletters_collection,
)
from app.core.logging import get_logger

logger = get_logger(__name__)


async def create_indexes():
    """
    Creates all necessary database indexes for optimal performance.
    This function is idempotent - safe to run multiple times.
    """
    try:
        users = get_users_collection()
        properties = get_properties_collection()
        messes = get_messes_collection()
        bookings = get_bookings_collection()
        notifications = get_notifications_collection()
        otps = get_otps_collection()
        subscriptions = get_mess_subscriptions_collection()
        blog_posts = get_blog_posts_collection()
        newsletters = get_newsletters_collection()

        logger.info("Creating database indexes...")

        # ==============================================
        # USERS
        # ==============================================

        await users.create_index("email", unique=True, name="email_unique")
        logger.debug("Created unique index on users.email")

        await users.create_index("role", name="role_idx")
        logger.debug("Created index on users.role")

        await users.create_index(
            [("phone", ASCENDING), ("phone_verified", ASCENDING)],
            name="verified_phone_idx"
        )
        logger.debug("Created compound index on users.phone + phone_verified")

        # ==============================================
        # LISTINGS
        # ==============================================

        for name, collection in (("properties", properties), ("messes", messes)):
            await collection.create_index(
                [("coordinates", GEOSPHERE)],
                name=f"{name}_geo_idx"
            )
            await collection.create_index(
                [("is_approved", ASCENDING), ("is_rejected", ASCENDING), ("created_at", DESCENDING)],
                name=f"{name}_moderation_idx"
            )
            await collection.create_index("owner", name=f"{name}_owner_idx")
            await collection.create_index("city", name=f"{name}_city_idx")
            logger.debug(f"Created geo, moderation, owner and city indexes on {name}")

        await properties.create_index("price", name="property_price_idx")
        logger.debug("Created index on properties.price")

        # ==============================================
        # BOOKINGS
        # ==============================================

        await bookings.create_index(
            [("user", ASCENDING), ("created_at", DESCENDING)],
            name="user_bookings_idx"
        )
        await bookings.create_index(
            [("owner", ASCENDING), ("created_at", DESCENDING)],
            name="owner_bookings_idx"
        )
        await bookings.create_index("payment_id", name="booking_payment_idx")
        logger.debug("Created indexes on bookings.user, owner and payment_id")

        # ==============================================
        # NOTIFICATIONS
        # ==============================================

        await notifications.create_index(
            [("user", ASCENDING), ("read", ASCENDING), ("created_at", DESCENDING)],
            name="user_notifications_idx"
        )
        logger.debug("Created compound index on notifications.user + read + created_at")

        # ==============================================
        # OTPS
        # ==============================================

        await otps.create_index(
            [("email", ASCENDING), ("type", ASCENDING)],
            name="otp_email_type_idx"
        )
        await otps.create_index(
            [("phone", ASCENDING), ("type", ASCENDING)],
            name="otp_phone_type_idx"
        )
        await otps.create_index(
            "expires_at",
            expireAfterSeconds=0,  # Delete when expires_at is reached
            name="otp_expiry_ttl_idx"
        )
        logger.debug("Created lookup and TTL indexes on otps")

        # ==============================================
        # MESS SUBSCRIPTIONS
        # ==============================================

        await subscriptions.create_index(
            [("user", ASCENDING), ("mess", ASCENDING), ("status", ASCENDING)],
            name="subscription_user_mess_idx"
        )
        await subscriptions.create_index(
            [("owner", ASCENDING), ("created_at", DESCENDING)],
            name="subscription_owner_idx"
        )
        logger.debug("Created indexes on mess_subscriptions")

        # ==============================================
        # BLOG / NEWSLETTER
        # ==============================================

        await blog_posts.create_index(
            [("is_published", ASCENDING), ("is_trending", DESCENDING), ("created_at", DESCENDING)],
            name="blog_listing_idx"
        )
        await blog_posts.create_index("category", name="blog_category_idx")
        logger.debug("Created indexes on blog_posts")

        await newsletters.create_index("email", unique=True, name="newsletter_email_unique")
        await newsletters.create_index("unsubscribe_token", name="newsletter_token_idx")
        logger.debug("Created indexes on newsletters")

        logger.info("✅ All database indexes created successfully")

    except Exception as e:
        logger.error(f"Failed to create indexes: {str(e)}", exc_info=True)
        raise


if __name__ == "__main__":
    """
    Run this script directly to create indexes manually.
    """
    import asyncio
    from app.db.mongo import connect_to_mongo, close_mongo_connection

    async def main():
        await connect_to_mongo()
        await create_indexes()
        await close_mongo_connection()

    asyncio.run(main())
