import asyncio
import sys
from motor.motor_asyncio import AsyncIOMotorClient
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from app.core.config import get_settings
from app.services.booking_service import BookingService


async def report_orphans():
    print("Travel Back Office - Orphaned Booking Report")
    print("============================================")

    settings = get_settings()

    # Connect to MongoDB
    try:
        client = AsyncIOMotorClient(settings.mongo_url)
        await client.admin.command('ping')
        print("Connected to MongoDB")
    except Exception as e:
        print(f"Connection failed: {e}")
        sys.exit(1)

    db = client[settings.mongo_db_name]
    print(f"Target Database: {settings.mongo_db_name}")

    try:
        orphans = await BookingService(db).find_orphans()
    finally:
        client.close()

    if not orphans:
        print("\nNo orphaned bookings found.")
        return

    print(f"\nFound {len(orphans)} bookings whose inquiry is missing or assigned elsewhere:\n")
    for booking in orphans:
        print(
            f"  {booking['id']}  inquiry={booking.get('inquiryId')}  "
            f"agent={booking.get('agent')}  customer={booking.get('customerName', '')}"
        )

    print("\nReview these bookings and remove or reassign them manually.")


if __name__ == "__main__":
    try:
        asyncio.run(report_orphans())
    except KeyboardInterrupt:
        print("\nOperation cancelled by user.")
    except Exception as e:
        print(f"\nAn unexpected error occurred: {e}")
        sys.exit(1)
