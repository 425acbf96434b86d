import asyncio

from app.core.logger import setup_logging, logger
from app.core.exceptions import BookingError
from app.services.db_service import db_service

async def verify_supabase():
    """Reads the reference tables to confirm credentials and schema are in place."""
    try:
        services = await db_service.get_services()
        barbers = await db_service.get_barbers()
        disabled = await db_service.get_disabled_dates()
    except BookingError as e:
        logger.error(f"❌ Supabase check failed: {e}")
        return False

    logger.info(f"✅ {len(services)} services, {len(barbers)} barbers, {len(disabled)} disabled dates")
    for service in services:
        logger.info(f"   ✂️ {service.name_en} - {service.duration_minutes} min - {service.price_tnd} TND")
    return True

if __name__ == "__main__":
    setup_logging()
    ok = asyncio.run(verify_supabase())
    raise SystemExit(0 if ok else 1)
