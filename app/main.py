from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from app.core.config import settings
from app.core.exceptions import (
    BookingError,
    BookingNotFoundError,
    BookingValidationError,
    DateDisabledError,
    DisabledDateExistsError,
    DuplicateBookingError,
    StoreUnavailableError,
)
from app.models.schemas import ErrorResponse
from app.api import admin, booking
from app.core.logger import setup_logging, logger
from contextlib import asynccontextmanager
from datetime import datetime

setup_logging()

ERROR_STATUS = {
    BookingValidationError: 422,
    DuplicateBookingError: 409,
    DateDisabledError: 409,
    DisabledDateExistsError: 409,
    BookingNotFoundError: 404,
    StoreUnavailableError: 503,
}

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("🚀 Starting Barbershop Booking API")
    yield
    # Shutdown
    logger.info("🛑 Shutting down backend")

app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan
)

@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    status_code = ERROR_STATUS.get(type(exc), 400)
    logger.info(f"↩️ {request.method} {request.url.path} -> {status_code} {exc.code}: {exc}")
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(code=exc.code, message=str(exc), field=getattr(exc, "field", None)).model_dump()
    )

# Global Exception Handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"🔥 UNHANDLED ERROR: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"message": "Internal Server Error", "detail": "An unexpected error occurred. Please try again later."}
    )

# Include routers
app.include_router(booking.router, tags=["Booking"])
app.include_router(admin.router, tags=["Admin"])

@app.get("/")
async def health_check():
    return {'status': 'active', 'time': datetime.now().isoformat()}

@app.get("/health")
async def health_check_std():
    return {"status": "ok", "environment": settings.ENVIRONMENT, "timestamp": datetime.now().isoformat()}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.PORT, reload=True)
