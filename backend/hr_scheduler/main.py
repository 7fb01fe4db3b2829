"""
HR Assistant Scheduler - FastAPI Application
Exposes availability, recommendation and booking to the dialogue orchestrator.
"""

from fastapi import FastAPI, Depends, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel
from typing import Optional

from .auth.oauth import CredentialStore, credential_store
from .errors import ExternalGatewayError, InvalidRangeError, TimezoneParseError
from .models import BookingRequest
from .storage import BookingRecordStore, engine, init_db
from .tools.calendar import GoogleCalendarGateway
from .tools.scheduler import CalendarScheduler
from .utils.config import settings
from .utils.logger import logger

# Initialize FastAPI app
app = FastAPI(
    title="HR Assistant Scheduler",
    description="Timezone-aware availability and booking for HR manager calls",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_scheduler: Optional[CalendarScheduler] = None


class BookingPayload(BaseModel):
    request: BookingRequest
    timezone: Optional[str] = None


def get_scheduler() -> CalendarScheduler:
    global _scheduler
    if _scheduler is None:
        _scheduler = CalendarScheduler(
            gateway=GoogleCalendarGateway(credential_store),
            store=BookingRecordStore(engine)
        )
    return _scheduler


def get_credential_store() -> CredentialStore:
    return credential_store


def _error_response(status_code: int, error_type: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error_type": error_type, "error": message})


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "HR Assistant Scheduler",
        "version": "1.0.0"
    }

@app.get("/health")
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "components": {
            "api": "operational",
            "calendar": "google",
            "default_timezone": settings.default_timezone
        }
    }

# Calendar connection (OAuth 2.0)

@app.get("/auth/login")
def login(store: CredentialStore = Depends(get_credential_store)):
    """Send the manager to Google to grant calendar access."""
    auth_url, state = store.get_authorization_url()
    logger.info(f"Redirecting to OAuth with state: {state}")
    return RedirectResponse(url=auth_url)

@app.get("/auth/callback")
def auth_callback(code: str, state: str, store: CredentialStore = Depends(get_credential_store)):
    """Exchange the authorization code and store the tokens."""
    try:
        account_id, _ = store.exchange_code(code, state)
    except Exception as e:
        logger.error(f"Error in OAuth callback: {e}")
        return _error_response(400, "OAuthError", f"Could not connect calendar: {e}")

    return {"authenticated": True, "account_id": account_id}

@app.get("/auth/status/{account_id}")
def auth_status(account_id: str, store: CredentialStore = Depends(get_credential_store)):
    """Check whether a calendar is connected for the account."""
    try:
        credentials = store.load_credentials(account_id)
    except ExternalGatewayError as e:
        logger.warning(f"Stored credentials unusable for {account_id}: {e.message}")
        credentials = None

    return {"account_id": account_id, "authenticated": credentials is not None}

@app.post("/auth/logout/{account_id}")
def logout(account_id: str, store: CredentialStore = Depends(get_credential_store)):
    """Forget the stored tokens for the account."""
    return {"success": store.revoke_credentials(account_id)}

# Availability

@app.get("/api/availability/{account_id}")
def get_availability(
    account_id: str,
    days_ahead: int = Query(settings.days_ahead, ge=1, le=31),
    timezone: Optional[str] = None,
    count: int = Query(settings.recommendation_count, ge=0),
    scheduler: CalendarScheduler = Depends(get_scheduler)
):
    """
    Free slots for a manager plus the top recommendations.
    Slots are rendered in the requested timezone.
    """
    try:
        slots = scheduler.get_available_slots(account_id, days_ahead, timezone)
    except (InvalidRangeError, TimezoneParseError) as e:
        return _error_response(400, type(e).__name__, str(e))
    except ExternalGatewayError as e:
        logger.error(f"Error getting available slots: {e.message}")
        return _error_response(502, "ExternalGatewayError", f"Failed to fetch calendar availability: {e.message}")

    recommended = scheduler.recommend(slots, count)
    return {
        "account_id": account_id,
        "slots": [slot.model_dump(mode="json") for slot in slots],
        "recommended": [slot.model_dump(mode="json") for slot in recommended]
    }

# Bookings

@app.post("/api/bookings/{account_id}")
def book_event(
    account_id: str,
    payload: BookingPayload,
    scheduler: CalendarScheduler = Depends(get_scheduler)
):
    """
    Book a call. The slot is re-checked against the live calendar first.

    Returns 200 on success, 409 when the slot was taken meanwhile,
    502 when the calendar provider failed.
    """
    try:
        result = scheduler.book_event(account_id, payload.request, payload.timezone)
    except (InvalidRangeError, TimezoneParseError) as e:
        return _error_response(400, type(e).__name__, str(e))

    body = result.model_dump()
    body["message"] = result.user_message

    if result.success:
        return body

    status_code = 409 if result.error_type == "conflict" else 502
    return JSONResponse(status_code=status_code, content=body)

@app.delete("/api/bookings/{account_id}/{event_id}")
def cancel_event(
    account_id: str,
    event_id: str,
    booking_id: Optional[str] = None,
    scheduler: CalendarScheduler = Depends(get_scheduler)
):
    """Cancel a booked call."""
    success = scheduler.cancel_event(account_id, event_id, booking_id)

    return {
        "success": success,
        "message": "Event cancelled" if success else "Could not cancel event. Please try again."
    }

@app.get("/api/bookings/{account_id}/upcoming")
def upcoming_bookings(
    account_id: str,
    limit: int = Query(10, ge=1, le=100),
    scheduler: CalendarScheduler = Depends(get_scheduler)
):
    """Scheduled calls that have not started yet."""
    records = scheduler.get_upcoming_bookings(account_id, limit)
    return {
        "account_id": account_id,
        "bookings": [record.model_dump(mode="json") for record in records]
    }

# Application Startup

@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    logger.info("Starting HR Assistant Scheduler")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Default timezone: {settings.default_timezone}")
    init_db()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "hr_scheduler.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )
