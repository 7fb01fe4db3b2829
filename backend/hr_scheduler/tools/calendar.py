from google.auth.exceptions import RefreshError, TransportError
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from datetime import datetime
from typing import List, Dict, Optional, Any, Protocol
import httplib2
from dateutil import parser

from ..errors import ExternalGatewayError, TimezoneParseError
from ..models import CalendarEventDraft, ProviderEvent, WallClockTime
from ..utils.config import settings
from ..utils.logger import logger
from .timezone import TimezoneConverter


class CalendarGateway(Protocol):
    """Calendar provider operations the booking engine depends on."""

    def get_events(
        self,
        account_id: str,
        range_start: datetime,
        range_end: datetime,
        timezone_hint: str
    ) -> List[ProviderEvent]:
        ...

    def create_event(self, account_id: str, draft: CalendarEventDraft) -> str:
        ...

    def delete_event(self, account_id: str, event_id: str) -> None:
        ...


def parse_event_time(value: Dict[str, Any], default_timezone: str) -> datetime:
    """
    Parse a Google event start/end into an instant.

    RFC 3339 values carry their own offset. Offset-less values and all-day
    dates are local to the event's timeZone (or the hinted zone).
    """
    timezone = value.get('timeZone') or default_timezone

    if value.get('dateTime'):
        raw = value['dateTime']
        try:
            parsed = parser.isoparse(raw)
        except (ValueError, OverflowError) as e:
            raise TimezoneParseError(f"Invalid event time: {raw!r}") from e

        if parsed.tzinfo is not None:
            return TimezoneConverter.to_instant(parsed)
        return TimezoneConverter.wall_clock_to_instant(WallClockTime.from_datetime(parsed), timezone)

    if value.get('date'):
        day = WallClockTime.parse(f"{value['date']}T00:00:00")
        return TimezoneConverter.wall_clock_to_instant(day, timezone)

    raise TimezoneParseError(f"Event time has neither dateTime nor date: {value!r}")


def parse_google_event(event: Dict[str, Any], default_timezone: str) -> ProviderEvent:
    start = event.get('start', {})
    end = event.get('end', {})

    # Shown as "free" in the calendar UI
    blocking = event.get('transparency') != 'transparent' and event.get('status') != 'cancelled'

    return ProviderEvent(
        event_id=event.get('id'),
        summary=event.get('summary', 'No title'),
        start=parse_event_time(start, default_timezone),
        end=parse_event_time(end, default_timezone),
        timezone=start.get('timeZone') or default_timezone,
        blocking=blocking
    )


class GoogleCalendarGateway:
    def __init__(
        self,
        credential_store,
        calendar_id: str = 'primary',
        timeout: float = settings.calendar_timeout_seconds,
        max_results: int = settings.calendar_max_results
    ):
        self.credential_store = credential_store
        self.calendar_id = calendar_id
        self.timeout = timeout
        self.max_results = max_results
        logger.info("Initialized Google Calendar gateway")

    def _service(self, account_id: str):
        credentials = self.credential_store.load_credentials(account_id)
        if credentials is None:
            raise ExternalGatewayError(f"No calendar credentials for account {account_id}", retryable=False)

        http = AuthorizedHttp(credentials, http=httplib2.Http(timeout=self.timeout))
        return build('calendar', 'v3', http=http, cache_discovery=False)

    def _execute(self, request, action: str) -> Any:
        try:
            return request.execute()

        except HttpError as error:
            status = int(error.resp.status) if error.resp is not None else None
            retryable = status is None or status == 429 or status >= 500
            message = getattr(error, 'reason', None) or str(error)
            logger.error(f"Error {action}: {error}")
            raise ExternalGatewayError(message, retryable=retryable, status_code=status) from error

        except RefreshError as error:
            logger.error(f"Credentials rejected while {action}: {error}")
            raise ExternalGatewayError(f"Calendar credentials rejected: {error}", retryable=False) from error

        except (TimeoutError, OSError, TransportError, httplib2.HttpLib2Error) as error:
            logger.error(f"Calendar provider unreachable while {action}: {error}")
            raise ExternalGatewayError(f"Calendar provider unreachable: {error}", retryable=True) from error

    def get_events(
        self,
        account_id: str,
        range_start: datetime,
        range_end: datetime,
        timezone_hint: str
    ) -> List[ProviderEvent]:
        time_min = TimezoneConverter.to_instant(range_start).isoformat()
        time_max = TimezoneConverter.to_instant(range_end).isoformat()
        timezone = TimezoneConverter.normalize(timezone_hint)

        service = self._service(account_id)
        items: List[Dict[str, Any]] = []
        page_token = None

        while True:
            events_result = self._execute(
                service.events().list(
                    calendarId=self.calendar_id,
                    timeMin=time_min,
                    timeMax=time_max,
                    timeZone=timezone,
                    maxResults=self.max_results,
                    singleEvents=True,
                    orderBy='startTime',
                    pageToken=page_token
                ),
                "listing calendar events"
            )

            items.extend(events_result.get('items', []))
            page_token = events_result.get('nextPageToken')
            if not page_token:
                break

        logger.info(f"Retrieved {len(items)} events from calendar for {account_id}")

        events = []
        for item in items:
            # Unreadable events fail the whole read, never dropped
            try:
                event = parse_google_event(item, timezone)
            except TimezoneParseError as e:
                logger.error(f"Unreadable event {item.get('id')} from calendar of {account_id}: {e}")
                raise ExternalGatewayError(
                    f"Calendar returned an unreadable event: {e}", retryable=False
                ) from e

            logger.debug(
                f"Event {event.summary} [{'busy' if event.blocking else 'free'}]: "
                f"{event.start.isoformat()} to {event.end.isoformat()}"
            )
            events.append(event)

        return events

    def create_event(self, account_id: str, draft: CalendarEventDraft) -> str:
        event = {
            'summary': draft.subject,
            'description': draft.description,
            'start': {
                'dateTime': draft.start_local,
                'timeZone': draft.timezone,
            },
            'end': {
                'dateTime': draft.end_local,
                'timeZone': draft.timezone,
            },
            'reminders': {
                'useDefault': False,
                'overrides': [{'method': 'popup', 'minutes': draft.reminder_minutes}],
            },
        }

        service = self._service(account_id)
        created_event = self._execute(
            service.events().insert(calendarId=self.calendar_id, body=event),
            "creating calendar event"
        )

        logger.info(f"Created event: {draft.subject} at {draft.start_local} ({draft.timezone})")
        return created_event['id']

    def delete_event(self, account_id: str, event_id: str) -> None:
        service = self._service(account_id)
        self._execute(
            service.events().delete(calendarId=self.calendar_id, eventId=event_id),
            "deleting calendar event"
        )
        logger.info(f"Deleted event {event_id} for {account_id}")
